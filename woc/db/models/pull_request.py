from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from woc.db.models.base import Base, TimestampMixin


class PullRequestStatus(str, Enum):
    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


class PullRequest(Base, TimestampMixin):
    __tablename__ = "pull_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Upstream identity
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    number: Mapped[int] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    html_url: Mapped[str | None] = mapped_column(Text)

    status: Mapped[PullRequestStatus] = mapped_column(
        SQLEnum(
            PullRequestStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=PullRequestStatus.OPEN,
        nullable=False,
    )
    points: Mapped[int] = mapped_column(default=0, nullable=False)

    # Validation
    is_validated: Mapped[bool] = mapped_column(default=False, nullable=False)
    validated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
    )
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Upstream data
    github_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    github_merged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    github_closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    additions: Mapped[int] = mapped_column(default=0, nullable=False)
    deletions: Mapped[int] = mapped_column(default=0, nullable=False)
    github_data: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))

    # Relationships
    user = relationship("User", back_populates="pull_requests", foreign_keys=[user_id])
    project = relationship("Project", back_populates="pull_requests")
    validated_by = relationship("User", foreign_keys=[validated_by_id])

    __table_args__ = (
        Index("idx_pull_requests_user", "user_id"),
        Index("idx_pull_requests_project", "project_id"),
        Index("idx_pull_requests_status", "status"),
        Index("idx_pull_requests_validated", "is_validated", "validated_at"),
        Index("idx_pull_requests_created", "github_created_at"),
    )

    def __repr__(self) -> str:
        return f"<PullRequest #{self.number} by user_id={self.user_id} status={self.status}>"
