from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from woc.db.models.base import Base, TimestampMixin


class UserRole(str, Enum):
    CONTRIBUTOR = "contributor"
    MENTOR = "mentor"
    ADMIN = "admin"


VALIDATOR_ROLES = frozenset({UserRole.MENTOR, UserRole.ADMIN})


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    github_username: Mapped[str | None] = mapped_column(String(255), unique=True)
    avatar_url: Mapped[str | None] = mapped_column(Text)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        default=UserRole.CONTRIBUTOR,
        nullable=False,
    )

    # Materialized stats, rebuilt from validated pull requests
    total_prs: Mapped[int] = mapped_column(default=0, nullable=False)
    merged_prs: Mapped[int] = mapped_column(default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(default=0, nullable=False)

    # Weekly snapshot taken at the last recompute
    weekly_points: Mapped[int] = mapped_column(default=0, nullable=False)
    weekly_prs: Mapped[int] = mapped_column(default=0, nullable=False)
    weekly_stats_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    pull_requests = relationship(
        "PullRequest",
        back_populates="user",
        foreign_keys="PullRequest.user_id",
    )

    __table_args__ = (
        Index("idx_users_github_username", "github_username"),
        Index("idx_users_total_points", "total_points"),
    )

    @property
    def can_validate(self) -> bool:
        return self.role in VALIDATOR_ROLES

    def __repr__(self) -> str:
        return f"<User {self.github_username or self.email}>"
