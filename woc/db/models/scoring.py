from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from woc.db.models.base import Base, TimestampMixin


class ScoringBucket(Base, TimestampMixin):
    __tablename__ = "scoring_buckets"

    id: Mapped[int] = mapped_column(primary_key=True)
    min_lines: Mapped[int] = mapped_column(unique=True, nullable=False)
    points: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<ScoringBucket >={self.min_lines} lines: {self.points}>"
