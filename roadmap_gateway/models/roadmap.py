"""Stored roadmap with its progress snapshot."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from roadmap_gateway.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Roadmap(Base):
    __tablename__ = "roadmaps"
    __table_args__ = (UniqueConstraint("user_id", "category", "course", name="uq_roadmaps_user_topic"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String, index=True)

    category: Mapped[str] = mapped_column(String)
    course: Mapped[str] = mapped_column(String)
    title: Mapped[str] = mapped_column(String)
    overview: Mapped[str] = mapped_column(Text, default="")

    # Denormalized progress, recomputed from the snapshot on every write
    milestone_count: Mapped[int] = mapped_column(Integer, default=0)
    progress_pct: Mapped[int] = mapped_column(Integer, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    milestones_snapshot: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
