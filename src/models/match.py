"""matches table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class MatchModel(Base):
    """A series between two teams; maps and vetoes hang off it."""

    __tablename__ = "matches"
    __table_args__ = (Index("idx_matches_completed_at", "completed_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    team1_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    team2_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    format: Mapped[str | None] = mapped_column(String(16), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
