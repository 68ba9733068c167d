"""maps table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class MapResultModel(Base):
    """One played map. ``processed`` flips once its rating records exist."""

    __tablename__ = "maps"
    __table_args__ = (
        CheckConstraint("winner_rounds >= 0 AND loser_rounds >= 0", name="ck_maps_rounds_non_negative"),
        CheckConstraint("winner_team_id <> loser_team_id", name="ck_maps_distinct_teams"),
        Index("idx_maps_pending", "processed", "completed_at", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int | None] = mapped_column(ForeignKey("matches.id"), nullable=True)
    map_name: Mapped[str] = mapped_column(String(64), nullable=False)
    winner_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    loser_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    winner_rounds: Mapped[int] = mapped_column(Integer, nullable=False)
    loser_rounds: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
