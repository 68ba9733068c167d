"""elo_ratings and elo_ratings_current table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class EloRatingModel(Base):
    """Rating history. ``map_result_id`` is null for season baselines."""

    __tablename__ = "elo_ratings"
    __table_args__ = (
        Index("idx_elo_ratings_team_map_date", "team_id", "map_name", "rating_date"),
        Index("idx_elo_ratings_date", "rating_date"),
        Index("idx_elo_ratings_map_result", "map_result_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    map_name: Mapped[str] = mapped_column(String(64), nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    rating_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    map_result_id: Mapped[int | None] = mapped_column(ForeignKey("maps.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class EloRatingCurrentModel(Base):
    """Latest rating per (team, map) within a season."""

    __tablename__ = "elo_ratings_current"
    __table_args__ = (
        UniqueConstraint("season_id", "team_id", "map_name", name="uq_elo_ratings_current_season_team_map"),
        Index("idx_elo_ratings_current_season", "season_id", "rating"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    map_name: Mapped[str] = mapped_column(String(64), nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    rating_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
