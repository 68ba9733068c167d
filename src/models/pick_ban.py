"""Pick/ban optimality tables."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class MatchVetoAnalysisModel(Base):
    """Per-turn replay of one match's draft."""

    __tablename__ = "match_veto_analysis"
    __table_args__ = (
        UniqueConstraint("match_id", "veto_order", name="uq_match_veto_analysis_match_order"),
        CheckConstraint("elo_lost >= 0.0", name="ck_match_veto_analysis_elo_lost"),
        Index("idx_match_veto_analysis_team", "team_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    veto_order: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    map_name: Mapped[str] = mapped_column(String(64), nullable=False)
    elo_lost: Mapped[float] = mapped_column(Float, nullable=False)
    cumulative_elo_lost: Mapped[float] = mapped_column(Float, nullable=False)
    optimal_choice: Mapped[str] = mapped_column(String(64), nullable=False)
    available_maps: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class MatchPickBanAnalysisModel(Base):
    """Total rating given up by one team in one match's draft."""

    __tablename__ = "match_pick_ban_analysis"
    __table_args__ = (
        UniqueConstraint("match_id", "team_id", name="uq_match_pick_ban_analysis_match_team"),
        Index("idx_match_pick_ban_analysis_team", "team_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    elo_lost: Mapped[float] = mapped_column(Float, nullable=False)
    scored_actions: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
