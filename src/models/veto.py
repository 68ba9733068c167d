"""match_vetoes table model."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class MatchVetoModel(Base):
    __tablename__ = "match_vetoes"
    __table_args__ = (
        UniqueConstraint("match_id", "order_index", name="uq_match_vetoes_match_order"),
        CheckConstraint("action IN ('ban', 'pick', 'decider')", name="ck_match_vetoes_action"),
        Index("idx_match_vetoes_match", "match_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    map_name: Mapped[str] = mapped_column(String(64), nullable=False)
    team_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
