"""Database repository helpers."""

from repositories.rating_store import SqlAlchemyRatingStore, ensure_schema
from repositories.veto_repository import SqlAlchemyVetoStore

__all__ = [
    "SqlAlchemyRatingStore",
    "SqlAlchemyVetoStore",
    "ensure_schema",
]
