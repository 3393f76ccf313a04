"""Document store contract and its SQL-backed implementation."""

from .base import Document, DocumentStore, Filter, WriteBatch
from .sql import SqlDocumentStore, create_store_engine
from .tables import COLLECTIONS, GAMES, PLAYER_STATS, SEASONS, TEAM_STATS

__all__ = [
    "Document",
    "DocumentStore",
    "Filter",
    "WriteBatch",
    "SqlDocumentStore",
    "create_store_engine",
    "COLLECTIONS",
    "GAMES",
    "PLAYER_STATS",
    "SEASONS",
    "TEAM_STATS",
]
