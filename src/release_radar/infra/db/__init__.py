"""DB 向けインフラ。"""

from .models import Base, Game, GameTag, Tag
from .repositories import SQLAlchemyCatalogRepository
from .session import DatabaseError, DatabaseSessionManager

__all__ = [
    "Base",
    "DatabaseError",
    "DatabaseSessionManager",
    "Game",
    "GameTag",
    "SQLAlchemyCatalogRepository",
    "Tag",
]
