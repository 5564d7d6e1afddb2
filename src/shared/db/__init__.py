"""Database connection, ORM models, and the vintage repository."""

from src.shared.db.connection import DatabaseManager, get_db
from src.shared.db.migrate import init_schema
from src.shared.db.models import Base, Vintage
from src.shared.db.repositories import (
    BaseRepository,
    VintageCreate,
    VintageModel,
    VintageRepository,
)


def get_vintage_repository(db_manager: DatabaseManager | None = None) -> VintageRepository:
    """Get a vintage repository on the provided or global DatabaseManager.

    Example:
        >>> repo = get_vintage_repository()
        >>> repo.get("bordeaux", 2020)
    """
    return VintageRepository(db_manager or get_db())


__all__ = [
    # Connection management
    "DatabaseManager",
    "get_db",
    "init_schema",
    # ORM
    "Base",
    "Vintage",
    # Repositories
    "BaseRepository",
    "VintageRepository",
    "VintageCreate",
    "VintageModel",
    # Factory functions
    "get_vintage_repository",
]
