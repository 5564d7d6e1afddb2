"""Repository pattern implementation for database access.

Provides a type-safe data access layer that returns Pydantic models.
"""

from src.shared.db.repositories.base import BaseRepository
from src.shared.db.repositories.vintage import VintageCreate, VintageModel, VintageRepository

__all__ = [
    "BaseRepository",
    "VintageRepository",
    "VintageCreate",
    "VintageModel",
]
