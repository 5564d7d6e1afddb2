"""Base repository class shared by table repositories."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from src.shared.config.logging import get_logger
from src.shared.db.connection import DatabaseManager
from src.shared.db.models import Base

logger = get_logger(__name__)

# Generic type for ORM models
T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository binding a database manager to one ORM model."""

    def __init__(self, db_manager: DatabaseManager, model_class: type[T]) -> None:
        """Initialize repository.

        Args:
            db_manager: Database manager instance
            model_class: SQLAlchemy model class for this repository
        """
        self._db = db_manager
        self._model_class = model_class
        self._table_name = model_class.__tablename__
        logger.debug("repository_initialized", table=self._table_name)

    @property
    def model_class(self) -> type[T]:
        return self._model_class

    @staticmethod
    def _utc_now() -> datetime:
        return datetime.now(timezone.utc)
