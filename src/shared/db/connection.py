"""Database connection manager with health checks and connection pooling."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from src.shared.config.logging import get_logger
from src.shared.config.settings import get_settings

logger = get_logger(__name__)


def _create_engine(database_url: str) -> Engine:
    settings = get_settings()
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share a single connection across sessions
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            database_url,
            poolclass=StaticPool if in_memory else None,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
        echo=False,
    )


class DatabaseManager:
    """Manages database connections with pooling and health checks.

    PostgreSQL in production; SQLite for local runs and tests.
    """

    def __init__(self, database_url: str | None = None) -> None:
        """Initialize database manager.

        Args:
            database_url: Database connection string. If None, loads from settings.
        """
        self._database_url = database_url or get_settings().database_url
        self._engine: Engine = _create_engine(self._database_url)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info("database_manager_initialized", dialect=self._engine.dialect.name)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def health_check(self) -> bool:
        """Check if database is reachable.

        Returns:
            True if database connection successful, False otherwise
        """
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("database_health_check_passed")
            return True
        except SQLAlchemyError as e:
            logger.error("database_health_check_failed", error=str(e))
            return False

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Commits on success, rolls back and re-raises on error.

        Example:
            with db_manager.session() as session:
                session.add(model)
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        logger.info("closing_database_connections")
        self._engine.dispose()


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db() -> DatabaseManager:
    """Get or create global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
