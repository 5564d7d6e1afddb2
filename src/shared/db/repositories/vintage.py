"""Vintage repository.

Idempotent upserts keyed by (region_id, year) and read access returning
Pydantic models.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.shared.api.errors import ErrorCode, PersistenceError
from src.shared.config.logging import get_logger
from src.shared.db.connection import DatabaseManager
from src.shared.db.models import Vintage
from src.shared.db.repositories.base import BaseRepository

logger = get_logger(__name__)


# ============================================================================
# Pydantic Models for Repository Returns
# ============================================================================


class VintageModel(BaseModel):
    """Pydantic model for a stored vintage."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    region_id: str
    year: int
    unique_composite: str
    score: int
    quality: str
    growing_degree_days: int
    total_rainfall_mm: float
    avg_temperature: float
    diurnal_shift_avg: float
    sunshine_hours: int
    frost_days: int
    heat_spike_days: int = 0
    story: dict[str, Any] | None = None
    narrative: str | None = None
    created_at: datetime
    updated_at: datetime


class VintageCreate(BaseModel):
    """Full replacement values for one (region, year) vintage."""

    region_id: str = Field(..., min_length=1, max_length=64)
    year: int = Field(..., ge=1900, le=2200)
    score: int = Field(..., ge=0, le=100)
    quality: str
    growing_degree_days: int
    total_rainfall_mm: float
    avg_temperature: float
    diurnal_shift_avg: float
    sunshine_hours: int
    frost_days: int
    heat_spike_days: int = 0
    story: dict[str, Any] | None = None
    narrative: str | None = None

    @property
    def unique_composite(self) -> str:
        return f"{self.region_id}_{self.year}"

    def to_row(self) -> dict[str, Any]:
        row = self.model_dump()
        row["unique_composite"] = self.unique_composite
        return row


# ============================================================================
# Repository Implementation
# ============================================================================

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class VintageRepository(BaseRepository[Vintage]):
    """Repository for vintage records.

    Every write is an INSERT ... ON CONFLICT (region_id, year) DO UPDATE,
    so re-running an ingestion converges on the same rows.

    Example:
        >>> repo = VintageRepository(db_manager)
        >>> repo.upsert(VintageCreate(region_id="bordeaux", year=2020, ...))
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        super().__init__(db_manager, Vintage)

    def _upsert_statement(self, rows: list[dict[str, Any]]):
        dialect = self._db.dialect
        try:
            insert = _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise PersistenceError(
                f"Upsert not supported for dialect {dialect}",
                details={"dialect": dialect},
            ) from None

        stmt = insert(Vintage).values(rows)
        overwrite = {
            column: stmt.excluded[column]
            for column in rows[0]
            if column not in ("region_id", "year")
        }
        overwrite["updated_at"] = self._utc_now()
        return stmt.on_conflict_do_update(index_elements=["region_id", "year"], set_=overwrite)

    def bulk_upsert(self, vintages: list[VintageCreate]) -> int:
        """Insert or fully overwrite a batch of vintages in one transaction.

        Args:
            vintages: Replacement values, one per (region, year)

        Returns:
            Number of rows written

        Raises:
            PersistenceError: If the store rejects the write
        """
        if not vintages:
            return 0

        rows = [v.to_row() for v in vintages]
        try:
            with self._db.session() as session:
                session.execute(self._upsert_statement(rows))
        except SQLAlchemyError as e:
            logger.error("vintage_upsert_failed", rows=len(rows), error=str(e))
            raise PersistenceError(
                f"Failed to upsert {len(rows)} vintage(s)",
                details={
                    "keys": [v.unique_composite for v in vintages][:20],
                    "error": str(e),
                },
            ) from e

        logger.info("vintages_upserted", rows=len(rows))
        return len(rows)

    def upsert(self, vintage: VintageCreate) -> int:
        """Insert or fully overwrite a single vintage.

        Raises:
            PersistenceError: If the store rejects the write
        """
        return self.bulk_upsert([vintage])

    @contextmanager
    def _read(self, operation: str, **details: Any) -> Iterator[Session]:
        """Session for a read query, with driver errors raised as PersistenceError."""
        try:
            with self._db.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("vintage_read_failed", operation=operation, error=str(e), **details)
            raise PersistenceError(
                f"Failed to {operation}",
                details={**details, "error": str(e)},
                error_code=ErrorCode.PERSISTENCE_READ_FAILED,
            ) from e

    def get(self, region_id: str, year: int) -> VintageModel | None:
        """Get the stored vintage for a region and year.

        Raises:
            PersistenceError: If the store cannot be read
        """
        with self._read("read vintage", region_id=region_id, year=year) as session:
            stmt = select(Vintage).where(Vintage.region_id == region_id, Vintage.year == year)
            result = session.execute(stmt).scalar_one_or_none()
            return VintageModel.model_validate(result) if result else None

    def list_for_region(
        self,
        region_id: str,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> list[VintageModel]:
        """List a region's vintages in year order, optionally bounded."""
        with self._read("list vintages", region_id=region_id) as session:
            stmt = select(Vintage).where(Vintage.region_id == region_id)
            if start_year is not None:
                stmt = stmt.where(Vintage.year >= start_year)
            if end_year is not None:
                stmt = stmt.where(Vintage.year <= end_year)
            stmt = stmt.order_by(Vintage.year)
            return [VintageModel.model_validate(r) for r in session.execute(stmt).scalars().all()]

    def existing_years(self, region_id: str, start_year: int, end_year: int) -> set[int]:
        """Years already stored for a region within an inclusive range.

        Raises:
            PersistenceError: If the store cannot be read
        """
        with self._read(
            "read stored years", region_id=region_id, start_year=start_year, end_year=end_year
        ) as session:
            stmt = select(Vintage.year).where(
                Vintage.region_id == region_id,
                Vintage.year >= start_year,
                Vintage.year <= end_year,
            )
            return set(session.execute(stmt).scalars().all())

    def count_for_range(self, region_id: str, start_year: int, end_year: int) -> int:
        """Count stored vintages for a region within an inclusive range."""
        with self._read("count vintages", region_id=region_id) as session:
            stmt = select(func.count()).select_from(Vintage).where(
                Vintage.region_id == region_id,
                Vintage.year >= start_year,
                Vintage.year <= end_year,
            )
            return session.execute(stmt).scalar_one()
