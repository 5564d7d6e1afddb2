"""SQLAlchemy ORM models for the vintage store.

One row per (region, vintage year), overwritten wholesale on every
ingestion of that pair.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Vintage(Base):
    """Scored vintage for a region and year.

    Holds the seasonal metrics snapshot as columns, the phase story as
    JSON, and the optional narrative.
    """

    __tablename__ = "vintages"
    __table_args__ = (
        UniqueConstraint("region_id", "year", name="uq_vintages_region_year"),
        Index("idx_vintages_year_score", "year", "score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    unique_composite: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    quality: Mapped[str] = mapped_column(String(20), nullable=False)

    growing_degree_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_rainfall_mm: Mapped[float] = mapped_column(Float, nullable=False)
    avg_temperature: Mapped[float] = mapped_column(Float, nullable=False)
    diurnal_shift_avg: Mapped[float] = mapped_column(Float, nullable=False)
    sunshine_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    frost_days: Mapped[int] = mapped_column(Integer, nullable=False)
    heat_spike_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    story: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    narrative: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Vintage(region={self.region_id}, year={self.year}, score={self.score})>"
