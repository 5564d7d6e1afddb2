"""Region catalogue loader.

Loads wine-growing regions from a JSON file keyed by slug. Each entry
carries the coordinates used for the weather fetch; the latitude sign
decides the hemisphere of the growing season.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from src.shared.api.errors import ConfigurationError, UnknownRegionError


class RegionConfig(BaseModel):
    """Configuration for a single wine region."""

    slug: str = Field(..., min_length=1, description="Stable region identifier")
    name: str = Field(..., description="Display name")
    country: str = Field(..., description="Country name")
    country_code: str = Field(..., min_length=2, max_length=2, description="ISO country code")
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")


class RegionCatalog:
    """Loads and validates the region catalogue from a JSON file."""

    def __init__(self, config_path: Path | str | None = None) -> None:
        """Initialize region catalogue.

        Args:
            config_path: Path to regions.json. If None, uses default location.
        """
        if config_path is None:
            config_path = Path("data/regions/regions.json")
        self.config_path = Path(config_path)
        self._regions: dict[str, RegionConfig] = {}

    @classmethod
    def from_regions(cls, regions: list[RegionConfig]) -> "RegionCatalog":
        """Build an in-memory catalogue without touching the filesystem."""
        catalog = cls()
        catalog._regions = {region.slug: region for region in regions}
        return catalog

    def load(self) -> dict[str, RegionConfig]:
        """Load region configurations from the JSON file.

        Returns:
            Dictionary mapping slugs to RegionConfig objects

        Raises:
            ConfigurationError: If the file is missing or an entry is invalid
        """
        if not self.config_path.exists():
            raise ConfigurationError(
                f"Region catalogue not found: {self.config_path}",
                details={"path": str(self.config_path)},
            )

        with open(self.config_path) as f:
            data: dict[str, Any] = json.load(f)

        try:
            regions = {slug: RegionConfig(**entry) for slug, entry in data.items()}
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid region catalogue: {e.error_count()} validation errors",
                details={"path": str(self.config_path)},
            ) from e

        mismatched = [slug for slug, region in regions.items() if region.slug != slug]
        if mismatched:
            raise ConfigurationError(
                f"Region keys do not match their slugs: {mismatched}",
                details={"path": str(self.config_path)},
            )

        self._regions = regions
        return self._regions

    def get_region(self, slug: str) -> RegionConfig:
        """Get configuration for a specific region.

        Raises:
            UnknownRegionError: If the slug is not in the catalogue
        """
        if not self._regions:
            self.load()
        try:
            return self._regions[slug]
        except KeyError:
            raise UnknownRegionError(slug) from None

    def get_all_regions(self) -> dict[str, RegionConfig]:
        """Get all region configurations, in catalogue order."""
        if not self._regions:
            self.load()
        return self._regions.copy()
