"""Response models for the Open-Meteo archive API.

Pydantic models for parsing and validating the daily block of an archive
response before it is turned into DailyObservation values.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.vintage.models import DailyObservation


class ArchiveDaily(BaseModel):
    """Parallel daily arrays from the archive endpoint.

    Every array is aligned with `time`; any entry may be null.
    """

    model_config = ConfigDict(extra="ignore")

    time: list[date] = Field(..., description="Calendar dates, ascending")
    temperature_2m_max: list[float | None] = Field(..., description="Daily max temperature (°C)")
    temperature_2m_min: list[float | None] = Field(..., description="Daily min temperature (°C)")
    precipitation_sum: list[float | None] = Field(
        default_factory=list, description="Daily precipitation (mm)"
    )
    sunshine_duration: list[float | None] = Field(
        default_factory=list, description="Daily sunshine duration (seconds)"
    )

    @model_validator(mode="after")
    def check_alignment(self) -> "ArchiveDaily":
        """Ensure every present array matches the length of `time`."""
        n = len(self.time)
        for name in ("temperature_2m_max", "temperature_2m_min"):
            if len(getattr(self, name)) != n:
                raise ValueError(f"{name} has {len(getattr(self, name))} entries, expected {n}")
        for name in ("precipitation_sum", "sunshine_duration"):
            values = getattr(self, name)
            if values and len(values) != n:
                raise ValueError(f"{name} has {len(values)} entries, expected {n}")
        return self

    def to_observations(self) -> list[DailyObservation]:
        """Flatten the parallel arrays into per-day observations.

        Missing precipitation becomes 0 mm; missing sunshine stays None.
        """
        n = len(self.time)
        precipitation = self.precipitation_sum or [None] * n
        sunshine = self.sunshine_duration or [None] * n
        return [
            DailyObservation(
                date=self.time[i],
                max_temperature=self.temperature_2m_max[i],
                min_temperature=self.temperature_2m_min[i],
                precipitation=precipitation[i] or 0.0,
                sunshine_duration=sunshine[i],
            )
            for i in range(n)
        ]


class ArchiveResponse(BaseModel):
    """Top-level archive response."""

    model_config = ConfigDict(extra="ignore")

    latitude: float | None = Field(None, description="Grid cell latitude")
    longitude: float | None = Field(None, description="Grid cell longitude")
    timezone: str | None = Field(None, description="Resolved timezone")
    daily: ArchiveDaily = Field(..., description="Daily variable block")
