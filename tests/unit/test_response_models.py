"""Unit tests for archive response models."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.shared.api.response_models import ArchiveDaily, ArchiveResponse


class TestArchiveDaily:
    """Test suite for ArchiveDaily."""

    def test_parses_dates(self) -> None:
        daily = ArchiveDaily(
            time=["2021-01-01", "2021-01-02"],
            temperature_2m_max=[9.0, 10.5],
            temperature_2m_min=[1.0, -0.5],
        )

        assert daily.time == [date(2021, 1, 1), date(2021, 1, 2)]

    def test_optional_arrays_may_be_absent(self) -> None:
        daily = ArchiveDaily(
            time=["2021-01-01"],
            temperature_2m_max=[9.0],
            temperature_2m_min=[1.0],
        )

        (day,) = daily.to_observations()
        assert day.precipitation == 0.0
        assert day.sunshine_duration is None

    def test_misaligned_temperature_rejected(self) -> None:
        with pytest.raises(ValidationError, match="temperature_2m_min"):
            ArchiveDaily(
                time=["2021-01-01", "2021-01-02"],
                temperature_2m_max=[9.0, 10.5],
                temperature_2m_min=[1.0],
            )

    def test_misaligned_sunshine_rejected(self) -> None:
        with pytest.raises(ValidationError, match="sunshine_duration"):
            ArchiveDaily(
                time=["2021-01-01", "2021-01-02"],
                temperature_2m_max=[9.0, 10.5],
                temperature_2m_min=[1.0, 2.0],
                sunshine_duration=[3600.0],
            )

    def test_null_entries(self) -> None:
        daily = ArchiveDaily(
            time=["2021-01-01"],
            temperature_2m_max=[None],
            temperature_2m_min=[None],
            precipitation_sum=[None],
            sunshine_duration=[None],
        )

        (day,) = daily.to_observations()
        assert day.has_temperatures is False
        assert day.precipitation == 0.0


class TestArchiveResponse:
    def test_daily_required(self) -> None:
        with pytest.raises(ValidationError):
            ArchiveResponse.model_validate({"latitude": 1.0, "longitude": 2.0})

    def test_extra_fields_ignored(self) -> None:
        response = ArchiveResponse.model_validate(
            {
                "latitude": 44.84,
                "longitude": -0.58,
                "generationtime_ms": 1.2,
                "daily_units": {"temperature_2m_max": "°C"},
                "daily": {
                    "time": ["2021-01-01"],
                    "temperature_2m_max": [9.0],
                    "temperature_2m_min": [1.0],
                },
            }
        )

        assert response.latitude == 44.84
        assert len(response.daily.time) == 1
