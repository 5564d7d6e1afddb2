"""Ingestion orchestration and command line entry points."""

from src.ingestion.orchestrator import IngestionStats, JobState, VintageIngestor, VintageJob, create_ingestor

__all__ = [
    "VintageIngestor",
    "VintageJob",
    "JobState",
    "IngestionStats",
    "create_ingestor",
]
