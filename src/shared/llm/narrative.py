"""Vintage narrative generation.

Narratives are best-effort: a failure never blocks scoring or
persistence, it only leaves the stored narrative empty.
"""

from typing import Any

from src.shared.config.logging import get_logger
from src.shared.config.settings import NarrativeMode
from src.shared.llm.openrouter import OpenRouterClient, OpenRouterError, create_openrouter_client
from src.vintage.models import VintageAssessment
from src.vintage.narrative import VintageStory, compose_summary

logger = get_logger(__name__)

VINTAGE_SYSTEM_PROMPT = """You are an expert wine writer for Grapeyear, a wine vintage platform. Write strictly in English.

Summarize the conditions of a single vintage from the weather metrics provided.

Guidelines:
1. Be objective but evocative
2. Keep it to three short paragraphs: spring and flowering, summer, harvest
3. End with a one-sentence verdict on the style of the wines
4. Use only the figures provided; do not invent events
5. Do not use Markdown headings"""


class VintageNarrator:
    """Base class for narrative producers."""

    name = "base"

    def narrate(
        self,
        region_name: str,
        year: int,
        story: VintageStory,
        assessment: VintageAssessment,
    ) -> str | None:
        raise NotImplementedError("Subclasses must implement narrate()")


class TemplateNarrator(VintageNarrator):
    """Deterministic in-process summary."""

    name = "template"

    def narrate(
        self,
        region_name: str,
        year: int,
        story: VintageStory,
        assessment: VintageAssessment,
    ) -> str | None:
        return compose_summary(region_name, year, story)


class LLMNarrator(VintageNarrator):
    """Narrative written by an LLM through OpenRouter.

    Example:
        narrator = LLMNarrator(create_openrouter_client(api_key))
        text = narrator.narrate("Bordeaux", 2019, story, assessment)
    """

    name = "llm"

    def __init__(self, client: OpenRouterClient) -> None:
        self._client = client
        logger.info("llm_narrator_initialized", model=client.model)

    def build_prompt(
        self,
        region_name: str,
        year: int,
        story: VintageStory,
        assessment: VintageAssessment,
    ) -> str:
        """Render the vintage context into a prompt."""
        flowering_temp = (
            f"{story.flowering_avg_temp}°C" if story.flowering_avg_temp is not None else "n/a"
        )
        return f"""Write the vintage report for {region_name} {year}.

SCORE: {assessment.score}/100 ({assessment.quality.value})

GROWING SEASON:
- Growing degree days (base 10°C): {story.growing_degree_days}
- Total rainfall: {story.total_rainfall_mm} mm
- Average diurnal range: {story.diurnal_shift_avg}°C
- Sunshine: {story.sunshine_hours} hours
- Frost days: {story.frost_days} (early season: {story.early_frost_days}, pre-harvest: {story.late_frost_days})
- Heat spike days (>35°C): {story.heat_spike_days}
- Drought stress: {"yes" if story.drought_stress else "no"}
- Longest dry spell: {story.longest_dry_spell_days} days

FLOWERING: {story.flowering_status.value} ({story.flowering_rain_mm} mm rain, average {flowering_temp})

HARVEST: {story.harvest_condition.value} ({story.harvest_rain_mm} mm rain, {story.harvest_heat_days} days above 30°C)"""

    def narrate(
        self,
        region_name: str,
        year: int,
        story: VintageStory,
        assessment: VintageAssessment,
    ) -> str | None:
        prompt = self.build_prompt(region_name, year, story, assessment)
        try:
            response = self._client.chat(prompt=prompt, system_prompt=VINTAGE_SYSTEM_PROMPT)
        except OpenRouterError as e:
            logger.warning(
                "vintage_narrative_failed",
                region=region_name,
                year=year,
                error=str(e),
            )
            return None

        content = response.content.strip()
        if not content:
            logger.warning("vintage_narrative_empty", region=region_name, year=year)
            return None

        logger.info(
            "vintage_narrative_generated",
            region=region_name,
            year=year,
            latency_ms=response.latency_ms,
        )
        return content


def create_narrator(settings: Any) -> VintageNarrator | None:
    """Build the narrator selected by settings.narrative_mode.

    Returns:
        A narrator, or None when narratives are off

    Raises:
        ConfigurationError: If llm mode is selected without an API key
    """
    mode = settings.narrative_mode
    if mode is NarrativeMode.OFF:
        return None
    if mode is NarrativeMode.LLM:
        client = create_openrouter_client(settings.openrouter_api_key, settings.openrouter_model)
        return LLMNarrator(client)
    return TemplateNarrator()
