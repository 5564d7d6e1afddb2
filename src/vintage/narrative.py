"""Narrative classification of flowering and harvest phases.

The classifiers label the two phases that decide a vintage's character;
`build_story` bundles those labels with the season metrics, and
`compose_summary` turns the bundle into a short deterministic write-up.
The same story is the context handed to the LLM narrator.
"""

from dataclasses import asdict, dataclass
from typing import Any

from src.shared.constants import HEAT_SPIKE_THRESHOLD_C
from src.vintage.models import (
    FloweringStatus,
    HarvestCondition,
    PhaseMetrics,
    SeasonalMetrics,
)


def classify_flowering(rain_mm: float, avg_temp: float | None) -> FloweringStatus:
    """Label the flowering phase.

    Branches are evaluated in order. Rain below 20 mm with temperatures
    between 15 and 18 °C matches none of the first three and lands on
    AVERAGE; an empty flowering window (avg_temp None) does too.
    """
    if avg_temp is None:
        return FloweringStatus.AVERAGE
    if rain_mm < 20 and avg_temp > 18:
        return FloweringStatus.EXCELLENT
    elif rain_mm > 80 or avg_temp < 15:
        return FloweringStatus.POOR
    elif 20 <= rain_mm <= 80:
        return FloweringStatus.GOOD
    return FloweringStatus.AVERAGE


def classify_harvest(rain_mm: float) -> HarvestCondition:
    """Label harvest conditions from rainfall in the harvest window."""
    if rain_mm > 50:
        return HarvestCondition.WET
    elif rain_mm > 20:
        return HarvestCondition.MIXED
    return HarvestCondition.DRY


@dataclass(frozen=True)
class VintageStory:
    """Structured context for narrative generation."""

    flowering_status: FloweringStatus
    flowering_rain_mm: float
    flowering_avg_temp: float | None
    harvest_condition: HarvestCondition
    harvest_rain_mm: float
    harvest_heat_days: int
    growing_degree_days: int
    total_rainfall_mm: float
    diurnal_shift_avg: float
    sunshine_hours: int
    frost_days: int
    heat_spike_days: int
    drought_stress: bool
    longest_dry_spell_days: int
    early_frost_days: int = 0
    late_frost_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["flowering_status"] = self.flowering_status.value
        data["harvest_condition"] = self.harvest_condition.value
        return data


def build_story(metrics: SeasonalMetrics, phases: PhaseMetrics) -> VintageStory:
    """Classify the phases and bundle them with the season metrics."""
    return VintageStory(
        flowering_status=classify_flowering(phases.flowering_rain_mm, phases.flowering_avg_temp),
        flowering_rain_mm=phases.flowering_rain_mm,
        flowering_avg_temp=phases.flowering_avg_temp,
        harvest_condition=classify_harvest(phases.harvest_rain_mm),
        harvest_rain_mm=phases.harvest_rain_mm,
        harvest_heat_days=phases.harvest_heat_days,
        growing_degree_days=metrics.growing_degree_days,
        total_rainfall_mm=metrics.total_rainfall_mm,
        diurnal_shift_avg=metrics.diurnal_shift_avg,
        sunshine_hours=metrics.sunshine_hours,
        frost_days=metrics.frost_days,
        heat_spike_days=metrics.heat_spike_days,
        drought_stress=phases.drought_stress,
        longest_dry_spell_days=phases.longest_dry_spell_days,
        early_frost_days=phases.early_frost_days,
        late_frost_days=phases.late_frost_days,
    )


def _spring_chapter(region_name: str, year: int, story: VintageStory) -> str:
    if story.flowering_status is FloweringStatus.EXCELLENT:
        text = (
            f"{region_name} opened {year} with an ideal flowering: settled weather "
            f"averaging {story.flowering_avg_temp}°C and little rain gave an even fruit set."
        )
    elif story.flowering_status is FloweringStatus.POOR:
        text = (
            f"Flowering in {year} was difficult. {story.flowering_rain_mm}mm of rain "
            f"or a cold spell over the critical weeks left an uneven set and lower yields."
        )
    else:
        text = f"Spring in {region_name} passed without incident and flowering was reliable."

    if story.frost_days > 2:
        text += (
            f" Frost struck on {story.frost_days} days, trimming volumes but "
            f"concentrating what remained on the vine."
        )
    return text


def _summer_chapter(story: VintageStory) -> str:
    if story.heat_spike_days > 5:
        text = (
            f"Summer was fierce, with {story.heat_spike_days} days above "
            f"{HEAT_SPIKE_THRESHOLD_C:.0f}°C."
        )
        if story.drought_stress:
            text += " Dry soils pushed the vines into stress and ripening stalled at times."
        else:
            text += " Water reserves held, so the vines rode out the heat."
    elif story.growing_degree_days > 1600:
        text = "Warmth was generous and steady through the summer, giving an even veraison."
    else:
        text = "The season stayed cool and long, favouring aromatics over sugar."

    if story.diurnal_shift_avg > 13:
        text += (
            f" Cool nights, with a {story.diurnal_shift_avg}°C average swing, "
            f"kept the fruit fresh."
        )
    elif story.diurnal_shift_avg < 9:
        text += (
            f" Warm nights ({story.diurnal_shift_avg}°C average swing) softened acidity."
        )
    return text


def _harvest_chapter(story: VintageStory) -> str:
    if story.harvest_rain_mm < 30 and story.harvest_heat_days == 0:
        text = (
            f"Harvest was calm and dry ({story.harvest_rain_mm}mm), letting growers "
            f"pick at full phenolic ripeness."
        )
    elif story.harvest_condition is HarvestCondition.WET:
        text = (
            f"Harvest turned into a race against {story.harvest_rain_mm}mm of rain, "
            f"and careful sorting decided the quality of the wines."
        )
    elif story.harvest_heat_days > 2:
        text = "Late heat compressed the harvest into a short, hurried window."
    else:
        text = "Harvest ran between showers and rewarded nimble vineyard teams."

    if story.late_frost_days > 0:
        text += (
            f" An early autumn chill brought {story.late_frost_days} frost night(s) "
            f"before picking ended."
        )
    return text


def _verdict(story: VintageStory) -> str:
    if story.growing_degree_days > 1700:
        return "A warm, generous vintage built on ripe fruit and power."
    if story.growing_degree_days < 1300:
        return "A classic cool year of elegance, acidity and structure."
    return "A balanced, dependable vintage."


def compose_summary(region_name: str, year: int, story: VintageStory) -> str:
    """Deterministic multi-paragraph vintage write-up."""
    chapters = [
        _spring_chapter(region_name, year, story),
        _summer_chapter(story),
        _harvest_chapter(story),
        f"**Verdict:** {_verdict(story)}",
    ]
    return "\n\n".join(chapters)
