"""Construction of new cycle and symptom records from user entries."""

from __future__ import annotations

from datetime import date, timedelta

from src.insights.base import (
    CycleRecord,
    FlowIntensity,
    InvalidInputError,
    SymptomRecord,
    new_id,
)
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_stats import round_half_up


def build_cycle_record(
    start_date: date,
    end_date: date | None = None,
    flow_intensity: FlowIntensity = FlowIntensity.moderate,
    previous: CycleRecord | None = None,
    config: InsightsConfig | None = None,
) -> CycleRecord:
    """Create a CycleRecord, deriving duration and cycle length.

    Args:
        start_date:     First day of bleeding.
        end_date:       Last day of bleeding; when omitted the period is
                        assumed to last the default duration.
        flow_intensity: Self-reported flow.
        previous:       The most recent stored record, if any.
        config:         Defaults and plausibility bounds.

    Returns:
        A new record with a fresh id.

    Raises:
        InvalidInputError: If the period ends before it starts or starts
            before the previous record.
    """
    tr = (config or get_insights_config()).tracking

    if end_date is None:
        duration = tr.default_duration_days
        end_date = start_date + timedelta(days=duration - 1)
    else:
        if end_date < start_date:
            raise InvalidInputError(f"End date {end_date} is before start date {start_date}")
        duration = (end_date - start_date).days + 1

    cycle_length = 28
    if previous is not None:
        if start_date < previous.start_date:
            raise InvalidInputError(
                f"Start date {start_date} is before the last logged period ({previous.start_date})"
            )
        gap = (start_date - previous.start_date).days
        if tr.min_cycle_length_days <= gap <= tr.max_cycle_length_days:
            cycle_length = gap

    return CycleRecord(
        record_id=new_id(),
        start_date=start_date,
        end_date=end_date,
        flow_intensity=FlowIntensity(flow_intensity),
        duration=duration,
        cycle_length=cycle_length,
    )


def build_symptom_record(
    on: date,
    pain_score: float = 0.0,
    acne: bool = False,
    fatigue: bool = False,
    mood_swings: bool = False,
    bloating: bool = False,
) -> SymptomRecord:
    if not 0 <= pain_score <= 10:
        raise InvalidInputError(f"Pain score must be between 0 and 10, got {pain_score}")
    return SymptomRecord(
        record_id=new_id(),
        date=on,
        pain_score=pain_score,
        acne=acne,
        fatigue=fatigue,
        mood_swings=mood_swings,
        bloating=bloating,
    )


def bmi_from(weight_kg: float, height_cm: float) -> float:
    """Body-mass index to one decimal place, rounded half-up."""
    if weight_kg <= 0 or height_cm <= 0:
        raise InvalidInputError(
            f"Weight and height must be positive, got {weight_kg} kg and {height_cm} cm"
        )
    bmi = weight_kg / (height_cm / 100) ** 2
    return round_half_up(bmi * 10) / 10
