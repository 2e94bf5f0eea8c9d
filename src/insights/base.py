"""Canonical data models for the cycle insights engine.

Every engine in this package consumes the immutable ``CycleRecord`` /
``SymptomRecord`` / ``UserMetrics`` types defined here and returns the
result dataclasses below.  The API layer converts its pydantic schemas into
these types before calling an engine, so the engines never see raw JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Sequence
from uuid import uuid4

logger = logging.getLogger("cycleinsights.insights")


class InvalidInputError(ValueError):
    """Raised when a history cannot be scored as given (e.g. out of order)."""


class FlowIntensity(str, Enum):
    light = "light"
    moderate = "moderate"
    heavy = "heavy"


class WeightTrend(str, Enum):
    increasing = "increasing"
    stable = "stable"
    decreasing = "decreasing"


class Severity(str, Enum):
    medium = "medium"
    high = "high"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a collision-free identifier for a stored entity."""
    return uuid4().hex


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleRecord:
    """A single logged period.

    Attributes:
        record_id:      Unique identifier (uuid4 hex).
        start_date:     First day of bleeding.
        end_date:       Last day of bleeding.
        flow_intensity: Self-reported flow.
        duration:       Bleed length in days, end - start inclusive.
        cycle_length:   Days since the previous record's start (28 when the
                        previous record is missing or the gap is unrealistic).
    """

    record_id: str
    start_date: date
    end_date: date
    flow_intensity: FlowIntensity = FlowIntensity.moderate
    duration: int = 5
    cycle_length: int = 28


@dataclass(frozen=True)
class SymptomRecord:
    """One day's symptom log."""

    record_id: str
    date: date
    pain_score: float = 0.0
    acne: bool = False
    fatigue: bool = False
    mood_swings: bool = False
    bloating: bool = False


@dataclass(frozen=True)
class UserMetrics:
    """Body and history metrics supplied with each risk assessment.

    Attributes:
        bmi:            Body-mass index, or None when not provided.
        hirsutism:      Self-rated excess hair growth, 0-10.
        acne_severity:  Self-rated acne severity, 0-4.
        weight_trend:   Recent weight direction, or None.
        family_history: True if a first-degree relative has PCOS.
    """

    bmi: float | None = None
    hirsutism: float = 0.0
    acne_severity: float = 0.0
    weight_trend: WeightTrend | None = None
    family_history: bool = False

    def provided_count(self) -> int:
        """Number of metrics the user actually filled in."""
        return sum(
            1
            for value in (
                self.bmi,
                self.hirsutism or None,
                self.acne_severity or None,
                self.weight_trend,
                self.family_history or None,
            )
            if value is not None
        )


@dataclass(frozen=True)
class AdherenceEntry:
    """One day's lifestyle adherence log.

    Attributes:
        record_id:   Unique identifier; kept when the day is re-logged.
        date:        The day being logged (one entry per date).
        exercise:    True if the exercise goal was met.
        diet:        True if the diet plan was followed.
        sleep_hours: Hours slept.
        notes:       Free text.
    """

    record_id: str
    date: date
    exercise: bool = False
    diet: bool = False
    sleep_hours: float = 7.0
    notes: str = ""


def validate_history(cycles: Sequence[CycleRecord]) -> None:
    """Reject histories the scoring math cannot handle.

    Args:
        cycles: Cycle records, expected oldest first.

    Raises:
        InvalidInputError: If a record ends before it starts, has a negative
            duration, or the sequence is not in chronological order.
    """
    previous: CycleRecord | None = None
    for record in cycles:
        if record.end_date < record.start_date:
            raise InvalidInputError(
                f"Cycle {record.record_id} ends ({record.end_date}) before it starts "
                f"({record.start_date})"
            )
        if record.duration < 0:
            raise InvalidInputError(
                f"Cycle {record.record_id} has a negative duration ({record.duration})"
            )
        if previous is not None and record.start_date < previous.start_date:
            raise InvalidInputError(
                f"Cycle history is not chronological: {record.start_date} follows "
                f"{previous.start_date}"
            )
        previous = record


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Anomaly:
    """A transient pattern anomaly shown in the insights view."""

    type: str
    severity: Severity
    days: int
    message: str


@dataclass(frozen=True)
class RedFlag:
    """A clinical condition that should become a persistent alert."""

    type: str
    severity: Severity
    message: str
    days: int | None = None


@dataclass
class Alert:
    """A raised, user-visible alert held by the AlertLedger.

    Attributes:
        alert_id:  Unique identifier used for dismissal.
        type:      Alert type; at most one active alert per type.
        severity:  'medium' or 'high'.
        message:   Text shown to the user.
        timestamp: UTC time the alert was raised.
    """

    type: str
    severity: Severity
    message: str
    alert_id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def from_red_flag(cls, flag: RedFlag, now: datetime | None = None) -> Alert:
        return cls(
            type=flag.type,
            severity=flag.severity,
            message=flag.message,
            timestamp=now or utc_now(),
        )
