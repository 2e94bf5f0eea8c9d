"""Forward-looking period predictions.

Forecasts the next few period windows from a recency-weighted average of
recent cycle lengths.  Projections are anchored on *today*, not on the last
logged start, so a user who forgot to log a period still sees upcoming
dates rather than dates in the past.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Sequence

from src.insights.base import CycleRecord, validate_history
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_stats import CycleStatisticsAnalyzer, round_half_up

logger = logging.getLogger("cycleinsights.insights.predictor")


@dataclass(frozen=True)
class PredictedPeriod:
    """One projected period window.

    Attributes:
        sequence:   1-based position among surviving predictions.
        start_date: Predicted first day of bleeding.
        end_date:   start_date + avg_duration - 1.
    """

    sequence: int
    start_date: date
    end_date: date


@dataclass
class ForecastResult:
    """Prediction bundle for the upcoming cycles.

    Attributes:
        predictions:       Future windows, never before ``as_of``.
        avg_cycle_length:  Recency-weighted cycle length in whole days.
        avg_duration:      Mean bleed length in whole days.
        confidence:        'High' (>= 3 samples), 'Medium' (2) or 'Low'.
        samples_used:      Number of valid gap samples behind the average.
        as_of:             The date the projection was anchored on.
    """

    predictions: list[PredictedPeriod] = field(default_factory=list)
    avg_cycle_length: int = 28
    avg_duration: int = 5
    confidence: str = "Low"
    samples_used: int = 0
    as_of: date | None = None


def confidence_for(samples: int) -> str:
    if samples >= 3:
        return "High"
    if samples == 2:
        return "Medium"
    return "Low"


class CyclePredictor:
    """Predict upcoming periods with a weighted moving average.

    Usage::

        predictor = CyclePredictor()
        forecast = predictor.predict(cycles)
        for window in forecast.predictions:
            print(window.start_date, window.end_date)
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        self._config = config or get_insights_config()
        self._stats = CycleStatisticsAnalyzer(self._config)

    def weighted_cycle_length(self, samples: Sequence[int]) -> int:
        """Weighted average of gap samples, oldest first.

        With three or more samples the newest gets 50%, the one before it
        30%, and the mean of everything older 20%.  One or two samples fall
        back to a plain mean; none falls back to the default length.
        """
        if not samples:
            return self._config.statistics.default_cycle_length

        if len(samples) >= 3:
            w_recent, w_second, w_older = self._config.prediction.recency_weights
            older = statistics.mean(samples[:-2])
            value = samples[-1] * w_recent + samples[-2] * w_second + older * w_older
        else:
            value = statistics.mean(samples)
        return round_half_up(value)

    def predict(
        self,
        cycles: Sequence[CycleRecord],
        as_of_date: date | None = None,
    ) -> ForecastResult | None:
        """Project the next period windows.

        Args:
            cycles:     Cycle records, oldest first.
            as_of_date: Reference "today" (defaults to the current date).

        Returns:
            ForecastResult, or None when there are no cycles at all.

        Raises:
            InvalidInputError: If the cycle history is malformed.
        """
        if not cycles:
            return None
        validate_history(cycles)

        today = as_of_date or date.today()
        samples = self._stats.valid_gaps(cycles)
        avg_length = self.weighted_cycle_length(samples)
        avg_duration = round_half_up(self._stats.mean_duration(cycles))

        days_since_last_end = (today - cycles[-1].end_date).days
        days_until_next = avg_length - days_since_last_end

        predictions: list[PredictedPeriod] = []
        for month in range(1, self._config.prediction.horizon_cycles + 1):
            start = today + timedelta(days=days_until_next + avg_length * (month - 1))
            if start < today:
                continue
            predictions.append(
                PredictedPeriod(
                    sequence=len(predictions) + 1,
                    start_date=start,
                    end_date=start + timedelta(days=avg_duration - 1),
                )
            )

        logger.debug(
            "Forecast as of %s: avg_length=%d, avg_duration=%d, %d windows from %d samples",
            today,
            avg_length,
            avg_duration,
            len(predictions),
            len(samples),
        )
        return ForecastResult(
            predictions=predictions,
            avg_cycle_length=avg_length,
            avg_duration=avg_duration,
            confidence=confidence_for(len(samples)),
            samples_used=len(samples),
            as_of=today,
        )
