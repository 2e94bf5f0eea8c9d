"""Cycle statistics shared by the risk, anomaly and prediction engines.

Gap samples are the day counts between consecutive period start dates.
Only gaps strictly inside the configured window count as samples, so a
missed log (a 60-day "gap") or a double entry (a 3-day "gap") does not drag
the average around.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass, field
from typing import Sequence

from src.insights.base import CycleRecord
from src.insights.config_loader import InsightsConfig, get_insights_config

logger = logging.getLogger("cycleinsights.insights.cycle_stats")


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def start_gaps(cycles: Sequence[CycleRecord]) -> list[int]:
    """Return the day count between each consecutive pair of start dates."""
    return [
        (cycles[i].start_date - cycles[i - 1].start_date).days
        for i in range(1, len(cycles))
    ]


@dataclass(frozen=True)
class CycleStatistics:
    """Summary statistics for a cycle history.

    Attributes:
        valid_gaps:        Gap samples inside the validity window, oldest first.
        mean_gap:          Arithmetic mean of ``valid_gaps`` (default length
                           when there are none).
        std_dev:           Population standard deviation, or None when the
                           history is too short to compute one.
        mean_duration:     Mean bleed duration over plausible durations.
        sufficient_data:   False when fewer than two records were supplied.
    """

    valid_gaps: list[int] = field(default_factory=list)
    mean_gap: float = 28.0
    std_dev: float | None = None
    mean_duration: float = 5.0
    sufficient_data: bool = True

    @property
    def sample_count(self) -> int:
        return len(self.valid_gaps)


class CycleStatisticsAnalyzer:
    """Derive gap and duration statistics from ordered cycle records.

    Usage::

        analyzer = CycleStatisticsAnalyzer()
        stats = analyzer.analyze(cycles)
        stats.mean_gap, stats.std_dev
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        self._config = config or get_insights_config()

    @property
    def _stats_config(self):
        return self._config.statistics

    def valid_gaps(
        self,
        cycles: Sequence[CycleRecord],
        bounds: tuple[int, int] | None = None,
    ) -> list[int]:
        """Return gap samples strictly inside ``bounds`` (exclusive both ends).

        Args:
            cycles: Cycle records, oldest first.
            bounds: (lower, upper) override; defaults to the configured window.
        """
        lower, upper = bounds or self._stats_config.valid_gap_days
        return [gap for gap in start_gaps(cycles) if lower < gap < upper]

    def mean_duration(self, cycles: Sequence[CycleRecord]) -> float:
        """Mean bleed duration, ignoring implausible values."""
        cs = self._stats_config
        lower, upper = cs.valid_duration_days
        durations = [c.duration for c in cycles if lower < c.duration < upper]
        if not durations:
            return float(cs.default_duration)
        return statistics.mean(durations)

    def analyze(
        self,
        cycles: Sequence[CycleRecord],
        bounds: tuple[int, int] | None = None,
    ) -> CycleStatistics:
        """Compute the full statistics bundle for a history.

        Args:
            cycles: Cycle records, oldest first.
            bounds: Optional gap-validity window override.

        Returns:
            CycleStatistics; ``sufficient_data`` is False for fewer than two
            records, in which case the defaults are returned.
        """
        cs = self._stats_config

        if len(cycles) < 2:
            return CycleStatistics(
                mean_gap=float(cs.default_cycle_length),
                std_dev=None,
                mean_duration=float(cs.default_duration),
                sufficient_data=False,
            )

        gaps = self.valid_gaps(cycles, bounds)
        if gaps:
            mean_gap = statistics.mean(gaps)
            std_dev = statistics.pstdev(gaps, mu=mean_gap)
        else:
            mean_gap = float(cs.default_cycle_length)
            std_dev = None

        stats = CycleStatistics(
            valid_gaps=gaps,
            mean_gap=float(mean_gap),
            std_dev=std_dev,
            mean_duration=float(self.mean_duration(cycles)),
        )
        logger.debug(
            "Analyzed %d cycles: %d valid gaps, mean=%.1f, std=%s",
            len(cycles),
            stats.sample_count,
            stats.mean_gap,
            "n/a" if std_dev is None else f"{std_dev:.2f}",
        )
        return stats
