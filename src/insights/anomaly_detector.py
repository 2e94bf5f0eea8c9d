"""Pattern anomaly and clinical red-flag detection.

Anomalies (EXTENDED_CYCLE, SHORT_CYCLE) are transient: every detection run
produces the complete set and callers replace what they stored before.
Red flags (AMENORRHEA, MENORRHAGIA, ...) are handed to the AlertLedger,
which keeps at most one alert per type.

Only flags patterns relative to the user's own average; ordinary
cycle-to-cycle variation is not reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from src.insights.base import (
    Anomaly,
    CycleRecord,
    FlowIntensity,
    RedFlag,
    Severity,
    SymptomRecord,
    validate_history,
)
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_stats import CycleStatisticsAnalyzer, round_half_up, start_gaps

logger = logging.getLogger("cycleinsights.insights.anomaly")

# Detector red-flag types
AMENORRHEA = "AMENORRHEA"
MENORRHAGIA = "MENORRHAGIA"
# Anomaly types
EXTENDED_CYCLE = "EXTENDED_CYCLE"
SHORT_CYCLE = "SHORT_CYCLE"
# Alert types raised when a record is saved or a score is computed
ENTRY_AMENORRHEA = "amenorrhea"
ENTRY_MENORRHAGIA = "menorrhagia"
PCOS_HIGH_RISK = "pcos_high_risk"


@dataclass
class DetectionResult:
    anomalies: list[Anomaly] = field(default_factory=list)
    red_flags: list[RedFlag] = field(default_factory=list)


def _is_menorrhagia(record: CycleRecord, min_duration: int) -> bool:
    return record.flow_intensity == FlowIntensity.heavy and record.duration > min_duration


class AnomalyDetector:
    """Scan a cycle history for anomalies and red flags.

    Usage::

        detector = AnomalyDetector()
        result = detector.detect(cycles, symptoms)
        for flag in result.red_flags:
            ledger.raise_flag(flag)
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        self._config = config or get_insights_config()
        self._stats = CycleStatisticsAnalyzer(self._config)

    @property
    def _ad_config(self):
        return self._config.anomaly

    def detect(
        self,
        cycles: Sequence[CycleRecord],
        symptoms: Sequence[SymptomRecord] = (),
    ) -> DetectionResult:
        """Run every rule over the history.

        Rules are independent; a single gap can fire more than one.  Returns
        an empty result when there are fewer than two records or fewer than
        ``min_valid_gaps`` gap samples to form an average from.

        Args:
            cycles:   Cycle records, oldest first.
            symptoms: Symptom logs (accepted for interface symmetry; no
                      symptom rules are currently defined).

        Raises:
            InvalidInputError: If the cycle history is malformed.
        """
        validate_history(cycles)
        ad = self._ad_config
        result = DetectionResult()

        if len(cycles) < 2:
            return result

        gaps = self._stats.valid_gaps(cycles)
        if len(gaps) < ad.min_valid_gaps:
            logger.debug(
                "Skipping anomaly detection: %d valid gaps (< %d)", len(gaps), ad.min_valid_gaps
            )
            return result

        avg_gap = sum(gaps) / len(gaps)
        shown_avg = round_half_up(avg_gap)

        for days_since in start_gaps(cycles):
            if days_since > ad.amenorrhea_days:
                result.red_flags.append(
                    RedFlag(
                        type=AMENORRHEA,
                        severity=Severity.high,
                        days=days_since,
                        message=f"No menstruation for {days_since} days. Medical evaluation needed.",
                    )
                )

            if avg_gap * ad.extended_cycle_ratio < days_since < ad.amenorrhea_days:
                result.anomalies.append(
                    Anomaly(
                        type=EXTENDED_CYCLE,
                        severity=Severity.medium,
                        days=days_since,
                        message=(
                            f"Cycle longer than your average ({days_since} vs {shown_avg}). "
                            "Monitor pattern."
                        ),
                    )
                )

            if ad.short_cycle_min_days <= days_since < avg_gap * ad.short_cycle_ratio:
                result.anomalies.append(
                    Anomaly(
                        type=SHORT_CYCLE,
                        severity=Severity.medium,
                        days=days_since,
                        message=(
                            f"Cycle shorter than your average ({days_since} vs {shown_avg}). "
                            "May indicate anovulation."
                        ),
                    )
                )

        if any(_is_menorrhagia(c, ad.menorrhagia_min_duration_days) for c in cycles):
            result.red_flags.append(
                RedFlag(
                    type=MENORRHAGIA,
                    severity=Severity.medium,
                    message="Heavy menstrual bleeding lasting >7 days. Consult healthcare provider.",
                )
            )

        logger.info(
            "Detection over %d cycles: %d anomalies, %d red flags",
            len(cycles),
            len(result.anomalies),
            len(result.red_flags),
        )
        return result

    def entry_red_flags(self, cycles: Sequence[CycleRecord]) -> list[RedFlag]:
        """Checks run immediately after a cycle record is saved.

        Unlike ``detect`` this needs no gap average: it looks only at the
        newest record's bleed and at any gap beyond the amenorrhea limit.
        At most one flag per type is returned.
        """
        ad = self._ad_config
        flags: list[RedFlag] = []
        if not cycles:
            return flags

        if _is_menorrhagia(cycles[-1], ad.menorrhagia_min_duration_days):
            flags.append(
                RedFlag(
                    type=ENTRY_MENORRHAGIA,
                    severity=Severity.medium,
                    message=(
                        "Heavy menstrual bleeding lasting more than 7 days detected. Consider "
                        "scheduling a consultation with your healthcare provider to rule out "
                        "anemia or other conditions."
                    ),
                )
            )

        long_gaps = [gap for gap in start_gaps(cycles) if gap > ad.amenorrhea_days]
        if long_gaps:
            days = long_gaps[0]
            flags.append(
                RedFlag(
                    type=ENTRY_AMENORRHEA,
                    severity=Severity.high,
                    days=days,
                    message=(
                        f"AMENORRHEA DETECTED: {days} days without menstruation. This requires "
                        "immediate medical evaluation. Please consult your healthcare provider "
                        "urgently."
                    ),
                )
            )
        return flags


def high_risk_flag(risk_score: int) -> RedFlag:
    """Red flag raised when an assessment lands in the High category."""
    return RedFlag(
        type=PCOS_HIGH_RISK,
        severity=Severity.high,
        message=(
            f"HIGH PCOS RISK: Your cycle patterns and symptoms suggest elevated PCOS risk "
            f"(Score: {risk_score}/100). Review recommendations and schedule a healthcare "
            "consultation for proper diagnostic evaluation."
        ),
    )
