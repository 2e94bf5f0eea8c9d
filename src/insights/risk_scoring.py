"""PCOS risk scoring engine.

Combines five independently capped sub-scores into a 0–100 composite.

Score formula (caps from insights_config.yaml):
    - Cycle irregularity   (0–40)
    - Symptom severity     (0–25)
    - BMI & weight         (0–20)
    - Hormonal indicators  (0–10)
    - Family history       (0 or 5)

Self-reported screening aid only; not a diagnosis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from src.insights.base import (
    CycleRecord,
    SymptomRecord,
    UserMetrics,
    WeightTrend,
    utc_now,
    validate_history,
)
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_stats import CycleStatisticsAnalyzer, round_half_up
from src.insights.recommendations import (
    BMI_AND_WEIGHT,
    CYCLE_IRREGULARITY,
    FAMILY_HISTORY,
    HORMONAL_INDICATORS,
    SYMPTOM_SEVERITY,
    Explanations,
    build_explanations,
)

logger = logging.getLogger("cycleinsights.insights.risk")

LOW = "Low"
MODERATE = "Moderate"
HIGH = "High"


@dataclass(frozen=True)
class IrregularityResult:
    """Cycle irregularity sub-score with the figures it was based on.

    Attributes:
        score:     Capped sub-score.
        details:   Qualitative summary ("Cycles too long ... + high variability").
        avg_cycle: Rounded mean valid gap, or None without valid gaps.
        std_dev:   Standard deviation rounded to one decimal, or None.
    """

    score: float
    details: str
    avg_cycle: int | None = None
    std_dev: float | None = None


@dataclass(frozen=True)
class DataPoints:
    cycles_tracked: int
    symptoms_logged: int
    metrics_provided: int


@dataclass
class RiskAssessment:
    """A complete, recomputed-from-scratch risk assessment.

    Attributes:
        risk_score:    Composite 0–100.
        risk_category: 'Low', 'Moderate' or 'High'.
        contributions: Sub-score per factor, in canonical factor order.
        explanations:  Ranked factors, advice and action items.
        data_points:   How much data the score was based on.
        calculated_at: UTC timestamp of computation.
    """

    risk_score: int
    risk_category: str
    contributions: dict[str, float]
    explanations: Explanations
    data_points: DataPoints
    calculated_at: datetime = field(default_factory=utc_now)


class RiskScoringEngine:
    """Score PCOS risk from cycle, symptom and metric inputs.

    Usage::

        engine = RiskScoringEngine()
        assessment = engine.score(cycles, symptoms, UserMetrics(bmi=27.5))
        assessment.risk_score, assessment.risk_category
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        self._config = config or get_insights_config()
        self._stats = CycleStatisticsAnalyzer(self._config)

    @property
    def _risk(self):
        return self._config.risk

    # ------------------------------------------------------------------
    # Sub-scores
    # ------------------------------------------------------------------

    def cycle_irregularity(self, cycles: Sequence[CycleRecord]) -> IrregularityResult:
        """Score deviation of the mean gap from normal plus gap variability."""
        ci = self._risk.irregularity

        if len(cycles) < 2:
            return IrregularityResult(score=ci.insufficient_data_score, details="Insufficient data")

        stats = self._stats.analyze(cycles)
        if not stats.valid_gaps:
            return IrregularityResult(
                score=ci.no_valid_gaps_score, details="Cycles within normal range"
            )

        mean = stats.mean_gap
        std_dev = stats.std_dev or 0.0
        low, high = ci.normal_range_days
        score = 0.0
        details = ""

        if mean < low or mean > high:
            score += abs(mean - ci.target_cycle_days) * ci.deviation_multiplier
            details = (
                "Cycles too short (oligomenorrhea risk)"
                if mean < low
                else "Cycles too long (anovulation risk)"
            )

        if std_dev > ci.variability_threshold_days:
            score += std_dev * ci.variability_multiplier
            details = f"{details} + high variability" if details else "High cycle variability"

        return IrregularityResult(
            score=max(0.0, min(score, self._risk.caps.cycle_irregularity)),
            details=details,
            avg_cycle=round_half_up(mean),
            std_dev=round(std_dev, 1),
        )

    def symptom_severity(self, symptoms: Sequence[SymptomRecord]) -> float:
        """Average pain plus the frequency of each tracked symptom."""
        if not symptoms:
            return 0.0

        w = self._risk.symptom_weights
        n = len(symptoms)
        avg_pain = sum(s.pain_score for s in symptoms) / n

        score = (avg_pain / 10) * w["pain"]
        score += (sum(s.acne for s in symptoms) / n) * w["acne"]
        score += (sum(s.fatigue for s in symptoms) / n) * w["fatigue"]
        score += (sum(s.mood_swings for s in symptoms) / n) * w["mood_swings"]
        score += (sum(s.bloating for s in symptoms) / n) * w["bloating"]

        return max(0.0, min(score, self._risk.caps.symptom_severity))

    def bmi_and_weight(self, metrics: UserMetrics) -> float:
        """BMI bracket points adjusted by weight trend, clamped to [0, cap]."""
        score = 0.0
        if metrics.bmi:
            for bracket in self._risk.bmi_brackets:
                if metrics.bmi >= bracket.min:
                    score += bracket.points
                    break

        if metrics.weight_trend is not None:
            trend = WeightTrend(metrics.weight_trend).value
            score += self._risk.weight_trend_points.get(trend, 0.0)

        return max(0.0, min(score, self._risk.caps.bmi_and_weight))

    def hormonal_indicators(self, metrics: UserMetrics) -> float:
        w = self._risk.hormonal_weights
        score = 0.0
        if metrics.hirsutism > 0:
            score += (metrics.hirsutism / 10) * w["hirsutism"]
        if metrics.acne_severity > 0:
            score += (metrics.acne_severity / 4) * w["acne_severity"]
        return max(0.0, min(score, self._risk.caps.hormonal_indicators))

    def family_history(self, metrics: UserMetrics) -> float:
        return self._risk.family_history_points if metrics.family_history else 0.0

    def categorize(self, risk_score: int) -> str:
        if risk_score < self._risk.moderate_threshold:
            return LOW
        if risk_score < self._risk.high_threshold:
            return MODERATE
        return HIGH

    # ------------------------------------------------------------------
    # Composite
    # ------------------------------------------------------------------

    def score(
        self,
        cycles: Sequence[CycleRecord],
        symptoms: Sequence[SymptomRecord],
        metrics: UserMetrics | None = None,
    ) -> RiskAssessment:
        """Compute a full risk assessment.

        Args:
            cycles:   Cycle records, oldest first.
            symptoms: Symptom logs in any order.
            metrics:  Body/history metrics; all-default when omitted.

        Returns:
            RiskAssessment with score, category, contributions and explanations.

        Raises:
            InvalidInputError: If the cycle history is out of order or has
                negative durations.
        """
        validate_history(cycles)
        metrics = metrics or UserMetrics()

        irregularity = self.cycle_irregularity(cycles)
        contributions = {
            CYCLE_IRREGULARITY: irregularity.score,
            SYMPTOM_SEVERITY: self.symptom_severity(symptoms),
            BMI_AND_WEIGHT: self.bmi_and_weight(metrics),
            HORMONAL_INDICATORS: self.hormonal_indicators(metrics),
            FAMILY_HISTORY: self.family_history(metrics),
        }

        risk_score = min(round_half_up(sum(contributions.values())), 100)
        category = self.categorize(risk_score)

        explanations = build_explanations(
            category,
            contributions,
            irregularity.avg_cycle,
            irregularity.std_dev,
            metrics,
            self._config,
        )

        logger.debug(
            "Risk score %d (%s) from %d cycles, %d symptom logs: %s",
            risk_score,
            category,
            len(cycles),
            len(symptoms),
            {k: round(v, 2) for k, v in contributions.items()},
        )

        return RiskAssessment(
            risk_score=risk_score,
            risk_category=category,
            contributions=contributions,
            explanations=explanations,
            data_points=DataPoints(
                cycles_tracked=len(cycles),
                symptoms_logged=len(symptoms),
                metrics_provided=metrics.provided_count(),
            ),
        )
