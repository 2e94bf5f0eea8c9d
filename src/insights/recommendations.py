"""Explanations and lifestyle advice derived from a risk breakdown.

Nothing here decides a score; it only turns the five sub-score
contributions into text.  Advice blocks key off individual contributions
crossing their configured thresholds, never off the overall risk category.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from src.insights.base import UserMetrics
from src.insights.config_loader import InsightsConfig

CYCLE_IRREGULARITY = "cycle_irregularity"
SYMPTOM_SEVERITY = "symptom_severity"
BMI_AND_WEIGHT = "bmi_and_weight"
HORMONAL_INDICATORS = "hormonal_indicators"
FAMILY_HISTORY = "family_history"

FACTORS = (
    CYCLE_IRREGULARITY,
    SYMPTOM_SEVERITY,
    BMI_AND_WEIGHT,
    HORMONAL_INDICATORS,
    FAMILY_HISTORY,
)

RISK_LEVEL_MESSAGES = {
    "Low": (
        "Your PCOS risk indicators are within normal ranges. "
        "Continue monitoring your cycle patterns."
    ),
    "Moderate": (
        "Your cycle patterns show some irregularities. Track consistently and discuss "
        "with your healthcare provider if symptoms persist."
    ),
    "High": (
        "Your cycle patterns and symptoms suggest PCOS risk factors. Schedule a "
        "consultation with a healthcare provider for proper evaluation."
    ),
}


@dataclass(frozen=True)
class FactorExplanation:
    name: str
    contribution: float
    explanation: str


@dataclass(frozen=True)
class Recommendation:
    """A block of advice under one heading."""

    category: str
    priority: str
    items: list[str]


@dataclass
class Explanations:
    """Human-readable breakdown attached to a RiskAssessment.

    Attributes:
        risk_level:      Message for the overall category.
        top_factors:     Up to three nonzero contributions, largest first.
        recommendations: Advice blocks (Diet and Exercise always present).
        action_items:    Concrete next steps.
    """

    risk_level: str
    top_factors: list[FactorExplanation] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Factor rationales
# ---------------------------------------------------------------------------


def _factor_explanation(
    factor: str,
    avg_cycle: int | None,
    std_dev: float | None,
    metrics: UserMetrics,
) -> str:
    if factor == CYCLE_IRREGULARITY:
        if avg_cycle is None:
            return "Not enough cycles logged yet to judge regularity; keep tracking."
        if avg_cycle < 21:
            return (
                "Your cycles are consistently shorter than normal (oligomenorrhea), "
                "suggesting irregular ovulation."
            )
        if avg_cycle > 35:
            return (
                "Your cycles are longer than normal, indicating potential anovulation "
                "or ovulation dysfunction."
            )
        return (
            f"Your cycle variability (±{std_dev} days) is higher than normal "
            "(should be ±2-3 days)."
        )
    if factor == SYMPTOM_SEVERITY:
        return (
            "Frequent or severe menstrual symptoms (pain, bloating, mood changes) can "
            "indicate hormonal imbalances."
        )
    if factor == BMI_AND_WEIGHT:
        if metrics.bmi is not None and metrics.bmi >= 30:
            return "Higher BMI is associated with increased insulin resistance and PCOS risk."
        return "Weight management supports hormonal balance and reduces PCOS symptoms."
    if factor == HORMONAL_INDICATORS:
        return (
            "Acne, excessive hair growth, or severe mood changes suggest hormonal "
            "fluctuations typical of PCOS."
        )
    if factor == FAMILY_HISTORY:
        return "PCOS has genetic components. Family history increases your risk profile."
    return "Contributing factor to PCOS risk assessment."


def rank_factors(
    contributions: Mapping[str, float],
    avg_cycle: int | None,
    std_dev: float | None,
    metrics: UserMetrics,
    limit: int = 3,
) -> list[FactorExplanation]:
    """Return the ``limit`` largest contributions that are above zero.

    Ties keep the canonical factor order.
    """
    ranked = sorted(contributions.items(), key=lambda item: item[1], reverse=True)
    return [
        FactorExplanation(
            name=name,
            contribution=value,
            explanation=_factor_explanation(name, avg_cycle, std_dev, metrics),
        )
        for name, value in ranked[:limit]
        if value > 0
    ]


# ---------------------------------------------------------------------------
# Advice blocks
# ---------------------------------------------------------------------------


def _diet(weight_flagged: bool) -> Recommendation:
    if weight_flagged:
        return Recommendation(
            category="Diet",
            priority="high",
            items=[
                "Focus on low-glycemic index (GI) foods: whole grains, legumes, non-starchy vegetables",
                "Include anti-inflammatory foods: fatty fish (omega-3), nuts, seeds, berries",
                "Reduce refined carbs, added sugars, and processed foods",
                "Eat balanced meals with protein, healthy fats, and complex carbs",
                "Stay hydrated: 8-10 glasses water daily",
                "Consider eating smaller, frequent meals to stabilize blood sugar",
            ],
        )
    return Recommendation(
        category="Diet",
        priority="medium",
        items=[
            "Maintain balanced diet with variety of whole foods",
            "Include plenty of fruits, vegetables, whole grains",
            "Ensure adequate protein intake",
            "Limit processed foods and added sugars",
        ],
    )


def _exercise(cycle_flagged: bool) -> Recommendation:
    if cycle_flagged:
        return Recommendation(
            category="Exercise",
            priority="high",
            items=[
                "Strength training 3-4 times/week (improves insulin sensitivity)",
                "Moderate cardio 150+ min/week (walking, cycling, swimming)",
                "Include flexibility work: yoga, stretching (reduces stress)",
                "Build consistency gradually - even 30 min/day helps",
                "Consider HIIT (high-intensity interval training) 1-2x/week",
            ],
        )
    return Recommendation(
        category="Exercise",
        priority="medium",
        items=[
            "Regular physical activity most days of the week",
            "Mix of cardio (150 min/week) and strength training (2x/week)",
            "Find activities you enjoy for sustainability",
        ],
    )


_SLEEP_AND_STRESS = Recommendation(
    category="Sleep & Stress",
    priority="high",
    items=[
        "Aim for 7-9 hours quality sleep nightly",
        "Maintain consistent sleep/wake schedule (even weekends)",
        "Limit screens 1 hour before bed",
        "Practice stress management: meditation, deep breathing, yoga",
        "Manage cortisol levels - chronic stress worsens PCOS symptoms",
    ],
)

_DATA_TRACKING = Recommendation(
    category="Data Tracking",
    priority="high",
    items=[
        "Track at least 3 complete cycles to establish patterns",
        "Log symptoms daily during your period",
        "Note flow intensity and duration consistently",
        "Track lifestyle factors to identify correlations",
    ],
)


def _exceeds(contributions: Mapping[str, float], factor: str, config: InsightsConfig) -> bool:
    return contributions.get(factor, 0.0) > config.risk.recommendation_thresholds[factor]


def build_explanations(
    category: str,
    contributions: Mapping[str, float],
    avg_cycle: int | None,
    std_dev: float | None,
    metrics: UserMetrics,
    config: InsightsConfig,
) -> Explanations:
    """Assemble the full explanation bundle for one assessment.

    Args:
        category:      'Low', 'Moderate' or 'High'.
        contributions: Sub-score per factor name.
        avg_cycle:     Rounded mean cycle length, or None if unknown.
        std_dev:       Cycle-length standard deviation (1 dp), or None.
        metrics:       The metrics the assessment was computed from.
        config:        Thresholds for emitting advice.
    """
    explanations = Explanations(risk_level=RISK_LEVEL_MESSAGES[category])
    explanations.top_factors = rank_factors(contributions, avg_cycle, std_dev, metrics)

    cycle_flagged = _exceeds(contributions, CYCLE_IRREGULARITY, config)
    weight_flagged = _exceeds(contributions, BMI_AND_WEIGHT, config)

    recs = explanations.recommendations
    actions = explanations.action_items
    recs.append(_diet(weight_flagged))
    recs.append(_exercise(cycle_flagged))

    if cycle_flagged:
        recs.append(
            Recommendation(
                category="Cycle Tracking",
                priority="high",
                items=[
                    "Track your cycle consistently for at least 3 months to establish "
                    "patterns. Note start/end dates and flow intensity."
                ],
            )
        )
        actions.append("Schedule gynecologist consultation if cycles are >35 days or <21 days")

    if _exceeds(contributions, SYMPTOM_SEVERITY, config):
        recs.append(
            Recommendation(
                category="Symptom Management",
                priority="high",
                items=[
                    "Severe or frequent symptoms warrant medical evaluation. Consider a "
                    "symptom diary to identify patterns."
                ],
            )
        )
        actions.append("Get blood tests: FSH, LH, testosterone, pelvic ultrasound")

    if weight_flagged:
        recs.append(
            Recommendation(
                category="Weight Management",
                priority="high",
                items=[
                    "A 5-10% weight loss can significantly improve PCOS symptoms and "
                    "hormonal balance."
                ],
            )
        )
        actions.append("Consult dietitian for low-GI, anti-inflammatory diet plan")
        actions.append("Aim for 150 min/week moderate cardio + strength training")

    if _exceeds(contributions, HORMONAL_INDICATORS, config):
        recs.append(
            Recommendation(
                category="Hormonal Health",
                priority="medium",
                items=[
                    "Manage stress and maintain consistent sleep (7-9 hours) to support "
                    "hormonal balance."
                ],
            )
        )
        actions.append("Practice stress management: yoga, meditation, breathing exercises")

    if _exceeds(contributions, FAMILY_HISTORY, config):
        actions.append("Family history of PCOS: Preventive screening recommended")

    return explanations


def lifestyle_plan(
    contributions: Mapping[str, float],
    cycles_tracked: int,
    config: InsightsConfig,
) -> list[Recommendation]:
    """Personalized diet, exercise, sleep and tracking plan.

    Args:
        contributions:  Sub-scores from the latest assessment (empty if none).
        cycles_tracked: Number of cycle records logged so far.
        config:         Thresholds for the priority switches.
    """
    plan = [
        _diet(_exceeds(contributions, BMI_AND_WEIGHT, config)),
        _exercise(_exceeds(contributions, CYCLE_IRREGULARITY, config)),
        _SLEEP_AND_STRESS,
    ]
    if cycles_tracked < config.tracking.lifestyle_min_cycles:
        plan.append(_DATA_TRACKING)
    return plan
