"""Pydantic models for cycle tracking and insights: request bodies, responses,
and the documents persisted in the key-value store."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, model_validator

from src.insights.adherence import AdherenceInsight, AdherenceSummary
from src.insights.base import (
    AdherenceEntry,
    Alert,
    Anomaly,
    CycleRecord,
    FlowIntensity,
    Severity,
    SymptomRecord,
    UserMetrics,
    WeightTrend,
    utc_now,
)
from src.insights.cycle_predictor import ForecastResult
from src.insights.recommendations import Recommendation
from src.insights.risk_scoring import RiskAssessment
from src.insights.tracking import bmi_from
from src.models.base import InsightsBase


# ---------- Cycles ----------

class CycleEntryCreate(InsightsBase):
    start_date: date
    end_date: date | None = None
    flow_intensity: FlowIntensity = FlowIntensity.moderate

    @model_validator(mode="after")
    def _end_not_before_start(self) -> CycleEntryCreate:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CycleRecordRead(InsightsBase):
    id: str
    start_date: date
    end_date: date
    flow_intensity: FlowIntensity
    duration: int = Field(ge=0)
    cycle_length: int = Field(ge=0)

    @classmethod
    def from_domain(cls, record: CycleRecord) -> CycleRecordRead:
        return cls(
            id=record.record_id,
            start_date=record.start_date,
            end_date=record.end_date,
            flow_intensity=record.flow_intensity,
            duration=record.duration,
            cycle_length=record.cycle_length,
        )

    def to_domain(self) -> CycleRecord:
        return CycleRecord(
            record_id=self.id,
            start_date=self.start_date,
            end_date=self.end_date,
            flow_intensity=self.flow_intensity,
            duration=self.duration,
            cycle_length=self.cycle_length,
        )


# ---------- Symptoms ----------

class SymptomEntryCreate(InsightsBase):
    date: date
    pain_score: float = Field(default=0, ge=0, le=10)
    acne: bool = False
    fatigue: bool = False
    mood_swings: bool = False
    bloating: bool = False


class SymptomRecordRead(SymptomEntryCreate):
    id: str

    @classmethod
    def from_domain(cls, record: SymptomRecord) -> SymptomRecordRead:
        return cls(
            id=record.record_id,
            date=record.date,
            pain_score=record.pain_score,
            acne=record.acne,
            fatigue=record.fatigue,
            mood_swings=record.mood_swings,
            bloating=record.bloating,
        )

    def to_domain(self) -> SymptomRecord:
        return SymptomRecord(
            record_id=self.id,
            date=self.date,
            pain_score=self.pain_score,
            acne=self.acne,
            fatigue=self.fatigue,
            mood_swings=self.mood_swings,
            bloating=self.bloating,
        )


# ---------- Lifestyle adherence ----------

class AdherenceEntryCreate(InsightsBase):
    date: date
    exercise: bool = False
    diet: bool = False
    sleep_hours: float = Field(default=7, ge=0, le=24)
    notes: str = Field(default="", max_length=1000)


class AdherenceEntryRead(AdherenceEntryCreate):
    id: str

    @classmethod
    def from_domain(cls, entry: AdherenceEntry) -> AdherenceEntryRead:
        return cls(
            id=entry.record_id,
            date=entry.date,
            exercise=entry.exercise,
            diet=entry.diet,
            sleep_hours=entry.sleep_hours,
            notes=entry.notes,
        )

    def to_domain(self) -> AdherenceEntry:
        return AdherenceEntry(
            record_id=self.id,
            date=self.date,
            exercise=self.exercise,
            diet=self.diet,
            sleep_hours=self.sleep_hours,
            notes=self.notes,
        )


class AdherenceSummaryRead(InsightsBase):
    exercise: int
    diet: int
    sleep: int
    overall: int
    total_days: int


class AdherenceInsightRead(InsightsBase):
    adherence: int
    cycle_regularity: int
    insight: str


class AdherenceReportRead(InsightsBase):
    """Adherence percentages and, once enough is logged, the cycle insight."""

    summary: AdherenceSummaryRead | None = None
    insight: AdherenceInsightRead | None = None

    @classmethod
    def from_domain(
        cls, summary: AdherenceSummary | None, insight: AdherenceInsight | None
    ) -> AdherenceReportRead:
        return cls(
            summary=AdherenceSummaryRead.model_validate(summary) if summary else None,
            insight=AdherenceInsightRead.model_validate(insight) if insight else None,
        )


# ---------- Metrics ----------

class UserMetricsSchema(InsightsBase):
    """Body and history metrics.

    When both ``weight_kg`` and ``height_cm`` are given, ``bmi`` is derived
    from them and any supplied value is replaced.
    """

    bmi: float | None = Field(default=None, gt=0, le=100)
    weight_kg: float | None = Field(default=None, gt=0, le=500)
    height_cm: float | None = Field(default=None, gt=0, le=300)
    hirsutism: float = Field(default=0, ge=0, le=10)
    acne_severity: float = Field(default=0, ge=0, le=4)
    weight_trend: WeightTrend | None = None
    family_history: bool = False

    @model_validator(mode="after")
    def _derive_bmi(self) -> UserMetricsSchema:
        if (self.weight_kg is None) != (self.height_cm is None):
            raise ValueError("weight_kg and height_cm must be given together")
        if self.weight_kg is not None and self.height_cm is not None:
            bmi = bmi_from(self.weight_kg, self.height_cm)
            if bmi > 100:
                raise ValueError(f"BMI {bmi} derived from weight and height is out of range")
            self.bmi = bmi
        return self

    def to_domain(self) -> UserMetrics:
        return UserMetrics(
            bmi=self.bmi,
            hirsutism=self.hirsutism,
            acne_severity=self.acne_severity,
            weight_trend=self.weight_trend,
            family_history=self.family_history,
        )


# ---------- Risk ----------

class FactorRead(InsightsBase):
    name: str
    contribution: float
    explanation: str


class RecommendationRead(InsightsBase):
    category: str
    priority: str
    items: list[str]

    @classmethod
    def from_domain(cls, rec: Recommendation) -> RecommendationRead:
        return cls(category=rec.category, priority=rec.priority, items=list(rec.items))


class ExplanationsRead(InsightsBase):
    risk_level: str
    top_factors: list[FactorRead]
    recommendations: list[RecommendationRead]
    action_items: list[str]


class DataPointsRead(InsightsBase):
    cycles_tracked: int
    symptoms_logged: int
    metrics_provided: int


class RiskAssessmentRead(InsightsBase):
    risk_score: int = Field(ge=0, le=100)
    risk_category: str
    contributions: dict[str, float]
    explanations: ExplanationsRead
    data_points: DataPointsRead
    calculated_at: datetime

    @classmethod
    def from_domain(cls, assessment: RiskAssessment) -> RiskAssessmentRead:
        ex = assessment.explanations
        return cls(
            risk_score=assessment.risk_score,
            risk_category=assessment.risk_category,
            contributions=dict(assessment.contributions),
            explanations=ExplanationsRead(
                risk_level=ex.risk_level,
                top_factors=[
                    FactorRead(name=f.name, contribution=f.contribution, explanation=f.explanation)
                    for f in ex.top_factors
                ],
                recommendations=[RecommendationRead.from_domain(r) for r in ex.recommendations],
                action_items=list(ex.action_items),
            ),
            data_points=DataPointsRead(
                cycles_tracked=assessment.data_points.cycles_tracked,
                symptoms_logged=assessment.data_points.symptoms_logged,
                metrics_provided=assessment.data_points.metrics_provided,
            ),
            calculated_at=assessment.calculated_at,
        )


class RiskRequest(InsightsBase):
    """Optional metrics override; stored metrics are used when omitted."""

    metrics: UserMetricsSchema | None = None


# ---------- Anomalies & alerts ----------

class AnomalyRead(InsightsBase):
    type: str
    severity: Severity
    days: int
    message: str
    detected_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_domain(cls, anomaly: Anomaly, detected_at: datetime) -> AnomalyRead:
        return cls(
            type=anomaly.type,
            severity=anomaly.severity,
            days=anomaly.days,
            message=anomaly.message,
            detected_at=detected_at,
        )


class AlertRead(InsightsBase):
    id: str
    type: str
    severity: Severity
    message: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, alert: Alert) -> AlertRead:
        return cls(
            id=alert.alert_id,
            type=alert.type,
            severity=alert.severity,
            message=alert.message,
            timestamp=alert.timestamp,
        )


class DetectionRead(InsightsBase):
    anomalies: list[AnomalyRead]
    new_alerts: list[AlertRead]


class CycleSavedRead(InsightsBase):
    record: CycleRecordRead
    new_alerts: list[AlertRead]


# ---------- Predictions ----------

class PredictedPeriodRead(InsightsBase):
    sequence: int
    start_date: date
    end_date: date


class ForecastRead(InsightsBase):
    predictions: list[PredictedPeriodRead]
    avg_cycle_length: int
    avg_duration: int
    confidence: str
    samples_used: int
    as_of: date

    @classmethod
    def from_domain(cls, forecast: ForecastResult) -> ForecastRead:
        return cls(
            predictions=[
                PredictedPeriodRead(sequence=p.sequence, start_date=p.start_date, end_date=p.end_date)
                for p in forecast.predictions
            ],
            avg_cycle_length=forecast.avg_cycle_length,
            avg_duration=forecast.avg_duration,
            confidence=forecast.confidence,
            samples_used=forecast.samples_used,
            as_of=forecast.as_of,
        )
