"""Cycle insights engine.

Derives a PCOS risk assessment, pattern anomalies / red flags, and period
predictions from a user's self-reported cycle and symptom history.  All
engines are pure functions of their inputs; the AlertLedger is the only
stateful piece.

Core modules:
    base             — Input/output dataclasses and InvalidInputError
    config_loader    — Load/validate/hot-reload insights_config.yaml
    cycle_stats      — Gap samples, mean, standard deviation, durations
    risk_scoring     — Five-factor composite risk score
    recommendations  — Factor rationales, advice blocks, lifestyle plan
    anomaly_detector — Gap anomalies and clinical red flags
    cycle_predictor  — Weighted-average forecast of upcoming periods
    alert_ledger     — At-most-one-alert-per-type store
    tracking         — Building new records from user entries
    adherence        — Lifestyle adherence summaries and cycle insight
"""

from src.insights.adherence import AdherenceAnalyzer, AdherenceInsight, AdherenceSummary
from src.insights.alert_ledger import AlertLedger
from src.insights.anomaly_detector import AnomalyDetector, DetectionResult
from src.insights.base import (
    AdherenceEntry,
    Alert,
    Anomaly,
    CycleRecord,
    InvalidInputError,
    RedFlag,
    SymptomRecord,
    UserMetrics,
)
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_predictor import CyclePredictor, ForecastResult
from src.insights.cycle_stats import CycleStatistics, CycleStatisticsAnalyzer
from src.insights.risk_scoring import RiskAssessment, RiskScoringEngine

__all__ = [
    "AdherenceAnalyzer",
    "AdherenceEntry",
    "AdherenceInsight",
    "AdherenceSummary",
    "Alert",
    "AlertLedger",
    "Anomaly",
    "AnomalyDetector",
    "CycleRecord",
    "CyclePredictor",
    "CycleStatistics",
    "CycleStatisticsAnalyzer",
    "DetectionResult",
    "ForecastResult",
    "InsightsConfig",
    "InvalidInputError",
    "RedFlag",
    "RiskAssessment",
    "RiskScoringEngine",
    "SymptomRecord",
    "UserMetrics",
    "get_insights_config",
]
