"""Load, validate, and hot-reload the cycle insights configuration.

The config lives in ``insights_config.yaml`` alongside this module.  At
startup it is loaded once and cached.  Call ``reload_insights_config()`` to
re-read from disk after an admin update without a restart.

Usage::

    from src.insights.config_loader import get_insights_config

    config = get_insights_config()
    config.risk.caps.cycle_irregularity      # 40.0
    config.statistics.valid_gap_days         # (20, 45)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("cycleinsights.insights.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "insights_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatisticsConfig:
    """Gap and duration filters shared by every engine."""

    default_cycle_length: int
    default_duration: int
    valid_gap_days: tuple[int, int]
    valid_duration_days: tuple[int, int]


@dataclass(frozen=True)
class RiskCaps:
    cycle_irregularity: float
    symptom_severity: float
    bmi_and_weight: float
    hormonal_indicators: float


@dataclass(frozen=True)
class IrregularityConfig:
    """Cycle irregularity sub-score parameters."""

    insufficient_data_score: float
    no_valid_gaps_score: float
    normal_range_days: tuple[int, int]
    target_cycle_days: int
    deviation_multiplier: float
    variability_threshold_days: float
    variability_multiplier: float


@dataclass(frozen=True)
class BmiBracket:
    min: float
    points: float


@dataclass(frozen=True)
class RiskConfig:
    """Risk scoring settings.

    Attributes:
        caps:                      Upper bound for each capped sub-score.
        irregularity:              Cycle irregularity parameters.
        symptom_weights:           Points per symptom at 100% frequency.
        bmi_brackets:              Sorted highest ``min`` first.
        weight_trend_points:       Adjustment per weight trend value.
        hormonal_weights:          Points for hirsutism / acne at their maxima.
        family_history_points:     Flat score when family history is reported.
        moderate_threshold:        Score >= this is Moderate.
        high_threshold:            Score >= this is High.
        recommendation_thresholds: Contribution above which advice is emitted.
    """

    caps: RiskCaps
    irregularity: IrregularityConfig
    symptom_weights: dict[str, float]
    bmi_brackets: list[BmiBracket]
    weight_trend_points: dict[str, float]
    hormonal_weights: dict[str, float]
    family_history_points: float
    moderate_threshold: int
    high_threshold: int
    recommendation_thresholds: dict[str, float]


@dataclass(frozen=True)
class AnomalyConfig:
    min_valid_gaps: int
    amenorrhea_days: int
    short_cycle_ratio: float
    short_cycle_min_days: int
    extended_cycle_ratio: float
    menorrhagia_min_duration_days: int


@dataclass(frozen=True)
class PredictionConfig:
    horizon_cycles: int
    recency_weights: tuple[float, float, float]


@dataclass(frozen=True)
class TrackingConfig:
    default_duration_days: int
    min_cycle_length_days: int
    max_cycle_length_days: int
    lifestyle_min_cycles: int


@dataclass(frozen=True)
class AdherenceConfig:
    """Lifestyle adherence scoring.

    Attributes:
        sleep_goal_hours:        A logged night at or above this meets the goal.
        insight_min_entries:     Entries needed before the cycle insight is shown.
        insight_min_cycles:      Cycle records needed for the same.
        insight_window_entries:  Most recent entries averaged for the insight.
        supportive_ratio:        Window adherence above this reads as supportive.
    """

    sleep_goal_hours: float
    insight_min_entries: int
    insight_min_cycles: int
    insight_window_entries: int
    supportive_ratio: float


@dataclass
class InsightsConfig:
    """Complete, validated insights configuration.

    This is the single in-memory representation of insights_config.yaml.
    Every engine reads its thresholds from this object.
    """

    version: str
    statistics: StatisticsConfig
    risk: RiskConfig
    anomaly: AnomalyConfig
    prediction: PredictionConfig
    tracking: TrackingConfig
    adherence: AdherenceConfig
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when insights_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Insights config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> InsightsConfig:
    """Validate the raw YAML dict and construct an InsightsConfig.

    Collects every problem before raising so an operator sees all of them
    at once.

    Raises:
        ConfigValidationError: If required values are missing or invalid.
    """
    errors: list[str] = []

    def _number(section: dict, key: str, path: str, default: Any = None) -> float:
        value = section.get(key, default)
        if value is None:
            errors.append(f"Missing required key '{path}.{key}'")
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return 0.0

    def _bounds(section: dict, key: str, path: str, default: tuple[int, int]) -> tuple[int, int]:
        value = section.get(key)
        if value is None:
            return default
        if isinstance(value, dict):
            pair = (value.get("lower"), value.get("upper"))
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            pair = (value[0], value[1])
        else:
            errors.append(f"{path}.{key} must be a [lower, upper] pair")
            return default
        try:
            lower, upper = int(pair[0]), int(pair[1])
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} bounds must be integers, got {pair!r}")
            return default
        if lower >= upper:
            errors.append(f"{path}.{key} lower bound {lower} must be below upper bound {upper}")
        return lower, upper

    version = str(raw.get("version", "1.0"))

    # ── Cycle statistics ──
    cs_raw = raw.get("cycle_statistics") or {}
    statistics_cfg = StatisticsConfig(
        default_cycle_length=int(_number(cs_raw, "default_cycle_length", "cycle_statistics", 28)),
        default_duration=int(_number(cs_raw, "default_duration", "cycle_statistics", 5)),
        valid_gap_days=_bounds(cs_raw, "valid_gap_days", "cycle_statistics", (20, 45)),
        valid_duration_days=_bounds(cs_raw, "valid_duration_days", "cycle_statistics", (0, 10)),
    )

    # ── Risk scoring ──
    rs_raw = raw.get("risk_scoring") or {}
    if not rs_raw:
        errors.append("'risk_scoring' section is missing or empty")

    caps_raw = rs_raw.get("caps") or {}
    caps = RiskCaps(
        cycle_irregularity=_number(caps_raw, "cycle_irregularity", "risk_scoring.caps", 40),
        symptom_severity=_number(caps_raw, "symptom_severity", "risk_scoring.caps", 25),
        bmi_and_weight=_number(caps_raw, "bmi_and_weight", "risk_scoring.caps", 20),
        hormonal_indicators=_number(caps_raw, "hormonal_indicators", "risk_scoring.caps", 10),
    )

    ci_raw = rs_raw.get("cycle_irregularity") or {}
    ci_path = "risk_scoring.cycle_irregularity"
    irregularity = IrregularityConfig(
        insufficient_data_score=_number(ci_raw, "insufficient_data_score", ci_path, 10),
        no_valid_gaps_score=_number(ci_raw, "no_valid_gaps_score", ci_path, 5),
        normal_range_days=_bounds(ci_raw, "normal_range_days", ci_path, (21, 35)),
        target_cycle_days=int(_number(ci_raw, "target_cycle_days", ci_path, 28)),
        deviation_multiplier=_number(ci_raw, "deviation_multiplier", ci_path, 1.5),
        variability_threshold_days=_number(ci_raw, "variability_threshold_days", ci_path, 5),
        variability_multiplier=_number(ci_raw, "variability_multiplier", ci_path, 2),
    )

    symptom_weights: dict[str, float] = {}
    for name in ("pain", "acne", "fatigue", "mood_swings", "bloating"):
        symptom_weights[name] = _number(
            rs_raw.get("symptom_weights") or {}, name, "risk_scoring.symptom_weights"
        )

    brackets: list[BmiBracket] = []
    for i, entry in enumerate(rs_raw.get("bmi_brackets") or []):
        if not isinstance(entry, dict):
            errors.append(f"risk_scoring.bmi_brackets[{i}] must be a mapping")
            continue
        path = f"risk_scoring.bmi_brackets[{i}]"
        brackets.append(
            BmiBracket(min=_number(entry, "min", path), points=_number(entry, "points", path))
        )
    if not brackets:
        errors.append("'risk_scoring.bmi_brackets' is missing or empty")
    brackets.sort(key=lambda b: b.min, reverse=True)

    trend_raw = rs_raw.get("weight_trend_points") or {}
    weight_trend_points = {
        trend: _number(trend_raw, trend, "risk_scoring.weight_trend_points", 0)
        for trend in ("increasing", "stable", "decreasing")
    }

    hw_raw = rs_raw.get("hormonal_weights") or {}
    hormonal_weights = {
        "hirsutism": _number(hw_raw, "hirsutism", "risk_scoring.hormonal_weights", 6),
        "acne_severity": _number(hw_raw, "acne_severity", "risk_scoring.hormonal_weights", 4),
    }

    ct_raw = rs_raw.get("category_thresholds") or {}
    moderate = int(_number(ct_raw, "moderate", "risk_scoring.category_thresholds", 25))
    high = int(_number(ct_raw, "high", "risk_scoring.category_thresholds", 50))
    if moderate >= high:
        errors.append(
            f"risk_scoring.category_thresholds: moderate ({moderate}) must be below high ({high})"
        )

    rt_raw = rs_raw.get("recommendation_thresholds") or {}
    recommendation_thresholds = {
        key: _number(rt_raw, key, "risk_scoring.recommendation_thresholds", default)
        for key, default in (
            ("cycle_irregularity", 15),
            ("symptom_severity", 10),
            ("bmi_and_weight", 10),
            ("hormonal_indicators", 5),
            ("family_history", 0),
        )
    }

    risk = RiskConfig(
        caps=caps,
        irregularity=irregularity,
        symptom_weights=symptom_weights,
        bmi_brackets=brackets,
        weight_trend_points=weight_trend_points,
        hormonal_weights=hormonal_weights,
        family_history_points=_number(rs_raw, "family_history_points", "risk_scoring", 5),
        moderate_threshold=moderate,
        high_threshold=high,
        recommendation_thresholds=recommendation_thresholds,
    )

    # ── Anomaly detection ──
    ad_raw = raw.get("anomaly_detection") or {}
    anomaly = AnomalyConfig(
        min_valid_gaps=int(_number(ad_raw, "min_valid_gaps", "anomaly_detection", 2)),
        amenorrhea_days=int(_number(ad_raw, "amenorrhea_days", "anomaly_detection", 90)),
        short_cycle_ratio=_number(ad_raw, "short_cycle_ratio", "anomaly_detection", 0.5),
        short_cycle_min_days=int(_number(ad_raw, "short_cycle_min_days", "anomaly_detection", 20)),
        extended_cycle_ratio=_number(ad_raw, "extended_cycle_ratio", "anomaly_detection", 1.5),
        menorrhagia_min_duration_days=int(
            _number(ad_raw, "menorrhagia_min_duration_days", "anomaly_detection", 7)
        ),
    )

    # ── Prediction ──
    pr_raw = raw.get("prediction") or {}
    weights_raw = pr_raw.get("recency_weights", [0.5, 0.3, 0.2])
    try:
        recency = tuple(float(w) for w in weights_raw)
    except (TypeError, ValueError):
        errors.append(f"prediction.recency_weights must be numbers, got {weights_raw!r}")
        recency = (0.5, 0.3, 0.2)
    if len(recency) != 3:
        errors.append("prediction.recency_weights must have exactly 3 entries")
        recency = (0.5, 0.3, 0.2)
    elif abs(sum(recency) - 1.0) > 1e-6:
        errors.append(f"prediction.recency_weights sum to {sum(recency):.3f}, expected 1.0")
    prediction = PredictionConfig(
        horizon_cycles=int(_number(pr_raw, "horizon_cycles", "prediction", 3)),
        recency_weights=recency,  # type: ignore[arg-type]
    )

    # ── Tracking ──
    tr_raw = raw.get("tracking") or {}
    tracking = TrackingConfig(
        default_duration_days=int(_number(tr_raw, "default_duration_days", "tracking", 5)),
        min_cycle_length_days=int(_number(tr_raw, "min_cycle_length_days", "tracking", 20)),
        max_cycle_length_days=int(_number(tr_raw, "max_cycle_length_days", "tracking", 45)),
        lifestyle_min_cycles=int(_number(tr_raw, "lifestyle_min_cycles", "tracking", 6)),
    )

    # ── Lifestyle adherence ──
    la_raw = raw.get("adherence") or {}
    adherence = AdherenceConfig(
        sleep_goal_hours=_number(la_raw, "sleep_goal_hours", "adherence", 7),
        insight_min_entries=int(_number(la_raw, "insight_min_entries", "adherence", 7)),
        insight_min_cycles=int(_number(la_raw, "insight_min_cycles", "adherence", 2)),
        insight_window_entries=int(_number(la_raw, "insight_window_entries", "adherence", 7)),
        supportive_ratio=_number(la_raw, "supportive_ratio", "adherence", 0.6),
    )
    if adherence.insight_window_entries < 1:
        errors.append("adherence.insight_window_entries must be at least 1")

    if errors:
        raise ConfigValidationError(
            f"insights_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return InsightsConfig(
        version=version,
        statistics=statistics_cfg,
        risk=risk,
        anomaly=anomaly,
        prediction=prediction,
        tracking=tracking,
        adherence=adherence,
        _raw=raw,
    )


def load_insights_config(path: Path | None = None) -> InsightsConfig:
    """Load and validate the insights config from disk.

    Args:
        path: Override path to YAML. Uses the bundled insights_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded insights config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: InsightsConfig | None = None
_config_lock = threading.Lock()


def get_insights_config() -> InsightsConfig:
    """Return the global InsightsConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_insights_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_insights_config()
    return _config


def reload_insights_config(path: Path | None = None) -> InsightsConfig:
    """Reload the insights config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_insights_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded insights config: %s → %s", old_version, new_config.version)
    return new_config
