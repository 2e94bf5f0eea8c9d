"""Tests for insights_config.yaml loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.insights.config_loader import (
    ConfigValidationError,
    InsightsConfig,
    _validate_and_build,
    get_insights_config,
    load_insights_config,
    reload_insights_config,
)


def _minimal_raw() -> dict:
    return {
        "version": "1.0",
        "risk_scoring": {
            "symptom_weights": {
                "pain": 8,
                "acne": 5,
                "fatigue": 4,
                "mood_swings": 4,
                "bloating": 4,
            },
            "bmi_brackets": [{"min": 0, "points": 0}, {"min": 30, "points": 15}],
        },
    }


class TestConfigLoading:
    """Tests for loading the bundled insights_config.yaml."""

    def test_load_default_config(self, insights_config: InsightsConfig) -> None:
        assert insights_config.version == "1.0"
        assert insights_config.statistics.valid_gap_days == (20, 45)
        assert insights_config.statistics.default_cycle_length == 28

    def test_risk_caps(self, insights_config: InsightsConfig) -> None:
        caps = insights_config.risk.caps
        assert caps.cycle_irregularity == 40
        assert caps.symptom_severity == 25
        assert caps.bmi_and_weight == 20
        assert caps.hormonal_indicators == 10
        assert insights_config.risk.family_history_points == 5

    def test_caps_sum_to_one_hundred(self, insights_config: InsightsConfig) -> None:
        caps = insights_config.risk.caps
        total = (
            caps.cycle_irregularity
            + caps.symptom_severity
            + caps.bmi_and_weight
            + caps.hormonal_indicators
            + insights_config.risk.family_history_points
        )
        assert total == 100

    def test_bmi_brackets_sorted_highest_first(self, insights_config: InsightsConfig) -> None:
        mins = [b.min for b in insights_config.risk.bmi_brackets]
        assert mins == sorted(mins, reverse=True)
        assert mins[0] == 35.0

    def test_category_thresholds(self, insights_config: InsightsConfig) -> None:
        assert insights_config.risk.moderate_threshold == 25
        assert insights_config.risk.high_threshold == 50

    def test_anomaly_config(self, insights_config: InsightsConfig) -> None:
        ad = insights_config.anomaly
        assert ad.min_valid_gaps == 2
        assert ad.amenorrhea_days == 90
        assert ad.menorrhagia_min_duration_days == 7

    def test_prediction_weights(self, insights_config: InsightsConfig) -> None:
        assert insights_config.prediction.recency_weights == (0.5, 0.3, 0.2)
        assert insights_config.prediction.horizon_cycles == 3

    def test_adherence_config(self, insights_config: InsightsConfig) -> None:
        la = insights_config.adherence
        assert la.sleep_goal_hours == 7
        assert (la.insight_min_entries, la.insight_min_cycles) == (7, 2)
        assert la.supportive_ratio == 0.6

    def test_singleton_is_cached(self) -> None:
        assert get_insights_config() is get_insights_config()


class TestConfigValidation:
    """Tests for config validation logic."""

    def test_valid_minimal_config(self) -> None:
        config = _validate_and_build(_minimal_raw())
        assert config.version == "1.0"
        assert [b.min for b in config.risk.bmi_brackets] == [30, 0]
        # omitted sections fall back to defaults
        assert config.anomaly.amenorrhea_days == 90
        assert config.adherence.insight_window_entries == 7

    def test_missing_risk_section_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="risk_scoring"):
            _validate_and_build({"version": "1.0"})

    def test_non_numeric_weight_raises(self) -> None:
        raw = _minimal_raw()
        raw["risk_scoring"]["symptom_weights"]["pain"] = "lots"
        with pytest.raises(ConfigValidationError, match="must be a number"):
            _validate_and_build(raw)

    def test_inverted_gap_bounds_raise(self) -> None:
        raw = _minimal_raw()
        raw["cycle_statistics"] = {"valid_gap_days": {"lower": 45, "upper": 20}}
        with pytest.raises(ConfigValidationError, match="lower bound"):
            _validate_and_build(raw)

    def test_thresholds_out_of_order_raise(self) -> None:
        raw = _minimal_raw()
        raw["risk_scoring"]["category_thresholds"] = {"moderate": 60, "high": 50}
        with pytest.raises(ConfigValidationError, match="must be below high"):
            _validate_and_build(raw)

    def test_recency_weights_must_sum_to_one(self) -> None:
        raw = _minimal_raw()
        raw["prediction"] = {"recency_weights": [0.5, 0.5, 0.5]}
        with pytest.raises(ConfigValidationError, match="expected 1.0"):
            _validate_and_build(raw)

    def test_empty_adherence_window_raises(self) -> None:
        raw = _minimal_raw()
        raw["adherence"] = {"insight_window_entries": 0}
        with pytest.raises(ConfigValidationError, match="insight_window_entries"):
            _validate_and_build(raw)

    def test_all_errors_reported_together(self) -> None:
        raw = _minimal_raw()
        raw["risk_scoring"]["symptom_weights"]["pain"] = "lots"
        raw["prediction"] = {"recency_weights": [1, 1, 1]}
        with pytest.raises(ConfigValidationError, match="2 validation error"):
            _validate_and_build(raw)

    def test_hot_reload(self, tmp_path: Path) -> None:
        config_content = """
version: "2.0-test"
cycle_statistics:
  valid_gap_days: {lower: 18, upper: 50}
risk_scoring:
  symptom_weights: {pain: 8, acne: 5, fatigue: 4, mood_swings: 4, bloating: 4}
  bmi_brackets:
    - {min: 0.0, points: 0}
"""
        config_file = tmp_path / "insights_config.yaml"
        config_file.write_text(config_content.strip())

        try:
            new_config = reload_insights_config(path=config_file)
            assert new_config.version == "2.0-test"
            assert get_insights_config().statistics.valid_gap_days == (18, 50)
        finally:
            reload_insights_config()

    def test_failed_reload_keeps_old_config(self, tmp_path: Path) -> None:
        before = get_insights_config()
        config_file = tmp_path / "insights_config.yaml"
        config_file.write_text('version: "bad"\n')

        with pytest.raises(ConfigValidationError):
            reload_insights_config(path=config_file)
        assert get_insights_config() is before

    def test_malformed_yaml_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "insights_config.yaml"
        config_file.write_text("risk_scoring: [unclosed\n")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_insights_config(path=config_file)

    def test_load_nonexistent_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_insights_config(path=Path("/nonexistent/path/config.yaml"))
