"""Tests for building cycle and symptom records from user entries."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest
from pydantic import ValidationError

from src.insights.base import FlowIntensity, InvalidInputError, UserMetrics, validate_history
from src.insights.config_loader import InsightsConfig
from src.insights.tests.conftest import make_cycle
from src.insights.tracking import bmi_from, build_cycle_record, build_symptom_record
from src.models.insights import UserMetricsSchema


class TestBuildCycleRecord:
    def test_default_duration_without_end_date(self, insights_config: InsightsConfig) -> None:
        record = build_cycle_record(date(2026, 2, 1), config=insights_config)
        assert record.duration == 5
        assert record.end_date == date(2026, 2, 5)
        assert record.cycle_length == 28
        assert record.flow_intensity == FlowIntensity.moderate

    def test_duration_is_inclusive(self, insights_config: InsightsConfig) -> None:
        record = build_cycle_record(
            date(2026, 2, 1), date(2026, 2, 8), FlowIntensity.heavy, config=insights_config
        )
        assert record.duration == 8
        assert record.flow_intensity == FlowIntensity.heavy

    def test_single_day_period(self, insights_config: InsightsConfig) -> None:
        record = build_cycle_record(date(2026, 2, 1), date(2026, 2, 1), config=insights_config)
        assert record.duration == 1

    def test_cycle_length_from_previous(self, insights_config: InsightsConfig) -> None:
        previous = make_cycle(date(2026, 1, 1))
        record = build_cycle_record(date(2026, 2, 1), previous=previous, config=insights_config)
        assert record.cycle_length == 31

    @pytest.mark.parametrize(("start", "expected"), [(date(2026, 1, 11), 28), (date(2026, 3, 1), 28)])
    def test_unrealistic_gap_falls_back(
        self, insights_config: InsightsConfig, start: date, expected: int
    ) -> None:
        previous = make_cycle(date(2026, 1, 1))
        record = build_cycle_record(start, previous=previous, config=insights_config)
        assert record.cycle_length == expected

    def test_end_before_start_raises(self, insights_config: InsightsConfig) -> None:
        with pytest.raises(InvalidInputError, match="before start date"):
            build_cycle_record(date(2026, 2, 5), date(2026, 2, 1), config=insights_config)

    def test_start_before_previous_raises(self, insights_config: InsightsConfig) -> None:
        previous = make_cycle(date(2026, 2, 1))
        with pytest.raises(InvalidInputError, match="before the last logged period"):
            build_cycle_record(date(2026, 1, 1), previous=previous, config=insights_config)

    def test_ids_are_unique(self, insights_config: InsightsConfig) -> None:
        first = build_cycle_record(date(2026, 2, 1), config=insights_config)
        second = build_cycle_record(date(2026, 2, 1), config=insights_config)
        assert first.record_id != second.record_id


class TestBuildSymptomRecord:
    def test_builds_record(self) -> None:
        record = build_symptom_record(date(2026, 2, 3), pain_score=6, bloating=True)
        assert record.pain_score == 6
        assert record.bloating
        assert not record.acne

    @pytest.mark.parametrize("pain", [-1, 10.5])
    def test_pain_out_of_range(self, pain: float) -> None:
        with pytest.raises(InvalidInputError):
            build_symptom_record(date(2026, 2, 3), pain_score=pain)


class TestValidateHistory:
    def test_accepts_ordered_history(self, regular_cycles) -> None:
        validate_history(regular_cycles)

    def test_same_start_date_is_allowed(self) -> None:
        validate_history([make_cycle(date(2026, 1, 1)), make_cycle(date(2026, 1, 1))])

    def test_negative_duration_rejected(self) -> None:
        record = replace(make_cycle(date(2026, 1, 1)), duration=-1)
        with pytest.raises(InvalidInputError, match="negative duration"):
            validate_history([record])


class TestUserMetrics:
    def test_provided_count(self) -> None:
        assert UserMetrics().provided_count() == 0
        assert UserMetrics(bmi=24.0, family_history=True).provided_count() == 2


class TestBmi:
    @pytest.mark.parametrize(
        ("weight", "height", "expected"),
        [(60, 165, 22.0), (90, 165, 33.1), (50, 180, 15.4), (70, 170, 24.2)],
    )
    def test_bmi_from_weight_and_height(self, weight: float, height: float, expected: float) -> None:
        assert bmi_from(weight, height) == expected

    def test_non_positive_input_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            bmi_from(70, 0)

    def test_schema_derives_bmi(self) -> None:
        metrics = UserMetricsSchema(weight_kg=90, height_cm=165, bmi=20)
        assert metrics.bmi == 33.1
        assert metrics.to_domain().bmi == 33.1

    def test_schema_keeps_bmi_without_weight_and_height(self) -> None:
        assert UserMetricsSchema(bmi=27.5).bmi == 27.5

    def test_weight_without_height_rejected(self) -> None:
        with pytest.raises(ValidationError, match="given together"):
            UserMetricsSchema(weight_kg=70)

    def test_implausible_derived_bmi_rejected(self) -> None:
        with pytest.raises(ValidationError, match="out of range"):
            UserMetricsSchema(weight_kg=400, height_cm=100)
