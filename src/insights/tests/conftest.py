"""Shared fixtures and history builders for insights engine tests."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Any
from uuid import uuid4

import pytest

from src.insights.base import CycleRecord, FlowIntensity, SymptomRecord
from src.insights.config_loader import InsightsConfig, load_insights_config
from src.services.store import PersistenceError

# Canonical test user and reference date
TEST_USER_ID = "user_12345678"
TEST_DATE = date(2026, 2, 23)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def insights_config() -> InsightsConfig:
    """Load the real bundled config for tests."""
    return load_insights_config()


# ---------------------------------------------------------------------------
# History builders
# ---------------------------------------------------------------------------


def make_cycle(
    start: date,
    duration: int = 5,
    flow: FlowIntensity = FlowIntensity.moderate,
    cycle_length: int = 28,
) -> CycleRecord:
    return CycleRecord(
        record_id=uuid4().hex,
        start_date=start,
        end_date=start + timedelta(days=duration - 1),
        flow_intensity=flow,
        duration=duration,
        cycle_length=cycle_length,
    )


def cycles_from_gaps(gaps: list[int], first_start: date = date(2025, 1, 1)) -> list[CycleRecord]:
    """Build len(gaps) + 1 consecutive records separated by ``gaps`` days."""
    start = first_start
    cycles = [make_cycle(start)]
    for gap in gaps:
        start += timedelta(days=gap)
        cycles.append(make_cycle(start, cycle_length=gap))
    return cycles


def make_symptom(
    on: date = TEST_DATE,
    pain: float = 0,
    acne: bool = False,
    fatigue: bool = False,
    mood_swings: bool = False,
    bloating: bool = False,
) -> SymptomRecord:
    return SymptomRecord(
        record_id=uuid4().hex,
        date=on,
        pain_score=pain,
        acne=acne,
        fatigue=fatigue,
        mood_swings=mood_swings,
        bloating=bloating,
    )


@pytest.fixture
def regular_cycles() -> list[CycleRecord]:
    """Six regular 28-day cycles."""
    return cycles_from_gaps([28, 28, 28, 28, 28])


# ---------------------------------------------------------------------------
# Key-value store double
# ---------------------------------------------------------------------------


class InMemoryKeyValueStore:
    """Dict-backed stand-in for PostgresKeyValueStore."""

    def __init__(self) -> None:
        self.data: dict[tuple[str, str], Any] = {}
        self.fail_writes = False
        self.set_calls = 0

    async def get(self, key: str, user_id: str) -> Any | None:
        await asyncio.sleep(0)  # every call yields like a real round-trip
        return self.data.get((user_id, key))

    async def set(self, key: str, value: Any, user_id: str) -> None:
        await asyncio.sleep(0)
        self.set_calls += 1
        if self.fail_writes:
            raise PersistenceError(f"Could not save '{key}'")
        self.data[(user_id, key)] = value

    async def delete(self, key: str, user_id: str) -> None:
        await asyncio.sleep(0)
        self.data.pop((user_id, key), None)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()
