"""Lifestyle adherence logging and summaries.

Users log one entry per day: whether they exercised, followed the diet
plan, and how long they slept.  Re-logging a day replaces that day's entry
and keeps its id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Sequence

from src.insights.base import AdherenceEntry, CycleRecord, new_id
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_stats import round_half_up

logger = logging.getLogger("cycleinsights.insights.adherence")

SUPPORTIVE_INSIGHT = "High lifestyle adherence may be supporting better cycle regularity"
IMPROVE_INSIGHT = "Increasing lifestyle adherence could help improve cycle patterns"


@dataclass(frozen=True)
class AdherenceSummary:
    """Percentages of logged days on which each goal was met.

    Attributes:
        exercise:   Exercise goal met, 0-100.
        diet:       Diet plan followed, 0-100.
        sleep:      Sleep goal met, 0-100.
        overall:    All three goals pooled, 0-100.
        total_days: Distinct days logged.
    """

    exercise: int
    diet: int
    sleep: int
    overall: int
    total_days: int


@dataclass(frozen=True)
class AdherenceInsight:
    adherence: int
    cycle_regularity: int
    insight: str


def build_adherence_entry(
    on: date,
    exercise: bool = False,
    diet: bool = False,
    sleep_hours: float = 7.0,
    notes: str = "",
) -> AdherenceEntry:
    return AdherenceEntry(
        record_id=new_id(),
        date=on,
        exercise=exercise,
        diet=diet,
        sleep_hours=sleep_hours,
        notes=notes,
    )


def upsert_entry(
    entries: Sequence[AdherenceEntry], entry: AdherenceEntry
) -> tuple[list[AdherenceEntry], AdherenceEntry]:
    """Insert ``entry`` or replace the existing entry for the same date.

    Returns:
        The updated list and the entry as stored (carrying the original id
        when a day is re-logged).
    """
    updated = list(entries)
    for i, existing in enumerate(updated):
        if existing.date == entry.date:
            stored = replace(entry, record_id=existing.record_id)
            updated[i] = stored
            return updated, stored
    updated.append(entry)
    return updated, entry


def unique_by_date(entries: Sequence[AdherenceEntry]) -> list[AdherenceEntry]:
    """One entry per date, the later one winning, sorted by date."""
    by_date: dict[date, AdherenceEntry] = {}
    for entry in entries:
        by_date[entry.date] = entry
    return [by_date[d] for d in sorted(by_date)]


class AdherenceAnalyzer:
    """Summarize adherence logs and relate them to cycle regularity.

    Usage::

        analyzer = AdherenceAnalyzer()
        summary = analyzer.summary(entries)          # None without entries
        insight = analyzer.cycle_insight(entries, cycles)
    """

    def __init__(self, config: InsightsConfig | None = None) -> None:
        self._config = config or get_insights_config()

    def _goals_met(self, entry: AdherenceEntry) -> int:
        sleep_ok = entry.sleep_hours >= self._config.adherence.sleep_goal_hours
        return int(entry.exercise) + int(entry.diet) + int(sleep_ok)

    def summary(self, entries: Sequence[AdherenceEntry]) -> AdherenceSummary | None:
        days = unique_by_date(entries)
        if not days:
            return None

        goal = self._config.adherence.sleep_goal_hours
        total = len(days)
        exercise_days = sum(1 for d in days if d.exercise)
        diet_days = sum(1 for d in days if d.diet)
        sleep_days = sum(1 for d in days if d.sleep_hours >= goal)

        return AdherenceSummary(
            exercise=round_half_up(exercise_days / total * 100),
            diet=round_half_up(diet_days / total * 100),
            sleep=round_half_up(sleep_days / total * 100),
            overall=round_half_up((exercise_days + diet_days + sleep_days) / (total * 3) * 100),
            total_days=total,
        )

    def cycle_insight(
        self,
        entries: Sequence[AdherenceEntry],
        cycles: Sequence[CycleRecord],
    ) -> AdherenceInsight | None:
        """Recent adherence next to cycle regularity.

        Returns None until enough days and cycles are logged.
        """
        ac = self._config.adherence
        days = unique_by_date(entries)
        if len(days) < ac.insight_min_entries or len(cycles) < ac.insight_min_cycles:
            return None

        window = days[-ac.insight_window_entries:]
        ratio = sum(self._goals_met(d) for d in window) / (len(window) * 3)

        mean_length = sum(c.cycle_length for c in cycles) / len(cycles)
        regularity = 100 if cycles[-1].cycle_length == mean_length else 80

        logger.debug(
            "Adherence insight: %.2f over %d days, regularity %d", ratio, len(window), regularity
        )
        return AdherenceInsight(
            adherence=round_half_up(ratio * 100),
            cycle_regularity=regularity,
            insight=SUPPORTIVE_INSIGHT if ratio > ac.supportive_ratio else IMPROVE_INSIGHT,
        )
