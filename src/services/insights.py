"""Orchestration between the key-value store and the insights engines.

Each operation loads the user's current snapshot from the store, runs the
pure engines, and writes back the replaced documents (``pcosRisk``,
``anomalies``) and the merged ``alerts`` list.

Every write for a user, including a full data wipe, runs under that user's
single ``asyncio.Lock`` for its whole load → compute → persist sequence.  A
wipe therefore cannot interleave with a save and have deleted history
written back, and two concurrent requests that both raise AMENORRHEA end
with a single stored alert.  Locks live in a ``WeakValueDictionary`` and
disappear once no request holds or awaits them.  Deployments with several
API processes must pin a user to one process or move the lock into the
database.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import replace
from datetime import date
from typing import Any, Protocol

from pydantic import ValidationError

from src.insights.adherence import (
    AdherenceAnalyzer,
    AdherenceInsight,
    AdherenceSummary,
    build_adherence_entry,
    upsert_entry,
)
from src.insights.alert_ledger import AlertLedger
from src.insights.anomaly_detector import AnomalyDetector, high_risk_flag
from src.insights.base import (
    AdherenceEntry,
    Alert,
    CycleRecord,
    InvalidInputError,
    RedFlag,
    SymptomRecord,
    UserMetrics,
    utc_now,
)
from src.insights.config_loader import InsightsConfig, get_insights_config
from src.insights.cycle_predictor import CyclePredictor, ForecastResult
from src.insights.recommendations import Recommendation, lifestyle_plan
from src.insights.risk_scoring import HIGH, RiskAssessment, RiskScoringEngine
from src.insights.tracking import build_cycle_record, build_symptom_record
from src.models.insights import (
    AdherenceEntryCreate,
    AdherenceEntryRead,
    AnomalyRead,
    CycleEntryCreate,
    CycleRecordRead,
    RiskAssessmentRead,
    SymptomEntryCreate,
    SymptomRecordRead,
    UserMetricsSchema,
)
from src.services import store as keys

logger = logging.getLogger("cycleinsights.services.insights")


class KeyValueStore(Protocol):
    async def get(self, key: str, user_id: str) -> Any | None: ...

    async def set(self, key: str, value: Any, user_id: str) -> None: ...

    async def delete(self, key: str, user_id: str) -> None: ...


class InsightsService:
    """Per-user operations over stored cycle history.

    Usage::

        service = InsightsService(PostgresKeyValueStore())
        assessment = await service.assess_risk(user_id)
        anomalies, new_alerts = await service.detect_anomalies(user_id)
    """

    def __init__(self, store: KeyValueStore, config: InsightsConfig | None = None) -> None:
        self._store = store
        self._config = config or get_insights_config()
        self._risk = RiskScoringEngine(self._config)
        self._detector = AnomalyDetector(self._config)
        self._predictor = CyclePredictor(self._config)
        self._adherence = AdherenceAnalyzer(self._config)
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        """The user's write lock; callers keep it alive while they hold it."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Snapshot loading
    # ------------------------------------------------------------------

    async def _load_list(self, key: str, user_id: str) -> list[dict]:
        doc = await self._store.get(key, user_id)
        if doc is None:
            return []
        if not isinstance(doc, list):
            raise InvalidInputError(f"Stored '{key}' document is not a list")
        return doc

    async def load_cycles(self, user_id: str) -> list[CycleRecord]:
        """Stored cycles, sorted by start date."""
        try:
            records = [
                CycleRecordRead.model_validate(d).to_domain()
                for d in await self._load_list(keys.HEALTH_DATA, user_id)
            ]
        except ValidationError as exc:
            raise InvalidInputError(f"Stored cycle history is malformed: {exc}") from exc
        return sorted(records, key=lambda r: r.start_date)

    async def load_symptoms(self, user_id: str) -> list[SymptomRecord]:
        try:
            return [
                SymptomRecordRead.model_validate(d).to_domain()
                for d in await self._load_list(keys.SYMPTOMS, user_id)
            ]
        except ValidationError as exc:
            raise InvalidInputError(f"Stored symptom log is malformed: {exc}") from exc

    async def load_metrics(self, user_id: str) -> UserMetrics:
        doc = await self._store.get(keys.HEALTH_METRICS, user_id)
        if not doc:
            return UserMetrics()
        try:
            return UserMetricsSchema.model_validate(doc).to_domain()
        except ValidationError as exc:
            raise InvalidInputError(f"Stored health metrics are malformed: {exc}") from exc

    async def load_adherence(self, user_id: str) -> list[AdherenceEntry]:
        """Stored lifestyle log, sorted by date."""
        try:
            entries = [
                AdherenceEntryRead.model_validate(d).to_domain()
                for d in await self._load_list(keys.LIFESTYLE_DATA, user_id)
            ]
        except ValidationError as exc:
            raise InvalidInputError(f"Stored lifestyle log is malformed: {exc}") from exc
        return sorted(entries, key=lambda e: e.date)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def _merge_flags(self, user_id: str, flags: list[RedFlag]) -> list[Alert]:
        """Merge red flags into the stored ledger; return the alerts actually added.

        The caller must hold the user's lock.
        """
        if not flags:
            return []
        ledger = AlertLedger.from_payload(await self._store.get(keys.ALERTS, user_id))
        now = utc_now()
        added = [a for a in (ledger.raise_flag(f, now) for f in flags) if a is not None]
        if added:
            await self._store.set(keys.ALERTS, ledger.to_payload(), user_id)
        return added

    async def list_alerts(self, user_id: str) -> list[Alert]:
        ledger = AlertLedger.from_payload(await self._store.get(keys.ALERTS, user_id))
        return ledger.list_alerts()

    async def dismiss_alert(self, user_id: str, alert_id: str) -> bool:
        """Remove one alert by id.  Returns False if no alert has that id."""
        async with self._lock_for(user_id):
            ledger = AlertLedger.from_payload(await self._store.get(keys.ALERTS, user_id))
            if not ledger.dismiss(alert_id):
                return False
            await self._store.set(keys.ALERTS, ledger.to_payload(), user_id)
        return True

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    async def add_cycle(
        self, user_id: str, entry: CycleEntryCreate
    ) -> tuple[CycleRecord, list[Alert]]:
        """Store a new period and run the on-save red-flag checks."""
        async with self._lock_for(user_id):
            cycles = await self.load_cycles(user_id)
            record = build_cycle_record(
                entry.start_date,
                entry.end_date,
                entry.flow_intensity,
                previous=cycles[-1] if cycles else None,
                config=self._config,
            )
            cycles.append(record)
            await self._store.set(
                keys.HEALTH_DATA,
                [CycleRecordRead.from_domain(c).model_dump(mode="json") for c in cycles],
                user_id,
            )
            logger.info("Stored cycle %s for user %s", record.record_id, user_id)
            alerts = await self._merge_flags(user_id, self._detector.entry_red_flags(cycles))
        return record, alerts

    async def add_symptom(self, user_id: str, entry: SymptomEntryCreate) -> SymptomRecord:
        record = build_symptom_record(
            entry.date,
            pain_score=entry.pain_score,
            acne=entry.acne,
            fatigue=entry.fatigue,
            mood_swings=entry.mood_swings,
            bloating=entry.bloating,
        )
        async with self._lock_for(user_id):
            docs = await self._load_list(keys.SYMPTOMS, user_id)
            docs.append(SymptomRecordRead.from_domain(record).model_dump(mode="json"))
            await self._store.set(keys.SYMPTOMS, docs, user_id)
        return record

    async def set_metrics(self, user_id: str, metrics: UserMetricsSchema) -> None:
        async with self._lock_for(user_id):
            await self._store.set(keys.HEALTH_METRICS, metrics.model_dump(mode="json"), user_id)

    async def log_adherence(self, user_id: str, entry: AdherenceEntryCreate) -> AdherenceEntry:
        """Store one day's lifestyle log, replacing an earlier log for that date."""
        new_entry = build_adherence_entry(
            entry.date,
            exercise=entry.exercise,
            diet=entry.diet,
            sleep_hours=entry.sleep_hours,
            notes=entry.notes,
        )
        async with self._lock_for(user_id):
            entries, stored = upsert_entry(await self.load_adherence(user_id), new_entry)
            await self._store.set(
                keys.LIFESTYLE_DATA,
                [AdherenceEntryRead.from_domain(e).model_dump(mode="json") for e in entries],
                user_id,
            )
        return stored

    async def delete_all(self, user_id: str) -> None:
        """Remove every document the application stores for this user."""
        async with self._lock_for(user_id):
            for key in keys.ALL_KEYS:
                await self._store.delete(key, user_id)
        logger.info("Deleted all stored data for user %s", user_id)

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    async def assess_risk(
        self, user_id: str, metrics: UserMetrics | None = None
    ) -> tuple[RiskAssessment, list[Alert]]:
        """Recompute and store the risk assessment; raise the high-risk alert.

        Metrics sent with the request replace the stored ones, except that a
        missing BMI is filled from the stored metrics.
        """
        async with self._lock_for(user_id):
            cycles = await self.load_cycles(user_id)
            symptoms = await self.load_symptoms(user_id)
            stored_metrics = await self.load_metrics(user_id)
            if metrics is None:
                metrics = stored_metrics
            elif metrics.bmi is None and stored_metrics.bmi is not None:
                metrics = replace(metrics, bmi=stored_metrics.bmi)

            assessment = self._risk.score(cycles, symptoms, metrics)
            await self._store.set(
                keys.PCOS_RISK,
                RiskAssessmentRead.from_domain(assessment).model_dump(mode="json"),
                user_id,
            )

            alerts: list[Alert] = []
            if assessment.risk_category == HIGH:
                alerts = await self._merge_flags(user_id, [high_risk_flag(assessment.risk_score)])
        return assessment, alerts

    async def detect_anomalies(self, user_id: str) -> tuple[list[AnomalyRead], list[Alert]]:
        """Replace the stored anomaly set and merge red flags into alerts."""
        async with self._lock_for(user_id):
            cycles = await self.load_cycles(user_id)
            symptoms = await self.load_symptoms(user_id)
            result = self._detector.detect(cycles, symptoms)

            detected_at = utc_now()
            anomalies = [AnomalyRead.from_domain(a, detected_at) for a in result.anomalies]
            await self._store.set(
                keys.ANOMALIES, [a.model_dump(mode="json") for a in anomalies], user_id
            )
            alerts = await self._merge_flags(user_id, result.red_flags)
        return anomalies, alerts

    async def predict(self, user_id: str, as_of: date | None = None) -> ForecastResult | None:
        return self._predictor.predict(await self.load_cycles(user_id), as_of)

    async def lifestyle(self, user_id: str) -> list[Recommendation]:
        """Lifestyle plan keyed on the last stored assessment."""
        cycles = await self.load_cycles(user_id)
        stored = await self._store.get(keys.PCOS_RISK, user_id) or {}
        contributions = stored.get("contributions", {}) if isinstance(stored, dict) else {}
        return lifestyle_plan(contributions, len(cycles), self._config)

    async def adherence_report(
        self, user_id: str
    ) -> tuple[AdherenceSummary | None, AdherenceInsight | None]:
        entries = await self.load_adherence(user_id)
        cycles = await self.load_cycles(user_id)
        return self._adherence.summary(entries), self._adherence.cycle_insight(entries, cycles)
