"""Deduplicated store of raised alerts.

Dedup key: the alert ``type`` string (exact match, case-sensitive).  While
an alert of a type is present, further alerts of that type are dropped
regardless of severity or message.  Alerts leave the ledger only through
``dismiss(alert_id)``.

The ledger serializes its own mutations with a lock.  It does not make a
load-modify-persist cycle atomic; callers that rebuild a ledger from storage
must hold a per-user lock around that whole cycle (see
``src.services.insights``).
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Iterable, Iterator

from src.insights.base import Alert, RedFlag, Severity

logger = logging.getLogger("cycleinsights.insights.alerts")


class AlertLedger:
    """At-most-one-alert-per-type collection.

    Usage::

        ledger = AlertLedger.from_payload(stored_alerts)
        for flag in detection.red_flags:
            ledger.raise_flag(flag)
        ledger.dismiss(alert_id)
        payload = ledger.to_payload()
    """

    def __init__(self, alerts: Iterable[Alert] = ()) -> None:
        # type -> alert; dict order is insertion order
        self._by_type: dict[str, Alert] = {}
        self._lock = threading.Lock()
        for alert in alerts:
            self.add(alert)

    def add(self, alert: Alert) -> bool:
        """Insert ``alert`` unless one of the same type is already present.

        Returns:
            True if the alert was stored, False if it was a duplicate.
        """
        with self._lock:
            if alert.type in self._by_type:
                logger.debug("Skipping duplicate alert type: %s", alert.type)
                return False
            self._by_type[alert.type] = alert
        logger.info("Raised %s alert %s (%s)", alert.severity.value, alert.type, alert.alert_id)
        return True

    def raise_flag(self, flag: RedFlag, now: datetime | None = None) -> Alert | None:
        """Convert a red flag to an alert and add it.

        Returns:
            The new Alert, or None if the type was already raised.
        """
        alert = Alert.from_red_flag(flag, now)
        return alert if self.add(alert) else None

    def dismiss(self, alert_id: str) -> bool:
        """Remove the alert with ``alert_id``.

        Returns:
            True if an alert was removed, False if no alert has that id.
        """
        with self._lock:
            for alert_type, alert in self._by_type.items():
                if alert.alert_id == alert_id:
                    del self._by_type[alert_type]
                    break
            else:
                return False
        logger.info("Dismissed alert %s (%s)", alert_id, alert_type)
        return True

    def list_alerts(self) -> list[Alert]:
        """Active alerts in the order they were raised."""
        with self._lock:
            return list(self._by_type.values())

    def has_type(self, alert_type: str) -> bool:
        return alert_type in self._by_type

    def __len__(self) -> int:
        return len(self._by_type)

    def __iter__(self) -> Iterator[Alert]:
        return iter(self.list_alerts())

    # ------------------------------------------------------------------
    # Serialization for the key-value store
    # ------------------------------------------------------------------

    def to_payload(self) -> list[dict[str, Any]]:
        return [
            {
                "id": a.alert_id,
                "type": a.type,
                "severity": a.severity.value,
                "message": a.message,
                "timestamp": a.timestamp.isoformat(),
            }
            for a in self.list_alerts()
        ]

    @classmethod
    def from_payload(cls, payload: Iterable[dict[str, Any]] | None) -> AlertLedger:
        """Rebuild a ledger from stored documents.

        Stored lists written before deduplication was enforced may hold
        several alerts of one type; the first of each type is kept.
        """
        alerts = [
            Alert(
                alert_id=str(item["id"]),
                type=item["type"],
                severity=Severity(item["severity"]),
                message=item["message"],
                timestamp=datetime.fromisoformat(item["timestamp"]),
            )
            for item in payload or []
        ]
        return cls(alerts)
