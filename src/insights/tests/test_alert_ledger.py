"""Tests for the deduplicating alert ledger."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from src.insights.alert_ledger import AlertLedger
from src.insights.base import Alert, RedFlag, Severity

RAISED_AT = datetime(2026, 2, 23, 9, 30, tzinfo=timezone.utc)


def _flag(alert_type: str = "AMENORRHEA", message: str = "No menstruation for 100 days.") -> RedFlag:
    return RedFlag(type=alert_type, severity=Severity.high, message=message, days=100)


class TestDeduplication:
    def test_first_flag_of_a_type_is_raised(self) -> None:
        ledger = AlertLedger()
        alert = ledger.raise_flag(_flag(), RAISED_AT)
        assert alert is not None
        assert alert.type == "AMENORRHEA"
        assert alert.severity == Severity.high
        assert alert.timestamp == RAISED_AT
        assert len(ledger) == 1

    def test_same_type_is_dropped(self) -> None:
        ledger = AlertLedger()
        ledger.raise_flag(_flag())
        assert ledger.raise_flag(_flag(message="Different wording")) is None
        assert len(ledger) == 1
        assert ledger.list_alerts()[0].message == "No menstruation for 100 days."

    def test_type_match_is_case_sensitive(self) -> None:
        ledger = AlertLedger()
        ledger.raise_flag(_flag("AMENORRHEA"))
        assert ledger.raise_flag(_flag("amenorrhea")) is not None
        assert len(ledger) == 2

    def test_order_is_raise_order(self) -> None:
        ledger = AlertLedger()
        for alert_type in ("MENORRHAGIA", "AMENORRHEA", "pcos_high_risk"):
            ledger.raise_flag(_flag(alert_type))
        assert [a.type for a in ledger] == ["MENORRHAGIA", "AMENORRHEA", "pcos_high_risk"]

    def test_ids_are_unique(self) -> None:
        ledger = AlertLedger()
        ids = {ledger.raise_flag(_flag(f"TYPE_{i}")).alert_id for i in range(50)}
        assert len(ids) == 50

    def test_concurrent_raises_store_one_alert(self) -> None:
        ledger = AlertLedger()
        barrier = threading.Barrier(8)

        def _raise() -> None:
            barrier.wait()
            ledger.raise_flag(_flag())

        threads = [threading.Thread(target=_raise) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(ledger) == 1


class TestDismiss:
    def test_dismiss_removes_alert(self) -> None:
        ledger = AlertLedger()
        alert = ledger.raise_flag(_flag())
        assert ledger.dismiss(alert.alert_id)
        assert len(ledger) == 0
        assert not ledger.has_type("AMENORRHEA")

    def test_dismiss_unknown_id(self) -> None:
        ledger = AlertLedger()
        ledger.raise_flag(_flag())
        assert not ledger.dismiss("does-not-exist")
        assert len(ledger) == 1

    def test_type_can_be_raised_again_after_dismissal(self) -> None:
        ledger = AlertLedger()
        first = ledger.raise_flag(_flag())
        ledger.dismiss(first.alert_id)
        second = ledger.raise_flag(_flag())
        assert second is not None
        assert second.alert_id != first.alert_id


class TestPayload:
    def test_round_trip_preserves_alerts(self) -> None:
        ledger = AlertLedger()
        ledger.raise_flag(_flag("AMENORRHEA"), RAISED_AT)
        ledger.raise_flag(_flag("MENORRHAGIA"), RAISED_AT)

        payload = ledger.to_payload()
        assert payload[0]["timestamp"] == "2026-02-23T09:30:00+00:00"
        assert payload[0]["severity"] == "high"

        restored = AlertLedger.from_payload(payload)
        assert restored.list_alerts() == ledger.list_alerts()

    def test_from_empty_payload(self) -> None:
        assert len(AlertLedger.from_payload(None)) == 0
        assert len(AlertLedger.from_payload([])) == 0

    def test_duplicate_types_in_stored_payload_collapse(self) -> None:
        stored = [
            Alert(type="amenorrhea", severity=Severity.high, message="first"),
            Alert(type="amenorrhea", severity=Severity.high, message="second"),
        ]
        payload = AlertLedger(stored[:1]).to_payload() + AlertLedger(stored[1:]).to_payload()
        restored = AlertLedger.from_payload(payload)
        assert [a.message for a in restored] == ["first"]
