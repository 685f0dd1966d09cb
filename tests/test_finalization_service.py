"""
Tests for `services/finalization_service.py`.

Covers contract rules:
- A processor session id is confirmed on the ledger at most once.
- Success leaves no Pending record for (beatId, rightsType).
- Bad rights types and empty session ids fail without calling the ledger.
- Ledger failures surface the session id and keep the Pending record.
- The bridged intent is cleared in every outcome.
"""

from __future__ import annotations

from domain.purchase import PendingPurchase, ReturnIntent
from domain.rights import DeliveryMethod, RightsType
from repositories.purchase_record_repository import PurchaseRecordStore
from services.auth_bridge import get_persisted_return_intent, persist_return_intent
from services.finalization_service import (
    COMPLETED_MESSAGE,
    INVALID_RIGHTS_MESSAGE,
    MISSING_SESSION_MESSAGE,
    FinalizationStatus,
    finalize_return,
)

INTENT = ReturnIntent(beat_id="b1", rights_type="basic", session_id="cs_test_1")


def _seed_pending(store, timestamp: int = 1) -> PendingPurchase:
    pending = PendingPurchase(
        "b1", "Night Drive", "Kilo Wave", RightsType.BASIC, DeliveryMethod.GOOGLE_DRIVE, timestamp
    )
    store.append(pending)
    return pending


def test_finalize_replaces_pending_with_completed(store, ledger, session_storage) -> None:
    _seed_pending(store)

    outcome = finalize_return(INTENT, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.COMPLETED
    assert outcome.message == COMPLETED_MESSAGE
    assert store.list_pending() == []
    [completed] = store.list_completed_paid()
    assert completed.session_id == "cs_test_1"
    assert completed.beat_title == "Night Drive"
    assert completed.delivery_method is DeliveryMethod.GOOGLE_DRIVE
    assert not completed.is_free
    assert ledger.recorded == [("b1", "cs_test_1", False, RightsType.BASIC)]


def test_finalize_is_idempotent(store, ledger, session_storage) -> None:
    """Verify a reload with the same session id never reaches the ledger twice."""

    _seed_pending(store)

    finalize_return(INTENT, store, ledger, session_storage)
    second = finalize_return(INTENT, store, ledger, session_storage)

    assert second.status is FinalizationStatus.ALREADY_PROCESSED
    assert len(ledger.recorded) == 1
    assert len(store.list_completed_paid()) == 1


def test_finalize_collapses_duplicate_pending(store, ledger, session_storage) -> None:
    _seed_pending(store, timestamp=1)
    _seed_pending(store, timestamp=2)

    finalize_return(INTENT, store, ledger, session_storage)

    assert store.list_pending() == []
    assert len(store.list_completed_paid()) == 1


def test_finalize_without_pending_record_still_completes(store, ledger, session_storage) -> None:
    outcome = finalize_return(INTENT, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.COMPLETED
    assert outcome.record.beat_title == ""
    assert outcome.record.delivery_method is DeliveryMethod.ZIP_FILES


def test_unknown_rights_type_fails_without_ledger_call(store, ledger, session_storage) -> None:
    _seed_pending(store)
    intent = ReturnIntent(beat_id="b1", rights_type="bogus", session_id="cs_test_1")

    outcome = finalize_return(intent, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.VALIDATION_FAILED
    assert outcome.message == INVALID_RIGHTS_MESSAGE
    assert ledger.recorded == []
    assert len(store.list_pending()) == 1


def test_blank_session_id_fails_without_ledger_call(store, ledger, session_storage) -> None:
    intent = ReturnIntent(beat_id="b1", rights_type="basic", session_id="   ")

    outcome = finalize_return(intent, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.VALIDATION_FAILED
    assert outcome.message == MISSING_SESSION_MESSAGE
    assert ledger.recorded == []


def test_ledger_failure_reports_session_id(store, ledger, session_storage) -> None:
    _seed_pending(store)
    ledger.record_error = RuntimeError("unknown beat sk_live_leak")

    outcome = finalize_return(INTENT, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.FAILED
    assert outcome.status.is_error
    assert "cs_test_1" in outcome.message
    assert "sk_live_leak" not in outcome.message
    assert len(store.list_pending()) == 1
    assert session_storage.get_item(INTENT.idempotency_key) is None


def test_bridge_is_cleared_in_every_outcome(store, ledger, session_storage) -> None:
    persist_return_intent(session_storage, INTENT)
    ledger.record_error = RuntimeError("down")

    finalize_return(INTENT, store, ledger, session_storage)

    assert get_persisted_return_intent(session_storage) is None


def test_marker_is_per_session(device_storage, ledger, session_storage) -> None:
    store = PurchaseRecordStore(device_storage)
    _seed_pending(store)
    finalize_return(INTENT, store, ledger, session_storage)

    other = ReturnIntent(beat_id="b1", rights_type="basic", session_id="cs_test_2")
    outcome = finalize_return(other, store, ledger, session_storage)

    assert outcome.status is FinalizationStatus.COMPLETED
    assert len(ledger.recorded) == 2
    assert [p.session_id for p in store.list_completed_paid()] == ["cs_test_2"]
