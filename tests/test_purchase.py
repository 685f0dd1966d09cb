"""
Tests for `domain/purchase.py`.

Covers contract rules:
- Free session ids have the form free-<epoch millis>-<base36>.
- A Completed record requires a session id and is immutable.
- Stored records dispatch on `pending`; unknown rights types are rejected.
- A ReturnIntent needs all three fields; its idempotency key is return-<sessionId>.
"""

from __future__ import annotations

import re
from dataclasses import FrozenInstanceError

import pytest

from domain.purchase import (
    CompletedPurchase,
    PendingPurchase,
    ReturnIntent,
    generate_free_session_id,
    record_from_dict,
)
from domain.rights import DeliveryMethod, RightsType


def _completed(**overrides) -> CompletedPurchase:
    values = dict(
        beat_id="b1",
        beat_title="Night Drive",
        artist="Kilo Wave",
        rights_type=RightsType.BASIC,
        delivery_method=DeliveryMethod.ZIP_FILES,
        session_id="cs_test_1",
        timestamp=1735689600000,
        is_free=False,
    )
    values.update(overrides)
    return CompletedPurchase(**values)


def test_free_session_id_format() -> None:
    session_id = generate_free_session_id(1735689600000)

    assert re.fullmatch(r"free-1735689600000-[0-9a-z]{6}", session_id)


def test_completed_purchase_requires_session_id() -> None:
    with pytest.raises(ValueError):
        _completed(session_id="")


def test_completed_purchase_is_immutable() -> None:
    purchase = _completed()

    with pytest.raises(FrozenInstanceError):
        purchase.session_id = "other"  # type: ignore[misc]


def test_record_from_dict_dispatches_on_pending() -> None:
    pending = record_from_dict({
        "beatId": "b1",
        "beatTitle": "Night Drive",
        "artist": "Kilo Wave",
        "rightsType": "premium",
        "deliveryMethod": "googleDrive",
        "timestamp": 1,
        "pending": True,
    })
    completed = record_from_dict(_completed().to_dict())

    assert isinstance(pending, PendingPurchase)
    assert pending.delivery_method is DeliveryMethod.GOOGLE_DRIVE
    assert isinstance(completed, CompletedPurchase)
    assert completed == _completed()


def test_record_from_dict_accepts_legacy_rights_values() -> None:
    record = record_from_dict(_completed().to_dict() | {"rightsType": "exclusiveRight"})

    assert record.rights_type is RightsType.EXCLUSIVE


def test_record_from_dict_rejects_bad_entries() -> None:
    with pytest.raises(ValueError):
        record_from_dict(_completed().to_dict() | {"rightsType": "bogus"})

    with pytest.raises(ValueError):
        record_from_dict(_completed().to_dict() | {"beatId": ""})

    with pytest.raises(ValueError):
        record_from_dict(_completed().to_dict() | {"sessionId": None})


def test_pending_to_dict_marks_pending() -> None:
    pending = PendingPurchase("b1", "Night Drive", "Kilo Wave", RightsType.BASIC, DeliveryMethod.ZIP_FILES, 5)

    assert pending.to_dict()["pending"] is True
    assert "sessionId" not in pending.to_dict()


def test_return_intent_idempotency_key() -> None:
    intent = ReturnIntent(beat_id="b1", rights_type="basic", session_id="sess_123")

    assert intent.idempotency_key == "return-sess_123"
    assert ReturnIntent.from_dict(intent.to_dict()) == intent


def test_return_intent_from_dict_requires_all_fields() -> None:
    assert ReturnIntent.from_dict({"beatId": "b1", "rightsType": "basic"}) is None
    assert ReturnIntent.from_dict({"beatId": "b1", "rightsType": "basic", "sessionId": ""}) is None
    assert ReturnIntent.from_dict({"beatId": 1, "rightsType": "basic", "sessionId": "s"}) is None
