"""
Domain: Purchase records and processor return intents.

Contract excerpts implemented here:
- A PurchaseRecord is either Pending (created before redirecting to the payment
  processor) or Completed (terminal, usable for entitlement decisions).
- A Completed record is immutable; reconciliation replaces it, never edits it.
- sessionId identifies one external checkout attempt and is the idempotency key
  for finalization.
- Free purchases are synthesized directly as Completed with a local session id
  of the form free-<epoch millis>-<random base36>.

Records are persisted as JSON objects with camelCase keys so the stored shape
stays stable across releases:

    Pending:   {beatId, beatTitle, artist, rightsType, deliveryMethod, timestamp, pending: true}
    Completed: {beatId, beatTitle, artist, rightsType, deliveryMethod, sessionId,
                timestamp, isFree, pending: false}

Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .rights import DeliveryMethod, RightsType

FREE_SESSION_PREFIX = "free-"

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def generate_free_session_id(timestamp_ms: Optional[int] = None) -> str:
    """
    Build a synthetic session id for a free acquisition.

    Example:
        generate_free_session_id(1735689600000)
        # "free-1735689600000-k3x9qa"
    """

    if timestamp_ms is None:
        timestamp_ms = now_millis()
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(6))
    return f"{FREE_SESSION_PREFIX}{timestamp_ms}-{suffix}"


@dataclass(frozen=True, slots=True)
class PendingPurchase:
    """
    A purchase intent persisted before the redirect to the payment processor.

    Has no session id: the processor only reveals it on the way back.
    """

    beat_id: str
    beat_title: str
    artist: str
    rights_type: RightsType
    delivery_method: DeliveryMethod
    timestamp: int

    @property
    def pending(self) -> bool:
        return True

    def matches(self, beat_id: str, rights_type: RightsType) -> bool:
        return self.beat_id == beat_id and self.rights_type is rights_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "beatId": self.beat_id,
            "beatTitle": self.beat_title,
            "artist": self.artist,
            "rightsType": self.rights_type.value,
            "deliveryMethod": self.delivery_method.value,
            "timestamp": self.timestamp,
            "pending": True,
        }


@dataclass(frozen=True, slots=True)
class CompletedPurchase:
    """
    Terminal purchase outcome.

    is_free distinguishes the immediate free path from a processor-confirmed
    paid purchase.
    """

    beat_id: str
    beat_title: str
    artist: str
    rights_type: RightsType
    delivery_method: DeliveryMethod
    session_id: str
    timestamp: int
    is_free: bool

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("session_id is required for a completed purchase")

    @property
    def pending(self) -> bool:
        return False

    def matches(self, beat_id: str, rights_type: RightsType) -> bool:
        return self.beat_id == beat_id and self.rights_type is rights_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "beatId": self.beat_id,
            "beatTitle": self.beat_title,
            "artist": self.artist,
            "rightsType": self.rights_type.value,
            "deliveryMethod": self.delivery_method.value,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "isFree": self.is_free,
            "pending": False,
        }


PurchaseRecord = Union[PendingPurchase, CompletedPurchase]


def record_from_dict(data: Mapping[str, Any]) -> PurchaseRecord:
    """
    Parse a stored JSON object into a PurchaseRecord, dispatching on `pending`.

    Raises:
        ValueError: if required fields are missing or the rights type is unknown
    """

    rights_type = RightsType.parse(data.get("rightsType"))
    if rights_type is None:
        raise ValueError(f"Unknown rights type: {data.get('rightsType')!r}")

    beat_id = data.get("beatId")
    if not isinstance(beat_id, str) or not beat_id:
        raise ValueError("beatId is required")

    try:
        timestamp = int(data.get("timestamp") or 0)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {data.get('timestamp')!r}") from e

    delivery_method = DeliveryMethod.parse(data.get("deliveryMethod"), DeliveryMethod.ZIP_FILES)

    if data.get("pending") is True:
        return PendingPurchase(
            beat_id=beat_id,
            beat_title=str(data.get("beatTitle") or ""),
            artist=str(data.get("artist") or ""),
            rights_type=rights_type,
            delivery_method=delivery_method,
            timestamp=timestamp,
        )

    return CompletedPurchase(
        beat_id=beat_id,
        beat_title=str(data.get("beatTitle") or ""),
        artist=str(data.get("artist") or ""),
        rights_type=rights_type,
        delivery_method=delivery_method,
        session_id=str(data.get("sessionId") or ""),
        timestamp=timestamp,
        is_free=bool(data.get("isFree", False)),
    )


@dataclass(frozen=True, slots=True)
class ReturnIntent:
    """
    Transient data identifying which checkout attempt just came back from the
    processor. Extracted from the landing URL or from the login bridge.

    rights_type is kept as the raw wire string: validation happens at
    finalization, where an unknown value is a terminal error.
    """

    beat_id: str
    rights_type: str
    session_id: str

    @property
    def idempotency_key(self) -> str:
        return f"return-{self.session_id}"

    def to_dict(self) -> dict[str, str]:
        return {
            "beatId": self.beat_id,
            "rightsType": self.rights_type,
            "sessionId": self.session_id,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Optional["ReturnIntent"]:
        """Returns None unless all three fields are non-empty strings."""

        beat_id = data.get("beatId")
        rights_type = data.get("rightsType")
        session_id = data.get("sessionId")
        values = (beat_id, rights_type, session_id)
        if not all(isinstance(v, str) and v for v in values):
            return None
        return ReturnIntent(beat_id=beat_id, rights_type=rights_type, session_id=session_id)


__all__ = [
    "FREE_SESSION_PREFIX",
    "PendingPurchase",
    "CompletedPurchase",
    "PurchaseRecord",
    "ReturnIntent",
    "generate_free_session_id",
    "now_millis",
    "record_from_dict",
]
