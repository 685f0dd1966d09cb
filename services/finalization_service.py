"""
Finalization service for processor returns.

Exchanges a ReturnIntent for a ledger confirmation exactly once per processor
session id, then upgrades the local Pending record to Completed.

Process:
1. Idempotency marker "return-<sessionId>" in session storage: if present,
   the return was already handled; clean up and stop without calling the ledger
2. Validate the session id (non-empty) and the rights type (known tier);
   failure is terminal, never retried
3. Record the purchase on the ledger (is_free=False, real session id)
4. Success: write the marker, replace the Pending record with a Completed one
5. Ledger failure: report an error carrying the session id for support;
   no automatic retry, since repeating a confirmation call risks double credit

The bridged intent is cleared in every outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from domain.purchase import CompletedPurchase, PendingPurchase, ReturnIntent, now_millis
from domain.rights import DeliveryMethod, RightsType
from repositories.ledger_repository import BackendLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from repositories.storage_repository import KeyValueStorage
from services.auth_bridge import clear_persisted_return_intent
from services.checkout_errors import FinalizationError, sanitize_error_message

logger = logging.getLogger(__name__)

MISSING_SESSION_MESSAGE = "Payment session ID was not found. Please contact support if you completed payment."
INVALID_RIGHTS_MESSAGE = "Invalid rights type. Please contact support."
COMPLETED_MESSAGE = "Purchase completed successfully! Your files are now available for download."


class FinalizationStatus(str, Enum):
    COMPLETED = "completed"
    ALREADY_PROCESSED = "already_processed"
    VALIDATION_FAILED = "validation_failed"
    FAILED = "failed"

    @property
    def is_error(self) -> bool:
        return self in (FinalizationStatus.VALIDATION_FAILED, FinalizationStatus.FAILED)


@dataclass(frozen=True, slots=True)
class FinalizationOutcome:
    """
    Terminal result of one finalization attempt.

    record is set only for COMPLETED.
    """
    status: FinalizationStatus
    session_id: str
    message: Optional[str] = None
    record: Optional[CompletedPurchase] = None


def _latest_pending(pending: List[PendingPurchase], beat_id: str, rights_type: RightsType) -> Optional[PendingPurchase]:
    matching = [p for p in pending if p.matches(beat_id, rights_type)]
    if not matching:
        return None
    return max(matching, key=lambda p: p.timestamp)


def finalize_return(
    intent: ReturnIntent,
    store: PurchaseRecordStore,
    ledger: BackendLedger,
    session_storage: KeyValueStorage,
) -> FinalizationOutcome:
    """
    Finalize one processor return.

    Args:
        intent: Return parameters from the landing URL or the login bridge
        store: Device-scoped purchase record store
        ledger: Backend ledger
        session_storage: Session-scoped storage (markers and bridge)

    Returns:
        FinalizationOutcome; ledger failures are reported, not raised
    """

    marker_key = intent.idempotency_key

    try:
        if session_storage.get_item(marker_key):
            logger.info(
                "Processor return already finalized",
                extra={"session_id": intent.session_id, "beat_id": intent.beat_id},
            )
            return FinalizationOutcome(
                status=FinalizationStatus.ALREADY_PROCESSED,
                session_id=intent.session_id,
            )

        if not intent.session_id.strip():
            logger.warning("Processor return without a session id", extra={"beat_id": intent.beat_id})
            return FinalizationOutcome(
                status=FinalizationStatus.VALIDATION_FAILED,
                session_id=intent.session_id,
                message=MISSING_SESSION_MESSAGE,
            )

        rights_type = RightsType.parse(intent.rights_type)
        if rights_type is None:
            logger.warning(
                "Processor return with unsupported rights type",
                extra={"session_id": intent.session_id, "rights_type": intent.rights_type},
            )
            return FinalizationOutcome(
                status=FinalizationStatus.VALIDATION_FAILED,
                session_id=intent.session_id,
                message=INVALID_RIGHTS_MESSAGE,
            )

        try:
            ledger.record_purchase(intent.beat_id, intent.session_id, False, rights_type)
        except Exception as e:
            error = FinalizationError(intent.session_id, detail=sanitize_error_message(e))
            logger.warning(
                "Failed to record purchase on the ledger",
                extra={
                    "session_id": intent.session_id,
                    "beat_id": intent.beat_id,
                    "rights_type": rights_type.value,
                    "error_message": error.detail,
                },
            )
            return FinalizationOutcome(
                status=FinalizationStatus.FAILED,
                session_id=intent.session_id,
                message=error.user_message,
            )

        # Marker first: the ledger has the purchase now, so this session id
        # must never reach the ledger again even if the local write fails.
        session_storage.set_item(marker_key, "true")

        original = _latest_pending(store.list_pending(), intent.beat_id, rights_type)
        completed = CompletedPurchase(
            beat_id=intent.beat_id,
            beat_title=original.beat_title if original else "",
            artist=original.artist if original else "",
            rights_type=rights_type,
            delivery_method=original.delivery_method if original else DeliveryMethod.ZIP_FILES,
            session_id=intent.session_id,
            timestamp=now_millis(),
            is_free=False,
        )
        store.replace(intent.beat_id, rights_type, completed)

        logger.info(
            "Purchase finalized",
            extra={"session_id": intent.session_id, "beat_id": intent.beat_id, "rights_type": rights_type.value},
        )
        return FinalizationOutcome(
            status=FinalizationStatus.COMPLETED,
            session_id=intent.session_id,
            message=COMPLETED_MESSAGE,
            record=completed,
        )

    finally:
        clear_persisted_return_intent(session_storage)


__all__ = [
    "COMPLETED_MESSAGE",
    "INVALID_RIGHTS_MESSAGE",
    "MISSING_SESSION_MESSAGE",
    "FinalizationOutcome",
    "FinalizationStatus",
    "finalize_return",
]
