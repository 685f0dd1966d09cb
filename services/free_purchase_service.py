"""
Free purchase service.

Zero-cost acquisitions complete immediately: there is no processor round trip
to wait for, so the record is synthesized directly as Completed with a local
session id and never passes through Pending.

Ordering:
1. Write the Completed record locally (optimistic)
2. Record the purchase on the ledger with is_free=True

If step 2 fails the local record stays. The caller gets a FinalizationError
carrying the synthetic session id so the ledger can be reconciled by support.
"""

from __future__ import annotations

import logging

from domain.purchase import CompletedPurchase, generate_free_session_id, now_millis
from domain.rights import DeliveryMethod, RightsType
from repositories.ledger_repository import BackendLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from services.checkout_debug import log_checkout_event
from services.checkout_errors import FinalizationError, sanitize_error_message

logger = logging.getLogger(__name__)


def record_free_purchase(
    store: PurchaseRecordStore,
    ledger: BackendLedger,
    beat_id: str,
    beat_title: str,
    artist: str,
    rights_type: RightsType,
    delivery_method: DeliveryMethod,
) -> CompletedPurchase:
    """
    Grant a free rights tier.

    Args:
        store: Device-scoped purchase record store
        ledger: Backend ledger
        beat_id: Beat being acquired
        beat_title: Title copied onto the record for history display
        artist: Artist copied onto the record for history display
        rights_type: Tier being acquired (its price must resolve to zero)
        delivery_method: How the files are delivered

    Returns:
        The Completed record that was written

    Raises:
        FinalizationError: If the ledger call fails for any reason (the local record is kept)
    """

    timestamp = now_millis()
    purchase = CompletedPurchase(
        beat_id=beat_id,
        beat_title=beat_title,
        artist=artist,
        rights_type=rights_type,
        delivery_method=delivery_method,
        session_id=generate_free_session_id(timestamp),
        timestamp=timestamp,
        is_free=True,
    )

    store.append(purchase)

    log_checkout_event("free", beat_id, rights_type.value)

    try:
        ledger.record_purchase(beat_id, purchase.session_id, True, rights_type)
    except Exception as e:
        detail = sanitize_error_message(e)
        logger.warning(
            "Free purchase recorded locally but not on the ledger",
            extra={
                "beat_id": beat_id,
                "rights_type": rights_type.value,
                "session_id": purchase.session_id,
                "error_message": detail,
            },
        )
        raise FinalizationError(purchase.session_id, detail=detail) from e

    return purchase


__all__ = ["record_free_purchase"]
