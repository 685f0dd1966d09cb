"""
Processor return handling for the landing route.

Every load of the landing route runs process_landing():
1. Detect a return: URL parameters (beatId, rightsType, session_id) first,
   then the intent parked by the login bridge
2. Signed out and the return came from the URL: park it and ask for login
3. Signed in: finalize exactly once and tell the client to drop the return
   parameters from its address bar

Detection is idempotent: once the URL is clean and the bridge is empty, a
reload finds nothing and touches neither the ledger nor the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import urlencode

from domain.purchase import ReturnIntent
from repositories.ledger_repository import BackendLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from repositories.storage_repository import KeyValueStorage
from services.auth_bridge import get_persisted_return_intent, persist_return_intent
from services.finalization_service import finalize_return

logger = logging.getLogger(__name__)

RETURN_QUERY_PARAMS = ("beatId", "rightsType", "session_id")

LOGIN_REQUIRED_MESSAGE = "Please log in to complete your purchase"


class ReturnSource(str, Enum):
    URL = "url"
    BRIDGE = "bridge"


@dataclass(frozen=True, slots=True)
class DetectedReturn:
    intent: ReturnIntent
    source: ReturnSource


@dataclass(frozen=True, slots=True)
class LandingOutcome:
    """
    What the landing route should tell the client.

    clear_query: drop the return parameters from the current URL in place
    redirect_to: where the client should go next (None to stay)
    """
    status: str
    message: Optional[str] = None
    session_id: Optional[str] = None
    redirect_to: Optional[str] = None
    clear_query: bool = False


def detect_return_intent(
    query_params: Mapping[str, str],
    session_storage: KeyValueStorage,
) -> Optional[DetectedReturn]:
    """
    Find a processor return for this load.

    The three URL parameters count only when all are present and non-empty.
    """

    beat_id, rights_type, session_id = (query_params.get(name) for name in RETURN_QUERY_PARAMS)

    if beat_id and rights_type and session_id:
        return DetectedReturn(
            intent=ReturnIntent(beat_id=beat_id, rights_type=rights_type, session_id=session_id),
            source=ReturnSource.URL,
        )

    bridged = get_persisted_return_intent(session_storage)
    if bridged is not None:
        return DetectedReturn(intent=bridged, source=ReturnSource.BRIDGE)

    return None


def process_landing(
    query_params: Mapping[str, str],
    is_authenticated: bool,
    session_storage: KeyValueStorage,
    store: PurchaseRecordStore,
    ledger: BackendLedger,
    landing_path: str = "/",
    login_path: str = "/login",
    purchase_history_path: str = "/purchase-history",
) -> LandingOutcome:
    """
    Run return detection and, when possible, finalization for one landing load.

    Returns:
        LandingOutcome with status "nothing", "login_required", or one of the
        finalization statuses
    """

    detected = detect_return_intent(query_params, session_storage)
    if detected is None:
        return LandingOutcome(status="nothing")

    intent = detected.intent

    if not is_authenticated:
        if detected.source is ReturnSource.URL:
            persist_return_intent(session_storage, intent)
            logger.info(
                "Processor return parked until login",
                extra={"session_id": intent.session_id, "beat_id": intent.beat_id},
            )
        return LandingOutcome(
            status="login_required",
            message=LOGIN_REQUIRED_MESSAGE,
            session_id=intent.session_id,
            redirect_to=f"{login_path}?{urlencode({'next': landing_path})}",
        )

    outcome = finalize_return(intent, store, ledger, session_storage)

    return LandingOutcome(
        status=outcome.status.value,
        message=outcome.message,
        session_id=intent.session_id,
        redirect_to=purchase_history_path,
        clear_query=True,
    )


__all__ = [
    "LOGIN_REQUIRED_MESSAGE",
    "RETURN_QUERY_PARAMS",
    "DetectedReturn",
    "LandingOutcome",
    "ReturnSource",
    "detect_return_intent",
    "process_landing",
]
