"""
Landing API Endpoint.

The processor sends the user back here with beatId, rightsType and
session_id. Every load runs return detection; the response tells the client
whether to log in, where to go next and whether to clean its address bar.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from api.deps import get_current_user_id, get_ledger, get_record_store, get_session_storage
from api.models import LandingResponse
from api.settings import Settings, get_settings
from repositories.ledger_repository import BackendLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from repositories.storage_repository import KeyValueStorage
from services.checkout_errors import sanitize_error_message
from services.return_service import RETURN_QUERY_PARAMS, process_landing

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/",
    response_model=LandingResponse,
    summary="Landing",
    description="Detect and finalize a processor return for this load."
)
def landing(
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    session_storage: KeyValueStorage = Depends(get_session_storage),
    store: PurchaseRecordStore = Depends(get_record_store),
    ledger: BackendLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    """
    Process one load of the landing route.

    **Statuses:**
    - `nothing`: no return to handle
    - `login_required`: return parked, follow `redirect_to` to log in
    - `completed`: purchase finalized, go to purchase history
    - `already_processed`: this session was finalized earlier
    - `validation_failed` / `failed`: show `message`

    Finalization failures are reported in the body with HTTP 200 so the
    client can still clean its address bar.
    """
    try:
        outcome = process_landing(
            dict(request.query_params),
            is_authenticated=user_id is not None,
            session_storage=session_storage,
            store=store,
            ledger=ledger,
            landing_path=settings.landing_path,
            login_path=settings.login_path,
            purchase_history_path=settings.purchase_history_path,
        )
    except Exception as e:
        logger.exception("Landing processing failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process landing: {sanitize_error_message(e)}"
        )

    return LandingResponse(
        status=outcome.status,
        message=outcome.message,
        session_id=outcome.session_id,
        redirect_to=outcome.redirect_to,
        clear_query=outcome.clear_query,
        clear_query_params=list(RETURN_QUERY_PARAMS) if outcome.clear_query else [],
    )
