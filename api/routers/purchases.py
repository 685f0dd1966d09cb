"""
Purchases API Endpoints.

Endpoints for starting beat purchases and reading purchase history.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from api.deps import get_catalog, get_ledger, get_record_store
from api.models import (
    PurchaseHistoryItem,
    PurchaseHistoryResponse,
    PurchaseStartRequest,
    PurchaseStartResponse,
)
from api.settings import Settings, get_settings
from domain.rights import RightsType
from repositories.catalog_repository import BeatCatalog
from repositories.ledger_repository import BackendLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from services.checkout_errors import (
    CheckoutError,
    CheckoutUnavailableError,
    CheckoutValidationError,
    FinalizationError,
    RightsUnavailableError,
    sanitize_error_message,
)
from services.checkout_service import start_purchase
from services.purchase_history_service import list_purchase_history

logger = logging.getLogger(__name__)

router = APIRouter()


def _error_with_cookies(status_code: int, body: dict, response: Response) -> JSONResponse:
    """
    Error response that keeps the cookies set by dependencies.

    A first-time visitor must receive the device cookie that owns any record
    written before the failure.
    """
    error_response = JSONResponse(status_code=status_code, content=body)
    error_response.headers.raw.extend(
        (name, value) for name, value in response.headers.raw if name == b"set-cookie"
    )
    return error_response


@router.post(
    "/purchases",
    response_model=PurchaseStartResponse,
    summary="Start Purchase",
    description="Grant a free rights tier immediately, or create a hosted checkout session for a paid one."
)
def start_beat_purchase(
    request: PurchaseStartRequest,
    response: Response,
    store: PurchaseRecordStore = Depends(get_record_store),
    ledger: BackendLedger = Depends(get_ledger),
    catalog: BeatCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
):
    """
    Start a purchase of one rights tier of a beat.

    **Free tiers** (free download or priced at $0) are granted immediately and
    returned with status `free_granted` (HTTP 201).

    **Paid tiers** return status `redirect` with a `checkout_url`. The pending
    purchase is already stored when this response is sent; the client must
    navigate to the URL (full page navigation). The processor sends the user
    back to the landing route with `beatId`, `rightsType` and `session_id`.

    **Example request:**
    ```json
    {
      "beat_id": "beat-8f2c",
      "rights_type": "premium"
    }
    ```

    **Errors:**
    - 400: Unsupported rights type
    - 404: Beat not found
    - 409: Rights tier not offered or exclusively sold
    - 502: Processor returned an unusable checkout session, or ledger failure
    - 503: Checkout is not configured
    """
    rights_type = RightsType.parse(request.rights_type)
    if rights_type is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported rights type: {request.rights_type}"
        )

    try:
        beat = catalog.get_beat(request.beat_id)
        if beat is None:
            raise HTTPException(
                status_code=404,
                detail=f"Beat not found: {request.beat_id}"
            )

        result = start_purchase(
            store,
            ledger,
            beat,
            rights_type,
            landing_url=settings.landing_url,
            cancel_url=settings.cancel_url,
            allowed_host=settings.checkout_allowed_host,
        )

        if result.purchase is not None:
            response.status_code = 201
            return PurchaseStartResponse(
                status="free_granted",
                message="Free download access granted! Check your purchase history to download files.",
                session_id=result.purchase.session_id,
            )

        return PurchaseStartResponse(
            status="redirect",
            message="Redirecting to checkout.",
            checkout_url=result.redirect.checkout_url,
        )

    except HTTPException:
        raise
    except RightsUnavailableError as e:
        raise HTTPException(status_code=409, detail=e.user_message)
    except CheckoutUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.user_message)
    except FinalizationError as e:
        return _error_with_cookies(
            502,
            {"detail": e.user_message, "session_id": e.session_id},
            response,
        )
    except CheckoutValidationError as e:
        raise HTTPException(status_code=502, detail=e.user_message)
    except CheckoutError as e:
        raise HTTPException(status_code=500, detail=e.user_message)
    except Exception as e:
        logger.exception("Unexpected failure starting purchase")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start purchase: {sanitize_error_message(e)}"
        )


@router.get(
    "/purchases/history",
    response_model=PurchaseHistoryResponse,
    summary="Purchase History",
    description="Completed purchases (paid and free) for this device."
)
def get_purchase_history(
    store: PurchaseRecordStore = Depends(get_record_store),
    catalog: BeatCatalog = Depends(get_catalog),
):
    """
    List completed purchases, paid first then free.

    Pending checkouts are not listed. Titles and artists come from the current
    catalog when the beat still exists.
    """
    try:
        entries = list_purchase_history(store, catalog)
    except Exception as e:
        logger.exception("Failed to load purchase history")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load purchase history: {sanitize_error_message(e)}"
        )

    items = [
        PurchaseHistoryItem(
            beat_id=entry.beat_id,
            beat_title=entry.beat_title,
            artist=entry.artist,
            rights_type=entry.rights_type,
            rights_label=entry.rights_label,
            delivery_method=entry.delivery_method,
            session_id=entry.session_id,
            purchased_at_ms=entry.purchased_at_ms,
            is_free=entry.is_free,
            in_catalog=entry.in_catalog,
        )
        for entry in entries
    ]

    return PurchaseHistoryResponse(items=items, total_count=len(items))
