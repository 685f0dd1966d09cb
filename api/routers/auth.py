"""
Auth API Endpoints.

Lets the login page tell the user a purchase is waiting and where to resume.
"""

from fastapi import APIRouter, Depends

from api.deps import get_session_storage
from api.models import PendingPurchaseStatusResponse
from api.settings import Settings, get_settings
from repositories.storage_repository import KeyValueStorage
from services.auth_bridge import build_resume_url, get_persisted_return_intent
from services.return_service import LOGIN_REQUIRED_MESSAGE

router = APIRouter()


@router.get(
    "/auth/pending-purchase",
    response_model=PendingPurchaseStatusResponse,
    summary="Pending Purchase Status",
    description="Whether a processor return is parked until login."
)
def pending_purchase_status(
    session_storage: KeyValueStorage = Depends(get_session_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Report a parked return for this browser session.

    Read-only: the parked intent stays until the landing route finalizes it.
    """
    intent = get_persisted_return_intent(session_storage)
    if intent is None:
        return PendingPurchaseStatusResponse(pending=False)

    return PendingPurchaseStatusResponse(
        pending=True,
        message=LOGIN_REQUIRED_MESSAGE,
        resume_url=build_resume_url(settings.landing_path, intent),
    )
