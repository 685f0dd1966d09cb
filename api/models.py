"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Purchase Models
# ============================================================================

class PurchaseStartRequest(BaseModel):
    """Request to start a purchase of one rights tier."""
    beat_id: str = Field(
        ...,
        min_length=1,
        description="Beat to purchase"
    )
    rights_type: str = Field(
        ...,
        min_length=1,
        description="Rights tier: basic, premium, exclusive or stems"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "beat_id": "beat-8f2c",
                "rights_type": "premium"
            }
        }


class PurchaseStartResponse(BaseModel):
    """
    Response after starting a purchase.

    status is "free_granted" (session_id set) or "redirect" (checkout_url set).
    """
    status: str
    message: str
    session_id: Optional[str] = None
    checkout_url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "redirect",
                "message": "Redirecting to checkout.",
                "session_id": None,
                "checkout_url": "https://checkout.stripe.com/c/pay/cs_test_a1b2c3"
            }
        }


class PurchaseHistoryItem(BaseModel):
    """Single completed purchase in the history."""
    beat_id: str
    beat_title: str
    artist: str
    rights_type: str
    rights_label: str
    delivery_method: str
    session_id: str
    purchased_at_ms: int
    is_free: bool
    in_catalog: bool


class PurchaseHistoryResponse(BaseModel):
    """Response for the purchase history listing."""
    items: List[PurchaseHistoryItem]
    total_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "total_count": 0
            }
        }


# ============================================================================
# Landing / Return Models
# ============================================================================

class LandingResponse(BaseModel):
    """
    Result of processing a landing load.

    When clear_query is true the client removes clear_query_params from its
    address bar without reloading.
    """
    status: str
    message: Optional[str] = None
    session_id: Optional[str] = None
    redirect_to: Optional[str] = None
    clear_query: bool = False
    clear_query_params: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "status": "completed",
                "message": "Purchase completed successfully! Your files are now available for download.",
                "session_id": "cs_test_a1b2c3",
                "redirect_to": "/purchase-history",
                "clear_query": True,
                "clear_query_params": ["beatId", "rightsType", "session_id"]
            }
        }


class PendingPurchaseStatusResponse(BaseModel):
    """Whether a processor return is waiting for the user to log in."""
    pending: bool
    message: Optional[str] = None
    resume_url: Optional[str] = None


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Checkout unavailable",
                "detail": "Checkout is currently unavailable. Please try again later.",
                "status_code": 503
            }
        }
