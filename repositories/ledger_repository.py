"""
Backend purchase ledger (RPC collaborator).

The ledger owns the payment processor configuration, mints hosted checkout
sessions and records confirmed purchases. This module calls it through
Supabase RPC functions:

- is_stripe_configured()                    -> bool
- create_checkout_session(items, urls)      -> {"id": ..., "url": ...} (object or JSON text)
- record_beat_purchase(beat, session, ...)  -> void; errors for unknown beat/rights

It performs no business rules of its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from postgrest.exceptions import APIError

from domain.rights import RightsType
from repositories.client import get_supabase


class LedgerError(Exception):
    """Raised when a ledger RPC fails or returns an unusable payload."""
    pass


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    Single line item passed to the processor.

    currency is lower-case ISO code as the processor expects it.
    """
    product_name: str
    product_description: str
    price_in_cents: int
    quantity: int = 1
    currency: str = "usd"

    def to_payload(self) -> dict[str, Any]:
        return {
            "productName": self.product_name,
            "productDescription": self.product_description,
            "priceInCents": self.price_in_cents,
            "quantity": self.quantity,
            "currency": self.currency,
        }


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    """Hosted checkout session minted by the ledger."""
    session_id: str
    url: str


class BackendLedger(Protocol):
    """RPC surface consumed by the purchase flow."""

    def is_processor_configured(self) -> bool:
        ...

    def create_checkout_session(
        self,
        items: List[LineItem],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        ...

    def record_purchase(
        self,
        beat_id: str,
        session_id: str,
        is_free: bool,
        rights_type: RightsType,
    ) -> None:
        ...


def _api_error_payload(e: APIError) -> dict[str, Any]:
    try:
        payload = e.json() if callable(getattr(e, "json", None)) else {}
    except (TypeError, ValueError):
        payload = {}
    return payload if isinstance(payload, dict) else {}


def parse_checkout_session(data: Any) -> CheckoutSession:
    """
    Normalize the create_checkout_session result.

    The RPC returns either a JSON object or a JSON-encoded string of one.

    Raises:
        LedgerError: If the payload is not a session object
    """

    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise LedgerError("Checkout session response is not valid JSON") from e

    if not isinstance(data, dict):
        raise LedgerError("Checkout session response is not an object")

    return CheckoutSession(
        session_id=str(data.get("id") or ""),
        url=str(data.get("url") or ""),
    )


class SupabaseLedger:
    """BackendLedger implemented over Supabase RPC."""

    def _rpc(self, function: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            response = get_supabase().rpc(function, params or {}).execute()
        except APIError as e:
            payload = _api_error_payload(e)
            message = payload.get("message") or str(e)
            raise LedgerError(f"{function} failed: {message}") from e

        error = getattr(response, "error", None)
        if error:
            raise LedgerError(f"{function} failed: {error}")

        return getattr(response, "data", None)

    def is_processor_configured(self) -> bool:
        return bool(self._rpc("is_stripe_configured"))

    def create_checkout_session(
        self,
        items: List[LineItem],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        data = self._rpc(
            "create_checkout_session",
            {
                "p_items": [item.to_payload() for item in items],
                "p_success_url": success_url,
                "p_cancel_url": cancel_url,
            },
        )
        return parse_checkout_session(data)

    def record_purchase(
        self,
        beat_id: str,
        session_id: str,
        is_free: bool,
        rights_type: RightsType,
    ) -> None:
        self._rpc(
            "record_beat_purchase",
            {
                "p_beat_id": beat_id,
                "p_session_id": session_id,
                "p_is_free": is_free,
                "p_rights_type": rights_type.value,
            },
        )


__all__ = [
    "LedgerError",
    "LineItem",
    "CheckoutSession",
    "BackendLedger",
    "SupabaseLedger",
    "parse_checkout_session",
]
