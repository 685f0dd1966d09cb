"""
Checkout service for starting beat purchases.

Handles:
- Dispatch between the free path and the paid (hosted checkout) path
- Processor preflight (fail fast, no mutation, when checkout is not configured)
- Checkout URL validation (https, expected processor host)
- Persisting the Pending record before handing the URL back for navigation

The paid path ends the current execution: once the client navigates to the
processor, nothing in memory survives. The Pending record written here and the
return parameters the processor appends to the success URL are the only state
that carries over to finalization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

from domain.purchase import CompletedPurchase, PendingPurchase, now_millis
from domain.rights import Beat, RightsType, get_rights_label
from repositories.ledger_repository import BackendLedger, LineItem
from repositories.purchase_record_repository import PurchaseRecordStore
from services.checkout_debug import log_checkout_event
from services.checkout_errors import (
    INVALID_CHECKOUT_URL_MESSAGE,
    UNKNOWN_CHECKOUT_ERROR_MESSAGE,
    CheckoutError,
    CheckoutUnavailableError,
    CheckoutValidationError,
    RightsUnavailableError,
    sanitize_error_message,
)
from services.free_purchase_service import record_free_purchase

logger = logging.getLogger(__name__)

DEFAULT_PROCESSOR_HOST = "checkout.stripe.com"

# Substituted by the processor with its own session id at redirect time.
CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


@dataclass(frozen=True, slots=True)
class CheckoutRedirect:
    """
    Where the client must navigate to finish paying.

    processor_session_id is informational; the authoritative id comes back on
    the success URL.
    """
    checkout_url: str
    processor_session_id: str
    pending: PendingPurchase


@dataclass(frozen=True, slots=True)
class PurchaseStart:
    """
    Outcome of starting a purchase.

    Exactly one of `purchase` (free path) or `redirect` (paid path) is set.
    """
    purchase: Optional[CompletedPurchase] = None
    redirect: Optional[CheckoutRedirect] = None

    @property
    def is_free(self) -> bool:
        return self.purchase is not None


def build_success_url(landing_url: str, beat_id: str, rights_type: RightsType) -> str:
    """
    Success URL handed to the processor.

    Example:
        build_success_url("https://beats.example/", "b1", RightsType.BASIC)
        # "https://beats.example/?beatId=b1&rightsType=basic&session_id={CHECKOUT_SESSION_ID}"
    """

    query = urlencode({"beatId": beat_id, "rightsType": rights_type.value})
    separator = "&" if "?" in landing_url else "?"
    # The placeholder must reach the processor unencoded.
    return f"{landing_url}{separator}{query}&session_id={CHECKOUT_SESSION_PLACEHOLDER}"


def is_valid_checkout_url(url: Optional[str], allowed_host: str = DEFAULT_PROCESSOR_HOST) -> bool:
    """
    A checkout URL is valid when it is https and its host is the processor's
    checkout host (or a subdomain of it).
    """

    if not url or not isinstance(url, str):
        return False

    trimmed = url.strip()
    if not trimmed:
        return False

    try:
        parts = urlsplit(trimmed)
    except ValueError:
        return False

    if parts.scheme != "https":
        return False

    host = (parts.hostname or "").lower()
    allowed = allowed_host.lower()
    return host == allowed or host.endswith("." + allowed)


def start_paid_checkout(
    store: PurchaseRecordStore,
    ledger: BackendLedger,
    beat: Beat,
    rights_type: RightsType,
    price_in_cents: int,
    landing_url: str,
    cancel_url: str,
    allowed_host: str = DEFAULT_PROCESSOR_HOST,
) -> CheckoutRedirect:
    """
    Mint a hosted checkout session and persist the Pending record.

    Process:
    1. Preflight: the processor must be configured
    2. Ask the ledger for a checkout session with a success URL that carries
       beatId, rightsType and the processor's session id placeholder
    3. Validate the returned URL
    4. Append the Pending record
    5. Return the URL for the client to navigate to

    Steps 1-3 mutate nothing. If step 4 raises, no URL is returned, so the
    client never leaves with an unrecorded intent.

    Raises:
        CheckoutUnavailableError: Processor not configured
        CheckoutValidationError: Processor returned an unusable URL
        CheckoutError: Any other failure (message safe to display)
    """

    rights = rights_type.value
    configured: Optional[bool] = None

    try:
        configured = ledger.is_processor_configured()
        if not configured:
            log_checkout_event(
                "preflight",
                beat.beat_id,
                rights,
                is_processor_configured=False,
                error_message="Processor not configured",
            )
            raise CheckoutUnavailableError()

        log_checkout_event("createSession", beat.beat_id, rights, is_processor_configured=True)

        line_item = LineItem(
            product_name=f"{beat.title} - {get_rights_label(rights_type, False)}",
            product_description=f"{beat.artist} - {beat.category}",
            price_in_cents=price_in_cents,
        )
        session = ledger.create_checkout_session(
            [line_item],
            build_success_url(landing_url, beat.beat_id, rights_type),
            cancel_url,
        )

        if not is_valid_checkout_url(session.url, allowed_host):
            log_checkout_event(
                "validateUrl",
                beat.beat_id,
                rights,
                is_processor_configured=True,
                has_checkout_url=bool(session.url),
                error_message="Invalid or empty checkout URL",
            )
            raise CheckoutValidationError(INVALID_CHECKOUT_URL_MESSAGE)

        pending = PendingPurchase(
            beat_id=beat.beat_id,
            beat_title=beat.title,
            artist=beat.artist,
            rights_type=rights_type,
            delivery_method=beat.delivery_method,
            timestamp=now_millis(),
        )
        store.append(pending)

        log_checkout_event(
            "redirect",
            beat.beat_id,
            rights,
            is_processor_configured=True,
            has_checkout_url=True,
        )

        return CheckoutRedirect(
            checkout_url=session.url.strip(),
            processor_session_id=session.session_id,
            pending=pending,
        )

    except CheckoutError as e:
        log_checkout_event(
            "error",
            beat.beat_id,
            rights,
            is_processor_configured=configured,
            error_message=e.user_message,
        )
        raise

    except Exception as e:
        detail = sanitize_error_message(e)
        log_checkout_event(
            "error",
            beat.beat_id,
            rights,
            is_processor_configured=configured,
            error_message=detail,
        )
        raise CheckoutError(UNKNOWN_CHECKOUT_ERROR_MESSAGE, detail=detail) from e


def start_purchase(
    store: PurchaseRecordStore,
    ledger: BackendLedger,
    beat: Beat,
    rights_type: RightsType,
    landing_url: str,
    cancel_url: str,
    allowed_host: str = DEFAULT_PROCESSOR_HOST,
) -> PurchaseStart:
    """
    Start a purchase of one rights tier of a beat.

    Free tiers (flagged free or priced at zero) complete immediately; paid tiers
    go through hosted checkout.

    Raises:
        RightsUnavailableError: Tier not offered, or beat exclusively sold
        FinalizationError: Free path ledger failure (local record kept)
        CheckoutError: Paid path failures (see start_paid_checkout)
    """

    folder = beat.folder_for(rights_type)
    if folder is None:
        raise RightsUnavailableError(
            f"{get_rights_label(rights_type, False)} rights are not offered for this beat."
        )

    if not beat.can_purchase_rights(rights_type):
        raise RightsUnavailableError(
            beat.availability_message()
            or f"{get_rights_label(rights_type, False)} rights are no longer available."
        )

    if folder.is_free:
        purchase = record_free_purchase(
            store,
            ledger,
            beat.beat_id,
            beat.title,
            beat.artist,
            rights_type,
            beat.delivery_method,
        )
        return PurchaseStart(purchase=purchase)

    redirect = start_paid_checkout(
        store,
        ledger,
        beat,
        rights_type,
        folder.price_in_cents,
        landing_url,
        cancel_url,
        allowed_host,
    )
    return PurchaseStart(redirect=redirect)


__all__ = [
    "CHECKOUT_SESSION_PLACEHOLDER",
    "DEFAULT_PROCESSOR_HOST",
    "CheckoutRedirect",
    "PurchaseStart",
    "build_success_url",
    "is_valid_checkout_url",
    "start_paid_checkout",
    "start_purchase",
]
