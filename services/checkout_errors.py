"""
Checkout error taxonomy and secret scrubbing.

Every user-visible failure of the purchase flow is a CheckoutError carrying a
message that is safe to display. Messages derived from lower layers pass through
sanitize_error_message first so processor keys and bearer tokens never reach a
user or a log line.
"""

from __future__ import annotations

import re
from typing import Optional

CHECKOUT_UNAVAILABLE_MESSAGE = "Checkout is currently unavailable. Please try again later."
INVALID_CHECKOUT_URL_MESSAGE = "Unable to create checkout session. Please try again."
UNKNOWN_CHECKOUT_ERROR_MESSAGE = "Failed to process checkout. Please try again."

_SECRET_PATTERNS = [
    (re.compile(r"\b(?:sk|pk|rk)_[A-Za-z0-9_]+"), "[REDACTED]"),
    (re.compile(r"\bwhsec_[A-Za-z0-9_]+"), "[REDACTED]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"secret[^:=]*[:=]\s*[^\s,}]+", re.IGNORECASE), "secret: [REDACTED]"),
]


def sanitize_error_message(error: object) -> str:
    """
    Remove processor keys, bearer tokens and secret assignments from an error.

    Example:
        sanitize_error_message(RuntimeError("bad key sk_live_abc123"))
        # "bad key [REDACTED]"
    """

    if error is None:
        return "Unknown error"

    message = str(error) or type(error).__name__
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class CheckoutError(Exception):
    """Base for purchase flow failures. `user_message` is safe to display."""

    def __init__(self, user_message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.detail = sanitize_error_message(detail) if detail else None


class CheckoutUnavailableError(CheckoutError):
    """The payment processor is not configured. Raised before any mutation."""

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(CHECKOUT_UNAVAILABLE_MESSAGE, detail=detail)


class CheckoutValidationError(CheckoutError):
    """Malformed checkout URL, unsupported rights type or empty session id. Not retried."""
    pass


class RightsUnavailableError(CheckoutError):
    """The requested rights tier is not offered or can no longer be purchased."""
    pass


class FinalizationError(CheckoutError):
    """
    The ledger could not confirm a purchase.

    session_id is the recovery handle for manual reconciliation with support.
    """

    def __init__(self, session_id: str, detail: Optional[str] = None) -> None:
        super().__init__(
            "We could not confirm your purchase. "
            f"Please contact support with this session id: {session_id}",
            detail=detail,
        )
        self.session_id = session_id


__all__ = [
    "CHECKOUT_UNAVAILABLE_MESSAGE",
    "INVALID_CHECKOUT_URL_MESSAGE",
    "UNKNOWN_CHECKOUT_ERROR_MESSAGE",
    "CheckoutError",
    "CheckoutUnavailableError",
    "CheckoutValidationError",
    "RightsUnavailableError",
    "FinalizationError",
    "sanitize_error_message",
]
