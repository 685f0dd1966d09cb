"""
Structured checkout event logging.

Each step of a checkout attempt is logged with a fixed set of fields under the
"beat-checkout" scope, so an attempt can be followed end to end in the logs.
Never logs secrets or processor configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from services.checkout_errors import sanitize_error_message

logger = logging.getLogger(__name__)

CheckoutStep = Literal["preflight", "createSession", "validateUrl", "redirect", "free", "error"]


def log_checkout_event(
    step: CheckoutStep,
    beat_id: str,
    rights_type: str,
    *,
    is_processor_configured: Optional[bool] = None,
    has_checkout_url: Optional[bool] = None,
    error_message: Optional[str] = None,
) -> None:
    """
    Log one checkout step. Error steps log at WARNING, everything else at INFO.

    error_message is scrubbed before it is logged.
    """

    entry = {
        "scope": "beat-checkout",
        "step": step,
        "beat_id": beat_id,
        "rights_type": rights_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if is_processor_configured is not None:
        entry["is_processor_configured"] = is_processor_configured
    if has_checkout_url is not None:
        entry["has_checkout_url"] = has_checkout_url
    if error_message is not None:
        entry["error_message"] = sanitize_error_message(error_message)

    level = logging.WARNING if step == "error" or error_message else logging.INFO
    logger.log(level, f"[Checkout] {step} beat={beat_id} rights={rights_type}", extra=entry)


__all__ = ["CheckoutStep", "log_checkout_event"]
