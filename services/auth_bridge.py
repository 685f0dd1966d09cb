"""
Login bridge for processor returns.

When the processor sends the user back while they are signed out, the return
parameters are parked in session storage and the user is sent to log in. After
login the landing route runs again and picks the parked intent up.

The bridged copy is removed as soon as finalization has been attempted,
whatever the outcome, so a failed attempt cannot loop.
"""

from __future__ import annotations

import json
import logging
from typing import Optional
from urllib.parse import urlencode

from domain.purchase import ReturnIntent
from repositories.storage_repository import KeyValueStorage

logger = logging.getLogger(__name__)

BRIDGE_KEY = "pendingStripeReturn"


def persist_return_intent(session_storage: KeyValueStorage, intent: ReturnIntent) -> None:
    session_storage.set_item(BRIDGE_KEY, json.dumps(intent.to_dict()))


def get_persisted_return_intent(session_storage: KeyValueStorage) -> Optional[ReturnIntent]:
    """
    Read the parked intent, if any.

    An unreadable entry is dropped and treated as absent.
    """

    stored = session_storage.get_item(BRIDGE_KEY)
    if not stored:
        return None

    try:
        data = json.loads(stored)
    except json.JSONDecodeError:
        data = None

    intent = ReturnIntent.from_dict(data) if isinstance(data, dict) else None
    if intent is None:
        logger.warning("Dropping unreadable bridged return intent")
        session_storage.remove_item(BRIDGE_KEY)
    return intent


def clear_persisted_return_intent(session_storage: KeyValueStorage) -> None:
    session_storage.remove_item(BRIDGE_KEY)


def has_pending_return(session_storage: KeyValueStorage) -> bool:
    """True while a purchase is waiting for the user to log in."""

    return get_persisted_return_intent(session_storage) is not None


def build_resume_url(landing_path: str, intent: ReturnIntent) -> str:
    """
    Landing URL carrying the return parameters again.

    Example:
        build_resume_url("/", ReturnIntent("b1", "basic", "sess_123"))
        # "/?beatId=b1&rightsType=basic&session_id=sess_123"
    """

    query = urlencode({
        "beatId": intent.beat_id,
        "rightsType": intent.rights_type,
        "session_id": intent.session_id,
    })
    return f"{landing_path}?{query}"


__all__ = [
    "BRIDGE_KEY",
    "persist_return_intent",
    "get_persisted_return_intent",
    "clear_persisted_return_intent",
    "has_pending_return",
    "build_resume_url",
]
