"""
Authentication lookup.

Resolves a bearer access token to the authenticated user id via Supabase Auth.
The purchase flow only needs to know *whether* the caller is signed in.
"""

from __future__ import annotations

import logging
from typing import Optional

from repositories.client import get_supabase

logger = logging.getLogger(__name__)


def get_authenticated_user_id(access_token: Optional[str]) -> Optional[str]:
    """
    Return the user id for a valid access token, or None.

    An invalid or expired token is treated as "not signed in", not as an error.
    So is a missing Supabase configuration (STORAGE_BACKEND=memory without
    credentials).
    """

    if not access_token:
        return None

    try:
        client = get_supabase()
    except RuntimeError as e:
        logger.warning(f"Cannot verify access token: {e}")
        return None

    try:
        response = client.auth.get_user(access_token)
    except Exception as e:
        logger.info(f"Access token rejected: {type(e).__name__}")
        return None

    user = getattr(response, "user", None)
    if user is None:
        return None

    return str(user.id)


__all__ = ["get_authenticated_user_id"]
