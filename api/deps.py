"""
FastAPI dependencies.

Wires request cookies to storage scopes and provides the ledger, catalog and
authentication collaborators. Tests replace these through
app.dependency_overrides.

Cookies:
- bs_device: long-lived, selects device-scoped storage (purchase records)
- bs_session: browser-session cookie, selects session-scoped storage
  (login bridge, idempotency markers)
"""

from __future__ import annotations

from datetime import timedelta
from typing import Dict, Optional, Tuple
from uuid import uuid4

from fastapi import Cookie, Depends, Header, Response

from api.settings import Settings, get_settings
from repositories.auth_repository import get_authenticated_user_id
from repositories.catalog_repository import BeatCatalog, SupabaseBeatCatalog
from repositories.ledger_repository import BackendLedger, SupabaseLedger
from repositories.purchase_record_repository import PurchaseRecordStore
from repositories.storage_repository import (
    DEVICE_SCOPE,
    SESSION_SCOPE,
    InMemoryKeyValueStorage,
    KeyValueStorage,
    SupabaseKeyValueStorage,
)

DEVICE_COOKIE = "bs_device"
SESSION_COOKIE = "bs_session"
_DEVICE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365

# Shared by every request when STORAGE_BACKEND=memory.
_memory_backing: Dict[Tuple[str, str, str], str] = {}


def get_device_key(
    response: Response,
    bs_device: Optional[str] = Cookie(None),
) -> str:
    if bs_device:
        return bs_device
    key = uuid4().hex
    response.set_cookie(
        DEVICE_COOKIE,
        key,
        max_age=_DEVICE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return key


def get_session_key(
    response: Response,
    bs_session: Optional[str] = Cookie(None),
) -> str:
    if bs_session:
        return bs_session
    key = uuid4().hex
    response.set_cookie(SESSION_COOKIE, key, httponly=True, samesite="lax")
    return key


def get_device_storage(
    device_key: str = Depends(get_device_key),
    settings: Settings = Depends(get_settings),
) -> KeyValueStorage:
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStorage(DEVICE_SCOPE, device_key, backing=_memory_backing)
    return SupabaseKeyValueStorage(DEVICE_SCOPE, device_key)


def get_session_storage(
    session_key: str = Depends(get_session_key),
    settings: Settings = Depends(get_settings),
) -> KeyValueStorage:
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStorage(SESSION_SCOPE, session_key, backing=_memory_backing)
    return SupabaseKeyValueStorage(
        SESSION_SCOPE,
        session_key,
        ttl=timedelta(hours=settings.session_storage_ttl_hours),
    )


def get_record_store(storage: KeyValueStorage = Depends(get_device_storage)) -> PurchaseRecordStore:
    return PurchaseRecordStore(storage)


def get_ledger() -> BackendLedger:
    return SupabaseLedger()


def get_catalog() -> BeatCatalog:
    return SupabaseBeatCatalog()


def get_current_user_id(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """User id for a "Bearer <token>" Authorization header, else None."""

    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return get_authenticated_user_id(token.strip())


__all__ = [
    "DEVICE_COOKIE",
    "SESSION_COOKIE",
    "get_catalog",
    "get_current_user_id",
    "get_device_key",
    "get_device_storage",
    "get_ledger",
    "get_record_store",
    "get_session_key",
    "get_session_storage",
]
