"""
Client-scoped key/value storage (persistence).

Two scopes back the purchase flow:
- "device": long-lived, survives the round trip through the payment processor.
  Holds purchase records.
- "session": short-lived, bound to one browser session. Holds the login bridge
  and idempotency markers.

Each scope is addressed by an owner key (the device or session cookie value).
Values are JSON text; callers own serialization.

This module provides *only* storage operations. It does not know about
purchases.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol, Tuple

from repositories.client import get_supabase

# Supabase table name for client-scoped storage.
# Keep this aligned with your database schema.
_STORAGE_TABLE: str = "client_storage"

DEVICE_SCOPE = "device"
SESSION_SCOPE = "session"


class KeyValueStorage(Protocol):
    """Minimal storage contract shared by every backend."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SupabaseKeyValueStorage:
    """
    Storage rows in Supabase, one row per (scope, owner_key, key).

    When ttl is set, rows are written with an expiry. An expired row reads as
    absent and is deleted on that read. Session scope uses a ttl; device scope
    does not.
    """

    def __init__(self, scope: str, owner_key: str, ttl: Optional[timedelta] = None) -> None:
        if not owner_key:
            raise ValueError("owner_key is required")
        self.scope = scope
        self.owner_key = owner_key
        self.ttl = ttl

    def _filter(self, query: Any, key: str) -> Any:
        return (
            query
            .eq("scope", self.scope)
            .eq("owner_key", self.owner_key)
            .eq("key", key)
        )

    def get_item(self, key: str) -> Optional[str]:
        client = get_supabase()
        response = (
            self._filter(client.table(_STORAGE_TABLE).select("value_json, expires_at_utc"), key)
            .limit(1)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to read storage item: {error}")

        rows = getattr(response, "data", None) or []
        if not rows:
            return None

        row = rows[0]
        expires_at = row.get("expires_at_utc")
        if expires_at and _parse_utc_datetime(expires_at) <= datetime.now(timezone.utc):
            self.remove_item(key)
            return None

        return row.get("value_json")

    def set_item(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "scope": self.scope,
            "owner_key": self.owner_key,
            "key": key,
            "value_json": value,
            "updated_at_utc": now.isoformat(),
            "expires_at_utc": (now + self.ttl).isoformat() if self.ttl is not None else None,
        }

        response = (
            get_supabase()
            .table(_STORAGE_TABLE)
            .upsert(payload, on_conflict="scope,owner_key,key")
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to write storage item: {error}")

    def remove_item(self, key: str) -> None:
        client = get_supabase()
        response = self._filter(client.table(_STORAGE_TABLE).delete(), key).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to remove storage item: {error}")


def purge_expired_items() -> int:
    """
    Delete every storage row whose expiry has passed.

    Returns:
        Number of rows deleted
    """

    now = datetime.now(timezone.utc).isoformat()
    response = (
        get_supabase()
        .table(_STORAGE_TABLE)
        .delete()
        .lt("expires_at_utc", now)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to purge expired storage items: {error}")

    return len(getattr(response, "data", None) or [])


class InMemoryKeyValueStorage:
    """
    Process-local storage for development (STORAGE_BACKEND=memory) and tests.

    Instances sharing the same `backing` dict see each other's writes, which is
    how a fresh request observes what an earlier request stored.
    """

    def __init__(
        self,
        scope: str = DEVICE_SCOPE,
        owner_key: str = "local",
        backing: Optional[Dict[Tuple[str, str, str], str]] = None,
    ) -> None:
        self.scope = scope
        self.owner_key = owner_key
        self._items = backing if backing is not None else {}

    def _key(self, key: str) -> Tuple[str, str, str]:
        return (self.scope, self.owner_key, key)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self._items[self._key(key)] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(self._key(key), None)


__all__ = [
    "DEVICE_SCOPE",
    "SESSION_SCOPE",
    "KeyValueStorage",
    "SupabaseKeyValueStorage",
    "InMemoryKeyValueStorage",
    "purge_expired_items",
]
