"""
Purchase record repository (persistence).

Stores PurchaseRecord entries as JSON arrays in device-scoped storage:
- "paidPurchases": Pending and Completed records of the paid path
- "freePurchases": Completed records of the free path

The store keeps no in-memory state. A new instance over the same storage sees
everything written before, which is what lets a purchase survive the full
reload through the payment processor.

This module does not decide *when* records transition; it only appends, lists
and replaces. Mutations are read-modify-write over the whole collection: two
tabs writing at once is last-write-wins.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List

from domain.purchase import (
    CompletedPurchase,
    PendingPurchase,
    PurchaseRecord,
    record_from_dict,
)
from domain.rights import RightsType
from repositories.storage_repository import KeyValueStorage

logger = logging.getLogger(__name__)

PAID_PURCHASES_KEY = "paidPurchases"
FREE_PURCHASES_KEY = "freePurchases"


class PurchaseRecordStore:
    """Durable collection of purchase intents and completions."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def _load(self, key: str) -> List[PurchaseRecord]:
        raw = self._storage.get_item(key)
        if not raw:
            return []

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                "Discarding unreadable purchase collection",
                extra={"storage_key": key},
            )
            return []

        if not isinstance(entries, list):
            logger.warning(
                "Discarding purchase collection that is not a list",
                extra={"storage_key": key},
            )
            return []

        records: List[PurchaseRecord] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                records.append(record_from_dict(entry))
            except ValueError as e:
                logger.warning(
                    f"Skipping malformed purchase record: {e}",
                    extra={"storage_key": key},
                )
        return records

    def _save(self, key: str, records: List[PurchaseRecord]) -> None:
        payload: List[dict[str, Any]] = [record.to_dict() for record in records]
        self._storage.set_item(key, json.dumps(payload))

    def append(self, record: PurchaseRecord) -> None:
        """
        Append a record to its collection.

        Free completions go to "freePurchases"; everything else to "paidPurchases".
        """

        if isinstance(record, CompletedPurchase) and record.is_free:
            key = FREE_PURCHASES_KEY
        else:
            key = PAID_PURCHASES_KEY

        records = self._load(key)
        records.append(record)
        self._save(key, records)

    def list_pending(self) -> List[PendingPurchase]:
        return [r for r in self._load(PAID_PURCHASES_KEY) if isinstance(r, PendingPurchase)]

    def list_completed_paid(self) -> List[CompletedPurchase]:
        return [r for r in self._load(PAID_PURCHASES_KEY) if isinstance(r, CompletedPurchase)]

    def list_free(self) -> List[CompletedPurchase]:
        return [r for r in self._load(FREE_PURCHASES_KEY) if isinstance(r, CompletedPurchase)]

    def list_completed(self) -> List[CompletedPurchase]:
        """All completed records: paid first, then free."""

        return self.list_completed_paid() + self.list_free()

    def replace(self, beat_id: str, rights_type: RightsType, completed: CompletedPurchase) -> None:
        """
        Replace every paid entry for (beat_id, rights_type) with `completed`.

        Collapses duplicate pending attempts and any earlier completion for the
        same pair into the single new record, in one write.
        """

        if not completed.matches(beat_id, rights_type):
            raise ValueError("completed record does not match (beat_id, rights_type)")

        records = [
            r for r in self._load(PAID_PURCHASES_KEY)
            if not r.matches(beat_id, rights_type)
        ]
        records.append(completed)
        self._save(PAID_PURCHASES_KEY, records)


__all__ = [
    "PAID_PURCHASES_KEY",
    "FREE_PURCHASES_KEY",
    "PurchaseRecordStore",
]
