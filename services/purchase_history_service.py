"""
Purchase history service (read-only).

Merges paid and free Completed records into display entries. Pending records
are never shown: an abandoned checkout simply never appears.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from domain.purchase import CompletedPurchase
from domain.rights import Beat, get_rights_label
from repositories.catalog_repository import BeatCatalog
from repositories.purchase_record_repository import PurchaseRecordStore


@dataclass(frozen=True, slots=True)
class PurchaseHistoryEntry:
    """
    One purchased rights tier, ready for display.

    in_catalog is False when the beat was removed after purchase; the stored
    title and artist are shown in that case.
    """
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


def _to_entry(purchase: CompletedPurchase, beat: Optional[Beat], catalog_checked: bool) -> PurchaseHistoryEntry:
    return PurchaseHistoryEntry(
        beat_id=purchase.beat_id,
        beat_title=beat.title if beat else purchase.beat_title,
        artist=beat.artist if beat else purchase.artist,
        rights_type=purchase.rights_type.value,
        rights_label=get_rights_label(purchase.rights_type),
        delivery_method=(beat.delivery_method if beat else purchase.delivery_method).value,
        session_id=purchase.session_id,
        purchased_at_ms=purchase.timestamp,
        is_free=purchase.is_free,
        in_catalog=beat is not None or not catalog_checked,
    )


def list_purchase_history(
    store: PurchaseRecordStore,
    catalog: Optional[BeatCatalog] = None,
) -> List[PurchaseHistoryEntry]:
    """
    All completed purchases, paid first then free.

    With a catalog, titles, artists and delivery methods are taken from the
    current catalog entry when the beat still exists.
    """

    purchases = store.list_completed()
    if not purchases:
        return []

    beats: Dict[str, Beat] = {}
    if catalog is not None:
        beats = {beat.beat_id: beat for beat in catalog.list_beats()}

    return [_to_entry(p, beats.get(p.beat_id), catalog is not None) for p in purchases]


__all__ = [
    "PurchaseHistoryEntry",
    "list_purchase_history",
]
