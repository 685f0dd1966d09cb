"""
Beat catalog repository (read-only).

Reads the minimal beat view the purchase flow needs: title, artist, category,
delivery method and the priced rights tiers. Catalog editing lives elsewhere.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol

from domain.rights import Beat, DeliveryMethod, RightsFolder, RightsType
from repositories.client import get_supabase

logger = logging.getLogger(__name__)

# Supabase table names for the catalog.
_BEATS_TABLE: str = "beats"
_BEAT_COLUMNS: str = (
    "beat_id, title, artist, category, delivery_method, "
    "rights_folders(rights_type, price_in_cents, free_download, sold)"
)


class BeatCatalog(Protocol):
    def get_beat(self, beat_id: str) -> Optional[Beat]:
        ...

    def list_beats(self) -> List[Beat]:
        ...


def _row_to_beat(row: Mapping[str, Any]) -> Beat:
    """Convert a Supabase row (with nested rights_folders) into a Beat."""

    folders: List[RightsFolder] = []
    for folder in row.get("rights_folders") or []:
        rights_type = RightsType.parse(folder.get("rights_type"))
        if rights_type is None:
            logger.warning(
                "Ignoring rights folder with unknown rights type",
                extra={"beat_id": row.get("beat_id"), "rights_type": folder.get("rights_type")},
            )
            continue
        folders.append(RightsFolder(
            rights_type=rights_type,
            price_in_cents=int(folder.get("price_in_cents") or 0),
            free_download=bool(folder.get("free_download", False)),
            sold=bool(folder.get("sold", False)),
        ))

    return Beat(
        beat_id=str(row["beat_id"]),
        title=str(row.get("title") or ""),
        artist=str(row.get("artist") or ""),
        category=str(row.get("category") or ""),
        delivery_method=DeliveryMethod.parse(row.get("delivery_method"), DeliveryMethod.ZIP_FILES),
        rights_folders=folders,
    )


class SupabaseBeatCatalog:
    """BeatCatalog backed by the beats table."""

    def get_beat(self, beat_id: str) -> Optional[Beat]:
        """
        Retrieve a single beat by its ID.

        Returns:
            Beat or None if not found
        """

        response = (
            get_supabase()
            .table(_BEATS_TABLE)
            .select(_BEAT_COLUMNS)
            .eq("beat_id", beat_id)
            .limit(1)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to get beat: {error}")

        rows = getattr(response, "data", None) or []
        if not rows:
            return None

        return _row_to_beat(rows[0])

    def list_beats(self) -> List[Beat]:
        response = get_supabase().table(_BEATS_TABLE).select(_BEAT_COLUMNS).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to list beats: {error}")

        rows = getattr(response, "data", None) or []
        return [_row_to_beat(row) for row in rows]


__all__ = [
    "BeatCatalog",
    "SupabaseBeatCatalog",
]
