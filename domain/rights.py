"""
Domain: License rights tiers and delivery methods for beats.

Rules implemented here:
- A beat is offered under up to four rights tiers: basic, premium, exclusive, stems.
- Basic, Premium and Stems are non-exclusive: they are never "sold" and can be
  licensed any number of times.
- Once the Exclusive tier is sold, no tier of that beat can be purchased.
- A tier is free when it is flagged as a free download or priced at zero cents.

This module contains only pure domain types: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class RightsType(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    EXCLUSIVE = "exclusive"
    STEMS = "stems"

    @staticmethod
    def parse(value: object) -> Optional["RightsType"]:
        """
        Resolve a RightsType from its wire value.

        Accepts the canonical values and the legacy camelCase spellings
        (basicRight, premiumRight, exclusiveRight). Returns None for anything else.
        """

        if isinstance(value, RightsType):
            return value
        if not isinstance(value, str):
            return None

        text = value.strip()
        text = _LEGACY_RIGHTS_ALIASES.get(text, text)
        try:
            return RightsType(text)
        except ValueError:
            return None

    @property
    def is_exclusive(self) -> bool:
        return self is RightsType.EXCLUSIVE


_LEGACY_RIGHTS_ALIASES = {
    "basicRight": "basic",
    "premiumRight": "premium",
    "exclusiveRight": "exclusive",
}

_RIGHTS_LABELS = {
    RightsType.BASIC: "Basic",
    RightsType.PREMIUM: "Premium",
    RightsType.EXCLUSIVE: "Exclusive",
    RightsType.STEMS: "Stem Pack",
}


def get_rights_label(rights_type: RightsType, include_non_exclusive_label: bool = True) -> str:
    """
    Display label for a rights tier.

    Non-exclusive tiers get a "(Non-Exclusive)" suffix unless disabled.
    """

    label = _RIGHTS_LABELS.get(rights_type, "Unknown")
    if include_non_exclusive_label and not rights_type.is_exclusive:
        return f"{label} (Non-Exclusive)"
    return label


class DeliveryMethod(str, Enum):
    ZIP_FILES = "zipFiles"
    GOOGLE_DRIVE = "googleDrive"

    @staticmethod
    def parse(value: object, default: "DeliveryMethod") -> "DeliveryMethod":
        try:
            return DeliveryMethod(value)
        except ValueError:
            return default


@dataclass(frozen=True, slots=True)
class RightsFolder:
    """
    One purchasable rights tier of a beat, as exposed by the catalog.

    Prices are integer cents (USD).
    """

    rights_type: RightsType
    price_in_cents: int
    free_download: bool = False
    sold: bool = False

    def __post_init__(self) -> None:
        if self.price_in_cents < 0:
            raise ValueError("price_in_cents must be >= 0")

    @property
    def is_free(self) -> bool:
        return self.free_download or self.price_in_cents == 0


@dataclass(frozen=True, slots=True)
class Beat:
    """
    Read-only catalog view of a beat: only what the purchase flow needs.
    """

    beat_id: str
    title: str
    artist: str
    category: str
    delivery_method: DeliveryMethod
    rights_folders: List[RightsFolder]

    def folder_for(self, rights_type: RightsType) -> Optional[RightsFolder]:
        for folder in self.rights_folders:
            if folder.rights_type is rights_type:
                return folder
        return None

    def is_exclusive_sold(self) -> bool:
        folder = self.folder_for(RightsType.EXCLUSIVE)
        return folder is not None and folder.sold

    def is_rights_sold(self, rights_type: RightsType) -> bool:
        """Only the Exclusive tier can ever be sold."""

        if not rights_type.is_exclusive:
            return False
        return self.is_exclusive_sold()

    def can_purchase_rights(self, rights_type: RightsType) -> bool:
        if self.folder_for(rights_type) is None:
            return False
        if self.is_exclusive_sold():
            return False
        return not self.is_rights_sold(rights_type)

    def availability_message(self) -> Optional[str]:
        if self.is_exclusive_sold():
            return "This beat has been exclusively licensed and is no longer available for purchase."
        return None


__all__ = [
    "RightsType",
    "DeliveryMethod",
    "RightsFolder",
    "Beat",
    "get_rights_label",
]
