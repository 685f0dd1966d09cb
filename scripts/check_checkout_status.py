"""
Check checkout status - processor configuration and what can still be sold.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.rights import RightsType, get_rights_label
from repositories.catalog_repository import SupabaseBeatCatalog
from repositories.ledger_repository import LedgerError, SupabaseLedger


def check_checkout_status():
    """Print processor configuration and per-beat rights availability."""

    try:
        configured = SupabaseLedger().is_processor_configured()
    except LedgerError as e:
        print(f"Could not reach the ledger: {e}")
        return 1

    beats = SupabaseBeatCatalog().list_beats()

    print("=" * 50)
    print("CHECKOUT STATUS")
    print("=" * 50)
    print(f"Processor configured:      {'yes' if configured else 'NO'}")
    print(f"Beats in catalog:          {len(beats)}")
    print(f"Exclusively sold:          {sum(1 for beat in beats if beat.is_exclusive_sold())}")
    print("=" * 50)

    print("\nRights availability:")
    print("-" * 50)
    for beat in beats:
        print(f"{beat.title} ({beat.artist})")
        for rights_type in RightsType:
            folder = beat.folder_for(rights_type)
            if folder is None:
                continue
            if not beat.can_purchase_rights(rights_type):
                state = "unavailable"
            elif folder.is_free:
                state = "free"
            else:
                state = f"${folder.price_in_cents / 100:.2f}"
            print(f"  {get_rights_label(rights_type):<28} {state}")

    if not configured:
        print("\nPaid checkouts will fail until the processor is configured.")
    return 0


if __name__ == "__main__":
    sys.exit(check_checkout_status())
