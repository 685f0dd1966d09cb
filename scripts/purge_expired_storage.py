"""
Purge expired client storage - login bridges and idempotency markers past their TTL.

Run periodically (for example daily from cron).
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.storage_repository import purge_expired_items


def main():
    deleted = purge_expired_items()
    print(f"Deleted {deleted} expired storage item(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
