"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import api, domain,
repositories and services, and provides in-memory collaborators so no test
touches Supabase.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.rights import Beat, DeliveryMethod, RightsFolder, RightsType  # noqa: E402
from repositories.ledger_repository import CheckoutSession, LedgerError, LineItem  # noqa: E402
from repositories.purchase_record_repository import PurchaseRecordStore  # noqa: E402
from repositories.storage_repository import (  # noqa: E402
    DEVICE_SCOPE,
    SESSION_SCOPE,
    InMemoryKeyValueStorage,
)


class FakeLedger:
    """Records every call; behaviour is set through attributes."""

    def __init__(self) -> None:
        self.configured = True
        self.checkout_url = "https://checkout.stripe.com/c/pay/cs_test_123"
        self.checkout_session_id = "cs_test_123"
        self.configured_error: Optional[Exception] = None
        self.record_error: Optional[Exception] = None
        self.sessions: List[Tuple[List[LineItem], str, str]] = []
        self.recorded: List[Tuple[str, str, bool, RightsType]] = []

    def is_processor_configured(self) -> bool:
        if self.configured_error is not None:
            raise self.configured_error
        return self.configured

    def create_checkout_session(self, items, success_url, cancel_url) -> CheckoutSession:
        self.sessions.append((list(items), success_url, cancel_url))
        return CheckoutSession(session_id=self.checkout_session_id, url=self.checkout_url)

    def record_purchase(self, beat_id, session_id, is_free, rights_type) -> None:
        if self.record_error is not None:
            raise self.record_error
        self.recorded.append((beat_id, session_id, is_free, rights_type))


class FakeCatalog:
    def __init__(self, beats: List[Beat]) -> None:
        self.beats: Dict[str, Beat] = {beat.beat_id: beat for beat in beats}

    def get_beat(self, beat_id: str) -> Optional[Beat]:
        return self.beats.get(beat_id)

    def list_beats(self) -> List[Beat]:
        return list(self.beats.values())


def make_beat(
    beat_id: str = "b1",
    folders: Optional[List[RightsFolder]] = None,
    delivery_method: DeliveryMethod = DeliveryMethod.GOOGLE_DRIVE,
) -> Beat:
    if folders is None:
        folders = [
            RightsFolder(RightsType.BASIC, 2999),
            RightsFolder(RightsType.PREMIUM, 4999),
            RightsFolder(RightsType.EXCLUSIVE, 29999),
            RightsFolder(RightsType.STEMS, 0, free_download=True),
        ]
    return Beat(
        beat_id=beat_id,
        title="Night Drive",
        artist="Kilo Wave",
        category="Trap",
        delivery_method=delivery_method,
        rights_folders=folders,
    )


@pytest.fixture
def backing() -> Dict[Tuple[str, str, str], str]:
    return {}


@pytest.fixture
def device_storage(backing) -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage(DEVICE_SCOPE, "device-1", backing=backing)


@pytest.fixture
def session_storage(backing) -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage(SESSION_SCOPE, "session-1", backing=backing)


@pytest.fixture
def store(device_storage) -> PurchaseRecordStore:
    return PurchaseRecordStore(device_storage)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def beat() -> Beat:
    return make_beat()


@pytest.fixture
def catalog(beat) -> FakeCatalog:
    return FakeCatalog([beat])


__all__ = ["FakeCatalog", "FakeLedger", "LedgerError", "make_beat"]
