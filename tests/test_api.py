"""
Tests for the HTTP surface (`api/`).

Runs the FastAPI app with the in-memory storage backend and fake ledger and
catalog. Covers:
- Paid start returns a checkout URL and stores a Pending record for the device.
- Free start returns 201 and shows up in history, even when the ledger fails.
- Catalog and checkout errors map to their status codes.
- The landing route parks a signed-out return and finalizes it after login.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from api import deps
from api.deps import get_catalog, get_current_user_id, get_ledger
from api.main import app
from api.settings import get_settings, load_settings
from conftest import FakeCatalog, FakeLedger, make_beat
from repositories import auth_repository

PURCHASE_URL = "/api/v1/purchases"


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def auth_state() -> dict:
    return {"user_id": None}


@pytest.fixture
def client(fake_ledger, auth_state):
    settings = replace(load_settings(), storage_backend="memory", public_base_url="https://beats.example")
    deps._memory_backing.clear()

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ledger] = lambda: fake_ledger
    app.dependency_overrides[get_catalog] = lambda: FakeCatalog([make_beat()])
    app.dependency_overrides[get_current_user_id] = lambda: auth_state["user_id"]

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    deps._memory_backing.clear()


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_paid_purchase_returns_checkout_url(client, fake_ledger) -> None:
    response = client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "basic"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "redirect"
    assert body["checkout_url"] == fake_ledger.checkout_url
    assert deps.DEVICE_COOKIE in response.cookies

    _, success_url, _ = fake_ledger.sessions[0]
    assert success_url.startswith("https://beats.example/?beatId=b1&rightsType=basic")


def test_free_purchase_is_listed_in_history(client) -> None:
    response = client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "stems"})

    assert response.status_code == 201
    assert response.json()["session_id"].startswith("free-")

    history = client.get(f"{PURCHASE_URL}/history").json()
    assert history["total_count"] == 1
    item = history["items"][0]
    assert item["is_free"] is True
    assert item["rights_label"] == "Stem Pack (Non-Exclusive)"
    assert item["in_catalog"] is True


def test_pending_purchase_is_not_in_history(client) -> None:
    client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "basic"})

    assert client.get(f"{PURCHASE_URL}/history").json()["total_count"] == 0


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"beat_id": "missing", "rights_type": "basic"}, 404),
        ({"beat_id": "b1", "rights_type": "bogus"}, 400),
        ({"beat_id": "", "rights_type": "basic"}, 422),
    ],
)
def test_start_purchase_request_errors(client, payload, status_code) -> None:
    assert client.post(PURCHASE_URL, json=payload).status_code == status_code


def test_unconfigured_processor_is_503(client, fake_ledger) -> None:
    fake_ledger.configured = False

    response = client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "basic"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Checkout is currently unavailable. Please try again later."


def test_invalid_checkout_url_is_502(client, fake_ledger) -> None:
    fake_ledger.checkout_url = "http://checkout.stripe.com/insecure"

    response = client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "basic"})

    assert response.status_code == 502


def test_landing_with_nothing_to_do(client) -> None:
    body = client.get("/").json()

    assert body["status"] == "nothing"
    assert body["clear_query"] is False


def test_full_paid_round_trip_with_login(client, fake_ledger, auth_state) -> None:
    """Verify start, signed-out return, login, then a single finalization."""

    client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "basic"})
    params = {"beatId": "b1", "rightsType": "basic", "session_id": "cs_test_123"}

    parked = client.get("/", params=params).json()
    assert parked["status"] == "login_required"
    assert parked["redirect_to"] == "/login?next=%2F"

    pending = client.get("/api/v1/auth/pending-purchase").json()
    assert pending["pending"] is True
    assert pending["resume_url"] == "/?beatId=b1&rightsType=basic&session_id=cs_test_123"

    auth_state["user_id"] = "user-1"
    finalized = client.get("/").json()
    assert finalized["status"] == "completed"
    assert finalized["clear_query"] is True
    assert finalized["clear_query_params"] == ["beatId", "rightsType", "session_id"]
    assert finalized["redirect_to"] == "/purchase-history"

    again = client.get("/", params=params).json()
    assert again["status"] == "already_processed"
    assert len(fake_ledger.recorded) == 1

    history = client.get(f"{PURCHASE_URL}/history").json()
    assert history["total_count"] == 1
    assert history["items"][0]["session_id"] == "cs_test_123"
    assert client.get("/api/v1/auth/pending-purchase").json()["pending"] is False


def test_free_ledger_failure_keeps_device_cookie(client, fake_ledger) -> None:
    """Verify a first-time visitor can still see a free record after a ledger failure."""

    fake_ledger.record_error = ConnectionError("network down")

    response = client.post(PURCHASE_URL, json={"beat_id": "b1", "rights_type": "stems"})

    assert response.status_code == 502
    body = response.json()
    assert body["session_id"].startswith("free-")
    assert body["session_id"] in body["detail"]
    assert deps.DEVICE_COOKIE in response.cookies

    history = client.get(f"{PURCHASE_URL}/history").json()
    assert history["total_count"] == 1
    assert history["items"][0]["session_id"] == body["session_id"]


def test_bearer_header_without_supabase_is_signed_out(client, monkeypatch) -> None:
    """Verify a token cannot fail the landing route when Supabase is not configured."""

    def _unconfigured():
        raise RuntimeError("Missing environment variable: SUPABASE_URL.")

    app.dependency_overrides.pop(get_current_user_id)
    monkeypatch.setattr(auth_repository, "get_supabase", _unconfigured)

    response = client.get(
        "/",
        params={"beatId": "b1", "rightsType": "basic", "session_id": "cs_test_123"},
        headers={"Authorization": "Bearer some-token"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "login_required"
