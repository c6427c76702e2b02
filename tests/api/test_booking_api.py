"""
API Tests
=========
FastAPI routes with the booking service and catalog overridden.
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.v1.dependencies import get_booking_service, get_catalog_dependency
from app.booking.models import BookingStage
from app.core.config import settings
from app.main import app
from services.payment_service import PaymentBridge

API = "/api/v1"


@pytest.fixture
def client(service, catalog):
    app.dependency_overrides[get_booking_service] = lambda: service
    app.dependency_overrides[get_catalog_dependency] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_api_get_booking_creates_session(client):
    response = client.get(f"{API}/booking/abc")

    assert response.status_code == 200
    body = response.json()
    assert body["state"]["stage"] == "intent"
    assert body["state"]["bookingId"].startswith("FP-")
    assert body["message"] == "Design Your Perfect Getaway"

    again = client.get(f"{API}/booking/abc").json()
    assert again["state"]["bookingId"] == body["state"]["bookingId"]


def test_api_actions_walk_to_summary(client, emitter):
    start = date.today() + timedelta(days=30)
    actions = [
        {"type": "select_intent", "intent": "anniversary"},
        {"type": "advance"},
        {"type": "select_destination", "destinationId": "bali"},
        {"type": "advance"},
        {"type": "set_dates", "from": start.isoformat(), "to": (start + timedelta(days=3)).isoformat()},
        {"type": "advance"},
        {"type": "toggle_attraction", "attractionId": "bali-swing"},
        {"type": "toggle_attraction", "attractionId": "bali-temple"},
        {"type": "advance"},
        {"type": "select_hotel", "hotelId": "bali-inn"},
        {"type": "advance"},
        {"type": "set_traveller_info", "travellerInfo": {
            "firstName": "Ada",
            "lastName": "Obi",
            "email": "ada@example.com",
            "whatsapp": "+2348012345678",
            "partySize": "couple",
        }},
    ]
    for action in actions:
        response = client.post(f"{API}/booking/abc/actions", json=action)
        assert response.status_code == 200
        assert response.json()["errors"] == [], action

    body = client.post(f"{API}/booking/abc/actions", json={"type": "advance"}).json()

    assert body["state"]["stage"] == "summary"
    assert body["quote"]["breakdown"]["attractions"] == 160000
    assert body["quote"]["breakdown"]["accommodation"] == 60000
    assert emitter.stages() == ["bio_completed"]

    quote = client.get(f"{API}/booking/abc/quote").json()
    assert quote["total"] == body["quote"]["total"]


def test_api_validation_errors_are_200(client):
    response = client.post(f"{API}/booking/abc/actions", json={"type": "advance"})

    assert response.status_code == 200
    assert response.json()["errors"] == ["Please choose what kind of trip you're planning"]


def test_api_malformed_action_is_422(client):
    response = client.post(f"{API}/booking/abc/actions", json={"type": "teleport"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_api_checkout_and_payment_callback(client, store, make_state):
    await store.save("abc", make_state())

    checkout = client.post(f"{API}/booking/abc/checkout")
    assert checkout.status_code == 200
    request = checkout.json()["payment_request"]
    assert request["currency"] == "NGN"

    callback = client.post(f"{API}/booking/abc/payment/callback", json={
        "status": "successful",
        "amount": request["amount"],
        "currency": "NGN",
        "customer": {"email": "ada@example.com"},
        "tx_ref": request["tx_ref"],
        "transaction_id": 4455667,
    })
    assert callback.status_code == 200
    assert callback.json()["redirect"] == "/payment/success"

    state = client.get(f"{API}/booking/abc").json()["state"]
    assert state["bookingId"] != "FP-TEST-000001"


def test_api_callback_without_checkout_fails(client, emitter):
    response = client.post(f"{API}/booking/abc/payment/callback", json={
        "status": "successful",
        "amount": 225000,
        "currency": "NGN",
        "tx_ref": "forged",
    })

    assert response.status_code == 200
    assert response.json()["outcome"] == "failed"
    assert response.json()["redirect"] == "/payment/failed"
    assert emitter.events == []


def test_api_checkout_before_summary_is_400(client):
    response = client.post(f"{API}/booking/abc/checkout")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_api_checkout_without_public_key_is_503(client, service, store, make_state):
    service.payment_bridge = PaymentBridge(public_key="")
    await store.save("abc", make_state())

    response = client.post(f"{API}/booking/abc/checkout")

    assert response.status_code == 503


def test_api_payment_dismissed_is_cancelled(client):
    response = client.post(f"{API}/booking/abc/payment/dismissed")

    assert response.status_code == 200
    assert response.json()["outcome"] == "cancelled"
    assert response.json()["redirect"] == "/payment/cancelled"


@pytest.mark.asyncio
async def test_api_bank_transfer_confirm_and_reset(client, store, make_state):
    await store.save("abc", make_state(attractions=("bali-villa",), hotel=None, nights=5))

    checkout = client.post(f"{API}/booking/abc/checkout").json()
    assert checkout["method"] == "bank_transfer"
    assert checkout["bank_transfer"]["narration"] == "FP-TEST-000001"

    confirmed = client.post(f"{API}/booking/abc/bank-transfer/confirm").json()
    assert confirmed["state"]["stage"] == BookingStage.INTENT.value

    reset = client.delete(f"{API}/booking/abc").json()
    assert reset["state"]["bookingId"] != confirmed["state"]["bookingId"]


def test_api_catalog_queries(client):
    destinations = client.get(f"{API}/catalog/destinations", params={"q": "bali"}).json()
    assert [d["id"] for d in destinations] == ["bali"]

    packages = client.get(
        f"{API}/catalog/destinations/bali/attractions", params={"type": "full_package"}
    ).json()
    assert {a["id"] for a in packages} == {"bali-villa", "bali-broken"}
    villa = next(a for a in packages if a["id"] == "bali-villa")
    assert villa["destinationId"] == "bali"
    assert villa["accommodation"]["policies"]["checkIn"] == "14:00"

    hotels = client.get(f"{API}/catalog/destinations/bali/hotels").json()
    assert {h["id"] for h in hotels} == {"bali-inn", "bali-resort"}


def test_api_unknown_destination_is_404(client):
    assert client.get(f"{API}/catalog/destinations/atlantis").status_code == 404
    assert client.get(f"{API}/catalog/destinations/atlantis/hotels").status_code == 404


def test_api_suggestions(client, emitter):
    invalid = client.post(f"{API}/suggestions", json={"type": "destination", "name": "Lamu"})
    assert invalid.status_code == 200
    assert invalid.json()["success"] is False
    assert "firstName" in invalid.json()["field_errors"]

    valid = client.post(f"{API}/suggestions", json={
        "type": "destination",
        "name": "Lamu",
        "firstName": "Ada",
        "lastName": "Obi",
        "email": "ada@example.com",
    })
    assert valid.json()["success"] is True
    assert emitter.stages() == ["suggestion_submitted"]


def test_health_with_memory_backend(client, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_BACKEND", "memory")

    body = client.get("/health").json()

    assert body == {"status": "ok", "session_backend": "memory", "redis": None}
