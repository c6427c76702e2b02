"""
Shared fixtures: a small catalog, an in-memory session store and a
recording notification emitter.
"""

from datetime import date, timedelta
from typing import List

import pytest

from app.booking.catalog import Catalog
from app.booking.models import (
    BookingStage,
    BookingState,
    DateRange,
    PartySize,
    TravellerInfo,
    TripIntent,
)
from app.booking.state_machine import StageMachine
from app.infrastructure.cache import InMemoryCache
from schemas.notifications import NotificationEvent
from services.booking_service import BookingService
from services.notification_service import NotificationEmitter, NotificationOutcome
from services.payment_service import PaymentBridge
from services.session_store import SessionStore


TODAY = date(2025, 1, 1)

CATALOG_DATA = {
    "destinations": [
        {"id": "bali", "name": "Bali", "description": "Temples and rice terraces", "country": "Indonesia"},
        {"id": "zanzibar", "name": "Zanzibar", "description": "Spice island beaches", "country": "Tanzania"},
    ],
    "attractions": [
        {"id": "bali-swing", "name": "Jungle Swing", "description": "Swing over the terraces",
         "price": 50000, "type": "regular", "destinationId": "bali"},
        {"id": "bali-temple", "name": "Uluwatu Temple", "description": "Sunset fire dance",
         "price": 30000, "type": "regular", "destinationId": "bali"},
        {"id": "bali-snorkel", "name": "Nusa Penida Snorkelling", "description": "Manta rays",
         "price": 65000, "type": "regular", "destinationId": "bali"},
        {"id": "bali-villa", "name": "Ubud Villa Retreat", "description": "All-inclusive villa",
         "price": 80000, "type": "full_package", "destinationId": "bali",
         "accommodation": {
             "roomImages": [],
             "amenities": ["Private pool"],
             "activities": [
                 {"name": "Massage", "included": True, "price": 15000},
                 {"name": "Cooking class", "included": True, "price": 10000},
                 {"name": "Welcome drink", "included": True},
                 {"name": "Sunrise trek", "included": False, "price": 40000},
             ],
             "policies": {"checkIn": "14:00", "checkOut": "11:00"},
         }},
        {"id": "bali-broken", "name": "Broken Package", "price": 70000,
         "type": "full_package", "destinationId": "bali"},
        {"id": "zanzibar-dhow", "name": "Sunset Dhow Cruise", "description": "Traditional sailing",
         "price": 45000, "type": "regular", "destinationId": "zanzibar"},
        {"id": "zanzibar-stone-town", "name": "Stone Town Tour", "description": "Spice market walk",
         "price": 25000, "type": "regular", "destinationId": "zanzibar"},
    ],
    "hotels": [
        {"id": "bali-inn", "name": "Ubud Garden Inn", "rating": 4.5, "price": 20000,
         "features": ["Pool"], "destinationId": "bali"},
        {"id": "bali-resort", "name": "Seminyak Resort", "rating": 4.8, "price": 45000,
         "features": ["Beachfront"], "destinationId": "bali"},
        {"id": "zanzibar-lodge", "name": "Nungwi Lodge", "rating": 4.3, "price": 30000,
         "features": ["Beachfront"], "destinationId": "zanzibar"},
    ],
}


class RecordingEmitter(NotificationEmitter):
    """Keeps every event instead of sending it."""

    def __init__(self, delivered: bool = True):
        self.events: List[NotificationEvent] = []
        self.delivered = delivered

    async def _deliver(self, event: NotificationEvent) -> NotificationOutcome:
        self.events.append(event)
        if self.delivered:
            return NotificationOutcome(delivered=True, status_code=200, response={"success": True})
        return NotificationOutcome(delivered=False, status_code=500, error="Webhook failed (500)")

    def stages(self) -> List[str]:
        return [event.stage for event in self.events]


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def catalog() -> Catalog:
    return Catalog.from_dict(CATALOG_DATA)


@pytest.fixture
def machine() -> StageMachine:
    return StageMachine()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def store(cache) -> SessionStore:
    return SessionStore(cache)


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def bridge() -> PaymentBridge:
    return PaymentBridge(public_key="FLWPUBK_TEST-123", max_amount=499999)


@pytest.fixture
def service(store, machine, catalog, emitter, bridge) -> BookingService:
    return BookingService(
        session_store=store,
        state_machine=machine,
        catalog=catalog,
        emitter=emitter,
        payment_bridge=bridge,
    )


@pytest.fixture
def traveller() -> TravellerInfo:
    return TravellerInfo(
        first_name="Ada",
        last_name="Obi",
        email="ada@example.com",
        whatsapp="+2348012345678",
        party_size=PartySize.COUPLE,
    )


@pytest.fixture
def make_state(catalog, traveller):
    """
    Build a booking state from catalog ids.

    Defaults describe the couple trip to Bali: two regular experiences,
    the 20000/night inn and three nights starting 30 days after TODAY.
    """
    def _make(
        stage: BookingStage = BookingStage.SUMMARY,
        destination: str = "bali",
        attractions=("bali-swing", "bali-temple"),
        hotel="bali-inn",
        nights: int = 3,
        start: date = TODAY + timedelta(days=30),
        traveller_info=traveller,
        booking_id: str = "FP-TEST-000001",
    ) -> BookingState:
        return BookingState(
            stage=stage,
            trip_intent=TripIntent.HONEYMOON,
            selected_destination=destination,
            date_range=DateRange(start=start, end=start + timedelta(days=nights)) if nights else None,
            selected_attractions=[catalog.get_attraction(a) for a in attractions],
            selected_hotel=catalog.get_hotel(hotel) if hotel else None,
            traveller_info=traveller_info,
            booking_id=booking_id,
        )

    return _make
