"""
Notification Service - Webhook Emitter
======================================
Reports booking milestones to the external automation sink (a Make.com
scenario that mails the team and the customer).

Delivery is best-effort and at-most-once: a failed POST is logged and
reported in the returned outcome, never retried and never raised.
A missing bookingId on a booking event is a programming error and is
raised.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from app.booking.catalog import Catalog
from app.booking.models import (
    AttractionType,
    BookingState,
    FullPackageAttraction,
    PriceQuote,
    SuggestionRequest,
)
from app.core.config import settings
from schemas.notifications import (
    SUGGESTION_STAGES,
    CustomerLocation,
    CustomerPayload,
    DestinationRef,
    NotificationEvent,
    NotificationStage,
    PackageAccommodationRef,
    PackageItem,
    PricingBreakdownPayload,
    PricingPayload,
    SuggestionPayload,
    TransactionPayload,
    TripDates,
    TripPackage,
    TripPayload,
)
from services.base_api_service import BaseAPIService
from services.exceptions import NotificationPreconditionError

logger = logging.getLogger(__name__)


class NotificationOutcome(BaseModel):
    delivered: bool
    status_code: Optional[int] = None
    response: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


# ============================================================
# EMITTERS
# ============================================================

class NotificationEmitter:
    """
    Abstract notification sink.
    Subclasses implement `_deliver`; `emit` enforces the envelope contract.
    """

    async def emit(self, event: NotificationEvent) -> NotificationOutcome:
        """
        Send one event.

        Raises:
            NotificationPreconditionError: booking event without bookingId
        """
        if event.stage not in SUGGESTION_STAGES and event.suggestion is None and not event.booking_id:
            raise NotificationPreconditionError(
                f"Booking ID is required for '{event.stage}' notifications"
            )
        return await self._deliver(event)

    async def _deliver(self, event: NotificationEvent) -> NotificationOutcome:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class WebhookNotificationEmitter(BaseAPIService, NotificationEmitter):
    """POSTs the JSON envelope to the configured webhook URL."""

    DEFAULT_RETRIES = 1

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=webhook_url or settings.NOTIFICATION_WEBHOOK_URL,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout_s=timeout_s or settings.NOTIFICATION_TIMEOUT,
            transport=transport,
        )

    async def _deliver(self, event: NotificationEvent) -> NotificationOutcome:
        payload = event.to_wire()

        try:
            resp = await self._send("POST", "", json=payload)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = e.response.text or e.response.reason_phrase
            self.logger.error(
                f"❌ Webhook failed ({status}) for stage={event.stage} "
                f"booking={event.booking_id}: {detail}"
            )
            return NotificationOutcome(
                delivered=False,
                status_code=status,
                error=f"Webhook failed ({status}): {detail}",
            )
        except httpx.HTTPError as e:
            self.logger.error(
                f"❌ Webhook transport error for stage={event.stage} booking={event.booking_id}: {e}"
            )
            return NotificationOutcome(delivered=False, error=str(e))

        try:
            body = self._parse_body(resp)
        except ValueError:
            self.logger.warning(f"Webhook returned malformed JSON for stage={event.stage}")
            body = {"success": True}

        self.logger.info(f"✓ Webhook delivered: stage={event.stage} booking={event.booking_id}")
        return NotificationOutcome(delivered=True, status_code=resp.status_code, response=body)


# ============================================================
# EVENT BUILDERS
# ============================================================

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_customer_payload(state: BookingState) -> Optional[CustomerPayload]:
    info = state.traveller_info
    if info is None:
        return None

    return CustomerPayload(
        first_name=info.first_name,
        last_name=info.last_name,
        email=info.email,
        phone=info.whatsapp,
        party_size=info.party_size.value,
        location=CustomerLocation(
            needs_transport=info.needs_transport,
            origin_city=info.origin_city,
            wants_transport_quote=info.wants_transport_quote,
        ),
    )


def build_trip_payload(state: BookingState, catalog: Catalog) -> Optional[TripPayload]:
    if not state.selected_destination:
        return None

    destination = catalog.get_destination(state.selected_destination)
    nights = state.date_range.nights if state.date_range else None

    dates = None
    if state.date_range is not None:
        dates = TripDates(
            start_date=state.date_range.start.isoformat(),
            end_date=state.date_range.end.isoformat(),
            duration=nights,
        )

    package = None
    if state.selected_attractions:
        lead = state.selected_attractions[0]
        accommodation = None
        if isinstance(lead, FullPackageAttraction):
            accommodation = PackageAccommodationRef(
                id=lead.id, name=lead.name, price=lead.price, nights=nights
            )
        elif state.selected_hotel is not None:
            hotel = state.selected_hotel
            accommodation = PackageAccommodationRef(
                id=hotel.id, name=hotel.name, price=hotel.price, nights=nights
            )

        package = TripPackage(
            type=AttractionType(lead.type).value,
            attractions=[
                PackageItem(id=a.id, name=a.name, price=a.price)
                for a in state.selected_attractions
            ],
            accommodation=accommodation,
        )

    return TripPayload(
        destination=DestinationRef(
            id=state.selected_destination,
            name=destination.name if destination else state.selected_destination,
        ),
        dates=dates,
        package=package,
    )


def _build_pricing(quote: PriceQuote) -> PricingPayload:
    return PricingPayload(
        subtotal=quote.subtotal,
        curation_fee=quote.curation_fee,
        total=quote.total,
        breakdown=PricingBreakdownPayload(
            attractions=quote.breakdown.attractions,
            accommodation=quote.breakdown.accommodation,
            fees=quote.breakdown.fees,
        ),
    )


def build_bio_completed_event(
    state: BookingState,
    quote: PriceQuote,
    catalog: Catalog
) -> NotificationEvent:
    """Lead captured: traveller details plus the priced package."""
    return NotificationEvent(
        stage="bio_completed",
        booking_id=state.booking_id,
        intent=state.trip_intent.value if state.trip_intent else None,
        customer=build_customer_payload(state),
        trip=build_trip_payload(state, catalog),
        pricing=_build_pricing(quote),
    )


def build_transaction(
    amount: float,
    currency: str,
    status: str,
    reference: str,
    transaction_id: Optional[str] = None
) -> TransactionPayload:
    return TransactionPayload(
        amount=amount,
        id=transaction_id,
        currency=currency,
        status=status,
        reference=reference,
        timestamp=_timestamp(),
    )


def build_payment_event(
    stage: NotificationStage,
    state: BookingState,
    transaction: TransactionPayload,
    catalog: Catalog
) -> NotificationEvent:
    return NotificationEvent(
        stage=stage,
        booking_id=state.booking_id,
        intent=state.trip_intent.value if state.trip_intent else None,
        customer=build_customer_payload(state),
        trip=build_trip_payload(state, catalog),
        transaction=transaction,
    )


def build_suggestion_event(suggestion: SuggestionRequest) -> NotificationEvent:
    return NotificationEvent(
        stage="suggestion_submitted",
        suggestion=SuggestionPayload(
            type=suggestion.type.value,
            intent=suggestion.intent.value if suggestion.intent else None,
            name=suggestion.name,
            description=suggestion.description,
            first_name=suggestion.first_name,
            last_name=suggestion.last_name,
            email=suggestion.email,
            timestamp=_timestamp(),
        ),
    )


__all__: List[str] = [
    'NotificationEmitter',
    'NotificationOutcome',
    'WebhookNotificationEmitter',
    'build_bio_completed_event',
    'build_customer_payload',
    'build_payment_event',
    'build_suggestion_event',
    'build_transaction',
    'build_trip_payload',
]
