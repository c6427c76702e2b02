# schemas/notifications.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional


NotificationStage = Literal[
    "bio_completed",
    "payment_initiated",
    "payment_completed",
    "payment_failed",
    "destination_suggested",
    "suggestion_submitted",
]

SUGGESTION_STAGES = {"destination_suggested", "suggestion_submitted"}


class _WebhookModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomerLocation(_WebhookModel):
    needs_transport: bool = False
    origin_city: str = ""
    wants_transport_quote: bool = False


class CustomerPayload(_WebhookModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    party_size: Literal["single", "couple"]
    location: CustomerLocation = Field(default_factory=CustomerLocation)


class DestinationRef(_WebhookModel):
    id: str
    name: str


class TripDates(_WebhookModel):
    start_date: str
    end_date: str
    duration: int


class PackageItem(_WebhookModel):
    id: str
    name: str
    price: float


class PackageAccommodationRef(_WebhookModel):
    id: str
    name: str
    price: float
    nights: Optional[int] = None


class TripPackage(_WebhookModel):
    type: Literal["regular", "full_package"]
    attractions: List[PackageItem] = Field(default_factory=list)
    accommodation: Optional[PackageAccommodationRef] = None


class TripPayload(_WebhookModel):
    destination: DestinationRef
    dates: Optional[TripDates] = None
    package: Optional[TripPackage] = None


class PricingBreakdownPayload(_WebhookModel):
    attractions: float
    accommodation: float
    fees: float


class PricingPayload(_WebhookModel):
    subtotal: float
    curation_fee: float
    total: float
    breakdown: PricingBreakdownPayload


class TransactionPayload(_WebhookModel):
    amount: float
    id: Optional[str] = None
    currency: str
    status: str
    reference: str
    timestamp: str


class SuggestionPayload(_WebhookModel):
    type: Literal["destination", "experience", "hotel"]
    intent: Optional[str] = None
    name: str
    description: str = ""
    first_name: str
    last_name: str
    email: str
    timestamp: str


class NotificationEvent(_WebhookModel):
    """
    Envelope posted to the notification webhook (Make.com scenario).

    Every non-suggestion stage must carry a bookingId; the emitter
    enforces it before sending.
    """

    stage: NotificationStage = Field(..., description="Booking milestone being reported")
    booking_id: Optional[str] = Field(None, description="Session booking reference")
    intent: Optional[str] = Field(None, description="Trip purpose")
    customer: Optional[CustomerPayload] = None
    trip: Optional[TripPayload] = None
    pricing: Optional[PricingPayload] = None
    transaction: Optional[TransactionPayload] = None
    suggestion: Optional[SuggestionPayload] = None

    def to_wire(self) -> dict:
        """camelCase JSON body with unset sections omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "stage": "bio_completed",
                "bookingId": "FP-20250101120000-AB12CD",
                "intent": "honeymoon",
                "customer": {
                    "firstName": "Ada",
                    "lastName": "Obi",
                    "email": "ada@example.com",
                    "phone": "+2348012345678",
                    "partySize": "couple",
                    "location": {
                        "needsTransport": False,
                        "originCity": "",
                        "wantsTransportQuote": False
                    }
                },
                "pricing": {
                    "subtotal": 220000,
                    "curationFee": 5000,
                    "total": 225000,
                    "breakdown": {"attractions": 160000, "accommodation": 60000, "fees": 5000}
                }
            }
        }
    )
