# app/booking/models.py
"""
Centralized data models for the holiday booking wizard.
All Pydantic v2 models and enums live here to prevent circular imports.

Wire format is camelCase (matches the web client and the webhook sink);
Python attributes are snake_case. Both forms are accepted on input.
"""

from enum import Enum
from typing import Optional, List, Union, Literal, Annotated
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase aliases, populate by either name."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================
# ENUMS
# ============================================================

class BookingStage(str, Enum):
    """
    Linear booking wizard stages, in forward order.
    The terminal payment step is not a persisted stage.
    """
    INTENT = "intent"
    DESTINATION = "destination"
    DATES = "dates"
    ATTRACTIONS = "attractions"
    ACCOMMODATION = "accommodation"
    BIO = "bio"
    SUMMARY = "summary"


STAGE_ORDER: List[BookingStage] = list(BookingStage)


class TripIntent(str, Enum):
    """Purpose of the trip"""
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    WORKATION = "workation"
    FAMILY = "family"
    FRIENDS = "friends"
    SOLO = "solo"
    HONEYMOON = "honeymoon"
    OTHER = "other"


class PartySize(str, Enum):
    SINGLE = "single"
    COUPLE = "couple"


class AttractionType(str, Enum):
    REGULAR = "regular"
    FULL_PACKAGE = "full_package"


class PaymentOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SuggestionType(str, Enum):
    """What a user can suggest adding to the catalog"""
    DESTINATION = "destination"
    EXPERIENCE = "experience"
    HOTEL = "hotel"


# ============================================================
# CATALOG MODELS (read-only reference data)
# ============================================================

class Destination(FrozenCamelModel):
    id: str
    name: str
    description: str = ""
    image: str = ""
    country: Optional[str] = None


class PackageActivity(FrozenCamelModel):
    name: str
    description: str = ""
    included: bool = False
    price: Optional[float] = None


class PackagePolicies(FrozenCamelModel):
    check_in: str = ""
    check_out: str = ""


class PackageAccommodation(FrozenCamelModel):
    """Bundled stay that comes with a full-package attraction."""
    room_images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    activities: List[PackageActivity] = Field(default_factory=list)
    policies: PackagePolicies = Field(default_factory=PackagePolicies)


class RegularAttraction(FrozenCamelModel):
    """A-la-carte experience, combinable with others and a separate hotel."""
    id: str
    name: str
    description: str = ""
    image: str = ""
    price: float
    destination_id: str
    type: Literal["regular"] = "regular"


class FullPackageAttraction(FrozenCamelModel):
    """
    All-inclusive package: accommodation + activities as one unit.

    `accommodation` is required by the business rules; it is declared
    optional so a defective catalog entry still loads and the pricing
    engine can report it instead of the whole catalog failing.
    """
    id: str
    name: str
    description: str = ""
    image: str = ""
    price: float  # per night
    destination_id: str
    type: Literal["full_package"] = "full_package"
    accommodation: Optional[PackageAccommodation] = None


Attraction = Annotated[
    Union[RegularAttraction, FullPackageAttraction],
    Field(discriminator="type"),
]


class Hotel(FrozenCamelModel):
    id: str
    name: str
    description: str = ""
    image: str = ""
    rating: float = 0.0
    price: float  # per night
    room_images: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    destination_id: str


# ============================================================
# BOOKING STATE
# ============================================================

def _coerce_date(value):
    """Accept date, datetime or ISO-8601 strings (with time / 'Z')."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class DateRange(FrozenCamelModel):
    start: date = Field(alias="from")
    end: date = Field(alias="to")

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_date(cls, value):
        return _coerce_date(value)

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("Trip end date must be after the start date")
        return self

    @property
    def nights(self) -> int:
        return (self.end - self.start).days


class TravellerInfo(FrozenCamelModel):
    """Lead traveller details collected at the bio stage."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    whatsapp: str = ""
    party_size: PartySize = PartySize.SINGLE
    needs_transport: bool = False
    origin_city: str = ""
    wants_transport_quote: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class BookingState(FrozenCamelModel):
    """
    Complete booking session state.
    The only persisted unit; replaced wholesale on every mutation.
    """
    stage: BookingStage = BookingStage.INTENT
    trip_intent: Optional[TripIntent] = None
    selected_destination: Optional[str] = None
    date_range: Optional[DateRange] = None
    selected_attractions: List[Attraction] = Field(default_factory=list)
    selected_hotel: Optional[Hotel] = None
    traveller_info: Optional[TravellerInfo] = None
    booking_id: str

    @field_validator("stage", mode="before")
    @classmethod
    def parse_stage(cls, value):
        """Stored 'payment' or unknown stages fall back to the start."""
        if isinstance(value, str):
            try:
                return BookingStage(value)
            except ValueError:
                return BookingStage.INTENT
        return value

    @property
    def package_type(self) -> Optional[AttractionType]:
        if not self.selected_attractions:
            return None
        return AttractionType(self.selected_attractions[0].type)


# ============================================================
# PRICING
# ============================================================

class PriceBreakdown(FrozenCamelModel):
    attractions: float = 0.0
    accommodation: float = 0.0
    fees: float = 0.0


class PriceQuote(FrozenCamelModel):
    """
    Derived price for the current selection. Never persisted.
    `valid` is False for the zero quote returned on incomplete or
    malformed input.
    """
    subtotal: float = 0.0
    curation_fee: float = 0.0
    total: float = 0.0
    breakdown: PriceBreakdown = Field(default_factory=PriceBreakdown)
    package_type: Optional[AttractionType] = None
    nights: int = 0
    party_size: PartySize = PartySize.SINGLE
    valid: bool = True
    error: Optional[str] = None


# ============================================================
# ACTIONS (reducer input)
# ============================================================

class SelectIntentAction(CamelModel):
    type: Literal["select_intent"] = "select_intent"
    intent: TripIntent


class SelectDestinationAction(CamelModel):
    type: Literal["select_destination"] = "select_destination"
    destination_id: str


class SetDatesAction(CamelModel):
    type: Literal["set_dates"] = "set_dates"
    start: Optional[date] = Field(None, alias="from")
    end: Optional[date] = Field(None, alias="to")

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_date(cls, value):
        return _coerce_date(value)


class ToggleAttractionAction(CamelModel):
    type: Literal["toggle_attraction"] = "toggle_attraction"
    attraction_id: str


class SelectHotelAction(CamelModel):
    type: Literal["select_hotel"] = "select_hotel"
    hotel_id: str


class SetTravellerInfoAction(CamelModel):
    type: Literal["set_traveller_info"] = "set_traveller_info"
    traveller_info: TravellerInfo


class AdvanceAction(CamelModel):
    type: Literal["advance"] = "advance"


class RetreatAction(CamelModel):
    type: Literal["retreat"] = "retreat"


BookingAction = Annotated[
    Union[
        SelectIntentAction,
        SelectDestinationAction,
        SetDatesAction,
        ToggleAttractionAction,
        SelectHotelAction,
        SetTravellerInfoAction,
        AdvanceAction,
        RetreatAction,
    ],
    Field(discriminator="type"),
]


class TransitionResult(CamelModel):
    """Outcome of reducing one action against a state."""
    state: BookingState
    errors: List[str] = Field(default_factory=list)
    quote: Optional[PriceQuote] = None
    completed_stage: Optional[BookingStage] = None

    @property
    def ok(self) -> bool:
        return not self.errors


# ============================================================
# VALIDATION RESULT
# ============================================================

class ValidationResult(BaseModel):
    """
    Result of validation operations.
    """
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    field_errors: dict = Field(default_factory=dict)


# ============================================================
# SUGGESTIONS
# ============================================================

class SuggestionRequest(CamelModel):
    """Catalog addition proposed by a user (destination, experience or hotel)."""
    type: SuggestionType
    intent: Optional[TripIntent] = None
    name: str = ""
    description: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
