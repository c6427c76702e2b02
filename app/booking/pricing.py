# app/booking/pricing.py
"""
Pricing Engine
==============
Pure price computation for a booking state. No I/O, no randomness:
the same state + catalog always yields the same quote.

Full package:
    accommodation = price/night * nights        (x1.5 for a couple)
    activities    = sum(included activity prices) x party multiplier
Regular:
    attractions   = sum(attraction prices) x party multiplier
    accommodation = hotel price/night * nights
Both:
    total = subtotal + curation fee
"""

import logging
from datetime import date
from typing import List, Optional

from app.booking.catalog import Catalog
from app.booking.models import (
    Attraction,
    AttractionType,
    BookingState,
    FullPackageAttraction,
    Hotel,
    PartySize,
    PriceBreakdown,
    PriceQuote,
)
from app.core.config import settings

logger = logging.getLogger(__name__)

# Bundled double-occupancy rate for full packages. Regular attractions
# use the plain party multiplier instead.
COUPLE_ACCOMMODATION_FACTOR = 1.5


def whole_days_between(start: date, end: date) -> int:
    """Calendar-day difference, start day not inclusive (3 nights == 3)."""
    return (end - start).days


def party_multiplier(party_size: PartySize) -> int:
    return 2 if party_size == PartySize.COUPLE else 1


def _zero_quote(curation_fee: float, error: str, **fields) -> PriceQuote:
    return PriceQuote(
        curation_fee=curation_fee,
        breakdown=PriceBreakdown(fees=curation_fee),
        valid=False,
        error=error,
        **fields
    )


def _resolve_attractions(state: BookingState, catalog: Optional[Catalog]) -> List[Attraction]:
    """Prefer the live catalog record; fall back to the stored snapshot."""
    if catalog is None:
        return list(state.selected_attractions)
    return [catalog.get_attraction(a.id) or a for a in state.selected_attractions]


def _resolve_hotel(state: BookingState, catalog: Optional[Catalog]) -> Optional[Hotel]:
    if state.selected_hotel is None or catalog is None:
        return state.selected_hotel
    return catalog.get_hotel(state.selected_hotel.id) or state.selected_hotel


def quote(
    state: BookingState,
    catalog: Optional[Catalog] = None,
    curation_fee: Optional[float] = None
) -> PriceQuote:
    """
    Compute the price quote for a booking state.

    Incomplete or malformed input never raises: a zero quote with
    valid=False and an error message is returned instead.

    Args:
        state: Current booking state
        catalog: Reference catalog used to resolve current prices
        curation_fee: Flat fee override (defaults to settings.CURATION_FEE)

    Returns:
        PriceQuote
    """
    fee = settings.CURATION_FEE if curation_fee is None else curation_fee

    attractions = _resolve_attractions(state, catalog)
    if not attractions:
        return _zero_quote(fee, "No experiences selected")

    if state.date_range is None:
        return _zero_quote(fee, "Travel dates not selected")

    party_size = state.traveller_info.party_size if state.traveller_info else PartySize.SINGLE
    multiplier = party_multiplier(party_size)
    nights = whole_days_between(state.date_range.start, state.date_range.end)
    package_type = AttractionType(attractions[0].type)

    context = {"package_type": package_type, "nights": nights, "party_size": party_size}

    if package_type == AttractionType.FULL_PACKAGE:
        package = attractions[0]
        if not isinstance(package, FullPackageAttraction) or package.accommodation is None:
            logger.error(f"Full package attraction missing accommodation details: {package.id}")
            return _zero_quote(fee, "Full package is missing accommodation details", **context)

        base_accommodation = package.price * nights
        if party_size == PartySize.COUPLE:
            accommodation_total = base_accommodation * COUPLE_ACCOMMODATION_FACTOR
        else:
            accommodation_total = base_accommodation

        activities_total = sum(
            activity.price or 0
            for activity in package.accommodation.activities
            if activity.included
        ) * multiplier

        attractions_component = activities_total
    else:
        hotel = _resolve_hotel(state, catalog)
        if hotel is None:
            return _zero_quote(fee, "Accommodation not selected", **context)

        attractions_component = sum(a.price for a in attractions) * multiplier
        accommodation_total = hotel.price * nights

    subtotal = attractions_component + accommodation_total

    result = PriceQuote(
        subtotal=subtotal,
        curation_fee=fee,
        total=subtotal + fee,
        breakdown=PriceBreakdown(
            attractions=attractions_component,
            accommodation=accommodation_total,
            fees=fee,
        ),
        **context
    )

    logger.debug(
        f"Quote for {state.booking_id}: type={package_type.value}, nights={nights}, "
        f"party={party_size.value}, total={result.total}"
    )
    return result


__all__ = [
    'COUPLE_ACCOMMODATION_FACTOR',
    'whole_days_between',
    'party_multiplier',
    'quote',
]
