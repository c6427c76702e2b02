"""
Booking Module
Holiday package booking wizard: stages, selection rules and pricing.
"""

from app.booking.catalog import Catalog, CatalogError, get_catalog
from app.booking.models import BookingStage, BookingState, PriceQuote
from app.booking.pricing import quote
from app.booking.state_machine import StageMachine, StageMachineError

__all__ = [
    "Catalog",
    "CatalogError",
    "get_catalog",
    "BookingStage",
    "BookingState",
    "PriceQuote",
    "quote",
    "StageMachine",
    "StageMachineError",
]
