# app/booking/validators.py
"""
Input Validation for the Booking Wizard
Field checks plus the exit guard of every stage.
Validation errors are user-correctable: returned, never raised.
"""

import re
import logging
from typing import Tuple, Optional, Dict
from datetime import date, timedelta

from app.booking.catalog import Catalog
from app.booking.models import (
    AttractionType,
    BookingStage,
    BookingState,
    DateRange,
    SuggestionRequest,
    TravellerInfo,
    ValidationResult,
)
from app.booking.selection import is_valid_selection, remaining_required
from app.core.config import settings

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")

# Dates are excluded: the booking window is only enforced when leaving DATES
CHECKOUT_STAGES = (
    BookingStage.DESTINATION,
    BookingStage.ATTRACTIONS,
    BookingStage.ACCOMMODATION,
    BookingStage.BIO,
)


class FieldValidator:
    """Validates individual fields"""

    @staticmethod
    def validate_required(value: Optional[str], label: str) -> Tuple[bool, Optional[str]]:
        if not value or not value.strip():
            return False, f"{label} is required"
        return True, None

    @staticmethod
    def validate_email(email: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate email with a simple local@domain.tld pattern.

        Returns:
            (is_valid, error_message)
        """
        if not email or not email.strip():
            return False, "Email is required"

        if not EMAIL_PATTERN.match(email):
            return False, "Please enter a valid email address"

        return True, None

    @staticmethod
    def validate_phone(phone: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate a WhatsApp number: 10-15 digits, optional leading '+'.
        Whitespace is ignored.
        """
        if not phone or not phone.strip():
            return False, "WhatsApp number is required"

        if not PHONE_PATTERN.match(re.sub(r"\s", "", phone)):
            return False, "Please enter a valid phone number"

        return True, None

    @staticmethod
    def validate_date_range(
        date_range: Optional[DateRange],
        today: Optional[date] = None,
        min_stay_days: Optional[int] = None,
        min_advance_days: Optional[int] = None
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate the booking window.

        Args:
            date_range: Selected trip dates
            today: Reference day (defaults to date.today())
            min_stay_days: Minimum nights (default settings.MIN_STAY_DAYS)
            min_advance_days: Minimum lead time (default settings.MIN_ADVANCE_BOOKING_DAYS)

        Returns:
            (is_valid, error_message)
        """
        if date_range is None:
            return False, "Please select your travel dates"

        today = today or date.today()
        min_stay_days = settings.MIN_STAY_DAYS if min_stay_days is None else min_stay_days
        min_advance_days = settings.MIN_ADVANCE_BOOKING_DAYS if min_advance_days is None else min_advance_days

        earliest_start = today + timedelta(days=min_advance_days)
        if date_range.start < earliest_start:
            return False, f"Trips must start at least {min_advance_days} days from today ({earliest_start.isoformat()} or later)"

        if date_range.nights < min_stay_days:
            return False, f"Minimum stay is {min_stay_days} nights"

        return True, None


class StateValidator:
    """Exit guards for each booking stage"""

    def __init__(self):
        self.field_validator = FieldValidator()

    def validate_traveller_info(self, info: Optional[TravellerInfo]) -> ValidationResult:
        """
        Validate bio-stage details. Field errors are keyed by the
        camelCase field name the client renders them against.
        """
        if info is None:
            return ValidationResult(
                is_valid=False,
                errors=["Please provide your details"],
            )

        field_errors: Dict[str, str] = {}

        for key, value, label in (
            ("firstName", info.first_name, "First name"),
            ("lastName", info.last_name, "Last name"),
        ):
            is_valid, error = self.field_validator.validate_required(value, label)
            if not is_valid:
                field_errors[key] = error

        is_valid, error = self.field_validator.validate_email(info.email)
        if not is_valid:
            field_errors["email"] = error

        is_valid, error = self.field_validator.validate_phone(info.whatsapp)
        if not is_valid:
            field_errors["whatsapp"] = error

        if info.needs_transport and not info.origin_city:
            field_errors["originCity"] = "Please select your origin city"

        return ValidationResult(
            is_valid=not field_errors,
            errors=list(field_errors.values()),
            field_errors=field_errors,
        )

    def validate_suggestion(self, suggestion: SuggestionRequest) -> ValidationResult:
        """Contact details are mandatory so the team can follow up."""
        field_errors: Dict[str, str] = {}

        if not suggestion.name.strip():
            field_errors["name"] = f"Please enter the {suggestion.type.value} you'd like to suggest"
        if not suggestion.first_name.strip():
            field_errors["firstName"] = "Please enter your first name"
        if not suggestion.last_name.strip():
            field_errors["lastName"] = "Please enter your last name"
        if not suggestion.email.strip():
            field_errors["email"] = "Please enter your email address"
        elif not EMAIL_PATTERN.match(suggestion.email):
            field_errors["email"] = "Please enter a valid email address"

        return ValidationResult(
            is_valid=not field_errors,
            errors=list(field_errors.values()),
            field_errors=field_errors,
        )

    def validate_for_stage(
        self,
        stage: BookingStage,
        state: BookingState,
        catalog: Catalog,
        today: Optional[date] = None
    ) -> ValidationResult:
        """
        Check the exit guard of `stage` against the current state.

        Args:
            stage: Stage being left
            state: Current booking state
            catalog: Reference catalog
            today: Reference day for date policy checks

        Returns:
            ValidationResult with is_valid flag and error list
        """
        errors = []

        if stage == BookingStage.INTENT:
            if state.trip_intent is None:
                errors.append("Please choose what kind of trip you're planning")

        elif stage == BookingStage.DESTINATION:
            if not state.selected_destination:
                errors.append("Please choose a destination")
            elif catalog.get_destination(state.selected_destination) is None:
                errors.append(f"Unknown destination '{state.selected_destination}'")

        elif stage == BookingStage.DATES:
            is_valid, error = self.field_validator.validate_date_range(state.date_range, today=today)
            if not is_valid:
                errors.append(error)

        elif stage == BookingStage.ATTRACTIONS:
            if not is_valid_selection(state.selected_attractions):
                missing = remaining_required(state.selected_attractions)
                if missing:
                    plural = "" if missing == 1 else "s"
                    errors.append(f"Select {missing} more experience{plural}")
                else:
                    errors.append("Please select your experiences")
            foreign = [
                a.name for a in state.selected_attractions
                if a.destination_id != state.selected_destination
            ]
            if foreign:
                errors.append(f"Not available at this destination: {', '.join(foreign)}")

        elif stage == BookingStage.ACCOMMODATION:
            if state.package_type != AttractionType.FULL_PACKAGE:
                hotel = state.selected_hotel
                if hotel is None:
                    errors.append("Please choose where you'll stay")
                elif hotel.destination_id != state.selected_destination:
                    errors.append(f"{hotel.name} is not at your chosen destination")

        elif stage == BookingStage.BIO:
            result = self.validate_traveller_info(state.traveller_info)
            errors.extend(result.errors)

        elif stage == BookingStage.SUMMARY:
            errors.append("Your booking is ready. Continue to checkout to pay")

        is_valid = len(errors) == 0

        if not is_valid:
            logger.info(f"Validation failed for {stage.value}: {errors}")

        return ValidationResult(is_valid=is_valid, errors=errors)

    def validate_for_checkout(self, state: BookingState, catalog: Catalog) -> ValidationResult:
        """
        Re-check the selection and traveller guards before payment.
        Actions applied at summary bypass the exit guards of earlier stages.
        """
        errors = []
        for stage in CHECKOUT_STAGES:
            errors.extend(self.validate_for_stage(stage, state, catalog).errors)
        return ValidationResult(is_valid=not errors, errors=errors)


__all__ = [
    'CHECKOUT_STAGES',
    'EMAIL_PATTERN',
    'PHONE_PATTERN',
    'FieldValidator',
    'StateValidator',
]
