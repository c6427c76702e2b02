# app/booking/state_machine.py
"""
Stage Machine for the Holiday Booking Wizard
Linear flow: intent → destination → dates → attractions → accommodation → bio → summary.

`apply_action` is a pure reducer: (state, action) -> TransitionResult.
Persistence, notifications and payment are side effects applied by the
caller after reduction.
"""

import logging
from datetime import date
from typing import Optional, Dict, List

from pydantic import ValidationError

from app.booking import pricing
from app.booking.catalog import Catalog
from app.booking.models import (
    STAGE_ORDER,
    AdvanceAction,
    AttractionType,
    BookingAction,
    BookingStage,
    BookingState,
    DateRange,
    RetreatAction,
    SelectDestinationAction,
    SelectHotelAction,
    SelectIntentAction,
    SetDatesAction,
    SetTravellerInfoAction,
    ToggleAttractionAction,
    TransitionResult,
    TripIntent,
)
from app.booking.selection import remaining_required, select_hotel, toggle_attraction
from app.booking.validators import StateValidator

logger = logging.getLogger(__name__)


class StageMachineError(Exception):
    """Raised when an invalid stage transition is forced"""
    pass


INTENT_HEADLINES: Dict[TripIntent, str] = {
    TripIntent.BIRTHDAY: "Choose Where to Celebrate Your Special Day",
    TripIntent.ANNIVERSARY: "Pick the Perfect Setting for Your Love Story",
    TripIntent.WORKATION: "Find Your Ideal Work-Life Balance Destination",
    TripIntent.FAMILY: "Select Your Family's Next Adventure Spot",
    TripIntent.FRIENDS: "Choose Where to Create Memories with Friends",
    TripIntent.SOLO: "Pick Your Perfect Solo Adventure Destination",
    TripIntent.HONEYMOON: "Select Your Romantic Getaway Paradise",
    TripIntent.OTHER: "Choose Your Dream Destination",
}


class StageMachine:
    """
    Manages booking stage transitions.
    Forward moves are gated by the exit guard of the current stage;
    backward moves are always allowed and never touch selections.
    """

    def __init__(self, validator: Optional[StateValidator] = None):
        self.validator = validator or StateValidator()

        # Each stage may step one forward or one back
        self.transitions: Dict[BookingStage, List[BookingStage]] = {}
        for index, stage in enumerate(STAGE_ORDER):
            neighbours = []
            if index + 1 < len(STAGE_ORDER):
                neighbours.append(STAGE_ORDER[index + 1])
            if index > 0:
                neighbours.append(STAGE_ORDER[index - 1])
            self.transitions[stage] = neighbours

        logger.debug("✓ StageMachine initialized")

    # ============================================================
    # NAVIGATION HELPERS
    # ============================================================

    @staticmethod
    def next_stage(stage: BookingStage) -> Optional[BookingStage]:
        index = STAGE_ORDER.index(stage)
        return STAGE_ORDER[index + 1] if index + 1 < len(STAGE_ORDER) else None

    @staticmethod
    def previous_stage(stage: BookingStage) -> Optional[BookingStage]:
        index = STAGE_ORDER.index(stage)
        return STAGE_ORDER[index - 1] if index > 0 else None

    def can_transition(self, from_stage: BookingStage, to_stage: BookingStage) -> bool:
        """
        Check if a transition is structurally allowed (adjacent stages only).
        """
        is_valid = to_stage in self.transitions.get(from_stage, [])

        if not is_valid:
            logger.warning(f"Invalid transition: {from_stage.value} → {to_stage.value}")

        return is_valid

    def transition_to(
        self,
        state: BookingState,
        target_stage: BookingStage,
        force: bool = False
    ) -> BookingState:
        """
        Move to a target stage without running exit guards.

        Args:
            state: Current booking state
            target_stage: Desired stage
            force: If True, allow non-adjacent jumps (e.g. restoring a session)

        Returns:
            New state at target_stage

        Raises:
            StageMachineError: If transition is not adjacent and not forced
        """
        if not force and not self.can_transition(state.stage, target_stage):
            raise StageMachineError(
                f"Invalid transition: {state.stage.value} → {target_stage.value}"
            )

        logger.info(f"Stage transition: {state.stage.value} → {target_stage.value}")
        return state.model_copy(update={"stage": target_stage})

    # ============================================================
    # REDUCER
    # ============================================================

    def apply_action(
        self,
        state: BookingState,
        action: BookingAction,
        catalog: Catalog,
        today: Optional[date] = None
    ) -> TransitionResult:
        """
        Reduce one user action against the current state.

        Never raises for user-correctable problems: the unchanged state is
        returned together with validation errors.

        Args:
            state: Current booking state
            action: Action to apply
            catalog: Reference catalog
            today: Reference day for date policy checks

        Returns:
            TransitionResult (new state, errors, quote when entering summary)
        """
        logger.debug(f"Applying {action.type} at stage={state.stage.value} ({state.booking_id})")

        if isinstance(action, SelectIntentAction):
            return TransitionResult(state=state.model_copy(update={"trip_intent": action.intent}))

        if isinstance(action, SelectDestinationAction):
            if catalog.get_destination(action.destination_id) is None:
                return self._reject(state, f"Unknown destination '{action.destination_id}'")
            return TransitionResult(
                state=state.model_copy(update={"selected_destination": action.destination_id})
            )

        if isinstance(action, SetDatesAction):
            return self._set_dates(state, action)

        if isinstance(action, ToggleAttractionAction):
            return self._toggle_attraction(state, action, catalog)

        if isinstance(action, SelectHotelAction):
            return self._select_hotel(state, action, catalog)

        if isinstance(action, SetTravellerInfoAction):
            return TransitionResult(
                state=state.model_copy(update={"traveller_info": action.traveller_info})
            )

        if isinstance(action, AdvanceAction):
            return self.advance(state, catalog, today=today)

        if isinstance(action, RetreatAction):
            return self.retreat(state)

        # Unreachable with the discriminated union, kept for safety
        logger.warning(f"No reducer for action {action!r}, state unchanged")
        return self._reject(state, "Unsupported action")

    def advance(
        self,
        state: BookingState,
        catalog: Catalog,
        today: Optional[date] = None
    ) -> TransitionResult:
        """
        Move one stage forward if the current stage's exit guard holds.
        """
        current = state.stage
        validation = self.validator.validate_for_stage(current, state, catalog, today=today)
        if not validation.is_valid:
            return TransitionResult(state=state, errors=validation.errors)

        target = self.next_stage(current)
        new_state = self.transition_to(state, target)

        if target == BookingStage.ATTRACTIONS:
            new_state = self._scope_to_destination(new_state)

        quote = None
        if target == BookingStage.SUMMARY:
            quote = pricing.quote(new_state, catalog)

        return TransitionResult(state=new_state, quote=quote, completed_stage=current)

    def retreat(self, state: BookingState) -> TransitionResult:
        """
        Move one stage back. Always allowed; selections are kept so the
        user can resume where they left off.
        """
        target = self.previous_stage(state.stage)
        if target is None:
            return TransitionResult(state=state)
        return TransitionResult(state=self.transition_to(state, target))

    # ============================================================
    # MUTATIONS
    # ============================================================

    def _set_dates(self, state: BookingState, action: SetDatesAction) -> TransitionResult:
        if action.start is None and action.end is None:
            return TransitionResult(state=state.model_copy(update={"date_range": None}))

        if action.start is None or action.end is None:
            return self._reject(state, "Please select both a start and an end date")

        try:
            date_range = DateRange(start=action.start, end=action.end)
        except ValidationError:
            return self._reject(state, "Trip end date must be after the start date")

        return TransitionResult(state=state.model_copy(update={"date_range": date_range}))

    def _toggle_attraction(
        self,
        state: BookingState,
        action: ToggleAttractionAction,
        catalog: Catalog
    ) -> TransitionResult:
        candidate = catalog.get_attraction(action.attraction_id)
        if candidate is None:
            # Allow removing something that has since left the catalog
            candidate = next(
                (a for a in state.selected_attractions if a.id == action.attraction_id),
                None
            )
        if candidate is None:
            return self._reject(state, f"Unknown experience '{action.attraction_id}'")

        if candidate.destination_id != state.selected_destination and not any(
            a.id == candidate.id for a in state.selected_attractions
        ):
            return self._reject(state, f"{candidate.name} is not available at this destination")

        selection, error = toggle_attraction(state.selected_attractions, candidate)
        if error is not None:
            return self._reject(state, error.message)

        updates = {"selected_attractions": selection}
        if selection and selection[0].type == AttractionType.FULL_PACKAGE:
            # Bundled accommodation replaces any independent hotel choice
            updates["selected_hotel"] = None

        return TransitionResult(state=state.model_copy(update=updates))

    def _select_hotel(
        self,
        state: BookingState,
        action: SelectHotelAction,
        catalog: Catalog
    ) -> TransitionResult:
        if state.package_type == AttractionType.FULL_PACKAGE:
            return self._reject(state, "Your full package already includes accommodation")

        hotel = catalog.get_hotel(action.hotel_id)
        if hotel is None:
            return self._reject(state, f"Unknown hotel '{action.hotel_id}'")

        if hotel.destination_id != state.selected_destination:
            return self._reject(state, f"{hotel.name} is not at your chosen destination")

        return TransitionResult(state=state.model_copy(update={"selected_hotel": select_hotel(hotel)}))

    @staticmethod
    def _scope_to_destination(state: BookingState) -> BookingState:
        """Drop selections made for a different destination."""
        destination = state.selected_destination
        attractions = [a for a in state.selected_attractions if a.destination_id == destination]
        hotel = state.selected_hotel
        if hotel is not None and hotel.destination_id != destination:
            hotel = None

        if len(attractions) != len(state.selected_attractions) or hotel is not state.selected_hotel:
            logger.info(f"Destination changed to {destination}, clearing stale selections ({state.booking_id})")
            return state.model_copy(update={"selected_attractions": attractions, "selected_hotel": hotel})

        return state

    @staticmethod
    def _reject(state: BookingState, message: str) -> TransitionResult:
        return TransitionResult(state=state, errors=[message])

    # ============================================================
    # STAGE COPY
    # ============================================================

    def get_stage_message(self, state: BookingState, destination_name: Optional[str] = None) -> str:
        """
        Headline shown for the current stage.

        Args:
            state: Current booking state
            destination_name: Display name of the chosen destination

        Returns:
            Message to display to user
        """
        place = destination_name or "your destination"

        if state.stage == BookingStage.DESTINATION:
            if state.trip_intent:
                return INTENT_HEADLINES[state.trip_intent]
            return "Choose Your Dream Destination"

        if state.stage == BookingStage.ATTRACTIONS:
            missing = remaining_required(state.selected_attractions)
            if state.selected_attractions and missing:
                plural = "" if missing == 1 else "s"
                return f"Select {missing} More Experience{plural}"
            return "Design Your Perfect Experience"

        if state.stage == BookingStage.ACCOMMODATION and state.package_type == AttractionType.FULL_PACKAGE:
            return f"Welcome to {state.selected_attractions[0].name}"

        messages = {
            BookingStage.INTENT: "Design Your Perfect Getaway",
            BookingStage.DATES: f"When would you like to explore {place}?",
            BookingStage.ACCOMMODATION: "Choose Your Perfect Stay",
            BookingStage.BIO: "Tell us about yourself",
            BookingStage.SUMMARY: "Your Dream Vacation Awaits",
        }

        return messages.get(state.stage, "Design Your Perfect Getaway")


__all__ = [
    'StageMachine',
    'StageMachineError',
    'INTENT_HEADLINES',
]
