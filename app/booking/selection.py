# app/booking/selection.py
"""
Selection rules for experiences (attractions) and accommodation.

Regular attractions accumulate; a full package is singular and exclusive.
The two kinds never mix in one selection.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from app.booking.models import Attraction, AttractionType, Hotel

logger = logging.getLogger(__name__)

MIN_REGULAR_ATTRACTIONS = 2


class MixedPackageTypeError(Exception):
    """Raised (returned) when a candidate attraction's type clashes with the selection"""
    def __init__(self, selected_type: AttractionType, candidate_type: AttractionType):
        self.selected_type = selected_type
        self.candidate_type = candidate_type
        if selected_type == AttractionType.REGULAR:
            message = "You cannot mix regular attractions with full package attractions"
        else:
            message = "You can only select one full package attraction"
        self.message = message
        super().__init__(message)


def selected_type(selection: Sequence[Attraction]) -> Optional[AttractionType]:
    """Package type of a selection: the type of its first element."""
    if not selection:
        return None
    return AttractionType(selection[0].type)


def toggle_attraction(
    current: Sequence[Attraction],
    candidate: Attraction
) -> Tuple[List[Attraction], Optional[MixedPackageTypeError]]:
    """
    Add or remove a candidate attraction.

    Args:
        current: Current ordered selection
        candidate: Attraction the user clicked

    Returns:
        (new_selection, error). On error the selection is returned unchanged.
    """
    if any(a.id == candidate.id for a in current):
        return [a for a in current if a.id != candidate.id], None

    current_type = selected_type(current)
    candidate_type = AttractionType(candidate.type)

    if current_type is not None and candidate_type != current_type:
        error = MixedPackageTypeError(current_type, candidate_type)
        logger.debug(f"Rejected attraction {candidate.id}: {error.message}")
        return list(current), error

    if candidate_type == AttractionType.FULL_PACKAGE:
        return [candidate], None

    return [*current, candidate], None


def is_valid_selection(selection: Sequence[Attraction]) -> bool:
    """
    True iff the selection can move on to accommodation:
    exactly one full package, or at least two regular attractions.
    """
    kind = selected_type(selection)
    if kind is None:
        return False
    if kind == AttractionType.FULL_PACKAGE:
        return len(selection) == 1
    return len(selection) >= MIN_REGULAR_ATTRACTIONS


def remaining_required(selection: Sequence[Attraction]) -> int:
    """How many more regular experiences are needed before continuing."""
    if selected_type(selection) == AttractionType.FULL_PACKAGE:
        return 0
    return max(0, MIN_REGULAR_ATTRACTIONS - len(selection))


def is_selectable(selection: Sequence[Attraction], candidate: Attraction) -> bool:
    """Whether a candidate card is enabled given the current selection."""
    kind = selected_type(selection)
    return kind is None or AttractionType(candidate.type) == kind


def select_hotel(hotel: Hotel) -> Hotel:
    # Destination match is checked by the caller.
    return hotel


__all__ = [
    'MixedPackageTypeError',
    'MIN_REGULAR_ATTRACTIONS',
    'selected_type',
    'toggle_attraction',
    'is_valid_selection',
    'remaining_required',
    'is_selectable',
    'select_hotel',
]
