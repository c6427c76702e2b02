"""
Selection Engine Tests
======================
Attraction toggling, package-type mixing and selection validity.
"""

import pytest

from app.booking.models import AttractionType
from app.booking.selection import (
    MixedPackageTypeError,
    is_selectable,
    is_valid_selection,
    remaining_required,
    selected_type,
    toggle_attraction,
)


@pytest.fixture
def swing(catalog):
    return catalog.get_attraction("bali-swing")


@pytest.fixture
def temple(catalog):
    return catalog.get_attraction("bali-temple")


@pytest.fixture
def villa(catalog):
    return catalog.get_attraction("bali-villa")


def test_toggle_adds_regular_in_order(swing, temple):
    selection, error = toggle_attraction([], swing)
    selection, error = toggle_attraction(selection, temple)

    assert error is None
    assert [a.id for a in selection] == ["bali-swing", "bali-temple"]


def test_toggle_twice_restores_selection(swing, temple):
    start = [swing]

    once, _ = toggle_attraction(start, temple)
    twice, error = toggle_attraction(once, temple)

    assert error is None
    assert twice == start


def test_toggle_removes_present_attraction_without_error(swing, villa):
    selection, error = toggle_attraction([villa], villa)

    assert error is None
    assert selection == []


def test_full_package_after_regular_is_rejected(swing, villa):
    selection, error = toggle_attraction([swing], villa)

    assert isinstance(error, MixedPackageTypeError)
    assert error.message == "You cannot mix regular attractions with full package attractions"
    assert selection == [swing]


def test_regular_after_full_package_is_rejected(swing, villa):
    selection, error = toggle_attraction([villa], swing)

    assert isinstance(error, MixedPackageTypeError)
    assert error.message == "You can only select one full package attraction"
    assert selection == [villa]


def test_full_package_replaces_previous_full_package(catalog, villa):
    other = catalog.get_attraction("bali-broken")

    selection, error = toggle_attraction([villa], other)

    assert error is None
    assert [a.id for a in selection] == ["bali-broken"]


def test_is_valid_selection(swing, temple, villa):
    assert not is_valid_selection([])
    assert not is_valid_selection([swing])
    assert is_valid_selection([swing, temple])
    assert is_valid_selection([villa])
    assert not is_valid_selection([villa, villa])


def test_remaining_required(swing, temple, villa):
    assert remaining_required([]) == 2
    assert remaining_required([swing]) == 1
    assert remaining_required([swing, temple]) == 0
    assert remaining_required([villa]) == 0


def test_selected_type_and_selectable(swing, villa):
    assert selected_type([]) is None
    assert selected_type([villa]) == AttractionType.FULL_PACKAGE

    assert is_selectable([], villa)
    assert is_selectable([swing], swing)
    assert not is_selectable([swing], villa)
