"""
Booking Service Tests
=====================
Orchestration: persistence after actions, notifications and payment flow.
"""

import asyncio
from datetime import timedelta

import pytest

from app.booking.models import (
    AdvanceAction,
    BookingStage,
    PaymentOutcome,
    SelectDestinationAction,
    SelectIntentAction,
    SetDatesAction,
    SetTravellerInfoAction,
    SuggestionRequest,
    SuggestionType,
    ToggleAttractionAction,
    SelectHotelAction,
    TripIntent,
)
from schemas.payment import CallbackCustomer, PaymentCallback
from services.exceptions import PaymentError
from services import booking_service as booking_service_module


def _callback(tx_ref: str, status: str = "successful") -> PaymentCallback:
    return PaymentCallback(
        status=status,
        amount=225000,
        currency="NGN",
        customer=CallbackCustomer(email="ada@example.com"),
        tx_ref=tx_ref,
    )


@pytest.mark.asyncio
async def test_full_wizard_walkthrough(service, emitter, traveller, today):
    sid = "walkthrough"
    start = today + timedelta(days=30)

    steps = [
        SelectIntentAction(intent=TripIntent.HONEYMOON),
        AdvanceAction(),
        SelectDestinationAction(destination_id="bali"),
        AdvanceAction(),
        SetDatesAction(start=start, end=start + timedelta(days=3)),
        AdvanceAction(),
        ToggleAttractionAction(attraction_id="bali-swing"),
        ToggleAttractionAction(attraction_id="bali-temple"),
        AdvanceAction(),
        SelectHotelAction(hotel_id="bali-inn"),
        AdvanceAction(),
        SetTravellerInfoAction(traveller_info=traveller),
    ]
    for action in steps:
        response = await service.apply_action(sid, action, today=today)
        assert response.errors == [], action

    assert emitter.events == []

    response = await service.apply_action(sid, AdvanceAction(), today=today)

    assert response.state.stage == BookingStage.SUMMARY
    assert response.quote.total == response.quote.subtotal + response.quote.curation_fee
    assert response.notified is True
    assert emitter.stages() == ["bio_completed"]
    assert emitter.events[0].booking_id == response.state.booking_id

    stored = await service.get_booking(sid)
    assert stored.state == response.state
    assert stored.message == "Your Dream Vacation Awaits"


@pytest.mark.asyncio
async def test_validation_errors_are_returned_and_not_persisted(service, store):
    response = await service.apply_action("s1", AdvanceAction())

    assert response.errors == ["Please choose what kind of trip you're planning"]
    assert (await store.load("s1")).stage == BookingStage.INTENT


@pytest.mark.asyncio
async def test_bio_notification_failure_does_not_block(service, store, emitter, make_state):
    emitter.delivered = False
    await store.save("s1", make_state(stage=BookingStage.BIO))

    response = await service.apply_action("s1", AdvanceAction())

    assert response.errors == []
    assert response.notified is False
    assert response.state.stage == BookingStage.SUMMARY


@pytest.mark.asyncio
async def test_checkout_requires_summary(service, store, make_state):
    await store.save("s1", make_state(stage=BookingStage.BIO))

    with pytest.raises(PaymentError):
        await service.checkout("s1")


@pytest.mark.asyncio
async def test_checkout_rejects_selection_changed_at_summary(service, store, emitter, make_state):
    await store.save("s1", make_state())

    response = await service.apply_action("s1", ToggleAttractionAction(attraction_id="bali-temple"))
    assert response.state.stage == BookingStage.SUMMARY
    assert len(response.state.selected_attractions) == 1

    with pytest.raises(PaymentError, match="Select 1 more experience"):
        await service.checkout("s1")
    assert await store.load_pending_payment("s1") is None
    assert emitter.events == []


@pytest.mark.asyncio
async def test_checkout_rejects_traveller_info_changed_at_summary(service, store, make_state, traveller):
    await store.save("s1", make_state())
    await service.apply_action(
        "s1", SetTravellerInfoAction(traveller_info=traveller.model_copy(update={"email": "not-an-email"}))
    )

    with pytest.raises(PaymentError, match="valid email"):
        await service.checkout("s1")


@pytest.mark.asyncio
async def test_checkout_rejects_destination_changed_at_summary(service, store, make_state):
    await store.save("s1", make_state())
    await service.apply_action("s1", SelectDestinationAction(destination_id="zanzibar"))

    with pytest.raises(PaymentError, match="Not available at this destination"):
        await service.checkout("s1")


@pytest.mark.asyncio
async def test_checkout_builds_request_and_fires_payment_initiated(service, store, emitter, make_state):
    await store.save("s1", make_state())

    checkout = await service.checkout("s1")
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert checkout.method == "provider"
    assert checkout.payment_request.amount == checkout.amount
    assert checkout.payment_request.meta["bookingId"] == "FP-TEST-000001"
    assert checkout.payment_request.meta["trip"]["destination"]["name"] == "Bali"
    assert await store.load_pending_payment("s1") == checkout.payment_request.tx_ref
    assert emitter.stages() == ["payment_initiated"]
    assert emitter.events[0].transaction.status == "pending"


@pytest.mark.asyncio
async def test_payment_initiated_task_outlives_service_instance(service, store, emitter, make_state):
    await store.save("s1", make_state())

    await service.checkout("s1")
    loop = asyncio.get_running_loop()
    pending = {t for t in booking_service_module._background_tasks if t.get_loop() is loop}
    del service

    assert len(pending) == 1
    await asyncio.gather(*pending)
    await asyncio.sleep(0)

    assert emitter.stages() == ["payment_initiated"]
    assert not pending & booking_service_module._background_tasks


@pytest.mark.asyncio
async def test_large_total_routes_to_bank_transfer(service, store, emitter, make_state):
    # 80000 * 5 nights * 1.5 for a couple is already above the provider limit
    await store.save("s1", make_state(attractions=("bali-villa",), hotel=None, nights=5))

    checkout = await service.checkout("s1")

    assert checkout.method == "bank_transfer"
    assert checkout.payment_request is None
    assert checkout.bank_transfer.narration == "FP-TEST-000001"
    assert await store.load_pending_payment("s1") is None
    assert emitter.events == []

    response = await service.confirm_bank_transfer("s1")
    assert response.state.booking_id != "FP-TEST-000001"
    assert response.state.stage == BookingStage.INTENT


@pytest.mark.asyncio
async def test_successful_payment_clears_session(service, store, emitter, make_state):
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)

    result = await service.handle_payment_callback("s1", _callback(checkout.payment_request.tx_ref))

    assert result.outcome == PaymentOutcome.SUCCEEDED
    assert result.redirect == "/payment/success"
    assert result.notified is True
    assert emitter.stages()[-1] == "payment_completed"

    fresh = await store.load("s1")
    assert fresh.booking_id != "FP-TEST-000001"
    assert fresh.stage == BookingStage.INTENT

    # Closing the dialog after the callback keeps the recorded outcome
    dismissed = await service.handle_payment_dismissed("s1")
    assert dismissed.outcome == PaymentOutcome.SUCCEEDED


@pytest.mark.asyncio
async def test_failed_payment_keeps_session(service, store, emitter, make_state):
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)

    result = await service.handle_payment_callback(
        "s1", _callback(checkout.payment_request.tx_ref, status="failed")
    )

    assert result.outcome == PaymentOutcome.FAILED
    assert result.redirect == "/payment/failed"
    assert emitter.stages()[-1] == "payment_failed"
    assert emitter.events[-1].transaction.status == "failed"
    assert (await store.load("s1")).booking_id == "FP-TEST-000001"


@pytest.mark.asyncio
async def test_payment_notification_failure_keeps_outcome(service, store, emitter, make_state):
    emitter.delivered = False
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)

    result = await service.handle_payment_callback("s1", _callback(checkout.payment_request.tx_ref))

    assert result.outcome == PaymentOutcome.SUCCEEDED
    assert result.notified is False


@pytest.mark.asyncio
async def test_callback_without_checkout_is_not_settled(service, store, emitter):
    state = await store.load("s1")

    result = await service.handle_payment_callback("s1", _callback("forged"))

    assert result.outcome == PaymentOutcome.FAILED
    assert result.redirect == "/payment/failed"
    assert result.notified is False
    assert emitter.events == []
    assert (await store.load("s1")).booking_id == state.booking_id
    assert (await service.handle_payment_dismissed("s1")).outcome == PaymentOutcome.CANCELLED


@pytest.mark.asyncio
async def test_replayed_callback_is_not_settled_twice(service, store, emitter, make_state):
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)
    callback = _callback(checkout.payment_request.tx_ref)

    first = await service.handle_payment_callback("s1", callback)
    replay = await service.handle_payment_callback("s1", callback)

    assert first.outcome == PaymentOutcome.SUCCEEDED
    assert replay.outcome == PaymentOutcome.FAILED
    assert emitter.stages().count("payment_completed") == 1
    assert await store.load_pending_payment("s1") is None


@pytest.mark.asyncio
async def test_failed_payment_settles_its_reference(service, store, make_state):
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)

    await service.handle_payment_callback("s1", _callback(checkout.payment_request.tx_ref, status="failed"))

    assert await store.load_pending_payment("s1") is None


@pytest.mark.asyncio
async def test_mismatched_callback_keeps_pending_checkout(service, store, emitter, make_state):
    await store.save("s1", make_state())
    checkout = await service.checkout("s1")
    await asyncio.sleep(0)

    result = await service.handle_payment_callback("s1", _callback("999"))

    assert result.outcome == PaymentOutcome.FAILED
    assert emitter.stages()[-1] == "payment_failed"
    assert await store.load_pending_payment("s1") == checkout.payment_request.tx_ref


@pytest.mark.asyncio
async def test_dismissed_without_callback_is_cancelled(service, store, emitter, make_state):
    await store.save("s1", make_state())

    result = await service.handle_payment_dismissed("s1")

    assert result.outcome == PaymentOutcome.CANCELLED
    assert emitter.events == []
    assert (await store.load("s1")).stage == BookingStage.SUMMARY


@pytest.mark.asyncio
async def test_reset_issues_new_booking_id(service, store, make_state):
    await store.save("s1", make_state())

    response = await service.reset("s1")

    assert response.state.booking_id != "FP-TEST-000001"
    assert response.state.stage == BookingStage.INTENT


@pytest.mark.asyncio
async def test_suggestion_flow(service, emitter):
    invalid = await service.submit_suggestion(
        SuggestionRequest(type=SuggestionType.HOTEL, name="Beach Hut")
    )
    assert not invalid.success
    assert emitter.events == []

    valid = await service.submit_suggestion(SuggestionRequest(
        type=SuggestionType.HOTEL,
        name="Beach Hut",
        first_name="Ada",
        last_name="Obi",
        email="ada@example.com",
    ))
    assert valid.success
    assert emitter.stages() == ["suggestion_submitted"]
    assert emitter.events[0].booking_id is None
