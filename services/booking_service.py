# services/booking_service.py
"""
Booking Service - Main Orchestrator
Coordinates the booking wizard: session persistence, stage reduction,
notifications and the payment bridge.

The core (stage machine, selection, pricing) never performs I/O; every
side effect of a user action happens here, after reduction.
"""

import json
import asyncio
import logging
from datetime import date
from typing import Optional, Set

from app.booking import pricing
from app.booking.catalog import Catalog
from app.booking.models import (
    BookingAction,
    BookingStage,
    PaymentOutcome,
    PriceQuote,
    SuggestionRequest,
)
from app.booking.state_machine import StageMachine
from app.booking.validators import StateValidator
from schemas.booking import BookingResponse, SuggestionResponse
from schemas.notifications import NotificationEvent
from schemas.payment import CheckoutResponse, PaymentCallback, PaymentResult
from services.exceptions import PaymentError
from services.notification_service import (
    NotificationEmitter,
    build_bio_completed_event,
    build_customer_payload,
    build_payment_event,
    build_suggestion_event,
    build_transaction,
    build_trip_payload,
)
from services.payment_service import PaymentBridge
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

# Outlives the per-request BookingService instances that schedule the tasks
_background_tasks: Set[asyncio.Task] = set()


def _on_background_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error(
            f"Background notification failed: {task.exception()}",
            exc_info=task.exception()
        )


class BookingService:
    """
    Main service orchestrating the holiday booking wizard.
    One instance serves every session; all per-session data lives in the store.
    """

    def __init__(
        self,
        session_store: SessionStore,
        state_machine: StageMachine,
        catalog: Catalog,
        emitter: NotificationEmitter,
        payment_bridge: PaymentBridge,
        validator: Optional[StateValidator] = None
    ):
        """
        Initialize booking service with all dependencies.

        Args:
            session_store: Per-session state persistence
            state_machine: Stage reducer
            catalog: Read-only reference data
            emitter: Notification sink
            payment_bridge: Payment provider boundary
            validator: Suggestion validation (defaults to the machine's)
        """
        self.session_store = session_store
        self.state_machine = state_machine
        self.catalog = catalog
        self.emitter = emitter
        self.payment_bridge = payment_bridge
        self.validator = validator or state_machine.validator

        logger.info("✓ BookingService initialized")

    # ============================================================
    # PUBLIC API - WIZARD
    # ============================================================

    async def get_booking(self, session_id: str) -> BookingResponse:
        state = await self.session_store.load(session_id)
        return self._respond(state)

    async def apply_action(
        self,
        session_id: str,
        action: BookingAction,
        today: Optional[date] = None
    ) -> BookingResponse:
        """
        Apply one user action and persist the result.

        Args:
            session_id: Browser session identifier
            action: Action to reduce
            today: Reference day for date policy checks

        Returns:
            BookingResponse with new state, errors and quote (on entering summary)
        """
        state = await self.session_store.load(session_id)
        result = self.state_machine.apply_action(state, action, self.catalog, today=today)

        if result.state != state:
            await self.session_store.save(session_id, result.state)

        notified = None
        if result.ok and result.completed_stage == BookingStage.BIO:
            quote = result.quote or pricing.quote(result.state, self.catalog)
            event = build_bio_completed_event(result.state, quote, self.catalog)
            notified = await self._emit(event)

        return self._respond(result.state, errors=result.errors, quote=result.quote, notified=notified)

    async def get_quote(self, session_id: str) -> PriceQuote:
        state = await self.session_store.load(session_id)
        return pricing.quote(state, self.catalog)

    async def reset(self, session_id: str) -> BookingResponse:
        state = await self.session_store.clear(session_id)
        return self._respond(state)

    # ============================================================
    # PUBLIC API - PAYMENT
    # ============================================================

    async def checkout(self, session_id: str) -> CheckoutResponse:
        """
        Start payment for a booking at the summary stage.

        Totals above the provider ceiling get bank-transfer instructions
        instead of a provider request.

        Raises:
            PaymentError: booking not ready, no longer valid, or not payable
            PaymentConfigurationError: provider key missing
        """
        state = await self.session_store.load(session_id)

        if state.stage != BookingStage.SUMMARY or state.traveller_info is None:
            raise PaymentError("Booking is not ready for checkout")

        validation = self.validator.validate_for_checkout(state, self.catalog)
        if not validation.is_valid:
            logger.warning(f"Checkout blocked for {state.booking_id}: {validation.errors}")
            raise PaymentError("; ".join(validation.errors))

        quote = pricing.quote(state, self.catalog)
        if not quote.valid:
            raise PaymentError(quote.error or "Booking has no payable total")

        if self.payment_bridge.requires_bank_transfer(quote):
            logger.info(f"Booking {state.booking_id} total {quote.total} routed to bank transfer")
            return CheckoutResponse(
                booking_id=state.booking_id,
                method="bank_transfer",
                amount=quote.total,
                bank_transfer=self.payment_bridge.build_bank_transfer_instructions(state, quote),
            )

        customer = build_customer_payload(state)
        trip = build_trip_payload(state, self.catalog)
        trip_context = {
            "bookingId": state.booking_id,
            "customer": customer.model_dump(mode="json", by_alias=True, exclude_none=True) if customer else None,
            "trip": trip.model_dump(mode="json", by_alias=True, exclude_none=True) if trip else None,
        }

        request = self.payment_bridge.build_request(quote, state.traveller_info, trip_context)
        await self.session_store.save_pending_payment(session_id, request.tx_ref)
        await self.session_store.pop_payment_result(session_id)

        transaction = build_transaction(
            amount=request.amount,
            currency=request.currency,
            status="pending",
            reference=request.tx_ref,
        )
        self._emit_in_background(
            build_payment_event("payment_initiated", state, transaction, self.catalog)
        )

        return CheckoutResponse(
            booking_id=state.booking_id,
            method="provider",
            amount=quote.total,
            payment_request=request,
        )

    async def handle_payment_callback(self, session_id: str, callback: PaymentCallback) -> PaymentResult:
        """
        Resolve the provider result into a terminal outcome.
        Success clears the session; failure keeps it so the user can retry
        with a new checkout. Each checkout reference settles at most once.
        """
        state = await self.session_store.load(session_id)
        pending_tx_ref = await self.session_store.load_pending_payment(session_id)

        result = self.payment_bridge.interpret_outcome(callback, pending_tx_ref=pending_tx_ref)

        if pending_tx_ref is None:
            # No checkout in progress: nothing is emitted or recorded
            return result

        status = "successful" if result.outcome == PaymentOutcome.SUCCEEDED else "failed"
        transaction = build_transaction(
            amount=callback.amount,
            currency=callback.currency,
            status=status,
            reference=callback.tx_ref,
            transaction_id=callback.transaction_id,
        )
        stage = "payment_completed" if result.outcome == PaymentOutcome.SUCCEEDED else "payment_failed"
        notified = await self._emit(build_payment_event(stage, state, transaction, self.catalog))
        result = result.model_copy(update={"notified": notified})

        await self.session_store.save_payment_result(session_id, result.model_dump_json())
        if callback.tx_ref == pending_tx_ref:
            await self.session_store.clear_pending_payment(session_id)

        if result.outcome == PaymentOutcome.SUCCEEDED:
            logger.info(f"✅ Payment completed for booking {state.booking_id}")
            await self.session_store.clear(session_id)
        else:
            logger.warning(f"❌ Payment failed for booking {state.booking_id}: {result.reason}")

        return result

    async def handle_payment_dismissed(self, session_id: str) -> PaymentResult:
        """Payment dialog closed: the recorded outcome wins, else cancelled."""
        recorded = None
        data = await self.session_store.pop_payment_result(session_id)
        if data:
            try:
                recorded = PaymentResult.model_validate(json.loads(data))
            except ValueError as e:
                logger.warning(f"Ignoring unreadable payment result for {session_id}: {e}")

        result = self.payment_bridge.interpret_outcome(None, recorded=recorded)
        if result.outcome == PaymentOutcome.CANCELLED:
            logger.info(f"Payment cancelled for session {session_id}")
        return result

    async def confirm_bank_transfer(self, session_id: str) -> BookingResponse:
        """
        User reports the transfer as made; confirmation happens over WhatsApp.

        Raises:
            PaymentError: booking is not at the summary stage
        """
        state = await self.session_store.load(session_id)
        if state.stage != BookingStage.SUMMARY:
            raise PaymentError("Booking is not ready for checkout")

        logger.info(f"Bank transfer reported for booking {state.booking_id}")
        new_state = await self.session_store.clear(session_id)
        return self._respond(new_state)

    # ============================================================
    # PUBLIC API - SUGGESTIONS
    # ============================================================

    async def submit_suggestion(self, suggestion: SuggestionRequest) -> SuggestionResponse:
        validation = self.validator.validate_suggestion(suggestion)
        if not validation.is_valid:
            return SuggestionResponse(
                success=False,
                errors=validation.errors,
                field_errors=validation.field_errors,
            )

        delivered = await self._emit(build_suggestion_event(suggestion))
        if not delivered:
            return SuggestionResponse(
                success=False,
                errors=["We couldn't send your suggestion. Please try again"],
            )
        return SuggestionResponse(success=True)

    # ============================================================
    # INTERNAL HELPERS
    # ============================================================

    def _respond(self, state, errors=None, quote=None, notified=None) -> BookingResponse:
        destination = self.catalog.get_destination(state.selected_destination) if state.selected_destination else None
        message = self.state_machine.get_stage_message(
            state, destination_name=destination.name if destination else None
        )
        return BookingResponse(
            state=state,
            message=message,
            errors=errors or [],
            quote=quote,
            notified=notified,
        )

    async def _emit(self, event: NotificationEvent) -> bool:
        """Send and report delivery; sink failures never interrupt the flow."""
        outcome = await self.emitter.emit(event)
        if not outcome.delivered:
            logger.warning(f"Notification '{event.stage}' not delivered: {outcome.error}")
        return outcome.delivered

    def _emit_in_background(self, event: NotificationEvent) -> None:
        task = asyncio.create_task(self._emit(event))
        _background_tasks.add(task)
        task.add_done_callback(_on_background_done)


__all__ = ['BookingService']
