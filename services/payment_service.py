# services/payment_service.py
import re
import time
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote as url_quote

from app.booking.models import BookingState, PaymentOutcome, PriceQuote, TravellerInfo
from app.core.config import settings
from schemas.payment import (
    BankTransferInstructions,
    PaymentCallback,
    PaymentCustomer,
    PaymentCustomizations,
    PaymentRequest,
    PaymentResult,
)
from services.exceptions import PaymentConfigurationError, PaymentError

logger = logging.getLogger(__name__)

SUCCESS_REDIRECT = "/payment/success"
FAILED_REDIRECT = "/payment/failed"
CANCELLED_REDIRECT = "/payment/cancelled"

_REDIRECTS = {
    PaymentOutcome.SUCCEEDED: SUCCESS_REDIRECT,
    PaymentOutcome.FAILED: FAILED_REDIRECT,
    PaymentOutcome.CANCELLED: CANCELLED_REDIRECT,
}


class PaymentBridge:
    """
    Boundary with the card payment provider (Flutterwave inline checkout).

    Builds the checkout request handed to the client widget, interprets the
    result the widget reports back, and routes totals above the provider
    ceiling to manual bank transfer instead.
    """

    def __init__(self, public_key: Optional[str] = None, max_amount: Optional[float] = None):
        self.public_key = settings.FLUTTERWAVE_PUBLIC_KEY if public_key is None else public_key
        self.max_amount = settings.PAYMENT_PROVIDER_MAX_AMOUNT if max_amount is None else max_amount

    # ============================================================
    # REQUEST
    # ============================================================

    def build_request(
        self,
        quote: PriceQuote,
        traveller_info: TravellerInfo,
        trip_context: Dict[str, Any]
    ) -> PaymentRequest:
        """
        Build the provider checkout configuration.

        Args:
            quote: Final price quote
            traveller_info: Lead traveller (payer)
            trip_context: Metadata echoed back by the provider
                          (bookingId, customer, trip)

        Returns:
            PaymentRequest with a fresh tx_ref

        Raises:
            PaymentConfigurationError: provider public key not configured
            PaymentError: quote is not payable
        """
        if not self.public_key:
            logger.error("❌ Flutterwave public key is missing")
            raise PaymentConfigurationError("Payment configuration error")

        if not quote.valid or quote.total <= 0:
            raise PaymentError(quote.error or "Booking has no payable total")

        tx_ref = self._generate_tx_ref()

        request = PaymentRequest(
            public_key=self.public_key,
            tx_ref=tx_ref,
            amount=quote.total,
            currency=settings.PAYMENT_CURRENCY,
            payment_options=settings.PAYMENT_OPTIONS,
            customer=PaymentCustomer(
                email=traveller_info.email,
                name=traveller_info.full_name,
                phonenumber=traveller_info.whatsapp,
            ),
            customizations=PaymentCustomizations(
                title=f"{settings.COMPANY_NAME} {settings.PAYMENT_TITLE_SUFFIX}",
                description=settings.PAYMENT_DESCRIPTION,
                logo=settings.COMPANY_LOGO,
            ),
            meta=trip_context,
        )

        logger.info(f"Payment request {tx_ref} built for {quote.total} {settings.PAYMENT_CURRENCY}")
        return request

    def _generate_tx_ref(self) -> str:
        """Millisecond timestamp, unique per checkout attempt"""
        return str(int(time.time() * 1000))

    # ============================================================
    # BANK TRANSFER
    # ============================================================

    def requires_bank_transfer(self, quote: PriceQuote) -> bool:
        return quote.total > self.max_amount

    def build_bank_transfer_instructions(
        self,
        state: BookingState,
        quote: PriceQuote
    ) -> BankTransferInstructions:
        booking_id = state.booking_id
        whatsapp_number = re.sub(r"[^0-9]", "", settings.COMPANY_WHATSAPP)
        message = (
            f"Hello, I've completed my payment for booking {booking_id}. "
            f"Here's my payment confirmation screenshot:"
        )

        return BankTransferInstructions(
            booking_id=booking_id,
            amount=quote.total,
            currency=settings.PAYMENT_CURRENCY,
            bank_name=settings.BANK_NAME,
            bank_description=settings.BANK_DESCRIPTION,
            account_number=settings.BANK_ACCOUNT_NUMBER,
            account_name=settings.BANK_ACCOUNT_NAME,
            narration=booking_id,
            customer_email=state.traveller_info.email if state.traveller_info else "",
            confirmation_url=f"https://wa.me/{whatsapp_number}?text={url_quote(message)}",
            steps=[
                f"Transfer ₦{quote.total:,.0f} to the account details above",
                "Share proof of payment with the team on WhatsApp for confirmation",
            ],
        )

    # ============================================================
    # OUTCOME
    # ============================================================

    def interpret_outcome(
        self,
        response: Optional[PaymentCallback],
        pending_tx_ref: Optional[str] = None,
        recorded: Optional[PaymentResult] = None
    ) -> PaymentResult:
        """
        Map the provider result to exactly one terminal outcome.

        Args:
            response: Provider callback, or None when the dialog was closed
            pending_tx_ref: tx_ref issued for this session's checkout; without
                            one no callback can succeed
            recorded: Outcome already recorded for this checkout, if any

        Returns:
            PaymentResult with its redirect target
        """
        if response is None:
            if recorded is not None:
                return recorded
            return self._result(PaymentOutcome.CANCELLED, reason="Payment window closed")

        fields = {
            "tx_ref": response.tx_ref,
            "transaction_id": response.transaction_id,
            "amount": response.amount,
            "customer_email": response.customer.email,
        }

        if pending_tx_ref is None:
            logger.warning(f"Payment callback {response.tx_ref} has no checkout in progress")
            return self._result(
                PaymentOutcome.FAILED,
                reason="No checkout in progress for this booking",
                **fields
            )

        if response.tx_ref != pending_tx_ref:
            logger.warning(f"Payment reference mismatch: got {response.tx_ref}, expected {pending_tx_ref}")
            return self._result(
                PaymentOutcome.FAILED,
                reason="Payment reference does not match this booking",
                **fields
            )

        if response.status == "successful":
            return self._result(PaymentOutcome.SUCCEEDED, **fields)

        logger.error(
            f"Payment failed: status={response.status} reference={response.tx_ref} "
            f"error={response.error or 'Unknown error'}"
        )
        return self._result(PaymentOutcome.FAILED, reason="Payment was not successful", **fields)

    @staticmethod
    def _result(outcome: PaymentOutcome, **fields) -> PaymentResult:
        return PaymentResult(outcome=outcome, redirect=_REDIRECTS[outcome], **fields)


__all__ = [
    'PaymentBridge',
    'SUCCESS_REDIRECT',
    'FAILED_REDIRECT',
    'CANCELLED_REDIRECT',
]
