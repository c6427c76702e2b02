# app/api/v1/endpoints/booking.py
"""
Booking Wizard API Endpoints
Thin layer over BookingService - handles HTTP concerns only.
"""

from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import TypeAdapter, ValidationError
import logging

from app.api.v1.dependencies import get_booking_service
from app.booking.models import BookingAction, PriceQuote
from schemas.booking import BookingResponse
from schemas.payment import CheckoutResponse, PaymentCallback, PaymentResult
from services.booking_service import BookingService
from services.exceptions import PaymentConfigurationError, PaymentError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking", tags=["booking"])

_action_adapter = TypeAdapter(BookingAction)


# ============================================================
# ENDPOINTS - WIZARD
# ============================================================

@router.get("/{session_id}", response_model=BookingResponse)
async def get_booking(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """
    Load the booking for a browser session, creating it on first visit.
    """
    return await service.get_booking(session_id)


@router.post("/{session_id}/actions", response_model=BookingResponse)
async def apply_action(
    session_id: str,
    payload: Dict[str, Any] = Body(...),
    service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """
    Apply one wizard action.

    **Example requests:**
```json
    {"type": "select_destination", "destinationId": "bali"}
    {"type": "set_dates", "from": "2025-03-01", "to": "2025-03-04"}
    {"type": "toggle_attraction", "attractionId": "bali-swing"}
    {"type": "advance"}
```

    Validation problems the user can fix come back as `errors` with a 200.
    """
    try:
        action = _action_adapter.validate_python(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False)
        )

    logger.info(f"Booking action: session={session_id}, type={action.type}")
    return await service.apply_action(session_id, action)


@router.get("/{session_id}/quote", response_model=PriceQuote)
async def get_quote(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> PriceQuote:
    return await service.get_quote(session_id)


@router.delete("/{session_id}", response_model=BookingResponse)
async def reset_booking(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """Start over with a new booking id."""
    logger.info(f"Resetting booking: session={session_id}")
    return await service.reset(session_id)


# ============================================================
# ENDPOINTS - PAYMENT
# ============================================================

@router.post("/{session_id}/checkout", response_model=CheckoutResponse)
async def checkout(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> CheckoutResponse:
    """
    Start payment. Returns either a provider checkout request or, for
    totals above the provider limit, bank-transfer instructions.
    """
    try:
        return await service.checkout(session_id)
    except PaymentConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
    except PaymentError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/{session_id}/payment/callback", response_model=PaymentResult)
async def payment_callback(
    session_id: str,
    callback: PaymentCallback,
    service: BookingService = Depends(get_booking_service)
) -> PaymentResult:
    """Provider result reported by the checkout widget."""
    logger.info(f"Payment callback: session={session_id}, status={callback.status}, ref={callback.tx_ref}")
    return await service.handle_payment_callback(session_id, callback)


@router.post("/{session_id}/payment/dismissed", response_model=PaymentResult)
async def payment_dismissed(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> PaymentResult:
    return await service.handle_payment_dismissed(session_id)


@router.post("/{session_id}/bank-transfer/confirm", response_model=BookingResponse)
async def confirm_bank_transfer(
    session_id: str,
    service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    try:
        return await service.confirm_bank_transfer(session_id)
    except PaymentError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
