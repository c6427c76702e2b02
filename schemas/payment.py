# schemas/payment.py
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from app.booking.models import PaymentOutcome


class PaymentCustomer(BaseModel):
    email: str
    name: str
    phonenumber: str


class PaymentCustomizations(BaseModel):
    title: str
    description: str
    logo: str


class PaymentRequest(BaseModel):
    """
    Inline checkout configuration handed to the payment provider widget.
    Field names follow the provider (Flutterwave) contract.
    """
    public_key: str
    tx_ref: str = Field(..., description="Unique per request, time-based")
    amount: float
    currency: str
    payment_options: str
    customer: PaymentCustomer
    customizations: PaymentCustomizations
    meta: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "public_key": "FLWPUBK_TEST-xxxx",
                "tx_ref": "1735732800000",
                "amount": 225000,
                "currency": "NGN",
                "payment_options": "card,ussd,banktransfer",
                "customer": {
                    "email": "ada@example.com",
                    "name": "Ada Obi",
                    "phonenumber": "+2348012345678"
                },
                "customizations": {
                    "title": "Flightpadi Holiday",
                    "description": "Your Dream Vacation Package",
                    "logo": "https://flightpadi.com/logo.png"
                },
                "meta": {"bookingId": "FP-20250101120000-AB12CD"}
            }
        }


class CallbackCustomer(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    phone_number: Optional[str] = None


class PaymentCallback(BaseModel):
    """Result the provider hands back when the checkout completes."""
    status: str
    amount: float
    currency: str
    customer: CallbackCustomer = Field(default_factory=CallbackCustomer)
    tx_ref: str
    transaction_id: Optional[str] = None
    error: Optional[str] = None

    @field_validator("transaction_id", mode="before")
    @classmethod
    def _stringify_transaction_id(cls, value):
        # Flutterwave sends a numeric id
        return str(value) if isinstance(value, int) else value


class BankTransferInstructions(BaseModel):
    """Out-of-band payment path for totals above the card processor ceiling."""
    booking_id: str
    amount: float
    currency: str
    bank_name: str
    bank_description: str
    account_number: str
    account_name: str
    narration: str = Field(..., description="Reference the customer must quote (the booking id)")
    customer_email: str
    confirmation_url: str = Field(..., description="WhatsApp link for sending proof of payment")
    steps: list = Field(default_factory=list)


class PaymentResult(BaseModel):
    """Terminal outcome of a checkout attempt and where the client goes next."""
    outcome: PaymentOutcome
    redirect: str
    reason: Optional[str] = None
    tx_ref: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    customer_email: Optional[str] = None
    notified: bool = False


class CheckoutResponse(BaseModel):
    """Either a provider request or bank-transfer instructions, never both."""
    booking_id: str
    method: str = Field(..., description="'provider' or 'bank_transfer'")
    amount: float
    payment_request: Optional[PaymentRequest] = None
    bank_transfer: Optional[BankTransferInstructions] = None
