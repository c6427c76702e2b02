from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from app.booking.models import BookingState, PriceQuote

# --- Response Schemas ---

class BookingResponse(BaseModel):
    """Current wizard state as rendered by the client."""
    state: BookingState = Field(..., description="Persisted booking state (camelCase on the wire).")
    message: str = Field(..., description="Headline for the current stage.", example="Choose Your Perfect Stay")
    errors: List[str] = Field(default_factory=list, description="User-correctable validation messages.")
    quote: Optional[PriceQuote] = Field(None, description="Present when the summary stage is entered.")
    notified: Optional[bool] = Field(None, description="Whether the stage notification reached the sink.")

class SuggestionResponse(BaseModel):
    """Result of submitting a catalog suggestion."""
    success: bool
    errors: List[str] = Field(default_factory=list)
    field_errors: Dict[str, str] = Field(default_factory=dict)
