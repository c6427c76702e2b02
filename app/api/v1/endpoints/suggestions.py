# app/api/v1/endpoints/suggestions.py
"""
Suggestion API Endpoint
Lets users propose a destination, experience or hotel missing from the catalog.
"""

from fastapi import APIRouter, Depends
import logging

from app.api.v1.dependencies import get_booking_service
from app.booking.models import SuggestionRequest
from schemas.booking import SuggestionResponse
from services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.post("", response_model=SuggestionResponse)
async def submit_suggestion(
    suggestion: SuggestionRequest,
    service: BookingService = Depends(get_booking_service)
) -> SuggestionResponse:
    """
    Submit a suggestion. Missing contact details come back as `errors`.

    **Example request:**
```json
    {
        "type": "experience",
        "intent": "honeymoon",
        "name": "Sunset sailing",
        "description": "Private catamaran at dusk",
        "firstName": "Ada",
        "lastName": "Obi",
        "email": "ada@example.com"
    }
```
    """
    logger.info(f"Suggestion received: type={suggestion.type.value}")
    return await service.submit_suggestion(suggestion)
