# app/api/v1/endpoints/catalog.py
"""
Catalog API Endpoints
Read-only queries over destinations, experiences and hotels.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from app.api.v1.dependencies import get_catalog_dependency
from app.booking.catalog import Catalog
from app.booking.models import Attraction, AttractionType, Destination, Hotel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _require_destination(catalog: Catalog, destination_id: str) -> Destination:
    destination = catalog.get_destination(destination_id)
    if destination is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Destination '{destination_id}' not found"
        )
    return destination


@router.get("/destinations", response_model=List[Destination])
async def list_destinations(
    q: str = Query("", description="Case-insensitive match on name or description"),
    catalog: Catalog = Depends(get_catalog_dependency)
) -> List[Destination]:
    return catalog.search_destinations(q)


@router.get("/destinations/{destination_id}", response_model=Destination)
async def get_destination(
    destination_id: str,
    catalog: Catalog = Depends(get_catalog_dependency)
) -> Destination:
    return _require_destination(catalog, destination_id)


@router.get("/destinations/{destination_id}/attractions", response_model=List[Attraction])
async def list_attractions(
    destination_id: str,
    q: str = Query("", description="Case-insensitive match on name or description"),
    type: Optional[AttractionType] = Query(None, description="regular or full_package"),
    catalog: Catalog = Depends(get_catalog_dependency)
) -> List[Attraction]:
    """
    Experiences available at a destination, optionally filtered by package type.
    """
    _require_destination(catalog, destination_id)
    return catalog.attractions_for(destination_id, type_filter=type, query=q)


@router.get("/destinations/{destination_id}/hotels", response_model=List[Hotel])
async def list_hotels(
    destination_id: str,
    q: str = Query("", description="Case-insensitive match on name or description"),
    catalog: Catalog = Depends(get_catalog_dependency)
) -> List[Hotel]:
    _require_destination(catalog, destination_id)
    return catalog.hotels_for(destination_id, query=q)
