# app/booking/catalog.py
"""
Read-only catalog of destinations, attractions and hotels.
Loaded once from a JSON dataset; no mutation interface.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import TypeAdapter

from app.booking.models import Attraction, AttractionType, Destination, Hotel
from app.core.config import settings

logger = logging.getLogger(__name__)

_attraction_adapter = TypeAdapter(Attraction)

# Relative CATALOG_PATH values resolve against the repository root
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Global singleton catalog
_catalog: Optional["Catalog"] = None


class CatalogError(Exception):
    """Raised when the catalog dataset cannot be loaded"""
    pass


def _matches(query: str, *fields: str) -> bool:
    if not query:
        return True
    query = query.lower()
    return any(query in (field or "").lower() for field in fields)


class Catalog:
    """
    In-memory lookups over the reference dataset, keyed by id.
    Insertion order of the source file is preserved in listings.
    """

    def __init__(
        self,
        destinations: Iterable[Destination],
        attractions: Iterable[Attraction],
        hotels: Iterable[Hotel]
    ):
        self._destinations: Dict[str, Destination] = {d.id: d for d in destinations}
        self._attractions: Dict[str, Attraction] = {a.id: a for a in attractions}
        self._hotels: Dict[str, Hotel] = {h.id: h for h in hotels}

        logger.debug(
            f"✓ Catalog initialized: destinations={len(self._destinations)}, "
            f"attractions={len(self._attractions)}, hotels={len(self._hotels)}"
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Catalog":
        return cls(
            destinations=[Destination.model_validate(d) for d in data.get("destinations", [])],
            attractions=[_attraction_adapter.validate_python(a) for a in data.get("attractions", [])],
            hotels=[Hotel.model_validate(h) for h in data.get("hotels", [])],
        )

    @classmethod
    def from_json_file(cls, path: str) -> "Catalog":
        """
        Load the catalog from a JSON file shaped
        {"destinations": [...], "attractions": [...], "hotels": [...]}.

        Raises:
            CatalogError: If the file is missing or malformed
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            catalog = cls.from_dict(data)
        except (OSError, ValueError) as e:
            logger.error(f"[Catalog] Failed to load {path}: {e}")
            raise CatalogError(f"Could not load catalog from {path}") from e

        logger.info(f"[Catalog] Loaded from {path}")
        return catalog

    # ============================================================
    # LOOKUPS
    # ============================================================

    def get_destination(self, destination_id: Optional[str]) -> Optional[Destination]:
        return self._destinations.get(destination_id) if destination_id else None

    def get_attraction(self, attraction_id: str) -> Optional[Attraction]:
        return self._attractions.get(attraction_id)

    def get_hotel(self, hotel_id: str) -> Optional[Hotel]:
        return self._hotels.get(hotel_id)

    # ============================================================
    # QUERIES
    # ============================================================

    def search_destinations(self, query: str = "") -> List[Destination]:
        return [
            d for d in self._destinations.values()
            if _matches(query, d.name, d.description)
        ]

    def attractions_for(
        self,
        destination_id: str,
        type_filter: Optional[AttractionType] = None,
        query: str = ""
    ) -> List[Attraction]:
        """
        Attractions offered at a destination.

        Args:
            destination_id: Catalog destination id
            type_filter: Only this package type (None for all)
            query: Case-insensitive match on name or description
        """
        return [
            a for a in self._attractions.values()
            if a.destination_id == destination_id
            and (type_filter is None or a.type == type_filter)
            and _matches(query, a.name, a.description)
        ]

    def hotels_for(self, destination_id: str, query: str = "") -> List[Hotel]:
        return [
            h for h in self._hotels.values()
            if h.destination_id == destination_id
            and _matches(query, h.name, h.description)
        ]


def get_catalog() -> Catalog:
    """
    Lazy-load the process-wide catalog from settings.CATALOG_PATH.
    """
    global _catalog

    if _catalog is None:
        path = Path(settings.CATALOG_PATH)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        _catalog = Catalog.from_json_file(str(path))

    return _catalog
