# app/api/v1/dependencies.py
"""
FastAPI dependencies for the booking API.
Shared collaborators are created once and reused across requests.
"""

from fastapi import HTTPException, status
from typing import Optional
import logging

from app.booking.catalog import Catalog, CatalogError, get_catalog
from app.booking.state_machine import StageMachine
from app.core.config import settings
from app.infrastructure.cache import CacheAdapter, InMemoryCache, RedisCache
from services.booking_service import BookingService
from services.notification_service import NotificationEmitter, WebhookNotificationEmitter
from services.payment_service import PaymentBridge
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

# Reused so connection pools (and the in-memory store) are shared
_emitter: Optional[NotificationEmitter] = None
_cache: Optional[CacheAdapter] = None


def get_catalog_dependency() -> Catalog:
    """
    Get the loaded catalog.

    Raises:
        HTTPException: 503 if the catalog file cannot be loaded
    """
    try:
        return get_catalog()
    except CatalogError as e:
        logger.error(f"❌ Catalog unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog is unavailable"
        )


def get_cache() -> CacheAdapter:
    global _cache
    if _cache is None:
        _cache = InMemoryCache() if settings.SESSION_BACKEND == "memory" else RedisCache()
    return _cache


def get_emitter() -> NotificationEmitter:
    global _emitter
    if _emitter is None:
        _emitter = WebhookNotificationEmitter()
        logger.debug("✓ Webhook emitter initialized")
    return _emitter


async def close_emitter() -> None:
    global _emitter
    if _emitter is not None:
        await _emitter.close()
        _emitter = None


async def get_booking_service() -> BookingService:
    """
    Factory function for BookingService with all dependencies.
    Uses the shared Redis infrastructure.
    """
    return BookingService(
        session_store=SessionStore(get_cache()),
        state_machine=StageMachine(),
        catalog=get_catalog_dependency(),
        emitter=get_emitter(),
        payment_bridge=PaymentBridge(),
    )
