"""
Redis Session Store - Booking State
===================================
One JSON document per browser session, replaced wholesale on every save.
The pending payment reference lives under its own key so it survives
state rewrites made while the checkout widget is open.
"""

import json
import random
import string
import logging
from typing import Optional
from datetime import datetime

from pydantic import ValidationError

from app.booking.models import BookingState
from app.core.config import settings
from app.infrastructure.cache import CacheAdapter, RedisCache

logger = logging.getLogger(__name__)


def generate_booking_id() -> str:
    """Generate unique booking ID"""
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"FP-{timestamp}-{random_suffix}"


def default_state() -> BookingState:
    return BookingState(booking_id=generate_booking_id())


class SessionStore:
    """
    Durable per-session booking state.

    Storage failures never surface to the caller: reads degrade to a fresh
    state, writes are logged and reported as False.
    """

    def __init__(
        self,
        cache: Optional[CacheAdapter] = None,
        ttl: Optional[int] = None
    ):
        self.cache = cache or RedisCache()
        self.ttl = ttl or settings.BOOKING_SESSION_TTL
        logger.debug("✓ SessionStore initialized")

    # -----------------------------------------
    # KEYS
    # -----------------------------------------

    @staticmethod
    def _state_key(session_id: str) -> str:
        return f"{settings.BOOKING_SESSION_KEY_PREFIX}{session_id}"

    @staticmethod
    def _payment_key(session_id: str) -> str:
        return f"{settings.PENDING_PAYMENT_KEY_PREFIX}{session_id}"

    @staticmethod
    def _result_key(session_id: str) -> str:
        return f"{settings.PENDING_PAYMENT_KEY_PREFIX}{session_id}:result"

    # -----------------------------------------
    # STATE GET / SET
    # -----------------------------------------

    async def load(self, session_id: str) -> BookingState:
        """
        Return the stored state, or a new default one.

        A fresh state is written back immediately so the booking id it
        was issued stays stable across requests.
        """
        data = await self.cache.get(self._state_key(session_id))

        if data:
            try:
                return BookingState.model_validate(json.loads(data))
            except (ValueError, ValidationError) as e:
                logger.warning(f"[SessionStore] Corrupt state for {session_id}, starting over: {e}")

        state = default_state()
        await self.save(session_id, state)
        logger.info(f"New booking session {session_id} → {state.booking_id}")
        return state

    async def save(self, session_id: str, state: BookingState) -> bool:
        serialized_state = json.dumps(state.model_dump(mode="json", by_alias=True))
        saved = await self.cache.set(self._state_key(session_id), serialized_state, self.ttl)
        if not saved:
            logger.error(f"[SessionStore] Write failed for {session_id}")
        return saved

    async def clear(self, session_id: str) -> BookingState:
        """Drop the session and start again with a new booking id."""
        await self.cache.delete(self._state_key(session_id))
        await self.cache.delete(self._payment_key(session_id))

        state = default_state()
        await self.save(session_id, state)
        logger.info(f"Booking session {session_id} reset → {state.booking_id}")
        return state

    # -----------------------------------------
    # PENDING PAYMENT
    # -----------------------------------------

    async def save_pending_payment(self, session_id: str, tx_ref: str) -> bool:
        return await self.cache.set(self._payment_key(session_id), tx_ref, self.ttl)

    async def load_pending_payment(self, session_id: str) -> Optional[str]:
        return await self.cache.get(self._payment_key(session_id))

    async def clear_pending_payment(self, session_id: str) -> bool:
        """A reference is settled by exactly one callback."""
        return await self.cache.delete(self._payment_key(session_id))

    async def save_payment_result(self, session_id: str, result_json: str) -> bool:
        """Kept across clear() so a late dialog close still sees the outcome."""
        return await self.cache.set(self._result_key(session_id), result_json, self.ttl)

    async def pop_payment_result(self, session_id: str) -> Optional[str]:
        return await self.cache.pop(self._result_key(session_id))


__all__ = [
    'SessionStore',
    'default_state',
    'generate_booking_id',
]
