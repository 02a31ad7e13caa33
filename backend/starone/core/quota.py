"""
StarOne - Quota Tracker

Per-identity usage counter with a rolling window, backed by Redis
when available and an in-memory map otherwise.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, Optional
import asyncio
import json
import logging
import time

from starone.api.schemas import QuotaRecord, QuotaStatus

logger = logging.getLogger(__name__)


async def connect_redis(url: str) -> Optional[redis.Redis]:
    """Open a Redis client, or return None if it cannot be reached."""
    if not url:
        return None

    client = redis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
        logger.info("Connected to Redis")
        return client
    except (RedisError, OSError) as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory quota store.")
        await client.aclose()
        return None


# ============================================================================
# Stores
# ============================================================================

class QuotaStore(ABC):
    """Storage for quota records, keyed by identity."""

    backend = "abstract"

    @abstractmethod
    async def get(self, identity: str) -> Optional[QuotaRecord]:
        pass

    @abstractmethod
    async def put(self, identity: str, record: QuotaRecord, ttl: int) -> None:
        pass

    @abstractmethod
    async def delete(self, identity: str) -> None:
        pass


class InMemoryQuotaStore(QuotaStore):
    """Process-local store. Entries are never evicted, only logically expired."""

    backend = "memory"

    def __init__(self):
        self._data: Dict[str, QuotaRecord] = {}

    async def get(self, identity: str) -> Optional[QuotaRecord]:
        record = self._data.get(identity)
        return record.model_copy() if record else None

    async def put(self, identity: str, record: QuotaRecord, ttl: int) -> None:
        self._data[identity] = record.model_copy()

    async def delete(self, identity: str) -> None:
        self._data.pop(identity, None)


class RedisQuotaStore(QuotaStore):
    """Redis-backed store; keys expire once their window can no longer apply."""

    backend = "redis"
    KEY_PREFIX = "quota:"

    def __init__(self, client: redis.Redis):
        self.client = client

    def _key(self, identity: str) -> str:
        return f"{self.KEY_PREFIX}{identity}"

    async def get(self, identity: str) -> Optional[QuotaRecord]:
        value = await self.client.get(self._key(identity))
        if not value:
            return None
        try:
            return QuotaRecord(**json.loads(value))
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("Discarding unreadable quota record")
            return None

    async def put(self, identity: str, record: QuotaRecord, ttl: int) -> None:
        await self.client.set(self._key(identity), record.model_dump_json(), ex=ttl)

    async def delete(self, identity: str) -> None:
        await self.client.delete(self._key(identity))


# ============================================================================
# Tracker
# ============================================================================

class QuotaTracker:
    """
    Rolling-window usage quota.

    A window opens at the first check or record after the previous window
    expired and stays fixed for `window_seconds`. Only `record_usage`
    consumes allowance. Each check and each record is serialized per
    identity; a check followed later by a record is not atomic.
    """

    def __init__(
        self,
        store: QuotaStore,
        limit: int = 2,
        window_seconds: int = 86400,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _expired(self, record: Optional[QuotaRecord], now: float) -> bool:
        return record is None or now - record.window_start > self.window_seconds

    async def check_quota(self, identity: str) -> QuotaStatus:
        """Report the allowance left in the identity's current window."""
        async with self._locks[identity]:
            now = self.clock()
            record = await self.store.get(identity)

            if self._expired(record, now):
                # Fresh epoch: open the window without consuming anything
                await self.store.put(
                    identity,
                    QuotaRecord(count=0, window_start=now),
                    ttl=self.window_seconds
                )
                return QuotaStatus(allowed=True, remaining=self.limit, limit=self.limit)

            remaining = self.limit - record.count
            return QuotaStatus(
                allowed=remaining > 0,
                remaining=max(0, remaining),
                limit=self.limit
            )

    async def record_usage(self, identity: str) -> None:
        """Consume one analysis from the identity's current window."""
        async with self._locks[identity]:
            now = self.clock()
            record = await self.store.get(identity)

            if self._expired(record, now):
                record = QuotaRecord(count=1, window_start=now)
            else:
                record.count += 1

            ttl = max(1, int(record.window_start + self.window_seconds - now) + 1)
            await self.store.put(identity, record, ttl=ttl)

        logger.info(f"Quota usage recorded ({record.count}/{self.limit})")

    async def get_usage(self, identity: str) -> int:
        """Analyses used in the live window, 0 if there is none."""
        record = await self.store.get(identity)
        if self._expired(record, self.clock()):
            return 0
        return record.count

    async def reset(self, identity: str) -> None:
        """Drop the identity's record entirely."""
        async with self._locks[identity]:
            await self.store.delete(identity)
