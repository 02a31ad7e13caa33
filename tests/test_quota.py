import asyncio
import json

from starone.api.schemas import QuotaRecord
from starone.core.identity import ANONYMOUS_IDENTITY, resolve_identity
from starone.core.quota import QuotaTracker, RedisQuotaStore

DAY = 86400


def test_two_analyses_allowed_then_blocked(tracker):
    async def scenario():
        results = []
        for _ in range(2):
            status = await tracker.check_quota("user:a@example.com")
            results.append(status)
            await tracker.record_usage("user:a@example.com")
        results.append(await tracker.check_quota("user:a@example.com"))
        return results

    first, second, third = asyncio.run(scenario())

    assert first.allowed and first.remaining == 2 and first.limit == 2
    assert second.allowed and second.remaining == 1
    assert not third.allowed
    assert third.remaining == 0
    assert third.limit == 2


def test_check_does_not_consume_allowance(tracker):
    async def scenario():
        for _ in range(5):
            await tracker.check_quota("user:a@example.com")
        return await tracker.check_quota("user:a@example.com")

    status = asyncio.run(scenario())
    assert status.allowed
    assert status.remaining == 2


def test_check_opens_fresh_window_record(tracker, clock):
    asyncio.run(tracker.check_quota("user:a@example.com"))

    record = asyncio.run(tracker.store.get("user:a@example.com"))
    assert record.count == 0
    assert record.window_start == clock.now


def test_expired_window_is_treated_as_fresh(tracker, clock):
    async def exhaust():
        await tracker.record_usage("user:a@example.com")
        await tracker.record_usage("user:a@example.com")
        return await tracker.check_quota("user:a@example.com")

    assert not asyncio.run(exhaust()).allowed

    clock.advance(DAY + 1)
    status = asyncio.run(tracker.check_quota("user:a@example.com"))

    assert status.allowed
    assert status.remaining == 2


def test_window_is_fixed_from_its_start(tracker, clock):
    async def scenario():
        await tracker.record_usage("user:a@example.com")
        clock.advance(DAY - 60)
        await tracker.record_usage("user:a@example.com")
        blocked = await tracker.check_quota("user:a@example.com")
        # The window opened at the first record, not the second
        clock.advance(120)
        reopened = await tracker.check_quota("user:a@example.com")
        return blocked, reopened

    blocked, reopened = asyncio.run(scenario())
    assert not blocked.allowed
    assert reopened.allowed and reopened.remaining == 2


def test_window_boundary_is_exclusive(tracker, clock):
    async def scenario():
        await tracker.record_usage("user:a@example.com")
        await tracker.record_usage("user:a@example.com")
        clock.advance(DAY)
        return await tracker.check_quota("user:a@example.com")

    assert not asyncio.run(scenario()).allowed


def test_record_after_expiry_opens_new_window(tracker, clock):
    async def scenario():
        await tracker.record_usage("user:a@example.com")
        clock.advance(DAY + 1)
        await tracker.record_usage("user:a@example.com")
        return await tracker.get_usage("user:a@example.com")

    assert asyncio.run(scenario()) == 1


def test_get_usage_and_reset(tracker, clock):
    async def scenario():
        await tracker.record_usage("user:a@example.com")
        used = await tracker.get_usage("user:a@example.com")
        await tracker.reset("user:a@example.com")
        after_reset = await tracker.get_usage("user:a@example.com")
        return used, after_reset

    assert asyncio.run(scenario()) == (1, 0)
    assert asyncio.run(tracker.get_usage("user:nobody@example.com")) == 0


def test_identities_are_tracked_independently(tracker):
    async def scenario():
        await tracker.record_usage(ANONYMOUS_IDENTITY)
        await tracker.record_usage(ANONYMOUS_IDENTITY)
        return (
            await tracker.check_quota(ANONYMOUS_IDENTITY),
            await tracker.check_quota("user:a@example.com"),
        )

    anonymous, user = asyncio.run(scenario())
    assert not anonymous.allowed
    assert user.allowed and user.remaining == 2


def test_concurrent_records_are_not_lost(tracker):
    async def scenario():
        await asyncio.gather(*(tracker.record_usage("user:a@example.com") for _ in range(5)))
        return await tracker.get_usage("user:a@example.com")

    assert asyncio.run(scenario()) == 5


def test_resolve_identity_buckets():
    assert resolve_identity(None) == ANONYMOUS_IDENTITY
    assert resolve_identity("   ") == ANONYMOUS_IDENTITY
    assert resolve_identity(" A@Example.com ") == "user:a@example.com"
    # A real identity can never land in the anonymous bucket
    assert resolve_identity("anonymous") != ANONYMOUS_IDENTITY


class FakeRedis:
    """Async stand-in for the redis client methods the store uses."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self.data.pop(key, None)


def test_redis_store_round_trip_with_ttl(clock):
    client = FakeRedis()
    tracker = QuotaTracker(RedisQuotaStore(client), limit=2, window_seconds=DAY, clock=clock)

    async def scenario():
        await tracker.record_usage("user:a@example.com")
        clock.advance(3600)
        await tracker.record_usage("user:a@example.com")
        return await tracker.check_quota("user:a@example.com")

    status = asyncio.run(scenario())

    assert not status.allowed
    stored = json.loads(client.data["quota:user:a@example.com"])
    assert stored["count"] == 2
    # Key lives until the window it belongs to has ended
    assert 0 < client.expiry["quota:user:a@example.com"] <= DAY - 3600 + 1


def test_redis_store_discards_unreadable_record():
    client = FakeRedis()
    client.data["quota:user:a@example.com"] = "not json"
    store = RedisQuotaStore(client)

    assert asyncio.run(store.get("user:a@example.com")) is None


def test_in_memory_store_returns_copies(tracker):
    async def scenario():
        await tracker.store.put("k", QuotaRecord(count=1, window_start=0), ttl=10)
        record = await tracker.store.get("k")
        record.count = 99
        return await tracker.store.get("k")

    assert asyncio.run(scenario()).count == 1
