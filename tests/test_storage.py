import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import ManualClock

from art_scout.config import Config
from art_scout.errors import RegistryUnavailableError
from art_scout.storage import MemoryRegistryStore, RedisRegistryStore, get_registry_store


async def test_memory_store_set_semantics():
    store = MemoryRegistryStore()

    assert await store.add_member("0xa") is True
    assert await store.add_member("0xa") is False
    assert await store.has_member("0xa")
    assert await store.count() == 1
    assert await store.remove_member("0xa") is True
    assert await store.remove_member("0xa") is False
    assert await store.members() == []


async def test_memory_store_detail_expires():
    clock = ManualClock()
    store = MemoryRegistryStore(clock=clock)
    await store.put_detail("0xa", "{}", ttl=60)

    assert await store.get_detail("0xa") == "{}"
    clock.advance(60)
    assert await store.get_detail("0xa") is None


async def test_memory_store_counters():
    store = MemoryRegistryStore()
    assert await store.incr_counter("added") == 1
    assert await store.incr_counter("added", 2) == 3
    assert await store.counters() == {"added": 3}


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the registry store"""

    def __init__(self):
        self.sets = {}
        self.values = {}
        self.hashes = {}
        self.expiries = {}
        self.closed = False

    async def sadd(self, key, member):
        members = self.sets.setdefault(key, set())
        added = member not in members
        members.add(member)
        return int(added)

    async def srem(self, key, member):
        members = self.sets.setdefault(key, set())
        removed = member in members
        members.discard(member)
        return int(removed)

    async def sismember(self, key, member):
        return int(member in self.sets.get(key, set()))

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def scard(self, key):
        return len(self.sets.get(key, set()))

    async def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiries[key] = ex
        return True

    async def get(self, key):
        return self.values.get(key)

    async def delete(self, key):
        return int(self.values.pop(key, None) is not None)

    async def hincrby(self, key, field, amount):
        bucket = self.hashes.setdefault(key, {})
        bucket[field] = str(int(bucket.get(field, 0)) + amount)
        return int(bucket[field])

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def aclose(self):
        self.closed = True


class BrokenRedis:
    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise RedisConnectionError("connection refused")

        return fail


async def test_redis_store_uses_one_set_and_prefixed_details():
    client = FakeRedis()
    store = RedisRegistryStore(Config(redis_url="redis://localhost"), client=client)

    assert await store.add_member("0xa") is True
    assert await store.add_member("0xa") is False
    await store.put_detail("0xa", '{"address": "0xa"}', ttl=90)
    await store.incr_counter("totalContractsAdded")

    assert client.sets[RedisRegistryStore.CONTRACTS_SET] == {"0xa"}
    assert client.expiries["contract_details:0xa"] == 90
    assert await store.get_detail("0xa") == '{"address": "0xa"}'
    assert await store.counters() == {"totalContractsAdded": 1}
    assert await store.count() == 1

    await store.close()
    assert client.closed


async def test_redis_failures_become_registry_unavailable():
    store = RedisRegistryStore(Config(redis_url="redis://localhost"), client=BrokenRedis())

    with pytest.raises(RegistryUnavailableError):
        await store.members()
    with pytest.raises(RegistryUnavailableError):
        await store.add_member("0xa")


async def test_redis_store_without_url():
    store = RedisRegistryStore(Config(redis_url=None))
    with pytest.raises(RegistryUnavailableError):
        await store.count()


def test_store_selection():
    assert isinstance(get_registry_store(Config(registry_backend="memory")), MemoryRegistryStore)
    assert isinstance(get_registry_store(Config(registry_backend="redis", redis_url=None)), MemoryRegistryStore)
    redis_store = get_registry_store(Config(registry_backend="redis", redis_url="redis://localhost:6379/0"))
    assert isinstance(redis_store, RedisRegistryStore)
