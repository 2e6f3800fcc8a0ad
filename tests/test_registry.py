from datetime import datetime, timedelta, timezone

import pytest

from conftest import CONTRACT_A, CONTRACT_B, CONTRACT_C

from art_scout.errors import InputValidationError, RegistryUnavailableError
from art_scout.models import OriginTag
from art_scout.registry import ContractRegistry
from art_scout.storage import MemoryRegistryStore


class TickingClock:
    """Each call is one minute later than the last"""

    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


class FlakyCounterStore(MemoryRegistryStore):
    async def incr_counter(self, name, amount=1):
        raise RegistryUnavailableError("stats hash unavailable")


@pytest.fixture
def registry():
    return ContractRegistry(MemoryRegistryStore(), clock=TickingClock())


async def test_add_is_idempotent(registry):
    first = await registry.add(CONTRACT_A, name="Alpha")
    second = await registry.add(CONTRACT_A)

    assert first.is_new is True
    assert second.is_new is False
    assert await registry.count() == 1


async def test_differently_cased_addresses_are_one_entry(registry):
    await registry.add(CONTRACT_A.upper().replace("0X", "0x"))

    result = await registry.add(CONTRACT_A)

    assert result.is_new is False
    assert result.address == CONTRACT_A
    assert await registry.contains(CONTRACT_A.upper().replace("0X", "0x"))


async def test_malformed_address_never_reaches_storage():
    store = MemoryRegistryStore()
    registry = ContractRegistry(store)

    with pytest.raises(InputValidationError):
        await registry.add("0x1234")
    with pytest.raises(InputValidationError):
        await registry.add_many([CONTRACT_A, "bogus"])

    assert await store.count() == 0


async def test_add_many_dedupes_within_the_call(registry):
    upper_b = "0x" + "BB" * 20

    result = await registry.add_many([upper_b, upper_b, CONTRACT_C])

    assert result.added == [CONTRACT_B, CONTRACT_C]
    assert result.existing == []


async def test_add_many_reports_partial_success(registry):
    await registry.add(CONTRACT_B)

    result = await registry.add_many([CONTRACT_A, CONTRACT_B], name="Batch", origin=OriginTag.WALLET)

    assert result.added == [CONTRACT_A]
    assert result.existing == [CONTRACT_B]
    entry = await registry.get(CONTRACT_A)
    assert entry.name == "Batch"
    assert entry.origin == "wallet"


async def test_list_is_newest_first(registry):
    for address in (CONTRACT_A, CONTRACT_B, CONTRACT_C):
        await registry.add(address)

    entries = await registry.list()

    assert [entry.address for entry in entries] == [CONTRACT_C, CONTRACT_B, CONTRACT_A]


async def test_entry_without_details_is_still_listed():
    store = MemoryRegistryStore()
    registry = ContractRegistry(store)
    await registry.add(CONTRACT_A, name="Alpha")
    await store.delete_detail(CONTRACT_A)

    entries = await registry.list()

    assert [entry.address for entry in entries] == [CONTRACT_A]
    assert entries[0].name is None


async def test_search_by_name_or_address(registry):
    await registry.add(CONTRACT_A, name="Sunset Studies")
    await registry.add(CONTRACT_B, name="Night Works")

    assert [e.address for e in await registry.search("sunset")] == [CONTRACT_A]
    assert [e.address for e in await registry.search("BBBB")] == [CONTRACT_B]
    assert await registry.search("nothing-matches") == []
    with pytest.raises(InputValidationError):
        await registry.search("  ")


async def test_names_are_sanitized(registry):
    await registry.add(CONTRACT_A, name="<script>x</script>Gallery")
    assert (await registry.get(CONTRACT_A)).name == "Gallery"


async def test_remove_and_counters(registry):
    await registry.add(CONTRACT_A)
    await registry.add(CONTRACT_B)

    assert await registry.remove(CONTRACT_A) is True
    assert await registry.remove(CONTRACT_A) is False
    assert await registry.get(CONTRACT_A) is None

    stats = await registry.stats()
    assert stats == {"total_contracts": 1, "contracts_added": 2, "contracts_removed": 1}


async def test_clear_removes_everything(registry):
    await registry.add_many([CONTRACT_A, CONTRACT_B])

    assert await registry.clear() == 2
    assert await registry.count() == 0
    assert (await registry.stats())["contracts_removed"] == 2


async def test_counter_failure_does_not_fail_the_add():
    registry = ContractRegistry(FlakyCounterStore())

    result = await registry.add(CONTRACT_A)

    assert result.is_new
    assert await registry.count() == 1


async def test_listeners_run_only_on_real_changes(registry):
    changes = []

    async def on_change():
        changes.append(1)

    registry.on_change(on_change)

    await registry.add(CONTRACT_A)
    await registry.add(CONTRACT_A)
    await registry.add_many([CONTRACT_A])
    await registry.add_many([CONTRACT_B, CONTRACT_C])
    await registry.remove(CONTRACT_B)
    await registry.remove(CONTRACT_B)

    assert len(changes) == 3
