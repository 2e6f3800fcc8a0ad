"""
Contract registry: the durable set of contract addresses discovery queries
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from .errors import InputValidationError, RegistryUnavailableError
from .models import AddManyResult, ContractRegistryEntry, OriginTag, RegistryAddResult
from .storage.base import RegistryStore
from .utils import normalize_address, normalize_addresses, sanitize_input

ChangeListener = Callable[[], Awaitable[None]]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ContractRegistry:
    """Set semantics over canonical lowercase addresses.

    Every address is validated and lowercased before it reaches the store.
    Adds and removes bump advisory counters; a counter that fails to
    increment is logged and ignored. Listeners registered with ``on_change``
    run after every mutation that actually changed the set.
    """

    STAT_ADDED = "totalContractsAdded"
    STAT_REMOVED = "totalContractsRemoved"

    def __init__(
        self,
        store: RegistryStore,
        detail_ttl: int = 60 * 60 * 24 * 90,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.detail_ttl = detail_ttl
        self._clock = clock
        self._listeners: List[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    async def _notify(self) -> None:
        for listener in self._listeners:
            await listener()

    async def _increment(self, stat: str) -> None:
        try:
            await self.store.incr_counter(stat)
        except RegistryUnavailableError as e:
            logger.warning(f"Could not update registry stat {stat}: {e}")

    async def _add(
        self,
        address: str,
        name: Optional[str],
        added_by: Optional[str],
        origin: OriginTag,
        metadata: Optional[Dict[str, Any]],
    ) -> bool:
        if not await self.store.add_member(address):
            logger.debug(f"Contract already registered: {address}")
            return False

        entry = ContractRegistryEntry(
            address=address,
            name=sanitize_input(name, max_length=200) if name else None,
            added_by=sanitize_input(added_by, max_length=200) if added_by else None,
            added_at=self._clock(),
            origin=origin,
            metadata=metadata or {},
        )
        await self.store.put_detail(address, entry.model_dump_json(), self.detail_ttl)
        await self._increment(self.STAT_ADDED)
        logger.info(f"Contract added to registry: {address}")
        return True

    async def add(
        self,
        address: str,
        name: Optional[str] = None,
        added_by: Optional[str] = None,
        origin: OriginTag = OriginTag.MANUAL,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RegistryAddResult:
        """Add one address; re-adding an existing address is a no-op"""
        normalized = normalize_address(address)
        is_new = await self._add(normalized, name, added_by, origin, metadata)
        if is_new:
            await self._notify()
        return RegistryAddResult(address=normalized, is_new=is_new)

    async def add_many(
        self,
        addresses: Iterable[str],
        name: Optional[str] = None,
        added_by: Optional[str] = None,
        origin: OriginTag = OriginTag.MANUAL,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddManyResult:
        """
        Add several addresses sharing the same details.

        Not atomic: each address is added on its own and the result reports
        which were new and which already existed. Duplicates within the call
        (case-insensitive) count once. All addresses are validated first.
        """
        normalized = normalize_addresses(addresses)
        result = AddManyResult()
        for address in normalized:
            if await self._add(address, name, added_by, origin, metadata):
                result.added.append(address)
            else:
                result.existing.append(address)

        if result.added:
            await self._notify()
        logger.info(f"Bulk add: {len(result.added)} new, {len(result.existing)} existing")
        return result

    async def _remove(self, address: str) -> bool:
        removed = await self.store.remove_member(address)
        await self.store.delete_detail(address)
        if removed:
            await self._increment(self.STAT_REMOVED)
            logger.info(f"Contract removed from registry: {address}")
        return removed

    async def remove(self, address: str) -> bool:
        normalized = normalize_address(address)
        removed = await self._remove(normalized)
        if removed:
            await self._notify()
        return removed

    async def clear(self) -> int:
        """Remove every contract; returns how many were removed"""
        removed = 0
        for address in await self.store.members():
            if await self._remove(address):
                removed += 1
        if removed:
            await self._notify()
        logger.info(f"Cleared {removed} contracts from registry")
        return removed

    async def contains(self, address: str) -> bool:
        return await self.store.has_member(normalize_address(address))

    async def addresses(self) -> List[str]:
        """Canonical addresses only, sorted; no detail lookups"""
        return sorted(await self.store.members())

    async def get(self, address: str) -> Optional[ContractRegistryEntry]:
        normalized = normalize_address(address)
        if not await self.store.has_member(normalized):
            return None
        return await self._entry(normalized)

    async def _entry(self, address: str) -> ContractRegistryEntry:
        blob = await self.store.get_detail(address)
        if blob:
            try:
                return ContractRegistryEntry.model_validate_json(blob)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable details for {address}: {e}")
        # Details expired or never written: the address itself is still registered
        return ContractRegistryEntry(address=address, added_at=EPOCH)

    async def list(self) -> List[ContractRegistryEntry]:
        """All entries, newest first"""
        entries = [await self._entry(address) for address in await self.store.members()]
        entries.sort(key=lambda entry: (entry.added_at, entry.address), reverse=True)
        return entries

    async def count(self) -> int:
        return await self.store.count()

    async def search(self, query: str) -> List[ContractRegistryEntry]:
        """Entries whose name or address contains the query (case-insensitive)"""
        term = (query or "").strip().lower()
        if not term:
            raise InputValidationError("Search query is required")
        return [
            entry
            for entry in await self.list()
            if term in entry.address or (entry.name and term in entry.name.lower())
        ]

    async def stats(self) -> Dict[str, int]:
        counters = await self.store.counters()
        return {
            "total_contracts": await self.count(),
            "contracts_added": counters.get(self.STAT_ADDED, 0),
            "contracts_removed": counters.get(self.STAT_REMOVED, 0),
        }
