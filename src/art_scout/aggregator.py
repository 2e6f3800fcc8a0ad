"""
Aggregator / deduplicator: one discovery pass over every source
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

from .models import ArtworkCandidate, PriceQuote, PricedArtwork
from .pricing import PriceResolver
from .registry import ContractRegistry
from .sources import ContractFetcher, OrderBookFetcher
from .utils import normalize_addresses

T = TypeVar("T")


@dataclass
class AggregationResult:
    """For-sale items plus the discovered-but-unpriced set"""
    items: List[PricedArtwork] = field(default_factory=list)
    unpriced: List[ArtworkCandidate] = field(default_factory=list)
    contracts_queried: int = 0
    candidates_seen: int = 0

    def __bool__(self) -> bool:
        return bool(self.items)


def deduplicate(batches: Iterable[Sequence[ArtworkCandidate]]) -> List[ArtworkCandidate]:
    """First-seen candidate wins for each (contract, token) identity"""
    seen = set()
    unique = []
    for batch in batches:
        for candidate in batch:
            if candidate.identity in seen:
                continue
            seen.add(candidate.identity)
            unique.append(candidate)
    return unique


class Aggregator:
    """Fans out to the fetchers, merges, prices, shuffles and truncates.

    Every network call is bounded by its own timeout, and the whole pass is
    bounded by ``request_timeout``: whatever has finished by then is used,
    the rest is cancelled and counts as no data. Fetching may use at most
    ``FETCH_SHARE`` of that budget so pricing always gets the remainder.
    """

    FETCH_SHARE = 0.6

    def __init__(
        self,
        registry: ContractRegistry,
        contract_fetcher: Optional[ContractFetcher],
        resolver: PriceResolver,
        orderbook_fetcher: Optional[OrderBookFetcher] = None,
        max_workers: int = 10,
        request_timeout: float = 25,
        rng: Optional[random.Random] = None,
    ):
        self.registry = registry
        self.contract_fetcher = contract_fetcher
        self.orderbook_fetcher = orderbook_fetcher
        self.resolver = resolver
        self.max_workers = max(max_workers, 1)
        self.request_timeout = request_timeout
        self._rng = rng or random.Random()

    async def _settle(
        self,
        coros: Dict[str, Awaitable[T]],
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> Dict[str, T]:
        """Run labelled coroutines under the fan-out width until the deadline"""
        if not coros:
            return {}

        async def bounded(coro: Awaitable[T]) -> T:
            async with semaphore:
                return await coro

        tasks = {asyncio.create_task(bounded(coro)): label for label, coro in coros.items()}
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        done, pending = await asyncio.wait(tasks, timeout=remaining)

        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Request deadline reached; dropping {len(pending)} unfinished calls")
            await asyncio.gather(*pending, return_exceptions=True)

        results: Dict[str, T] = {}
        for task in done:
            label = tasks[task]
            if task.exception() is not None:
                logger.error(f"{label} failed: {task.exception()!r}")
                continue
            results[label] = task.result()
        return results

    async def _fetch_all(
        self,
        contracts: List[str],
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> List[List[ArtworkCandidate]]:
        coros: Dict[str, Awaitable[List[ArtworkCandidate]]] = {}
        if self.orderbook_fetcher is not None:
            coros["orderbook"] = self.orderbook_fetcher.fetch()
        if self.contract_fetcher is not None:
            for address in contracts:
                coros[f"contract:{address}"] = self.contract_fetcher.fetch(address)
        elif contracts:
            logger.warning(f"No chain indexer configured; skipping {len(contracts)} contracts")

        results = await self._settle(coros, semaphore, deadline)

        # Order-book first so already-priced duplicates keep their price,
        # then contracts in query order
        ordered = [results.get("orderbook", [])]
        ordered.extend(results.get(f"contract:{address}", []) for address in contracts)
        return ordered

    async def _price_all(
        self,
        candidates: List[ArtworkCandidate],
        semaphore: asyncio.Semaphore,
        deadline: float,
    ) -> Dict[str, Optional[PriceQuote]]:
        coros = {
            f"{candidate.contract_address}:{candidate.token_id}": self.resolver.resolve_candidate(candidate)
            for candidate in candidates
        }
        return await self._settle(coros, semaphore, deadline)

    async def discover(
        self,
        limit: int,
        extra_contracts: Optional[Iterable[str]] = None,
        registry_addresses: Optional[List[str]] = None,
    ) -> AggregationResult:
        """
        One live discovery pass.

        Args:
            limit: Maximum number of for-sale items returned
            extra_contracts: Caller-supplied contracts queried alongside the registry
            registry_addresses: Registry snapshot, when the caller already read it

        Raises:
            RegistryUnavailableError: the registry could not be read
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        fetch_deadline = started + self.request_timeout * self.FETCH_SHARE
        deadline = started + self.request_timeout
        semaphore = asyncio.Semaphore(self.max_workers)

        if registry_addresses is None:
            registry_addresses = await self.registry.addresses()
        contracts = normalize_addresses(list(registry_addresses) + list(extra_contracts or []))

        batches = await self._fetch_all(contracts, semaphore, fetch_deadline)
        candidates = deduplicate(batches)
        total_fetched = sum(len(batch) for batch in batches)
        logger.info(
            f"Fetched {total_fetched} candidates from {len(contracts)} contracts "
            f"({len(candidates)} after dedup)"
        )

        self._rng.shuffle(candidates)
        prices = await self._price_all(candidates, semaphore, deadline)

        result = AggregationResult(contracts_queried=len(contracts), candidates_seen=len(candidates))
        for candidate in candidates:
            quote = prices.get(f"{candidate.contract_address}:{candidate.token_id}")
            if quote is None:
                result.unpriced.append(candidate)
            else:
                result.items.append(PricedArtwork(artwork=candidate, price=quote))

        priced = len(result.items)
        result.items = result.items[:limit]
        logger.info(
            f"Discovery pass: {priced} for sale, {len(result.unpriced)} not for sale, "
            f"returning {len(result.items)}"
        )
        return result

