"""Source fetchers: independent adapters that each pull candidate artworks
from one external data source.

A fetcher never raises out of ``fetch``. A timeout or provider failure is
logged and the fetcher contributes zero candidates.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional

from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import ProviderError, RateLimitedError
from .models import ArtworkCandidate, Chain, SourceTag
from .normalizer import Normalizer


def is_presentable(candidate: ArtworkCandidate) -> bool:
    """Keep tokens that have at least an image or a display name"""
    return bool(candidate.image_url or candidate.name)


def is_discoverable(candidate: ArtworkCandidate) -> bool:
    """Presentable and a true 1/1; multi-edition tokens are dropped"""
    return is_presentable(candidate) and candidate.is_one_of_one


class SourceFetcher:
    """Common fetch contract: bounded by a timeout, partial success allowed"""

    name = "source"

    def __init__(self, timeout: float):
        self.timeout = timeout

    async def _fetch(self, params: Any) -> List[ArtworkCandidate]:
        raise NotImplementedError

    async def fetch(self, params: Any = None) -> List[ArtworkCandidate]:
        try:
            candidates = await asyncio.wait_for(self._fetch(params), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.name}] timed out after {self.timeout}s for {params or 'all'}")
            return []
        except ProviderError as e:
            logger.warning(f"[{self.name}] provider error for {params or 'all'}: {e}")
            return []
        except Exception as e:
            logger.error(f"[{self.name}] unexpected error for {params or 'all'}: {e!r}")
            return []

        logger.debug(f"[{self.name}] {len(candidates)} candidates for {params or 'all'}")
        return candidates


class ContractFetcher(SourceFetcher):
    """One bounded page of tokens for one registry contract"""

    name = "contract"

    def __init__(self, client, chain: Chain = Chain.BASE, page_size: int = 50, timeout: float = 15):
        super().__init__(timeout)
        self.client = client
        self.chain = chain
        self.page_size = page_size

    async def _fetch(self, contract_address: str) -> List[ArtworkCandidate]:
        response = await self.client.get_contract_nfts(
            contract_address,
            Chain(self.chain).value,
            page_size=self.page_size,
        )

        candidates = []
        for nft in response.get("nfts", []):
            candidate = Normalizer.normalize_alchemy_nft(nft, source=SourceTag.CONTRACT)
            if candidate is None or not is_discoverable(candidate):
                continue
            candidates.append(candidate)
        return candidates


@dataclass
class WalletScan:
    """Tokens owned by a wallet and the distinct contracts they come from"""
    wallet_address: str
    candidates: List[ArtworkCandidate] = field(default_factory=list)
    contracts: List[str] = field(default_factory=list)


class WalletFetcher(SourceFetcher):
    """All tokens owned by an externally-owned address.

    The distinct contract set is what feeds wallet imports into the registry.
    """

    name = "wallet"

    def __init__(
        self,
        client,
        chain: Chain = Chain.BASE,
        timeout: float = 15,
        retries: int = 3,
        max_pages: int = 20,
        retry_wait=None,
    ):
        super().__init__(timeout)
        self.client = client
        self.chain = chain
        self.retries = max(retries, 1)
        self.max_pages = max_pages
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    async def _get_page(self, wallet_address: str, page_key: Optional[str]) -> dict:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(RateLimitedError),
            reraise=True,
        ):
            with attempt:
                return await self.client.get_owner_nfts(
                    wallet_address,
                    Chain(self.chain).value,
                    page_key=page_key,
                )
        return {}

    async def scan(self, wallet_address: str) -> WalletScan:
        """Walk every page of the wallet within the fetcher timeout.

        Raises:
            ProviderError: the indexer failed, or the walk ran past the timeout
        """
        try:
            return await asyncio.wait_for(self._walk(wallet_address), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ProviderError(self.name, f"scan of {wallet_address} timed out after {self.timeout}s")

    async def _walk(self, wallet_address: str) -> WalletScan:
        scan = WalletScan(wallet_address=wallet_address)
        seen_contracts = set()
        page_key = None

        for _ in range(self.max_pages):
            page = await self._get_page(wallet_address, page_key)
            for nft in page.get("ownedNfts", []):
                candidate = Normalizer.normalize_alchemy_nft(
                    nft, source=SourceTag.WALLET, owner=wallet_address.lower()
                )
                if candidate is None:
                    continue
                if candidate.contract_address not in seen_contracts:
                    seen_contracts.add(candidate.contract_address)
                    scan.contracts.append(candidate.contract_address)
                if is_discoverable(candidate):
                    scan.candidates.append(candidate)

            page_key = page.get("pageKey")
            if not page_key:
                break
        else:
            logger.warning(f"[wallet] stopped after {self.max_pages} pages for {wallet_address}")

        logger.info(
            f"[wallet] {wallet_address}: {len(scan.candidates)} tokens across {len(scan.contracts)} contracts"
        )
        return scan

    async def _fetch(self, wallet_address: str) -> List[ArtworkCandidate]:
        scan = await self._walk(wallet_address)
        return scan.candidates


class OrderBookFetcher(SourceFetcher):
    """Active sell orders straight from the order book, already priced"""

    name = "orderbook"

    def __init__(self, client, chain: Chain = Chain.BASE, limit: int = 50, timeout: float = 15):
        super().__init__(timeout)
        self.client = client
        self.chain = chain
        self.limit = limit

    async def _fetch(self, params: Any = None) -> List[ArtworkCandidate]:
        orders = await self.client.get_active_asks(limit=self.limit)

        candidates = []
        for order in orders:
            candidate = Normalizer.normalize_reservoir_ask(order, Chain(self.chain))
            if candidate is None or not is_discoverable(candidate):
                continue
            candidates.append(candidate)
        return candidates
