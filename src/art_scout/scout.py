"""
Main Art Scout class: the discovery, registry and stats surface
"""

import random
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from .aggregator import AggregationResult, Aggregator
from .cache import ResponseCache, make_cache_key
from .clients.alchemy import AlchemyClient
from .clients.foundation import FoundationClient, FoundationSubgraphClient
from .clients.reservoir import ReservoirClient
from .config import Config, config
from .errors import InputValidationError, ProviderError, RegistryUnavailableError
from .fallback import FALLBACK_MESSAGE, fallback_items
from .models import (
    AddManyResult,
    AddressValidation,
    ArtworkCandidate,
    Chain,
    ContractRegistryEntry,
    DataSource,
    DiscoveryResponse,
    OriginTag,
    PlatformInfo,
    RegistryAddResult,
    ScoutStats,
    SourceTag,
    WalletImportResult,
)
from .normalizer import KNOWN_PLATFORMS, Normalizer
from .pricing import PriceResolver, build_cascade
from .registry import ContractRegistry
from .sources import ContractFetcher, OrderBookFetcher, WalletFetcher
from .storage import RegistryStore, get_registry_store
from .utils import normalize_address, normalize_addresses, shorten_address

DISCOVERY_ACTIONS = ("curated", "discover", "trending", "refresh")
TRENDING_LIMIT = 10

PLATFORM_DETAILS = [
    ("foundation", "Foundation", "Premier marketplace for 1/1 digital art", "https://foundation.app"),
    ("manifold", "Manifold", "Creator-owned contracts for independent artists", "https://manifold.xyz"),
    ("zora", "Zora", "Open protocol for 1/1s and editions", "https://zora.co"),
    ("independent", "Independent", "Direct from artist contracts", None),
]


class ArtScout:
    """Discovers for-sale 1/1 art across the registry and the order book"""

    def __init__(
        self,
        config_instance: Optional[Config] = None,
        store: Optional[RegistryStore] = None,
        clients: Optional[Dict[str, Any]] = None,
        cache_clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            config_instance: Settings; the global config when omitted
            store: Registry store; chosen from config when omitted
            clients: Provider clients keyed by "alchemy", "reservoir",
                "foundation_subgraph" and "foundation". When given, no other
                client is created.
            cache_clock: Monotonic clock used by the response cache
            rng: Random source for the presentation shuffle
        """
        self.config = config_instance or config

        self.alchemy = None
        self.reservoir = None
        self.foundation_subgraph = None
        self.foundation = None

        if clients is None:
            self._initialize_clients()
        else:
            self.alchemy = clients.get("alchemy")
            self.reservoir = clients.get("reservoir")
            self.foundation_subgraph = clients.get("foundation_subgraph")
            self.foundation = clients.get("foundation")

        self.home_chain = Chain.from_string(self.config.home_chain)
        self.secondary_chain = Chain.from_string(self.config.secondary_chain)

        self.store = store or get_registry_store(self.config)
        self.registry = ContractRegistry(self.store, detail_ttl=self.config.registry_detail_ttl)

        self.cache = ResponseCache(
            ttl=self.config.cache_ttl,
            sweep_interval=self.config.cache_sweep_interval,
            max_entries=self.config.cache_max_entries,
            clock=cache_clock,
        )
        # A cached page must never outlive a registry change
        self.registry.on_change(self.cache.invalidate_all)

        self.contract_fetcher = None
        self.wallet_fetcher = None
        if self.alchemy is not None:
            self.contract_fetcher = ContractFetcher(
                self.alchemy,
                chain=self.home_chain,
                page_size=self.config.contract_page_size,
                timeout=self.config.fetch_timeout,
            )
            self.wallet_fetcher = WalletFetcher(
                self.alchemy,
                chain=self.home_chain,
                timeout=self.config.fetch_timeout,
                retries=self.config.wallet_import_retries,
            )

        self.orderbook_fetcher = None
        if self.reservoir is not None:
            self.orderbook_fetcher = OrderBookFetcher(
                self.reservoir,
                chain=self.home_chain,
                limit=self.config.orderbook_limit,
                timeout=self.config.fetch_timeout,
            )

        self.resolver = PriceResolver(
            build_cascade(
                reservoir=self.reservoir,
                subgraph=self.foundation_subgraph,
                foundation=self.foundation,
                home_chain=self.home_chain,
                secondary_chain=self.secondary_chain,
                dev_price_sampling=self.config.dev_price_sampling,
                dev_price_sample_every=self.config.dev_price_sample_every,
            ),
            step_timeout=self.config.price_timeout,
        )

        self.aggregator = Aggregator(
            self.registry,
            self.contract_fetcher,
            self.resolver,
            orderbook_fetcher=self.orderbook_fetcher,
            max_workers=self.config.max_workers,
            request_timeout=self.config.request_timeout,
            rng=rng,
        )
        logger.info(f"Price cascade: {' -> '.join(self.resolver.step_names)}")

    def _initialize_clients(self):
        """Initialize API clients"""
        try:
            alchemy_config = self.config.get_alchemy_config()
            self.alchemy = AlchemyClient(
                api_keys=alchemy_config.keys,
                base_url=alchemy_config.base_url,
                timeout=self.config.fetch_timeout,
                rate_limit=alchemy_config.rate_limit,
            )
            logger.info("Alchemy client initialized")
        except ValueError as e:
            logger.warning(f"Alchemy client not available: {e}")

        try:
            reservoir_config = self.config.get_reservoir_config(self.config.home_chain)
            self.reservoir = ReservoirClient(
                base_url=reservoir_config.base_url,
                chain=self.config.home_chain,
                api_key=self.config.reservoir_api_key,
                timeout=self.config.price_timeout,
                rate_limit=reservoir_config.rate_limit,
            )
            if self.config.reservoir_api_key:
                logger.info("Reservoir client initialized with API key")
            else:
                logger.info("Reservoir client initialized (no API key)")
        except ValueError as e:
            logger.warning(f"Reservoir client not available: {e}")

        if self.config.foundation_subgraph_urls:
            self.foundation_subgraph = FoundationSubgraphClient(
                self.config.foundation_subgraph_urls,
                timeout=self.config.price_timeout,
            )
            logger.info(
                f"Foundation subgraph client initialized ({', '.join(sorted(self.config.foundation_subgraph_urls))})"
            )
        else:
            logger.warning("Foundation subgraph client not available: no subgraph URLs")

        if self.config.foundation_api_url:
            self.foundation = FoundationClient(self.config.foundation_api_url, timeout=self.config.price_timeout)
            logger.info("Foundation API client initialized")
        else:
            logger.warning("Foundation API client not available: no API URL")

    async def start(self):
        """Start background work (cache sweep); call from a running loop"""
        self.cache.start()

    async def close(self):
        await self.cache.stop()
        await self.store.close()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # Discovery

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.default_limit
        if limit <= 0:
            raise InputValidationError(f"limit must be positive, got {limit}")
        return min(limit, self.config.max_limit)

    async def _aggregate(self, limit: int, extras: List[str], registry_addresses: List[str]) -> AggregationResult:
        try:
            return await self.aggregator.discover(limit, extras, registry_addresses)
        except RegistryUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Discovery pass failed: {e!r}")
            return AggregationResult()

    async def discover(
        self,
        limit: Optional[int] = None,
        extra_contracts: Optional[Iterable[str]] = None,
        force_refresh: bool = False,
        action: str = "discover",
        include_unpriced: bool = False,
    ) -> DiscoveryResponse:
        """
        For-sale art from the registry, any extra contracts and the order book

        Never raises for provider trouble: a pass that finds nothing returns
        the placeholder dataset marked with source "fallback".

        Raises:
            InputValidationError: bad limit, action or contract address
            RegistryUnavailableError: the registry store cannot be read
        """
        action = (action or "discover").lower()
        if action not in DISCOVERY_ACTIONS:
            raise InputValidationError(
                f"Invalid action {action!r}; expected one of {', '.join(DISCOVERY_ACTIONS)}"
            )
        if action == "refresh":
            action, force_refresh = "discover", True
        if action == "trending":
            limit = TRENDING_LIMIT

        limit = self._resolve_limit(limit)
        extras = normalize_addresses(extra_contracts or [])
        registry_addresses = await self.registry.addresses()

        key = make_cache_key(action, limit, registry_addresses + extras)
        result, from_cache = await self.cache.get_or_compute(
            key,
            lambda: self._aggregate(limit, extras, registry_addresses),
            force_refresh=force_refresh,
        )
        unpriced = result.unpriced if include_unpriced else []

        if not result.items:
            logger.warning(f"No for-sale art found for {key}; serving fallback dataset")
            items = fallback_items(limit)
            return DiscoveryResponse(
                items=items,
                source=DataSource.FALLBACK,
                total=len(items),
                message=FALLBACK_MESSAGE,
                unpriced=unpriced,
            )

        return DiscoveryResponse(
            items=result.items,
            source=DataSource.CACHE if from_cache else DataSource.LIVE,
            from_cache=from_cache,
            total=len(result.items),
            unpriced=unpriced,
        )

    # Registry

    async def registry_list(self) -> List[ContractRegistryEntry]:
        return await self.registry.list()

    async def registry_add(
        self,
        address: str,
        name: Optional[str] = None,
        added_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RegistryAddResult:
        return await self.registry.add(address, name=name, added_by=added_by, metadata=metadata)

    async def registry_add_many(
        self,
        addresses: Iterable[str],
        name: Optional[str] = None,
        added_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddManyResult:
        return await self.registry.add_many(addresses, name=name, added_by=added_by, metadata=metadata)

    async def registry_remove(self, address: str) -> bool:
        return await self.registry.remove(address)

    async def registry_search(self, query: str) -> List[ContractRegistryEntry]:
        return await self.registry.search(query)

    async def registry_clear(self) -> int:
        return await self.registry.clear()

    async def import_wallet(
        self,
        wallet_address: str,
        name: Optional[str] = None,
        fallback_contracts: Optional[Iterable[str]] = None,
    ) -> WalletImportResult:
        """
        Add every contract the wallet holds tokens from to the registry

        When the indexer is unavailable or finds nothing, caller-supplied
        fallback contracts are used instead.
        """
        wallet = normalize_address(wallet_address)
        fallback = normalize_addresses(fallback_contracts or [])
        logger.info(f"Processing wallet: {wallet}")

        contracts: List[str] = []
        method = None
        if self.wallet_fetcher is not None:
            try:
                scan = await self.wallet_fetcher.scan(wallet)
                contracts, method = scan.contracts, "indexer"
                logger.info(f"Found {len(contracts)} contracts in {wallet} via indexer")
            except ProviderError as e:
                logger.warning(f"Wallet scan failed for {wallet}: {e}")
            except Exception as e:
                logger.error(f"Unexpected error scanning {wallet}: {e!r}")
        else:
            logger.warning("No chain indexer configured; wallet scan skipped")

        if not contracts and fallback:
            contracts, method = fallback, "user-provided"
            logger.info(f"Using {len(contracts)} user-provided contracts for {wallet}")

        if not contracts:
            return WalletImportResult(
                wallet_address=wallet,
                total_contracts=await self.registry.count(),
                message="No NFT contracts found in wallet. Try adding contract addresses directly.",
            )

        result = await self.registry.add_many(
            contracts,
            name=name or f"Wallet {shorten_address(wallet)}",
            origin=OriginTag.WALLET,
            metadata={"source_wallet": wallet, "method": method},
        )
        return WalletImportResult(
            wallet_address=wallet,
            method=method,
            contracts_found=contracts,
            added=result.added,
            existing=result.existing,
            total_contracts=await self.registry.count(),
            message=f"Added {len(result.added)} new contracts from wallet",
        )

    async def validate_address(self, address: str) -> AddressValidation:
        """Format check; the indexer probe only adds detail and never rejects"""
        if not address:
            raise InputValidationError("Address is required")
        normalized = normalize_address(address)

        if self.alchemy is None:
            return AddressValidation(address=normalized, valid=True, message="Contract accepted")

        try:
            response = await self.alchemy.get_contract_nfts(normalized, self.home_chain.value, page_size=1)
        except ProviderError as e:
            logger.warning(f"Contract check failed for {normalized}: {e}")
            return AddressValidation(
                address=normalized,
                valid=True,
                message="Contract accepted (API check failed)",
                warning="Could not verify NFTs, but the address is well formed",
            )

        nft_count = len(response.get("nfts") or [])
        return AddressValidation(
            address=normalized,
            valid=True,
            message="Valid NFT contract" if nft_count else "Contract accepted",
            nft_count=nft_count,
        )

    async def token_metadata(self, contract_address: str, token_id: str) -> Optional[ArtworkCandidate]:
        """
        One token straight from the chain indexer

        Raises:
            InputValidationError: missing contract or token id
            ProviderError: no indexer configured, or the lookup failed
        """
        if not contract_address or not token_id:
            raise InputValidationError("Missing contract or tokenId")
        contract = normalize_address(contract_address)
        if self.alchemy is None:
            raise ProviderError("alchemy", "chain indexer not configured")

        data = await self.alchemy.get_nft_metadata(contract, str(token_id), self.home_chain.value)
        return Normalizer.normalize_alchemy_nft(data, source=SourceTag.CONTRACT)

    def platforms(self) -> List[PlatformInfo]:
        result = []
        for platform_id, name, description, url in PLATFORM_DETAILS:
            addresses = [address for address, label in KNOWN_PLATFORMS.items() if label == name]
            result.append(
                PlatformInfo(
                    id=platform_id,
                    name=name,
                    description=description,
                    contract_addresses=addresses,
                    url=url,
                )
            )
        return result

    # Reporting

    async def stats(self) -> ScoutStats:
        registry_stats = await self.registry.stats()
        return ScoutStats(
            **registry_stats,
            cache_entries=len(self.cache),
            cache_hits=self.cache.hits,
            cache_misses=self.cache.misses,
        )

    async def health(self) -> Dict[str, Any]:
        """Configured providers and local state; never touches the network"""
        registry_ok = True
        try:
            total_contracts = await self.registry.count()
        except RegistryUnavailableError as e:
            logger.error(f"Health check could not read registry: {e}")
            registry_ok, total_contracts = False, None

        return {
            "status": "healthy" if registry_ok else "degraded",
            "providers": {
                "alchemy": self.alchemy is not None,
                "reservoir": self.reservoir is not None,
                "foundation_subgraph": self.foundation_subgraph is not None,
                "foundation": self.foundation is not None,
            },
            "chains": {"home": self.home_chain.value, "secondary": self.secondary_chain.value},
            "price_cascade": self.resolver.step_names,
            "registry": {
                "backend": type(self.store).__name__,
                "reachable": registry_ok,
                "total_contracts": total_contracts,
            },
            "cache": {"entries": len(self.cache), "ttl": self.cache.ttl},
        }
