import asyncio
import random
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest

from art_scout.config import Config
from art_scout.errors import ProviderError
from art_scout.scout import ArtScout
from art_scout.storage import MemoryRegistryStore

CONTRACT_A = "0x" + "aa" * 20
CONTRACT_B = "0x" + "bb" * 20
CONTRACT_C = "0x" + "cc" * 20
WALLET = "0x" + "12" * 20


def to_wei(amount: str) -> str:
    return str(int(Decimal(amount) * 10 ** 18))


def alchemy_nft(contract, token_id, name="Artwork", image="https://img.example/art.png", token_type="ERC721"):
    return {
        "contract": {"address": contract, "name": "Test Collection", "tokenType": token_type},
        "tokenId": str(token_id),
        "tokenType": token_type,
        "name": name,
        "image": {"cachedUrl": image} if image else {},
        "raw": {"metadata": {}},
    }


def edition_nft(contract, token_id, balance, total_supply):
    """An ERC1155 token held with the given balance out of the given supply"""
    nft = alchemy_nft(contract, token_id, token_type="ERC1155")
    nft["balance"] = str(balance)
    nft["contract"]["totalSupply"] = str(total_supply)
    return nft


def reservoir_token(amount: str, marketplace="OpenSea"):
    return {
        "market": {
            "floorAsk": {
                "price": {
                    "amount": {"raw": to_wei(amount), "decimal": float(amount)},
                    "currency": {"symbol": "ETH", "decimals": 18},
                },
                "source": {"name": marketplace},
            }
        }
    }


def reservoir_ask(contract, token_id, amount: str, name="Listed Artwork"):
    return {
        "id": f"order-{token_id}",
        "side": "sell",
        "contract": contract,
        "maker": WALLET,
        "price": {
            "amount": {"raw": to_wei(amount), "decimal": float(amount)},
            "currency": {"symbol": "ETH", "decimals": 18},
        },
        "source": {"name": "OpenSea"},
        "criteria": {
            "kind": "token",
            "data": {
                "token": {"tokenId": str(token_id), "name": name, "image": "https://img.example/ask.png"},
                "collection": {"name": "Listed Collection"},
            },
        },
    }


class ManualClock:
    """Monotonic clock that only moves when told to"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeAlchemy:
    def __init__(self, contracts=None, wallets=None, delay: float = 0, error: Optional[Exception] = None):
        self.contracts: Dict[str, list] = contracts or {}
        # wallet -> list of pages, each a list of NFTs
        self.wallets: Dict[str, List[list]] = wallets or {}
        self.delay = delay
        self.error = error
        self.owner_errors: List[Exception] = []
        self.calls: List[Tuple[str, str]] = []

    async def _pause(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def get_contract_nfts(self, contract_address, chain, page_size=50, start_token=None):
        self.calls.append(("contract", contract_address))
        await self._pause()
        return {"nfts": self.contracts.get(contract_address.lower(), [])[:page_size], "pageKey": None}

    async def get_owner_nfts(self, owner_address, chain, page_key=None, page_size=100):
        self.calls.append(("owner", owner_address))
        await self._pause()
        if self.owner_errors:
            raise self.owner_errors.pop(0)
        pages = self.wallets.get(owner_address.lower(), [[]])
        index = int(page_key or 0)
        next_key = str(index + 1) if index + 1 < len(pages) else None
        return {"ownedNfts": pages[index], "pageKey": next_key, "totalCount": None}

    async def get_nft_metadata(self, contract_address, token_id, chain):
        self.calls.append(("metadata", contract_address))
        await self._pause()
        for nft in self.contracts.get(contract_address.lower(), []):
            if nft["tokenId"] == str(token_id):
                return nft
        return {}


class FakeReservoir:
    def __init__(self, prices=None, asks=None, delay: float = 0, error: Optional[Exception] = None):
        # (contract, token_id) -> decimal amount string
        self.prices: Dict[Tuple[str, str], str] = prices or {}
        self.asks: list = asks or []
        self.delay = delay
        self.error = error
        self.lookups: List[Tuple[str, str]] = []

    async def get_token_market(self, contract_address, token_id):
        self.lookups.append((contract_address, str(token_id)))
        if self.error is not None:
            raise self.error
        amount = self.prices.get((contract_address, str(token_id)))
        return reservoir_token(amount) if amount else None

    async def get_active_asks(self, limit=50):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.asks[:limit]


class FakeSubgraph:
    def __init__(self, listings=None, failing_chains=(), chains=("base", "ethereum")):
        # (chain, contract, token_id) -> decimal amount string of an open auction reserve
        self.listings: Dict[Tuple[str, str, str], str] = listings or {}
        self.failing_chains = set(failing_chains)
        self.chains = set(chains)
        self.lookups: List[Tuple[str, str, str]] = []

    def has_chain(self, chain):
        return chain in self.chains

    async def get_open_market(self, contract_address, token_id, chain):
        self.lookups.append((chain, contract_address, str(token_id)))
        if chain in self.failing_chains:
            raise ProviderError("foundation-subgraph", f"{chain} down", status=503)
        amount = self.listings.get((chain, contract_address, str(token_id)))
        if amount is None:
            return {"auctions": [], "buyPrices": []}
        return {"auctions": [{"reservePrice": to_wei(amount), "highestBid": None}], "buyPrices": []}


class FakeFoundation:
    def __init__(self, artworks=None):
        # (contract, token_id) -> decimal buy-now amount string
        self.artworks: Dict[Tuple[str, str], str] = artworks or {}
        self.lookups: List[Tuple[str, str]] = []

    async def get_artwork(self, contract_address, token_id):
        self.lookups.append((contract_address, str(token_id)))
        amount = self.artworks.get((contract_address, str(token_id)))
        if amount is None:
            return None
        return {"market": {"status": "active", "buyNowPrice": to_wei(amount)}}


FAST_SETTINGS = dict(
    fetch_timeout=0.5,
    price_timeout=0.5,
    request_timeout=3,
    cache_ttl=300,
    dev_price_sampling=False,
)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_scout(clock):
    def _make(alchemy=None, reservoir=None, subgraph=None, foundation=None, store=None, **overrides):
        settings = Config(**{**FAST_SETTINGS, **overrides})
        return ArtScout(
            settings,
            store=store or MemoryRegistryStore(),
            clients={
                "alchemy": alchemy,
                "reservoir": reservoir,
                "foundation_subgraph": subgraph,
                "foundation": foundation,
            },
            cache_clock=clock,
            rng=random.Random(7),
        )

    return _make
