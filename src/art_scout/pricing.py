"""Price resolution: an ordered cascade of pricing sources.

The cascade is a plain list of steps evaluated in order by one loop; the
first step that returns a quote wins and nothing after it runs. A step that
times out or errors counts as a miss.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from loguru import logger

from .errors import ProviderError
from .models import ArtworkCandidate, Chain, Confidence, PriceQuote
from .normalizer import Normalizer


@dataclass(frozen=True)
class PriceLookup:
    contract_address: str
    token_id: str
    known_price: Optional[PriceQuote] = None


class PriceStep:
    """One source in the cascade"""

    name = "step"

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        raise NotImplementedError


class KnownPriceStep(PriceStep):
    """Order-book items arrive already priced"""

    name = "orderbook"

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        return lookup.known_price


class OrderIndexStep(PriceStep):
    """Active ask from the general order aggregation index on the home chain"""

    name = "reservoir"

    def __init__(self, client, chain: Chain = Chain.BASE):
        self.client = client
        self.chain = Chain(chain)

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        token = await self.client.get_token_market(lookup.contract_address, lookup.token_id)
        return Normalizer.quote_from_reservoir_token(token, self.chain)


class ProtocolIndexStep(PriceStep):
    """Open auction or buy-now on the curated marketplace protocol.

    Both the home chain and the secondary chain are queried; when both
    report an open listing the secondary chain's answer is used.
    """

    name = "foundation-subgraph"

    def __init__(self, client, home_chain: Chain = Chain.BASE, secondary_chain: Chain = Chain.ETHEREUM):
        self.client = client
        self.home_chain = Chain(home_chain)
        self.secondary_chain = Chain(secondary_chain)

    async def _quote_on(self, lookup: PriceLookup, chain: Chain) -> Optional[PriceQuote]:
        if not self.client.has_chain(chain.value):
            return None
        market = await self.client.get_open_market(lookup.contract_address, lookup.token_id, chain.value)
        return Normalizer.quote_from_subgraph_market(market, chain)

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        home, secondary = await asyncio.gather(
            self._quote_on(lookup, self.home_chain),
            self._quote_on(lookup, self.secondary_chain),
            return_exceptions=True,
        )

        for chain, result in ((self.home_chain, home), (self.secondary_chain, secondary)):
            if isinstance(result, BaseException):
                logger.debug(f"[{self.name}] {chain.value} lookup failed: {result}")

        home_quote = home if isinstance(home, PriceQuote) else None
        secondary_quote = secondary if isinstance(secondary, PriceQuote) else None

        if secondary_quote is not None:
            if home_quote is not None and home_quote.decimal_amount != secondary_quote.decimal_amount:
                logger.info(
                    f"[{self.name}] {lookup.contract_address}/{lookup.token_id} listed on both chains "
                    f"({home_quote.amount} vs {secondary_quote.amount}); using {self.secondary_chain.value}"
                )
            return secondary_quote
        return home_quote


class MarketplaceApiStep(PriceStep):
    """Auction / buy-now state from the curated marketplace's own HTTP API"""

    name = "foundation-api"

    def __init__(self, client, chain: Chain = Chain.BASE):
        self.client = client
        self.chain = Chain(chain)

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        artwork = await self.client.get_artwork(lookup.contract_address, lookup.token_id)
        return Normalizer.quote_from_foundation_artwork(artwork, self.chain)


class EstimatedPriceStep(PriceStep):
    """Local testing only: every Nth token gets a deterministic estimated price"""

    name = "estimate"

    MIN_PRICE = Decimal("0.01")
    MAX_PRICE = Decimal("0.1")

    def __init__(self, every: int = 3, chain: Chain = Chain.BASE):
        self.every = max(every, 1)
        self.chain = Chain(chain)

    async def quote(self, lookup: PriceLookup) -> Optional[PriceQuote]:
        try:
            token_number = int(lookup.token_id)
        except ValueError:
            return None
        if token_number % self.every != 0:
            return None

        seed = Decimal((token_number or 1) * 37 % 100)
        amount = self.MIN_PRICE + (self.MAX_PRICE - self.MIN_PRICE) * seed / Decimal(100)
        return PriceQuote(
            amount=str(amount.quantize(Decimal("0.0001"))),
            marketplace="Estimated",
            chain=self.chain,
            confidence=Confidence.ESTIMATED,
        )


class PriceResolver:
    """Walks the cascade for one item until a step yields a price"""

    def __init__(self, steps: Sequence[PriceStep], step_timeout: float = 5):
        self.steps: List[PriceStep] = list(steps)
        self.step_timeout = step_timeout

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]

    async def resolve(
        self,
        contract_address: str,
        token_id: str,
        known_price: Optional[PriceQuote] = None,
    ) -> Optional[PriceQuote]:
        """First price found wins; None means discovered but not for sale"""
        lookup = PriceLookup(contract_address.lower(), str(token_id), known_price)

        for step in self.steps:
            try:
                quote = await asyncio.wait_for(step.quote(lookup), timeout=self.step_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"[{step.name}] timed out for {contract_address}/{token_id}")
                continue
            except ProviderError as e:
                logger.warning(f"[{step.name}] {contract_address}/{token_id}: {e}")
                continue
            except Exception as e:
                logger.error(f"[{step.name}] unexpected error for {contract_address}/{token_id}: {e!r}")
                continue

            if quote is not None:
                logger.debug(
                    f"Priced {contract_address}/{token_id} at {quote.amount} {quote.currency} "
                    f"via {step.name} ({quote.marketplace})"
                )
                return quote

        return None

    async def resolve_candidate(self, candidate: ArtworkCandidate) -> Optional[PriceQuote]:
        return await self.resolve(candidate.contract_address, candidate.token_id, candidate.listed_price)


def build_cascade(
    reservoir=None,
    subgraph=None,
    foundation=None,
    home_chain: Chain = Chain.BASE,
    secondary_chain: Chain = Chain.ETHEREUM,
    dev_price_sampling: bool = False,
    dev_price_sample_every: int = 3,
) -> List[PriceStep]:
    """The production cascade order; missing clients drop their step"""
    steps: List[PriceStep] = [KnownPriceStep()]
    if reservoir is not None:
        steps.append(OrderIndexStep(reservoir, home_chain))
    if subgraph is not None:
        steps.append(ProtocolIndexStep(subgraph, home_chain, secondary_chain))
    if foundation is not None:
        steps.append(MarketplaceApiStep(foundation, home_chain))
    if dev_price_sampling:
        logger.warning("Estimated prices enabled - for local testing only")
        steps.append(EstimatedPriceStep(dev_price_sample_every, home_chain))
    return steps
