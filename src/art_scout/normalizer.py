"""Normalize provider responses to internal models.

This module is the parsing boundary: provider-specific field names are read
here and nowhere else.
"""

from typing import Dict, Any, Optional, List

from loguru import logger

from .models import (
    ArtworkCandidate,
    Chain,
    Confidence,
    PriceQuote,
    SourceTag,
    TokenStandard,
)
from .utils import decimal_string, wei_to_decimal

KNOWN_PLATFORMS: Dict[str, str] = {
    "0x972f31d4e140f0d09b154bb395a070ed5ee9fcca": "Foundation",
    "0x3b3ee1931dc30c1957379fac9aba94d1c48a5405": "Foundation",
    "0x0a1bbd59d1c3d0587ee909e41acdd83c99b19bf5": "Manifold",
    "0x76e2a96714f1681a0ac7c27816d4e71c38d44a8e": "Zora",
}


def platform_for_contract(contract_address: str) -> str:
    return KNOWN_PLATFORMS.get((contract_address or "").lower(), "Independent")


def convert_ipfs_to_http(ipfs_url: Optional[str]) -> Optional[str]:
    """Convert IPFS URL to HTTP gateway URL with reliable gateway"""
    if not ipfs_url or not isinstance(ipfs_url, str):
        return None

    # Already HTTP/HTTPS
    if ipfs_url.startswith(("http://", "https://", "data:")):
        return ipfs_url

    # IPFS protocol - preserve full path after hash
    if ipfs_url.startswith("ipfs://"):
        ipfs_path = ipfs_url[len("ipfs://"):].lstrip("/")
        if ipfs_path.startswith("ipfs/"):
            ipfs_path = ipfs_path[len("ipfs/"):]
        return f"https://cloudflare-ipfs.com/ipfs/{ipfs_path}"

    # Bare CIDv0 hash, optionally with a path
    if ipfs_url.startswith("Qm") and len(ipfs_url.split("/")[0]) > 40:
        return f"https://cloudflare-ipfs.com/ipfs/{ipfs_url}"

    return ipfs_url


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _price_from_amount(price: Dict[str, Any]) -> Optional[str]:
    """Reservoir price block -> decimal string, preferring the raw integer amount"""
    amount = price.get("amount") or {}
    currency = price.get("currency") or {}
    decimals = _to_int(currency.get("decimals"))
    if decimals is None:
        decimals = 18

    value = wei_to_decimal(amount.get("raw"), decimals)
    if value is None:
        value = decimal_string(amount.get("decimal"))
    return value


class Normalizer:
    """Convert API-specific responses to normalized models"""

    @staticmethod
    def normalize_alchemy_nft(
        data: Dict[str, Any],
        source: SourceTag = SourceTag.CONTRACT,
        owner: Optional[str] = None,
    ) -> Optional[ArtworkCandidate]:
        """Normalize an Alchemy v3 NFT; None when the token has no identity"""
        contract = data.get("contract") or {}
        contract_address = contract.get("address")
        token_id = data.get("tokenId")
        if not contract_address or token_id in (None, ""):
            return None

        raw_block = data.get("raw") or {}
        metadata = raw_block.get("metadata") or data.get("metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {}

        image = data.get("image") or {}
        image_url = (
            image.get("cachedUrl")
            or image.get("thumbnailUrl")
            or image.get("originalUrl")
            or metadata.get("image")
            or metadata.get("image_url")
        )

        token_type = data.get("tokenType") or contract.get("tokenType")
        owners = data.get("owners") or []

        return ArtworkCandidate(
            contract_address=contract_address,
            token_id=str(token_id),
            token_standard=TokenStandard.from_string(token_type),
            name=data.get("name") or metadata.get("name"),
            description=data.get("description") or metadata.get("description"),
            image_url=convert_ipfs_to_http(image_url),
            owner=owner or (owners[0] if owners else None),
            collection_name=contract.get("name"),
            artist=(
                metadata.get("artist")
                or metadata.get("creator")
                or metadata.get("created_by")
                or contract.get("name")
            ),
            platform=platform_for_contract(contract_address),
            balance=_to_int(data.get("balance")),
            total_supply=_to_int(contract.get("totalSupply")),
            source=source,
            raw=data,
        )

    @staticmethod
    def normalize_reservoir_ask(order: Dict[str, Any], chain: Chain) -> Optional[ArtworkCandidate]:
        """Normalize an active Reservoir sell order into a pre-priced candidate"""
        if order.get("side", "sell") != "sell":
            return None
        criteria = order.get("criteria") or {}
        if criteria.get("kind", "token") != "token":
            # Collection-wide or attribute orders have no single token
            return None

        criteria_data = criteria.get("data") or {}
        token = criteria_data.get("token") or {}
        collection = criteria_data.get("collection") or {}

        contract_address = order.get("contract")
        token_id = token.get("tokenId")
        if not contract_address or token_id in (None, ""):
            return None

        price = order.get("price") or {}
        amount = _price_from_amount(price)
        if amount is None:
            logger.debug(f"Order {order.get('id')} has no usable price")
            return None

        source = order.get("source") or {}
        currency = price.get("currency") or {}
        quote = PriceQuote(
            amount=amount,
            currency=currency.get("symbol") or "ETH",
            marketplace=source.get("name") or "Reservoir",
            chain=chain,
            confidence=Confidence.REAL,
        )

        return ArtworkCandidate(
            contract_address=contract_address,
            token_id=str(token_id),
            name=token.get("name"),
            image_url=convert_ipfs_to_http(token.get("image")),
            owner=order.get("maker"),
            collection_name=collection.get("name"),
            artist=collection.get("name"),
            platform=platform_for_contract(contract_address),
            source=SourceTag.ORDERBOOK,
            listed_price=quote,
            raw=order,
        )

    @staticmethod
    def quote_from_reservoir_token(token: Optional[Dict[str, Any]], chain: Chain) -> Optional[PriceQuote]:
        """Active floor ask of a tokens/v7 entry"""
        if not token:
            return None
        floor_ask = (token.get("market") or {}).get("floorAsk") or {}
        price = floor_ask.get("price")
        if not price:
            return None

        amount = _price_from_amount(price)
        if amount is None:
            return None

        source = floor_ask.get("source") or {}
        currency = price.get("currency") or {}
        return PriceQuote(
            amount=amount,
            currency=currency.get("symbol") or "ETH",
            marketplace=source.get("name") or "Reservoir",
            chain=chain,
            confidence=Confidence.REAL,
        )

    @staticmethod
    def quote_from_subgraph_market(market: Dict[str, Any], chain: Chain) -> Optional[PriceQuote]:
        """Open auction (highest bid, else reserve) wins over an open buy-now price"""
        auctions: List[Dict[str, Any]] = market.get("auctions") or []
        for auction in auctions:
            amount = wei_to_decimal(auction.get("highestBid") or auction.get("reservePrice"))
            if amount is not None:
                return PriceQuote(
                    amount=amount,
                    marketplace="Foundation Auction",
                    chain=chain,
                    confidence=Confidence.REAL,
                )

        buy_prices: List[Dict[str, Any]] = market.get("buyPrices") or []
        for listing in buy_prices:
            amount = wei_to_decimal(listing.get("price"))
            if amount is not None:
                return PriceQuote(
                    amount=amount,
                    marketplace="Foundation Buy Now",
                    chain=chain,
                    confidence=Confidence.REAL,
                )
        return None

    @staticmethod
    def quote_from_foundation_artwork(artwork: Optional[Dict[str, Any]], chain: Chain) -> Optional[PriceQuote]:
        """Active buy-now/reserve market first, then a running auction"""
        if not artwork:
            return None

        market = artwork.get("market") or {}
        if market.get("status") == "active":
            amount = wei_to_decimal(market.get("buyNowPrice") or market.get("reservePrice"))
            if amount is not None:
                return PriceQuote(
                    amount=amount,
                    marketplace="Foundation",
                    chain=chain,
                    confidence=Confidence.REAL,
                )

        auction = artwork.get("auction") or {}
        if auction.get("status") == "active":
            amount = wei_to_decimal(auction.get("currentBid") or auction.get("reservePrice"))
            if amount is not None:
                return PriceQuote(
                    amount=amount,
                    marketplace="Foundation Auction",
                    chain=chain,
                    confidence=Confidence.REAL,
                )
        return None
