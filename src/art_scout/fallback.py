"""
Placeholder dataset served when a live discovery pass finds nothing
"""

from typing import List

from .models import (
    ArtworkCandidate,
    Chain,
    Confidence,
    PriceQuote,
    PricedArtwork,
    SourceTag,
)

FALLBACK_MESSAGE = "Live sources returned no for-sale art; showing placeholder items"

PLACEHOLDER_CONTRACT = "0x0000000000000000000000000000000000000000"
PLACEHOLDER_IMAGE = "https://placehold.co/600x600/png?text=Art+Scout"

# (name, artist, price)
_PLACEHOLDERS = [
    ("Placeholder Study I", "Art Scout", "0.05"),
    ("Placeholder Study II", "Art Scout", "0.08"),
    ("Placeholder Study III", "Art Scout", "0.12"),
    ("Placeholder Study IV", "Art Scout", "0.2"),
    ("Placeholder Study V", "Art Scout", "0.35"),
    ("Placeholder Study VI", "Art Scout", "0.5"),
]


def fallback_items(limit: int) -> List[PricedArtwork]:
    """The fixed placeholder items, at most ``limit`` of them, always in the same order"""
    items = []
    for index, (name, artist, amount) in enumerate(_PLACEHOLDERS[:max(limit, 0)], start=1):
        artwork = ArtworkCandidate(
            contract_address=PLACEHOLDER_CONTRACT,
            token_id=str(index),
            name=name,
            description="Placeholder shown while live art sources are unavailable.",
            image_url=PLACEHOLDER_IMAGE,
            collection_name="Placeholder",
            artist=artist,
            platform="Placeholder",
            source=SourceTag.FALLBACK,
        )
        price = PriceQuote(
            amount=amount,
            marketplace="Placeholder",
            chain=Chain.BASE,
            confidence=Confidence.ESTIMATED,
        )
        items.append(PricedArtwork(artwork=artwork, price=price))
    return items
