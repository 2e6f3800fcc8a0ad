"""
Art Scout - for-sale 1/1 art discovery on Base
"""

__version__ = "1.0.0"
__author__ = "Art Scout Team"

from .scout import ArtScout
from .models import (
    ArtworkCandidate,
    Chain,
    Confidence,
    ContractRegistryEntry,
    DataSource,
    DiscoveryResponse,
    PriceQuote,
    PricedArtwork,
)
from .errors import (
    ArtScoutError,
    InputValidationError,
    ProviderError,
    RateLimitedError,
    RegistryUnavailableError,
)

__all__ = [
    "ArtScout",
    "ArtworkCandidate",
    "Chain",
    "Confidence",
    "ContractRegistryEntry",
    "DataSource",
    "DiscoveryResponse",
    "PriceQuote",
    "PricedArtwork",
    "ArtScoutError",
    "InputValidationError",
    "ProviderError",
    "RateLimitedError",
    "RegistryUnavailableError",
]
