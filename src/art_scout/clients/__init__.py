"""API clients for artwork data providers"""

from .alchemy import AlchemyClient
from .base import BaseAPIClient
from .foundation import FoundationClient, FoundationSubgraphClient
from .reservoir import ReservoirClient

__all__ = [
    "AlchemyClient",
    "BaseAPIClient",
    "FoundationClient",
    "FoundationSubgraphClient",
    "ReservoirClient",
]
