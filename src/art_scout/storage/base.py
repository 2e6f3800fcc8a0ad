"""Base registry store"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class RegistryStore(ABC):
    """Durable key/value + set store behind the contract registry.

    Implementations provide atomic set membership and mutation, a per-address
    detail blob with a time-to-live, and monotonically incrementing counters.
    Failures to reach the store raise ``RegistryUnavailableError``.
    """

    @abstractmethod
    async def add_member(self, address: str) -> bool:
        """Add to the address set; True if it was not there before"""

    @abstractmethod
    async def remove_member(self, address: str) -> bool:
        """Remove from the address set; True if it was there"""

    @abstractmethod
    async def has_member(self, address: str) -> bool:
        """Set membership"""

    @abstractmethod
    async def members(self) -> List[str]:
        """All addresses in the set"""

    @abstractmethod
    async def count(self) -> int:
        """Size of the address set"""

    @abstractmethod
    async def put_detail(self, address: str, blob: str, ttl: int) -> None:
        """Store the detail blob for an address with a TTL in seconds"""

    @abstractmethod
    async def get_detail(self, address: str) -> Optional[str]:
        """Detail blob for an address, None if missing or expired"""

    @abstractmethod
    async def delete_detail(self, address: str) -> None:
        """Drop the detail blob for an address"""

    @abstractmethod
    async def incr_counter(self, name: str, amount: int = 1) -> int:
        """Increment a named counter, returning the new value"""

    @abstractmethod
    async def counters(self) -> Dict[str, int]:
        """All counters"""

    async def close(self) -> None:
        """Release connections"""
