"""In-memory registry store, for development and tests"""

import asyncio
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from .base import RegistryStore


class MemoryRegistryStore(RegistryStore):
    """Process-local registry store; nothing survives a restart"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._members: Set[str] = set()
        self._details: Dict[str, Tuple[str, float]] = {}
        self._counters: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def add_member(self, address: str) -> bool:
        async with self._lock:
            if address in self._members:
                return False
            self._members.add(address)
            return True

    async def remove_member(self, address: str) -> bool:
        async with self._lock:
            if address not in self._members:
                return False
            self._members.discard(address)
            return True

    async def has_member(self, address: str) -> bool:
        return address in self._members

    async def members(self) -> List[str]:
        return list(self._members)

    async def count(self) -> int:
        return len(self._members)

    async def put_detail(self, address: str, blob: str, ttl: int) -> None:
        self._details[address] = (blob, self._clock() + ttl)

    async def get_detail(self, address: str) -> Optional[str]:
        stored = self._details.get(address)
        if stored is None:
            return None
        blob, expires_at = stored
        if self._clock() >= expires_at:
            self._details.pop(address, None)
            return None
        return blob

    async def delete_detail(self, address: str) -> None:
        self._details.pop(address, None)

    async def incr_counter(self, name: str, amount: int = 1) -> int:
        async with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount
            return self._counters[name]

    async def counters(self) -> Dict[str, int]:
        return dict(self._counters)
