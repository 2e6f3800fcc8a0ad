"""Redis registry store"""

from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from .base import RegistryStore
from ..config import Config
from ..errors import RegistryUnavailableError


class RedisRegistryStore(RegistryStore):
    """Redis-based registry store; survives restarts and is shared across processes"""

    CONTRACTS_SET = "base_art_contracts"
    CONTRACT_DETAILS = "contract_details:"
    STATS_KEY = "base_art_stats"

    def __init__(self, config: Config, client: Optional[Any] = None):
        self.config = config
        self.redis_client: Optional[Any] = client

    async def _client(self):
        """Ensure Redis connection is established"""
        if self.redis_client is None:
            if not self.config.redis_url:
                raise RegistryUnavailableError("Redis URL not configured")
            self.redis_client = redis.from_url(
                self.config.redis_url,
                decode_responses=True,
            )
        return self.redis_client

    async def _call(self, op: str, *args, **kwargs):
        client = await self._client()
        try:
            return await getattr(client, op)(*args, **kwargs)
        except (RedisError, OSError) as e:
            logger.error(f"Redis {op} failed: {e}")
            raise RegistryUnavailableError(f"registry store unavailable: {e}") from e

    async def add_member(self, address: str) -> bool:
        return bool(await self._call("sadd", self.CONTRACTS_SET, address))

    async def remove_member(self, address: str) -> bool:
        return bool(await self._call("srem", self.CONTRACTS_SET, address))

    async def has_member(self, address: str) -> bool:
        return bool(await self._call("sismember", self.CONTRACTS_SET, address))

    async def members(self) -> List[str]:
        return list(await self._call("smembers", self.CONTRACTS_SET) or [])

    async def count(self) -> int:
        return int(await self._call("scard", self.CONTRACTS_SET) or 0)

    async def put_detail(self, address: str, blob: str, ttl: int) -> None:
        await self._call("set", f"{self.CONTRACT_DETAILS}{address}", blob, ex=ttl)

    async def get_detail(self, address: str) -> Optional[str]:
        return await self._call("get", f"{self.CONTRACT_DETAILS}{address}")

    async def delete_detail(self, address: str) -> None:
        await self._call("delete", f"{self.CONTRACT_DETAILS}{address}")

    async def incr_counter(self, name: str, amount: int = 1) -> int:
        return int(await self._call("hincrby", self.STATS_KEY, name, amount))

    async def counters(self) -> Dict[str, int]:
        stats = await self._call("hgetall", self.STATS_KEY) or {}
        result = {}
        for key, value in stats.items():
            try:
                result[key] = int(value)
            except (TypeError, ValueError):
                result[key] = 0
        return result

    async def close(self):
        """Close Redis connection"""
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
