"""Storage adapters for the contract registry"""

from loguru import logger

from .base import RegistryStore
from .memory import MemoryRegistryStore
from .redis_adapter import RedisRegistryStore

__all__ = ["MemoryRegistryStore", "RedisRegistryStore", "RegistryStore", "get_registry_store"]


def get_registry_store(config):
    """Get appropriate registry store based on config"""
    if config.registry_backend == "redis":
        if config.redis_url:
            return RedisRegistryStore(config)
        logger.warning("REGISTRY_BACKEND=redis but REDIS_URL is not set; using in-memory registry")
    return MemoryRegistryStore()
