"""
Configuration management for Art Scout
"""

import os
from typing import Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


def _default_subgraph_urls() -> Dict[str, str]:
    return {
        "ethereum": "https://api.thegraph.com/subgraphs/name/foundation-app/foundation",
        "base": "https://api.thegraph.com/subgraphs/name/foundation-app/foundation-base",
    }


def _default_reservoir_urls() -> Dict[str, str]:
    return {
        "ethereum": "https://api.reservoir.tools",
        "base": "https://api-base.reservoir.tools",
    }


@dataclass
class APIConfig:
    """API configuration for a provider"""
    keys: List[str]
    base_url: str
    rate_limit: int = 100  # requests per second

    def get_key(self, index: int = 0) -> str:
        """Get API key by index (for rotation)"""
        return self.keys[index % len(self.keys)]


@dataclass
class Config:
    """Main configuration class"""

    alchemy_api_keys: List[str] = field(default_factory=list)
    reservoir_api_key: Optional[str] = None

    # Provider endpoints
    alchemy_base_url: str = "https://{network}.g.alchemy.com/nft/v3"
    reservoir_urls: Dict[str, str] = field(default_factory=_default_reservoir_urls)
    foundation_api_url: str = "https://api.foundation.app/v1"
    foundation_subgraph_urls: Dict[str, str] = field(default_factory=_default_subgraph_urls)

    # Chains: the display chain and the chain the curated marketplace protocol
    # may also be deployed on
    home_chain: str = "base"
    secondary_chain: str = "ethereum"

    # Contract registry
    registry_backend: str = "memory"  # "memory" or "redis"
    redis_url: Optional[str] = None
    registry_detail_ttl: int = 60 * 60 * 24 * 90  # 90 days

    # Response cache
    cache_ttl: int = 300  # 5 minutes
    cache_sweep_interval: int = 600  # 10 minutes
    cache_max_entries: int = 1000

    # Request settings (seconds)
    fetch_timeout: float = 15
    price_timeout: float = 5
    request_timeout: float = 25
    max_workers: int = 10  # fan-out width for fetchers and price lookups
    contract_page_size: int = 50
    orderbook_limit: int = 50
    wallet_import_retries: int = 3

    # Discovery limits
    default_limit: int = 20
    max_limit: int = 50

    # Local testing only: tag every Nth unpriced item with an estimated price
    dev_price_sampling: bool = False
    dev_price_sample_every: int = 3

    # HTTP surface
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""

        def get_keys(key_name: str) -> List[str]:
            """Get multiple API keys (comma-separated)"""
            keys_str = os.getenv(key_name, "")
            if not keys_str:
                return []
            return [k.strip() for k in keys_str.split(",") if k.strip()]

        def get_bool(key_name: str, default: bool = False) -> bool:
            value = os.getenv(key_name)
            if value is None:
                return default
            return value.strip().lower() in ("1", "true", "yes", "on")

        subgraphs = _default_subgraph_urls()
        if os.getenv("FOUNDATION_SUBGRAPH_BASE"):
            subgraphs["base"] = os.getenv("FOUNDATION_SUBGRAPH_BASE")
        if os.getenv("FOUNDATION_SUBGRAPH_ETHEREUM"):
            subgraphs["ethereum"] = os.getenv("FOUNDATION_SUBGRAPH_ETHEREUM")

        return cls(
            alchemy_api_keys=get_keys("ALCHEMY_API_KEY"),
            reservoir_api_key=os.getenv("RESERVOIR_API_KEY"),
            foundation_api_url=os.getenv("FOUNDATION_API_URL", "https://api.foundation.app/v1"),
            foundation_subgraph_urls=subgraphs,
            home_chain=os.getenv("HOME_CHAIN", "base"),
            secondary_chain=os.getenv("SECONDARY_CHAIN", "ethereum"),
            registry_backend=os.getenv("REGISTRY_BACKEND", "memory"),
            redis_url=os.getenv("REDIS_URL"),
            registry_detail_ttl=int(os.getenv("REGISTRY_DETAIL_TTL", str(60 * 60 * 24 * 90))),
            cache_ttl=int(os.getenv("CACHE_TTL", "300")),
            cache_sweep_interval=int(os.getenv("CACHE_SWEEP_INTERVAL", "600")),
            cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", "1000")),
            fetch_timeout=float(os.getenv("FETCH_TIMEOUT", "15")),
            price_timeout=float(os.getenv("PRICE_TIMEOUT", "5")),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "25")),
            max_workers=int(os.getenv("MAX_WORKERS", "10")),
            contract_page_size=int(os.getenv("CONTRACT_PAGE_SIZE", "50")),
            orderbook_limit=int(os.getenv("ORDERBOOK_LIMIT", "50")),
            wallet_import_retries=int(os.getenv("WALLET_IMPORT_RETRIES", "3")),
            default_limit=int(os.getenv("DEFAULT_LIMIT", "20")),
            max_limit=int(os.getenv("MAX_LIMIT", "50")),
            dev_price_sampling=get_bool("DEV_PRICE_SAMPLING"),
            dev_price_sample_every=int(os.getenv("DEV_PRICE_SAMPLE_EVERY", "3")),
            cors_origins=get_keys("CORS_ORIGINS") or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def get_alchemy_config(self) -> APIConfig:
        """Get Alchemy API config"""
        if not self.alchemy_api_keys:
            raise ValueError("Alchemy API keys not configured")
        return APIConfig(
            keys=self.alchemy_api_keys,
            base_url=self.alchemy_base_url,
            rate_limit=330,  # Alchemy's limit
        )

    def get_reservoir_config(self, chain: str) -> APIConfig:
        """Get Reservoir API config for one chain (key is optional)"""
        base_url = self.reservoir_urls.get(chain.lower())
        if not base_url:
            raise ValueError(f"Reservoir not configured for chain {chain}")
        return APIConfig(
            keys=[self.reservoir_api_key] if self.reservoir_api_key else [],
            base_url=base_url,
            rate_limit=2,
        )

    def get_subgraph_url(self, chain: str) -> str:
        """Get the curated marketplace subgraph URL for one chain"""
        url = self.foundation_subgraph_urls.get(chain.lower())
        if not url:
            raise ValueError(f"Foundation subgraph not configured for chain {chain}")
        return url


# Global config instance
config = Config.from_env()
