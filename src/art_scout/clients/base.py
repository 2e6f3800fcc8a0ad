"""Base client with common functionality"""

import asyncio
import time
from typing import Dict, Any, Optional, List
import aiohttp
from loguru import logger

from ..errors import ProviderError, RateLimitedError


class BaseAPIClient:
    """Base class for API clients with per-request timeout and rate limiting.

    Every call is fallible: transport failures, timeouts and non-2xx answers
    surface as ``ProviderError`` (``RateLimitedError`` for 429) so callers
    can treat a provider as "contributed nothing" without catching aiohttp
    types. There is no retry here; callers that want one wrap the call.
    """

    name = "provider"

    def __init__(
        self,
        api_keys: List[str],
        base_url: str,
        rate_limit: int = 100,
        timeout: float = 30,
    ):
        self.api_keys = api_keys
        self.base_url = base_url
        self.rate_limit = max(int(rate_limit), 1)
        self.timeout = timeout
        self.current_key_index = 0
        self._rate_limiter_semaphore = asyncio.Semaphore(self.rate_limit)
        self._last_request_time = 0.0
        self._min_request_interval = 1.0 / self.rate_limit

    def get_api_key(self) -> str:
        """Get current API key (with rotation)"""
        if not self.api_keys:
            raise ValueError("No API keys configured")
        return self.api_keys[self.current_key_index % len(self.api_keys)]

    def rotate_api_key(self):
        """Rotate to next API key"""
        if self.api_keys:
            self.current_key_index = (self.current_key_index + 1) % len(self.api_keys)

    async def _apply_rate_limit(self):
        """Rate limiting"""
        async with self._rate_limiter_semaphore:
            current_time = time.monotonic()
            time_since_last = current_time - self._last_request_time
            if time_since_last < self._min_request_interval:
                await asyncio.sleep(self._min_request_interval - time_since_last)
            self._last_request_time = time.monotonic()

    def _build_url(self, endpoint: str, base_url: Optional[str] = None) -> str:
        base = (base_url or self.base_url).rstrip("/")
        if not endpoint:
            return base
        return f"{base}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """Make one HTTP request and decode the JSON body"""
        await self._apply_rate_limit()

        url = self._build_url(endpoint, base_url)

        default_headers = {"Accept": "application/json"}
        if json_data is not None:
            default_headers["Content-Type"] = "application/json"
        if headers:
            default_headers.update(headers)

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_data,
                    headers=default_headers,
                ) as response:
                    if response.status == 429:  # Rate limited
                        logger.warning(f"{self.name} rate limited, rotating API key")
                        self.rotate_api_key()
                        raise RateLimitedError(self.name)

                    if response.status >= 400:
                        raise ProviderError(
                            self.name,
                            f"HTTP {response.status} from {endpoint or url}",
                            status=response.status,
                        )
                    return await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise ProviderError(self.name, f"timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise ProviderError(self.name, f"request failed: {e}")
        except ValueError as e:
            # Undecodable JSON body
            raise ProviderError(self.name, f"bad response body: {e}")
