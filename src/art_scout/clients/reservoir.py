"""
Reservoir API client - order aggregation index
Provides the active ask for a single token and the live order book of asks
"""

from typing import Dict, Any, Optional, List

from .base import BaseAPIClient


class ReservoirClient(BaseAPIClient):
    """Reservoir API client for one chain's deployment"""

    name = "reservoir"

    def __init__(
        self,
        base_url: str,
        chain: str,
        api_key: Optional[str] = None,
        timeout: float = 5,
        rate_limit: int = 2,
    ):
        """
        Initialize Reservoir client

        Args:
            base_url: Deployment URL; Reservoir runs one host per chain
            chain: Chain this deployment indexes
            api_key: Optional API key for higher rate limits (free tier available)
        """
        super().__init__(
            api_keys=[api_key] if api_key else [],
            base_url=base_url,
            rate_limit=rate_limit,
            timeout=timeout,
        )
        self.chain = chain
        self.api_key = api_key

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make request with API key header if available"""
        headers = {}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        response = await self._request("GET", endpoint, params=params, headers=headers)
        return response if isinstance(response, dict) else {}

    async def get_token_market(self, contract_address: str, token_id: str) -> Optional[Dict[str, Any]]:
        """
        Get market data for one token (floor ask)

        Returns:
            The token entry of the tokens/v7 response, or None if unknown
        """
        response = await self._make_request(
            "/tokens/v7",
            params={
                "tokens": f"{contract_address}:{token_id}",
                "includeTopBid": "false",
                "includeAttributes": "false",
            },
        )
        tokens = response.get("tokens") or []
        return tokens[0] if tokens else None

    async def get_active_asks(self, limit: int = 50) -> List[Dict[str, Any]]:
        """
        Get currently active sell orders across all collections

        Returns:
            List of order entries from orders/asks/v5
        """
        response = await self._make_request(
            "/orders/asks/v5",
            params={
                "status": "active",
                "sortBy": "createdAt",
                "includeCriteriaMetadata": "true",
                "normalizeRoyalties": "false",
                "limit": min(limit, 1000),
            },
        )
        return response.get("orders") or []
