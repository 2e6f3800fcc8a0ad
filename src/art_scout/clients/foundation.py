"""
Foundation clients - curated art marketplace
The protocol's subgraph may live on a different chain than the artwork,
so every subgraph query takes an explicit chain.
"""

from typing import Dict, Any, Optional

from .base import BaseAPIClient
from ..errors import ProviderError

MARKET_QUERY = """
query TokenMarket($contractAddress: String!, $tokenId: String!) {
  nftMarketAuctions(
    where: { nftContract: $contractAddress, tokenId: $tokenId, status: "Open" }
    first: 1
  ) {
    id
    reservePrice
    highestBid
    seller
    status
  }
  nftMarketBuyPrices(
    where: { nftContract: $contractAddress, tokenId: $tokenId, status: "Open" }
    first: 1
  ) {
    id
    price
    seller
    status
  }
}
"""


class FoundationSubgraphClient(BaseAPIClient):
    """GraphQL client for the Foundation market subgraphs, one URL per chain"""

    name = "foundation-subgraph"

    def __init__(self, subgraph_urls: Dict[str, str], timeout: float = 5, rate_limit: int = 10):
        super().__init__(api_keys=[], base_url="", rate_limit=rate_limit, timeout=timeout)
        self.subgraph_urls = {chain.lower(): url for chain, url in subgraph_urls.items()}

    def has_chain(self, chain: str) -> bool:
        return chain.lower() in self.subgraph_urls

    async def get_open_market(self, contract_address: str, token_id: str, chain: str) -> Dict[str, Any]:
        """
        Get open auctions and buy-now prices for a token on one chain

        Returns:
            {"auctions": [...], "buyPrices": [...]}
        """
        url = self.subgraph_urls.get(chain.lower())
        if not url:
            raise ProviderError(self.name, f"no subgraph for chain {chain}")

        response = await self._request(
            "POST",
            "",
            json_data={
                "query": MARKET_QUERY,
                "variables": {
                    "contractAddress": contract_address.lower(),
                    "tokenId": str(token_id),
                },
            },
            base_url=url,
        )
        if not isinstance(response, dict):
            raise ProviderError(self.name, "unexpected response shape")
        if response.get("errors"):
            raise ProviderError(self.name, f"graphql errors: {response['errors']}")

        data = response.get("data") or {}
        return {
            "auctions": data.get("nftMarketAuctions") or [],
            "buyPrices": data.get("nftMarketBuyPrices") or [],
        }


class FoundationClient(BaseAPIClient):
    """Foundation's own REST API"""

    name = "foundation"

    def __init__(self, base_url: str = "https://api.foundation.app/v1", timeout: float = 5, rate_limit: int = 5):
        super().__init__(api_keys=[], base_url=base_url, rate_limit=rate_limit, timeout=timeout)

    async def get_artwork(self, contract_address: str, token_id: str) -> Optional[Dict[str, Any]]:
        """Get artwork state including market and auction blocks"""
        try:
            response = await self._request(
                "GET",
                f"/artworks/{contract_address}/{token_id}",
                headers={"User-Agent": "Mozilla/5.0"},
            )
        except ProviderError as e:
            # Unknown artwork is "not listed", not a failure
            if e.status == 404:
                return None
            raise
        return response if isinstance(response, dict) else None
