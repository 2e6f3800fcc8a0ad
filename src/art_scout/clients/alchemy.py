"""Alchemy NFT API (v3) client - the chain indexer"""

from typing import Dict, Any, Optional, List

from .base import BaseAPIClient


class AlchemyClient(BaseAPIClient):
    """Alchemy API client"""

    name = "alchemy"

    CHAIN_MAP = {
        "base": "base-mainnet",
        "ethereum": "eth-mainnet",
    }

    def __init__(
        self,
        api_keys: List[str],
        base_url: str = "https://{network}.g.alchemy.com/nft/v3",
        timeout: float = 15,
        rate_limit: int = 330,
    ):
        super().__init__(api_keys, base_url, rate_limit=rate_limit, timeout=timeout)

    def _get_network(self, chain: str) -> str:
        """Convert chain name to Alchemy network"""
        chain_lower = chain.lower()
        return self.CHAIN_MAP.get(chain_lower, chain_lower)

    async def _make_request(
        self,
        endpoint: str,
        chain: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make Alchemy API request; the key is part of the path"""
        base_url = self.base_url.format(network=self._get_network(chain))
        base_url = f"{base_url}/{self.get_api_key()}"
        response = await self._request("GET", endpoint, params=params, base_url=base_url)
        return response if isinstance(response, dict) else {}

    async def get_contract_nfts(
        self,
        contract_address: str,
        chain: str,
        page_size: int = 50,
        start_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get one page of NFTs in a contract"""
        params = {
            "contractAddress": contract_address,
            "withMetadata": "true",
            "limit": min(page_size, 100),
        }
        if start_token:
            params["startToken"] = start_token

        response = await self._make_request("getNFTsForContract", chain, params=params)
        return {
            "nfts": response.get("nfts") or [],
            "pageKey": response.get("pageKey") or response.get("nextToken"),
        }

    async def get_owner_nfts(
        self,
        owner_address: str,
        chain: str,
        page_key: Optional[str] = None,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        """Get one page of NFTs owned by a wallet"""
        params = {
            "owner": owner_address,
            "withMetadata": "true",
            "pageSize": min(page_size, 100),
        }
        if page_key:
            params["pageKey"] = page_key

        response = await self._make_request("getNFTsForOwner", chain, params=params)
        return {
            "ownedNfts": response.get("ownedNfts") or [],
            "pageKey": response.get("pageKey"),
            "totalCount": response.get("totalCount"),
        }

    async def get_nft_metadata(
        self,
        contract_address: str,
        token_id: str,
        chain: str,
    ) -> Dict[str, Any]:
        """Get individual token metadata"""
        return await self._make_request(
            "getNFTMetadata",
            chain,
            params={
                "contractAddress": contract_address,
                "tokenId": token_id,
                "refreshCache": "false",
            },
        )
