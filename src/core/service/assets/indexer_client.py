"""
Client for a Helius-compatible NFT indexer.
"""

from typing import List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from src.core.http_client import HTTPClientConfig
from src.core.service.assets.models import OwnedAsset
from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

_ASSET_LIST = TypeAdapter(List[OwnedAsset])


class IndexerError(Exception):
    """The indexer could not be reached or answered with something unusable"""


class AssetIndexerClient:
    """Lists the NFTs a wallet owns via GET /v0/addresses/{wallet}/nfts"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.ASSET_INDEXER_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.HELIUS_API_KEY
        config = HTTPClientConfig.create_client_config("indexer")
        if transport is not None:
            config["transport"] = transport
        self.client = httpx.AsyncClient(base_url=self.base_url, **config)

    async def close(self) -> None:
        await self.client.aclose()

    async def list_assets(self, wallet_address: str) -> List[OwnedAsset]:
        """
        Raises:
            IndexerError: transport failure, non-2xx status or malformed payload
        """
        params = {"api-key": self.api_key} if self.api_key else {}
        try:
            response = await self.client.get(f"/v0/addresses/{wallet_address}/nfts", params=params)
        except httpx.HTTPError as e:
            logger.error(
                "Asset indexer request failed",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            raise IndexerError(f"Indexer unreachable: {e.__class__.__name__}") from e

        if not response.is_success:
            logger.error(
                "Asset indexer returned an error",
                extra={"wallet_address": wallet_address, "status_code": response.status_code}
            )
            raise IndexerError(f"Indexer returned HTTP {response.status_code}")

        try:
            payload = response.json()
            # Some deployments wrap the list as {"nfts": [...]}
            if isinstance(payload, dict):
                payload = payload.get("nfts", payload.get("items"))
            assets = _ASSET_LIST.validate_python(payload)
        except (ValueError, ValidationError) as e:
            logger.error(
                "Asset indexer returned a malformed payload",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            raise IndexerError("Indexer returned a malformed payload") from e

        logger.debug(
            "Fetched wallet assets",
            extra={"wallet_address": wallet_address, "count": len(assets)}
        )
        return assets
