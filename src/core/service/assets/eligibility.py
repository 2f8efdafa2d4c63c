"""
Eligibility checks deciding whether a verified wallet may get a chat account.

Two variants exist: NFT ownership through the asset indexer, and a static
allow-list. Both fail closed and never raise.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from src.core.service.assets.indexer_client import AssetIndexerClient, IndexerError
from src.core.service.assets.models import EligibilityResult, QualifyingAsset
from src.core.service.auth.gate_config import GateConfig, ELIGIBILITY_NFT, ELIGIBILITY_ALLOWLIST
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class EligibilityChecker(ABC):
    name: str = ""

    @abstractmethod
    async def check_eligibility(self, wallet_address: str, config: GateConfig) -> EligibilityResult:
        pass

    async def close(self) -> None:
        pass


class AssetOwnershipVerifier(EligibilityChecker):
    """Eligible iff the wallet holds an NFT with a verified authorized creator"""

    name = ELIGIBILITY_NFT

    def __init__(self, indexer: AssetIndexerClient):
        self.indexer = indexer

    async def close(self) -> None:
        await self.indexer.close()

    async def check_eligibility(self, wallet_address: str, config: GateConfig) -> EligibilityResult:
        if not config.authorized_creators:
            logger.warning(
                "No authorized NFT creators configured, rejecting",
                extra={"wallet_address": wallet_address}
            )
            return EligibilityResult(eligible=False)

        try:
            assets = await self.indexer.list_assets(wallet_address)
        except IndexerError as e:
            return EligibilityResult(eligible=False, error=str(e))

        for asset in assets:
            for creator in asset.creators:
                if creator.verified and creator.address in config.authorized_creators:
                    logger.info(
                        "Found qualifying NFT",
                        extra={
                            "wallet_address": wallet_address,
                            "mint": asset.mint,
                            "creator": creator.address
                        }
                    )
                    return EligibilityResult(
                        eligible=True,
                        asset=QualifyingAsset(
                            mint=asset.mint,
                            creator=creator.address,
                            name=asset.name,
                            image=asset.image
                        )
                    )

        logger.info(
            "No qualifying NFT found",
            extra={"wallet_address": wallet_address, "assets_checked": len(assets)}
        )
        return EligibilityResult(eligible=False)


class AllowListVerifier(EligibilityChecker):
    """Case-insensitive membership in the approved wallet list"""

    name = ELIGIBILITY_ALLOWLIST

    async def check_eligibility(self, wallet_address: str, config: GateConfig) -> EligibilityResult:
        eligible = config.is_approved(wallet_address)
        if not eligible:
            logger.info("Wallet not on allow-list", extra={"wallet_address": wallet_address})
        return EligibilityResult(eligible=eligible)


class EligibilityService:
    """Routes a wallet to the checker its chain family is configured for"""

    def __init__(self, checkers: Dict[str, EligibilityChecker]):
        self.checkers = checkers

    async def check_eligibility(self, wallet_address: str, protocol: str, config: GateConfig) -> EligibilityResult:
        policy: Optional[str] = config.policy_for(protocol)
        checker = self.checkers.get(policy) if policy else None
        if checker is None:
            logger.warning(
                "No eligibility policy for protocol, rejecting",
                extra={"protocol": protocol, "policy": policy}
            )
            return EligibilityResult(eligible=False)
        return await checker.check_eligibility(wallet_address, config)

    async def close(self) -> None:
        for checker in self.checkers.values():
            await checker.close()


def create_eligibility_service(indexer: AssetIndexerClient) -> EligibilityService:
    return EligibilityService({
        ELIGIBILITY_NFT: AssetOwnershipVerifier(indexer),
        ELIGIBILITY_ALLOWLIST: AllowListVerifier(),
    })
