"""
Asset indexer payloads and eligibility results
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class AssetCreator(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: str
    verified: bool = False


class OwnedAsset(BaseModel):
    """One NFT as returned by the indexer"""
    model_config = ConfigDict(extra="ignore")

    mint: str
    name: Optional[str] = None
    image: Optional[str] = None
    creators: List[AssetCreator] = Field(default_factory=list)


class QualifyingAsset(BaseModel):
    """The asset that made a wallet eligible"""
    mint: str
    creator: str
    name: Optional[str] = None
    image: Optional[str] = None


class EligibilityResult(BaseModel):
    eligible: bool
    asset: Optional[QualifyingAsset] = None
    error: Optional[str] = None

    @property
    def upstream_failed(self) -> bool:
        """Ineligible only because the indexer could not be read"""
        return not self.eligible and self.error is not None
