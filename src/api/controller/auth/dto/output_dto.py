"""
Output DTOs for authentication, health and admin API endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime


class NonceResponseDto(BaseModel):
    """DTO for nonce issuance response."""

    nonce: str = Field(..., description="Unique challenge nonce")
    message: str = Field(..., description="Message to be signed by wallet")
    expires_in: int = Field(..., description="Nonce validity in seconds")
    protocol: str = Field(..., description="Chain family the nonce was issued for")


class AssetDto(BaseModel):
    mint: str
    creator: str
    name: Optional[str] = None
    image: Optional[str] = None


class VerifyResponseDto(BaseModel):
    """DTO for successful verification: chat credentials."""

    success: bool = Field(True)
    chat_user_id: str = Field(..., description="Matrix user id")
    pseudonym: str = Field(..., description="Display name")
    secret: str = Field(..., description="Chat account password")
    homeserver_url: str = Field(..., description="Matrix homeserver to log into")
    is_new_user: bool = Field(..., description="True when the account was created by this request")
    asset: Optional[AssetDto] = Field(None, description="NFT that qualified the wallet")


class ProtocolInfo(BaseModel):
    protocol: str = Field(..., description="Chain family")
    network_id: Optional[str] = Field(None, description="Network name")
    enabled: bool = Field(True)
    chain_id: Optional[int] = Field(None, description="Chain ID for EVM")
    eligibility: Optional[str] = Field(None, description="Eligibility check applied (nft or allowlist)")


class ProtocolsResponseDto(BaseModel):
    protocols: List[ProtocolInfo] = Field(..., description="Supported chain families")
    total_count: int


class ApprovedWalletsResponseDto(BaseModel):
    wallets: List[str] = Field(..., description="Lower-cased approved wallet addresses")
    total_count: int


class HealthCheckResponseDto(BaseModel):
    status: str = Field(..., description="ok or degraded")
    timestamp: datetime
    services: Dict[str, str] = Field(..., description="Component status")
    authorized_creators: int
    approved_wallets: int


class AdminUserDto(BaseModel):
    wallet_address: str
    protocol: str
    chat_user_id: str
    pseudonym: str
    asset_mint: Optional[str] = None
    asset_name: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_verified_at: Optional[datetime] = None
    is_active: bool


class AdminUsersResponseDto(BaseModel):
    users: List[AdminUserDto]
    count: int


class AdminStatsResponseDto(BaseModel):
    total_identities: int
    active_identities: int
    identities_by_protocol: Dict[str, int]
    authorized_creators: int
    approved_wallets: int
    timestamp: datetime


class ConfigReloadResponseDto(BaseModel):
    success: bool = True
    authorized_creators: int
    approved_wallets: int
    eligibility_policy: Dict[str, str]
