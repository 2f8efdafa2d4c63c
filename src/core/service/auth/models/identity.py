from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class IdentityRecord(BaseModel):
    """Durable mapping from a verified wallet to its chat account"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    wallet_address: str = Field(..., description="Normalized wallet address, immutable")
    protocol: str
    chat_user_id: str = Field(..., description="Fully qualified Matrix user id")
    pseudonym: str
    pseudonym_variant: int = 0
    chat_secret: str
    asset_mint: Optional[str] = None
    asset_creator: Optional[str] = None
    asset_name: Optional[str] = None
    asset_image: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_verified_at: Optional[datetime] = None
    is_active: bool = True
