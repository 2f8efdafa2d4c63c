from datetime import datetime, timedelta, timezone
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class NonceChallenge(BaseModel):
    """Single-use challenge issued to one wallet"""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "nonce": "9f2c0d6a1e5b47c3a8d4f6e2b1c0a9d8e7f6a5b4c3d2e1f0a9b8c7d6e5f4a3b2",
                "wallet_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
                "protocol": "solana",
                "created_at": "2024-02-06T10:00:00Z",
                "used": False,
                "message": "Sign this message to authenticate with Chatimics: 9f2c0d6a..."
            }
        }
    )

    nonce: str = Field(..., description="Unique hex nonce (256 bits)")
    wallet_address: str = Field(..., description="Normalized wallet address")
    protocol: str = Field(..., description="Chain family (solana, evm)")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    used: bool = Field(default=False)
    consumed_at: Optional[datetime] = None
    message: str = Field(..., description="Challenge message to be signed")

    def expires_at(self, ttl_seconds: int) -> datetime:
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at + timedelta(seconds=ttl_seconds)

    def is_pending(self, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """Unused and still inside the freshness window"""
        now = now or datetime.now(timezone.utc)
        return not self.used and now <= self.expires_at(ttl_seconds)
