"""
Input DTOs for authentication API endpoints.

Every field is optional and loosely typed at the schema level: presence, type
and length are checked by the orchestrator after rate limiting, so a malformed
body still counts as an attempt.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Any


class NonceRequestDto(BaseModel):
    """DTO for nonce issuance request."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"wallet_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU", "protocol": "solana"},
                {"wallet_address": "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"}
            ]
        }
    )

    wallet_address: Any = Field(
        None,
        validation_alias=AliasChoices("wallet_address", "walletAddress"),
        description="Wallet address (Solana base58 or EVM 0x-hex), at most 100 characters"
    )
    protocol: Any = Field(
        None,
        description="Chain family (solana or evm); detected from the address when omitted"
    )

    @field_validator("wallet_address", "protocol", mode="before")
    @classmethod
    def strip_blank(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class VerifyRequestDto(BaseModel):
    """DTO for signature verification request."""
    model_config = ConfigDict(populate_by_name=True)

    wallet_address: Any = Field(
        None,
        validation_alias=AliasChoices("wallet_address", "walletAddress"),
        description="Wallet address that signed the challenge"
    )
    signature: Any = Field(
        None,
        description="base58 ed25519 signature (Solana) or 0x-hex personal_sign signature (EVM)"
    )
    nonce: Any = Field(None, description="Nonce returned by /auth/nonce")
    protocol: Any = Field(None, description="Chain family (solana or evm)")

    @field_validator("wallet_address", "signature", "nonce", "protocol", mode="before")
    @classmethod
    def strip_blank(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v
