"""
Solana Protocol implementation for wallet verification.

A Solana wallet address is the base58 encoding of its 32-byte ed25519 public key,
so verification needs no network access: the address itself is the verifying key.
Wallets sign the raw UTF-8 challenge (signMessage) and return a base58 signature.
"""

import re
from typing import Tuple, Optional

from src.core.service.auth.protocols.base import WalletVerifier, ProtocolConfig, BlockchainProtocol
from src.core.service.auth.utils.crypto import (
    decode_base58, verify_ed25519_signature, ED25519_PUBLIC_KEY_LENGTH
)
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class SolanaConfig(ProtocolConfig):
    """Solana-specific configuration"""
    protocol: BlockchainProtocol = BlockchainProtocol.SOLANA


class SolanaVerifier(WalletVerifier):
    """Solana wallet verifier (detached ed25519 signatures)"""

    def __init__(self, config: SolanaConfig):
        super().__init__(config)
        self.config: SolanaConfig = config

        # base58 alphabet, 32 bytes encode to 32..44 characters
        self.address_pattern = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')

    def validate_address(self, address: str) -> Tuple[bool, Optional[str]]:
        if not address or not isinstance(address, str):
            return False, "Address must be a non-empty string"

        address = address.strip()
        if not self.address_pattern.match(address):
            return False, "Invalid Solana address format (must be base58)"

        if decode_base58(address, ED25519_PUBLIC_KEY_LENGTH) is None:
            return False, "Invalid Solana address (must decode to a 32-byte public key)"

        return True, None

    def normalize_address(self, address: str) -> str:
        # base58 is case-sensitive; the canonical form is the input itself
        return address.strip()

    async def verify_signature(
        self,
        address: str,
        message: str,
        signature: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Verify a base58 ed25519 detached signature over the UTF-8 message
        """
        is_valid_address, addr_error = self.validate_address(address)
        if not is_valid_address:
            return False, f"Invalid address: {addr_error}"

        is_valid, error = verify_ed25519_signature(message, signature, address.strip())

        if is_valid:
            self.logger.info(
                "Solana signature verified",
                extra={"protocol": "solana", "address": address}
            )
            return True, None

        self.logger.warning(
            "Solana signature verification failed",
            extra={"protocol": "solana", "address": address, "error": error}
        )
        return False, error


def create_solana_verifier(network_id: str = "mainnet-beta") -> SolanaVerifier:
    """Factory function to create a Solana verifier with default configuration"""
    config = SolanaConfig(network_id=network_id, enabled=True)
    return SolanaVerifier(config)
