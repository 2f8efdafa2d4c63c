"""
EVM Protocol implementation for wallet verification.
Ethereum-compatible wallets sign with personal_sign (EIP-191) and are identified by
their checksummed address.
"""

import re
from typing import Tuple, Optional

from eth_utils import to_checksum_address

from src.core.service.auth.protocols.base import WalletVerifier, ProtocolConfig, BlockchainProtocol
from src.core.service.auth.signature_verification import SignatureVerificationService
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class EVMConfig(ProtocolConfig):
    """EVM-specific configuration"""
    protocol: BlockchainProtocol = BlockchainProtocol.EVM
    chain_id: int = 1


class EVMVerifier(WalletVerifier):
    """EVM Protocol wallet verifier implementation"""

    def __init__(self, config: EVMConfig):
        super().__init__(config)
        self.config: EVMConfig = config
        self.signature_service = SignatureVerificationService()
        self.chain_id = config.chain_id

        # EVM address validation pattern
        self.address_pattern = re.compile(r'^0x[a-fA-F0-9]{40}$')

    def validate_address(self, address: str) -> Tuple[bool, Optional[str]]:
        """
        Validate EVM address format

        EVM addresses are 42 characters long (including 0x prefix) and contain only hex characters.
        Mixed-case input is accepted regardless of its checksum; it is normalized afterwards.
        """
        if not address or not isinstance(address, str):
            return False, "Address must be a non-empty string"

        if not self.address_pattern.match(address.strip()):
            return False, "Invalid EVM address format (must be 0x followed by 40 hex characters)"

        return True, None

    def normalize_address(self, address: str) -> str:
        return to_checksum_address(address.strip().lower())

    async def verify_signature(
        self,
        address: str,
        message: str,
        signature: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Verify EVM signature using eth-account address recovery

        Args:
            address: EVM address that claims to have signed
            message: Original message that was signed
            signature: Hex-encoded 65-byte signature
        """
        is_valid_address, addr_error = self.validate_address(address)
        if not is_valid_address:
            return False, f"Invalid address: {addr_error}"

        is_valid, error = self.signature_service.verify_signature(
            claimed_address=address.strip(),
            signature=signature,
            message=message
        )

        if is_valid:
            self.logger.info(
                "EVM signature verified",
                extra={"protocol": "evm", "address": address, "chain_id": self.chain_id}
            )
            return True, None

        self.logger.warning(
            "EVM signature verification failed",
            extra={"protocol": "evm", "address": address, "error": error}
        )
        return False, error

    def get_protocol_info(self):
        info = super().get_protocol_info()
        info["chain_id"] = self.chain_id
        return info


def create_evm_verifier(network_id: str = "mainnet", chain_id: int = 1) -> EVMVerifier:
    """Factory function to create an EVM verifier with default configuration"""
    config = EVMConfig(network_id=network_id, chain_id=chain_id, enabled=True)
    return EVMVerifier(config)
