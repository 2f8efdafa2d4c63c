"""
Protocol abstraction layer for multi-chain wallet authentication.
Each chain family provides address validation, normalization and signature checks
behind the WalletVerifier interface.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Tuple, Optional, Dict, Any, List
from pydantic import BaseModel

from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class BlockchainProtocol(str, Enum):
    """Supported chain families"""
    SOLANA = "solana"
    EVM = "evm"


class ProtocolConfig(BaseModel):
    """Base configuration for blockchain protocols"""
    protocol: BlockchainProtocol
    network_id: str  # "mainnet-beta", "mainnet", ...
    enabled: bool = True


class WalletVerifier(ABC):
    """
    Abstract base class for wallet verification across different chain families.

    Implementations never raise on malformed input: every check returns a
    (result, error_message) tuple.
    """

    def __init__(self, config: ProtocolConfig):
        self.config = config
        self.protocol = config.protocol
        self.network_id = config.network_id
        self.logger = get_logger(f"{__name__}.{self.protocol.value}")

    async def initialize(self) -> None:
        """Initialize the protocol verifier"""
        self.logger.info(
            f"{self.protocol.value} verifier initialized",
            extra={"protocol": self.protocol.value, "network_id": self.network_id}
        )

    @abstractmethod
    def validate_address(self, address: str) -> Tuple[bool, Optional[str]]:
        """
        Validate address format for this protocol

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        pass

    @abstractmethod
    def normalize_address(self, address: str) -> str:
        """Canonical encoding used as the storage key. Address must be valid."""
        pass

    @abstractmethod
    async def verify_signature(
        self,
        address: str,
        message: str,
        signature: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Verify a signature for this protocol

        Args:
            address: The address that claims to have signed
            message: The original message that was signed
            signature: The encoded signature

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        pass

    def get_protocol_info(self) -> Dict[str, Any]:
        """Get protocol information"""
        return {
            "protocol": self.protocol.value,
            "network_id": self.network_id,
            "enabled": self.config.enabled
        }


class ProtocolRegistry:
    """Registry for managing protocol verifiers"""

    def __init__(self):
        self._verifiers: Dict[BlockchainProtocol, WalletVerifier] = {}
        self.logger = get_logger(__name__)

    def register(self, verifier: WalletVerifier) -> None:
        """Register a protocol verifier"""
        self._verifiers[verifier.protocol] = verifier
        self.logger.info(f"Registered protocol verifier: {verifier.protocol.value}")

    def get_verifier(self, protocol: BlockchainProtocol) -> Optional[WalletVerifier]:
        """Get a protocol verifier by protocol type"""
        return self._verifiers.get(protocol)

    def get_supported_protocols(self) -> List[BlockchainProtocol]:
        """Get list of supported protocols"""
        return list(self._verifiers.keys())

    def detect_protocol(self, address: str) -> Optional[BlockchainProtocol]:
        """Find the chain family whose address format matches"""
        for protocol, verifier in self._verifiers.items():
            is_valid, _ = verifier.validate_address(address)
            if is_valid:
                return protocol
        return None

    async def initialize_all(self) -> None:
        """Initialize all registered verifiers"""
        for protocol, verifier in self._verifiers.items():
            try:
                await verifier.initialize()
            except Exception as e:
                self.logger.error(f"Failed to initialize {protocol.value} verifier: {e}")
                raise
