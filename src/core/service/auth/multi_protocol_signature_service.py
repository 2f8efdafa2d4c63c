"""
Multi-protocol signature verification service.
This service acts as a facade for the chain-family verifiers held in a ProtocolRegistry.
"""

from typing import Tuple, Optional, Dict, Any, List

from src.core.service.auth.protocols.base import BlockchainProtocol, ProtocolRegistry, WalletVerifier
from src.core.service.auth.protocols.evm import create_evm_verifier
from src.core.service.auth.protocols.solana import create_solana_verifier
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


def create_protocol_registry() -> ProtocolRegistry:
    """Registry with every supported chain family registered"""
    registry = ProtocolRegistry()
    registry.register(create_solana_verifier())
    registry.register(create_evm_verifier())
    return registry


def parse_protocol(value: Optional[str]) -> Optional[BlockchainProtocol]:
    """Map a client-supplied protocol name to the enum, None when unknown"""
    if value is None:
        return None
    try:
        return BlockchainProtocol(value.strip().lower())
    except ValueError:
        return None


class MultiProtocolSignatureService:
    """
    Multi-protocol signature verification service that delegates to appropriate protocol verifiers.
    verify_signature is deterministic and never raises: any failure is reported as (False, reason).
    """

    def __init__(self, registry: Optional[ProtocolRegistry] = None):
        self.registry = registry or create_protocol_registry()
        self.logger = get_logger(__name__)

    def _get_verifier(self, protocol: BlockchainProtocol) -> WalletVerifier:
        """Get the appropriate verifier for the given protocol"""
        verifier = self.registry.get_verifier(protocol)
        if not verifier:
            supported_protocols = [p.value for p in self.registry.get_supported_protocols()]
            raise ValueError(
                f"Protocol '{protocol.value}' is not supported. "
                f"Supported protocols: {supported_protocols}"
            )
        return verifier

    def resolve_protocol(
        self,
        address: str,
        protocol: Optional[BlockchainProtocol] = None
    ) -> Tuple[Optional[BlockchainProtocol], Optional[str]]:
        """
        Pick the chain family for an address: the explicit one when given,
        otherwise the first family whose address format matches.
        """
        if protocol is not None:
            if not self.is_protocol_supported(protocol):
                return None, f"Protocol '{protocol.value}' is not supported"
            return protocol, None

        detected = self.registry.detect_protocol(address)
        if detected is None:
            return None, "Address does not match any supported wallet format"
        return detected, None

    def validate_address(self, address: str, protocol: BlockchainProtocol) -> Tuple[bool, Optional[str]]:
        """
        Validate address format for the specified protocol

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        try:
            verifier = self._get_verifier(protocol)
            return verifier.validate_address(address)
        except ValueError as e:
            return False, str(e)

    def normalize_address(self, address: str, protocol: BlockchainProtocol) -> str:
        return self._get_verifier(protocol).normalize_address(address)

    async def verify_signature(
        self,
        address: str,
        message: str,
        signature: str,
        protocol: BlockchainProtocol
    ) -> Tuple[bool, Optional[str]]:
        """
        Verify a signature using the appropriate protocol verifier

        Args:
            address: The address that claims to have signed
            message: The original message that was signed
            signature: The signature to verify
            protocol: The chain family

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        if not signature or not isinstance(signature, str):
            return False, "Signature must be a non-empty string"

        try:
            verifier = self._get_verifier(protocol)

            self.logger.debug(
                f"Verifying signature for protocol {protocol.value}",
                extra={"protocol": protocol.value, "address": address}
            )

            return await verifier.verify_signature(
                address=address,
                message=message,
                signature=signature
            )

        except Exception as e:
            error_msg = f"Signature verification error for protocol {protocol.value}: {str(e)}"
            self.logger.error(
                error_msg,
                extra={"protocol": protocol.value, "address": address, "error": str(e)}
            )
            return False, error_msg

    def get_supported_protocols(self) -> List[BlockchainProtocol]:
        """Get list of supported protocols"""
        return self.registry.get_supported_protocols()

    def is_protocol_supported(self, protocol: BlockchainProtocol) -> bool:
        """Check if a protocol is supported"""
        return self.registry.get_verifier(protocol) is not None

    def get_protocol_info(self, protocol: BlockchainProtocol) -> Optional[Dict[str, Any]]:
        """Get information about a specific protocol"""
        verifier = self.registry.get_verifier(protocol)
        return verifier.get_protocol_info() if verifier else None
