import binascii
from eth_account.messages import encode_defunct
from eth_account import Account
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from typing import Optional, Tuple

from src.core.logger.logger import logger


class SignatureVerificationService:
    """Service for verifying Ethereum personal-sign wallet signatures"""

    @staticmethod
    def _to_checksum_address(address: str) -> ChecksumAddress:
        """Convert address to checksum format"""
        try:
            return to_checksum_address(address.lower())
        except (ValueError, TypeError) as e:
            logger.debug(str(e), extra={"address": address})
            raise ValueError("Invalid Ethereum address format") from e

    @staticmethod
    def _create_message(message: str):
        """Create a signable message (EIP-191 personal_sign)"""
        return encode_defunct(text=message)

    def verify_signature(self, claimed_address: str, signature: str, message: str) -> Tuple[bool, Optional[str]]:
        """
        Verify an Ethereum signature

        Args:
            claimed_address: The address that claims to have signed the message
            signature: The hex signature to verify, 0x prefix optional
            message: The original message that was signed

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        try:
            try:
                checksum_address = self._to_checksum_address(claimed_address)
            except ValueError:
                return False, "Invalid Ethereum address format"

            try:
                if isinstance(signature, str) and not signature.startswith("0x"):
                    signature = "0x" + signature
                signature_bytes = HexBytes(signature)
            except (ValueError, TypeError, binascii.Error) as e:
                logger.warning(
                    "Invalid signature format",
                    extra={"wallet_address": claimed_address, "error": str(e)}
                )
                return False, "Invalid signature format"

            signable_message = self._create_message(message)

            try:
                recovered_address = Account.recover_message(signable_message, signature=signature_bytes)
            except (ValueError, TypeError, binascii.Error) as e:
                logger.warning(
                    "Invalid signature format",
                    extra={"wallet_address": claimed_address, "error": str(e)}
                )
                return False, "Invalid signature format"

            if recovered_address.lower() != checksum_address.lower():
                logger.warning(
                    "Recovered address does not match claimed address",
                    extra={
                        "wallet_address": claimed_address,
                        "recovered_address": recovered_address
                    }
                )
                return False, "Recovered address does not match claimed address"

            return True, None

        except Exception as e:
            logger.warning(
                "Unexpected signature verification error",
                extra={"wallet_address": claimed_address, "error": str(e)}
            )
            return False, "Invalid signature format"
