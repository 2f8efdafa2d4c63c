"""
Cryptographic utilities for authentication services.
This module provides the ed25519/base58 primitives used by the Solana verifier
and the random token helpers shared by the nonce store and the registrar.
"""

import secrets
import base58
import nacl.exceptions
import nacl.signing
from typing import Optional, Tuple

from src.core.logger.logger import get_logger

logger = get_logger(__name__)

ED25519_PUBLIC_KEY_LENGTH = 32
ED25519_SIGNATURE_LENGTH = 64


def generate_secure_nonce(length: int = 32) -> str:
    """
    Generate a cryptographically secure nonce

    Args:
        length: Length of the nonce in bytes (default: 32 bytes = 256 bits)

    Returns:
        str: Hex-encoded nonce (2 * length characters, no prefix)
    """
    return secrets.token_hex(length)


def generate_chat_secret(length: int = 16) -> str:
    """URL-safe random secret used as the chat account password"""
    return secrets.token_urlsafe(length)


def decode_base58(value: str, expected_length: Optional[int] = None) -> Optional[bytes]:
    """
    Decode a base58 string, returning None when it is malformed
    or does not decode to the expected number of bytes.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        decoded = base58.b58decode(value.strip())
    except ValueError:
        return None
    if expected_length is not None and len(decoded) != expected_length:
        return None
    return decoded


def generate_ed25519_keypair() -> Tuple[str, str]:
    """
    Generate a new ed25519 key pair for testing

    Returns:
        Tuple[str, str]: (private_key_base58, public_key_base58)
        The public key is also the Solana wallet address.
    """
    signing_key = nacl.signing.SigningKey.generate()
    private_key_b58 = base58.b58encode(bytes(signing_key)).decode('utf-8')
    public_key_b58 = base58.b58encode(bytes(signing_key.verify_key)).decode('utf-8')
    return private_key_b58, public_key_b58


def sign_message_ed25519(message: str, private_key_b58: str) -> str:
    """
    Sign a message using ed25519 private key (detached)

    Args:
        message: Message to sign
        private_key_b58: Base58-encoded 32-byte seed

    Returns:
        str: Base58-encoded 64-byte signature
    """
    try:
        signing_key = nacl.signing.SigningKey(base58.b58decode(private_key_b58))
        signed = signing_key.sign(message.encode('utf-8'))
        return base58.b58encode(signed.signature).decode('utf-8')
    except Exception as e:
        logger.error(f"Failed to sign message: {str(e)}")
        raise


def verify_ed25519_signature(
    message: str,
    signature_b58: str,
    public_key_b58: str
) -> Tuple[bool, Optional[str]]:
    """
    Verify a detached ed25519 signature over the UTF-8 message

    Args:
        message: Original message
        signature_b58: Base58-encoded signature
        public_key_b58: Base58-encoded public key

    Returns:
        Tuple[bool, Optional[str]]: (is_valid, error_message)
    """
    public_key_bytes = decode_base58(public_key_b58, ED25519_PUBLIC_KEY_LENGTH)
    if public_key_bytes is None:
        return False, "Invalid public key encoding"

    signature_bytes = decode_base58(signature_b58, ED25519_SIGNATURE_LENGTH)
    if signature_bytes is None:
        return False, "Invalid signature encoding"

    try:
        verify_key = nacl.signing.VerifyKey(public_key_bytes)
        verify_key.verify(message.encode('utf-8'), signature_bytes)
        return True, None
    except nacl.exceptions.BadSignatureError:
        return False, "Signature does not match wallet"
    except (ValueError, TypeError, nacl.exceptions.CryptoError) as e:
        return False, f"Signature verification error: {str(e)}"
