import pytest
from eth_account.messages import encode_defunct
from eth_account import Account

from src.core.service.auth.signature_verification import SignatureVerificationService
from src.core.service.auth.multi_protocol_signature_service import (
    MultiProtocolSignatureService, parse_protocol
)
from src.core.service.auth.protocols.base import BlockchainProtocol
from src.core.service.auth.utils.crypto import generate_ed25519_keypair, sign_message_ed25519

MESSAGE = "Sign this message to authenticate with Chatimics: " + "ab" * 32


@pytest.fixture
def test_wallet():
    """Create a test wallet for signature verification"""
    # Create a new random account for testing
    account = Account.create()
    return {
        'address': account.address,
        'key': account.key
    }


@pytest.fixture
def signature_service():
    """Create a signature verification service"""
    return SignatureVerificationService()


@pytest.fixture
def multi_service():
    return MultiProtocolSignatureService()


def test_verify_valid_signature(test_wallet, signature_service):
    """Test signature verification with a valid signature"""
    signed_message = Account.sign_message(encode_defunct(text=MESSAGE), private_key=test_wallet['key'])

    is_valid, error = signature_service.verify_signature(
        message=MESSAGE,
        signature=signed_message.signature,
        claimed_address=test_wallet['address']
    )

    assert is_valid is True
    assert error is None


def test_verify_hex_string_signature_with_and_without_prefix(test_wallet, signature_service):
    signed_message = Account.sign_message(encode_defunct(text=MESSAGE), private_key=test_wallet['key'])
    raw_hex = bytes(signed_message.signature).hex()

    for signature in (raw_hex, "0x" + raw_hex):
        is_valid, error = signature_service.verify_signature(
            message=MESSAGE,
            signature=signature,
            claimed_address=test_wallet['address']
        )
        assert is_valid is True, error


def test_verify_lowercase_address(test_wallet, signature_service):
    signed_message = Account.sign_message(encode_defunct(text=MESSAGE), private_key=test_wallet['key'])

    is_valid, _ = signature_service.verify_signature(
        message=MESSAGE,
        signature=signed_message.signature,
        claimed_address=test_wallet['address'].lower()
    )

    assert is_valid is True


def test_verify_invalid_signature(test_wallet, signature_service):
    """Test signature verification with an invalid signature"""
    # Sign a different message
    signed_message = Account.sign_message(encode_defunct(text="Different message"), private_key=test_wallet['key'])

    is_valid, error = signature_service.verify_signature(
        message=MESSAGE,
        signature=signed_message.signature,
        claimed_address=test_wallet['address']
    )

    assert is_valid is False
    assert "Recovered address does not match claimed address" in error


def test_verify_wrong_address(test_wallet, signature_service):
    """Test signature verification with wrong address"""
    signed_message = Account.sign_message(encode_defunct(text=MESSAGE), private_key=test_wallet['key'])
    another_wallet = Account.create()

    is_valid, error = signature_service.verify_signature(
        message=MESSAGE,
        signature=signed_message.signature,
        claimed_address=another_wallet.address
    )

    assert is_valid is False
    assert "Recovered address does not match claimed address" in error


def test_verify_invalid_address_format(signature_service):
    """Test signature verification with invalid address format"""
    invalid_addresses = [
        "invalid",
        "0x123",  # too short
        "0x" + "1" * 39,  # too short (41 chars total)
        "0x" + "g" * 40,  # invalid hex characters
    ]

    for address in invalid_addresses:
        is_valid, error = signature_service.verify_signature(
            message=MESSAGE,
            signature="0x1234567890",
            claimed_address=address
        )

        assert is_valid is False
        assert error == "Invalid Ethereum address format"


def test_verify_invalid_signature_format(test_wallet, signature_service):
    """Malformed signatures are reported, never raised"""
    invalid_signatures = [
        "invalid",
        "0x123",  # too short
        "not-hex-0x1234",
        "0x" + "g" * 130,  # invalid hex characters
        "0x" + "00" * 65,
    ]

    for signature in invalid_signatures:
        is_valid, error = signature_service.verify_signature(
            message=MESSAGE,
            signature=signature,
            claimed_address=test_wallet['address']
        )

        assert is_valid is False
        assert error is not None


class TestMultiProtocolVerification:
    @pytest.mark.asyncio
    async def test_solana_valid_signature(self, multi_service):
        private_key, address = generate_ed25519_keypair()
        signature = sign_message_ed25519(MESSAGE, private_key)

        is_valid, error = await multi_service.verify_signature(
            address=address, message=MESSAGE, signature=signature, protocol=BlockchainProtocol.SOLANA
        )

        assert is_valid is True
        assert error is None

    @pytest.mark.asyncio
    async def test_solana_signature_by_other_key(self, multi_service):
        _, address = generate_ed25519_keypair()
        other_private_key, _ = generate_ed25519_keypair()
        signature = sign_message_ed25519(MESSAGE, other_private_key)

        is_valid, error = await multi_service.verify_signature(
            address=address, message=MESSAGE, signature=signature, protocol=BlockchainProtocol.SOLANA
        )

        assert is_valid is False
        assert error == "Signature does not match wallet"

    @pytest.mark.asyncio
    async def test_solana_signature_over_other_message(self, multi_service):
        private_key, address = generate_ed25519_keypair()
        signature = sign_message_ed25519(MESSAGE + "x", private_key)

        is_valid, _ = await multi_service.verify_signature(
            address=address, message=MESSAGE, signature=signature, protocol=BlockchainProtocol.SOLANA
        )

        assert is_valid is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signature", ["", "not-base58-0OIl", "3yZe7d", "1" * 200])
    async def test_solana_malformed_signature(self, multi_service, signature):
        _, address = generate_ed25519_keypair()

        is_valid, error = await multi_service.verify_signature(
            address=address, message=MESSAGE, signature=signature, protocol=BlockchainProtocol.SOLANA
        )

        assert is_valid is False
        assert error

    @pytest.mark.asyncio
    async def test_evm_through_multi_protocol_service(self, multi_service, test_wallet):
        signed_message = Account.sign_message(encode_defunct(text=MESSAGE), private_key=test_wallet['key'])

        is_valid, error = await multi_service.verify_signature(
            address=test_wallet['address'],
            message=MESSAGE,
            signature="0x" + bytes(signed_message.signature).hex(),
            protocol=BlockchainProtocol.EVM
        )

        assert is_valid is True
        assert error is None

    @pytest.mark.asyncio
    async def test_verification_is_deterministic(self, multi_service):
        private_key, address = generate_ed25519_keypair()
        signature = sign_message_ed25519(MESSAGE, private_key)

        results = [
            await multi_service.verify_signature(
                address=address, message=MESSAGE, signature=signature, protocol=BlockchainProtocol.SOLANA
            )
            for _ in range(3)
        ]

        assert results == [(True, None)] * 3


class TestProtocolDetection:
    def test_detects_evm_address(self, multi_service, test_wallet):
        protocol, error = multi_service.resolve_protocol(test_wallet['address'])
        assert protocol == BlockchainProtocol.EVM
        assert error is None

    def test_detects_solana_address(self, multi_service):
        _, address = generate_ed25519_keypair()
        protocol, _ = multi_service.resolve_protocol(address)
        assert protocol == BlockchainProtocol.SOLANA

    @pytest.mark.parametrize("address", ["", "hello", "0x123", "alice.near", "0" * 44])
    def test_unrecognized_address(self, multi_service, address):
        protocol, error = multi_service.resolve_protocol(address)
        assert protocol is None
        assert error

    def test_evm_address_normalized_to_checksum(self, multi_service, test_wallet):
        normalized = multi_service.normalize_address(test_wallet['address'].lower(), BlockchainProtocol.EVM)
        assert normalized == test_wallet['address']

    def test_parse_protocol(self):
        assert parse_protocol("Solana") == BlockchainProtocol.SOLANA
        assert parse_protocol(" evm ") == BlockchainProtocol.EVM
        assert parse_protocol("near") is None
        assert parse_protocol(None) is None
