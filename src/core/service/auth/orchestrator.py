"""
Authentication orchestrator: turns an anonymous wallet into a chat identity.

    Disconnected -> NonceIssued -> SignatureVerified -> Eligible | Ineligible
                                                     -> Registered | Fetched

Every attempt is one sequential pipeline. Errors are raised as ServiceError
subclasses and end the attempt; the client starts over with a new nonce.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.exceptions.base import (
    InvalidInputError, NotEligibleError, RateLimitedError,
    SignatureMismatchError, UpstreamUnavailableError, ServiceErrorCode
)
from src.core.service.assets.eligibility import EligibilityService
from src.core.service.auth.credential_issuer import CredentialIssuer
from src.core.service.auth.gate_config import GateConfig, ELIGIBILITY_NFT
from src.core.service.auth.models.challenge import NonceChallenge
from src.core.service.auth.models.credentials import CredentialBundle
from src.core.service.auth.multi_protocol_signature_service import (
    MultiProtocolSignatureService, parse_protocol
)
from src.core.service.auth.nonce_store import NonceStore
from src.core.service.auth.protocols.base import BlockchainProtocol
from src.core.service.auth.rate_limiter import AuthRateLimiter
from src.core.service.chat.synapse_client import SynapseAdminClient
from src.core.service.identity.pseudonym import HashFunction
from src.core.service.identity.registrar import IdentityRegistrar
from src.infra.repository.identity_repository import IdentityRepository
from src.infra.repository.nonce_repository import NonceRepository
from src.core.logger.logger import get_logger

logger = get_logger(__name__)

# Longest accepted value per request field
FIELD_MAX_LENGTHS = {
    "wallet_address": 100,
    "signature": 200,
    "nonce": 128,
    "protocol": 20
}


def clean_field(name: str, value: Any) -> Optional[str]:
    """Strip a request field; blank becomes None, wrong type or oversize is InvalidInput"""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{name} must be a string", details={"field": name})

    value = value.strip()
    max_length = FIELD_MAX_LENGTHS[name]
    if len(value) > max_length:
        raise InvalidInputError(
            f"{name} must be at most {max_length} characters",
            details={"field": name, "max_length": max_length}
        )
    return value or None


class AuthenticationOrchestrator:
    """Long-lived entry point; opens one database session per operation"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        signature_service: MultiProtocolSignatureService,
        eligibility_service: EligibilityService,
        chat_client: SynapseAdminClient,
        rate_limiter: AuthRateLimiter,
        config: GateConfig,
        credential_issuer: Optional[CredentialIssuer] = None,
        nonce_ttl_seconds: Optional[int] = None,
        hash_fn: Optional[HashFunction] = None
    ):
        self.session_factory = session_factory
        self.signature_service = signature_service
        self.eligibility_service = eligibility_service
        self.chat_client = chat_client
        self.rate_limiter = rate_limiter
        self.credential_issuer = credential_issuer or CredentialIssuer()
        self.nonce_ttl_seconds = nonce_ttl_seconds
        self.hash_fn = hash_fn
        self._config = config

    @property
    def config(self) -> GateConfig:
        return self._config

    def reload_config(self, config: GateConfig) -> None:
        """Swap the gate configuration; requests already running keep the old one"""
        self._config = config
        logger.info(
            "Gate configuration reloaded",
            extra={
                "authorized_creators": len(config.authorized_creators),
                "approved_wallets": len(config.approved_wallets)
            }
        )

    def _nonce_store(self, session: AsyncSession) -> NonceStore:
        return NonceStore(NonceRepository(session), ttl_seconds=self.nonce_ttl_seconds)

    def _registrar(self, session: AsyncSession) -> IdentityRegistrar:
        return IdentityRegistrar(IdentityRepository(session), self.chat_client, hash_fn=self.hash_fn)

    async def _enforce_rate_limit(self, caller: str) -> None:
        decision = await self.rate_limiter.hit(caller)
        if not decision.allowed:
            logger.warning(
                "Authentication rate limit exceeded",
                extra={"client_ip": caller, "count": decision.count, "limit": decision.limit}
            )
            raise RateLimitedError(retry_after=decision.retry_after, limit=decision.limit)

    def _resolve_wallet(
        self,
        wallet_address: Optional[str],
        protocol_name: Optional[str]
    ) -> Tuple[str, BlockchainProtocol]:
        """Validate and normalize an address. Nothing is persisted on failure."""
        if not wallet_address:
            raise InvalidInputError("Wallet address is required")

        protocol = None
        if protocol_name:
            protocol = parse_protocol(protocol_name)
            if protocol is None:
                raise InvalidInputError(
                    f"Unsupported protocol: {protocol_name}",
                    code=ServiceErrorCode.UNSUPPORTED_PROTOCOL
                )

        protocol, error = self.signature_service.resolve_protocol(wallet_address, protocol)
        if protocol is None:
            raise InvalidInputError(error or "Invalid wallet address", code=ServiceErrorCode.INVALID_ADDRESS)

        is_valid, error = self.signature_service.validate_address(wallet_address, protocol)
        if not is_valid:
            raise InvalidInputError(
                f"Invalid {protocol.value} address: {error}",
                code=ServiceErrorCode.INVALID_ADDRESS
            )

        return self.signature_service.normalize_address(wallet_address, protocol), protocol

    async def request_nonce(
        self,
        wallet_address: Any,
        caller: str,
        protocol: Any = None
    ) -> NonceChallenge:
        await self._enforce_rate_limit(caller)
        address, chain = self._resolve_wallet(
            clean_field("wallet_address", wallet_address),
            clean_field("protocol", protocol)
        )

        async with self.session_factory() as session:
            return await self._nonce_store(session).issue(address, chain.value)

    async def verify(
        self,
        wallet_address: Any,
        signature: Any,
        nonce: Any,
        caller: str,
        protocol: Any = None
    ) -> CredentialBundle:
        await self._enforce_rate_limit(caller)

        fields = {
            "wallet_address": clean_field("wallet_address", wallet_address),
            "signature": clean_field("signature", signature),
            "nonce": clean_field("nonce", nonce)
        }
        missing = [name for name, value in fields.items() if value is None]
        if missing:
            raise InvalidInputError(
                "Missing required fields",
                details={"missing_fields": missing}
            )

        address, chain = self._resolve_wallet(fields["wallet_address"], clean_field("protocol", protocol))
        config = self._config

        async with self.session_factory() as session:
            # Burned before the signature check so a captured nonce cannot be retried
            challenge = await self._nonce_store(session).consume(fields["nonce"], address)

        is_valid, error = await self.signature_service.verify_signature(
            address=address,
            message=challenge.message,
            signature=fields["signature"],
            protocol=BlockchainProtocol(challenge.protocol)
        )
        if not is_valid:
            raise SignatureMismatchError(details={"reason": error})

        async with self.session_factory() as session:
            registrar = self._registrar(session)
            existing = await registrar.fetch(address)
            if existing is not None:
                if not existing.is_active:
                    raise NotEligibleError("Chat identity for this wallet is deactivated")
                await registrar.touch(address)
                logger.info(
                    "Returning existing identity",
                    extra={"wallet_address": address, "chat_user_id": existing.chat_user_id}
                )
                return self.credential_issuer.issue(existing, is_new_user=False)

            eligibility = await self.eligibility_service.check_eligibility(address, chain.value, config)
            if not eligibility.eligible:
                if eligibility.upstream_failed:
                    raise UpstreamUnavailableError(
                        "Asset indexer unavailable, please try again later",
                        details={"reason": eligibility.error}
                    )
                raise NotEligibleError(
                    "No qualifying NFTs found. You must own an NFT from an authorized creator to register."
                    if config.policy_for(chain.value) == ELIGIBILITY_NFT
                    else "Wallet is not approved for registration"
                )

            record, is_new = await registrar.register_or_fetch(
                address, chain.value, eligibility, main_room_id=config.main_room_id
            )
            return self.credential_issuer.issue(record, is_new_user=is_new)

    async def purge_stale_nonces(self) -> int:
        async with self.session_factory() as session:
            return await self._nonce_store(session).purge_stale()

    async def close(self) -> None:
        await self.chat_client.close()
        await self.rate_limiter.close()
        await self.eligibility_service.close()

    def list_protocols(self) -> List[Dict[str, Any]]:
        protocols = []
        for chain in self.signature_service.get_supported_protocols():
            info = self.signature_service.get_protocol_info(chain) or {"protocol": chain.value}
            info["eligibility"] = self._config.policy_for(chain.value)
            protocols.append(info)
        return protocols
