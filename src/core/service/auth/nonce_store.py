from datetime import datetime, timedelta, timezone
from typing import Optional

from src.core.exceptions.base import InvalidOrExpiredNonceError
from src.core.service.auth.models.challenge import NonceChallenge
from src.core.service.auth.utils.crypto import generate_secure_nonce
from src.infra.repository.nonce_repository import NonceRepository
from src.infra.config.settings import settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class NonceStore:
    """Issues per-wallet challenges and consumes each of them at most once"""

    def __init__(
        self,
        repository: NonceRepository,
        ttl_seconds: Optional[int] = None,
        nonce_bytes: Optional[int] = None,
        message_prefix: Optional[str] = None
    ):
        self.repository = repository
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.NONCE_TTL_SECONDS
        self.nonce_bytes = nonce_bytes or settings.NONCE_BYTES
        self.message_prefix = message_prefix or settings.CHALLENGE_MESSAGE_PREFIX

    def challenge_message(self, nonce: str) -> str:
        """The exact text the wallet has to sign"""
        return f"{self.message_prefix}: {nonce}"

    def _cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(seconds=self.ttl_seconds)

    async def issue(self, wallet_address: str, protocol: str) -> NonceChallenge:
        """Create and persist a fresh pending challenge for an already-normalized address"""
        nonce = generate_secure_nonce(self.nonce_bytes)
        challenge = NonceChallenge(
            nonce=nonce,
            wallet_address=wallet_address,
            protocol=protocol,
            message=self.challenge_message(nonce)
        )
        await self.repository.create(challenge)

        logger.info(
            "Nonce issued",
            extra={"wallet_address": wallet_address, "protocol": protocol}
        )
        return challenge

    async def consume(self, nonce: str, wallet_address: str) -> NonceChallenge:
        """
        Mark the challenge used and return it.

        Raises:
            InvalidOrExpiredNonceError: unknown nonce, already used, stale,
                or issued to another wallet
        """
        consumed = await self.repository.mark_used(nonce, wallet_address, self._cutoff())
        if not consumed:
            logger.warning(
                "Nonce rejected",
                extra={"wallet_address": wallet_address}
            )
            raise InvalidOrExpiredNonceError()

        model = await self.repository.get(nonce)
        return NonceChallenge(
            nonce=model.nonce,
            wallet_address=model.wallet_address,
            protocol=model.protocol,
            created_at=model.created_at,
            used=model.used,
            consumed_at=model.consumed_at,
            message=self.challenge_message(model.nonce)
        )

    async def purge_stale(self, older_than: Optional[timedelta] = None) -> int:
        cutoff = datetime.now(timezone.utc) - (older_than or timedelta(seconds=self.ttl_seconds))
        deleted = await self.repository.purge_stale(cutoff)
        if deleted:
            logger.info("Purged stale nonces", extra={"deleted": deleted})
        return deleted
