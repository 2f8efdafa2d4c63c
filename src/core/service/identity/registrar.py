"""
Identity registrar: maps a verified wallet to exactly one chat account.
"""

from typing import Optional, Tuple

from src.core.exceptions.base import NotEligibleError, ProvisioningFailureError
from src.core.service.assets.models import EligibilityResult
from src.core.service.auth.models.identity import IdentityRecord
from src.core.service.auth.utils.crypto import generate_chat_secret
from src.core.service.chat.synapse_client import SynapseAdminClient
from src.core.service.identity.pseudonym import HashFunction, generate_pseudonym, chat_user_id
from src.infra.repository.identity_repository import IdentityRepository
from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class IdentityRegistrar:
    """
    Creates identities at most once per wallet.

    The chat account is provisioned before the row is written, so a failed
    provisioning leaves nothing behind. Two concurrent first registrations are
    settled by the unique index on wallet_address: the loser reads the winner's
    row and pushes the winner's secret back to the homeserver.
    """

    def __init__(
        self,
        repository: IdentityRepository,
        chat_client: SynapseAdminClient,
        server_name: Optional[str] = None,
        secret_bytes: Optional[int] = None,
        max_variants: Optional[int] = None,
        hash_fn: Optional[HashFunction] = None
    ):
        self.repository = repository
        self.chat_client = chat_client
        self.server_name = server_name or settings.MATRIX_SERVER_NAME
        self.secret_bytes = secret_bytes or settings.CHAT_SECRET_BYTES
        self.max_variants = max_variants if max_variants is not None else settings.PSEUDONYM_MAX_VARIANTS
        self.hash_fn = hash_fn

    async def fetch(self, wallet_address: str) -> Optional[IdentityRecord]:
        """Stored identity for a wallet, active or not"""
        return await self.repository.get_by_wallet(wallet_address)

    async def fetch_active(self, wallet_address: str) -> Optional[IdentityRecord]:
        record = await self.fetch(wallet_address)
        return record if record is not None and record.is_active else None

    async def touch(self, wallet_address: str) -> None:
        await self.repository.touch_last_verified(wallet_address)

    async def _allocate_chat_user_id(self, wallet_address: str) -> Tuple[str, str, int]:
        """First (pseudonym, user id, variant) not owned by a different wallet"""
        for variant in range(self.max_variants + 1):
            pseudonym = generate_pseudonym(wallet_address, variant, self.hash_fn)
            user_id = chat_user_id(pseudonym, self.server_name)
            owner = await self.repository.get_by_chat_user_id(user_id)
            if owner is None or owner.wallet_address == wallet_address:
                if variant:
                    logger.info(
                        "Pseudonym collision resolved with variant",
                        extra={"wallet_address": wallet_address, "variant": variant}
                    )
                return pseudonym, user_id, variant

        logger.error(
            "Could not allocate a unique chat user id",
            extra={"wallet_address": wallet_address, "max_variants": self.max_variants}
        )
        raise ProvisioningFailureError("Could not allocate a unique chat user id")

    async def _resync(self, record: IdentityRecord) -> None:
        await self.chat_client.upsert_user(record.chat_user_id, record.chat_secret, record.pseudonym)

    async def register_or_fetch(
        self,
        wallet_address: str,
        protocol: str,
        eligibility: EligibilityResult,
        main_room_id: Optional[str] = None
    ) -> Tuple[IdentityRecord, bool]:
        """
        Returns:
            (record, is_new)

        Raises:
            NotEligibleError: no active record and eligibility failed, or the
                wallet's identity was deactivated
            ProvisioningFailureError / UpstreamUnavailableError: homeserver failure
        """
        existing = await self.repository.get_by_wallet(wallet_address)
        if existing is not None:
            if not existing.is_active:
                raise NotEligibleError("Chat identity for this wallet is deactivated")
            await self.touch(wallet_address)
            return existing, False

        if not eligibility.eligible:
            raise NotEligibleError()

        pseudonym, user_id, variant = await self._allocate_chat_user_id(wallet_address)
        secret = generate_chat_secret(self.secret_bytes)

        await self.chat_client.upsert_user(user_id, secret, pseudonym)

        asset = eligibility.asset
        candidate = IdentityRecord(
            wallet_address=wallet_address,
            protocol=protocol,
            chat_user_id=user_id,
            pseudonym=pseudonym,
            pseudonym_variant=variant,
            chat_secret=secret,
            asset_mint=asset.mint if asset else None,
            asset_creator=asset.creator if asset else None,
            asset_name=asset.name if asset else None,
            asset_image=asset.image if asset else None
        )
        record, created = await self.repository.insert_or_get(candidate)

        if record is None:
            # Another wallet took this chat user id between allocation and insert;
            # our upsert overwrote its password, so restore it before failing.
            owner = await self.repository.get_by_chat_user_id(user_id)
            if owner is not None:
                await self._resync(owner)
            raise ProvisioningFailureError("Chat user id was claimed concurrently, please retry")

        if not created:
            logger.info(
                "Concurrent registration lost, converging on stored identity",
                extra={"wallet_address": wallet_address, "chat_user_id": record.chat_user_id}
            )
            await self._resync(record)
            return record, False

        logger.info(
            "Identity registered",
            extra={
                "wallet_address": wallet_address,
                "protocol": protocol,
                "chat_user_id": record.chat_user_id,
                "asset_mint": record.asset_mint
            }
        )

        if main_room_id:
            await self.chat_client.invite_to_room(main_room_id, record.chat_user_id)

        return record, True
