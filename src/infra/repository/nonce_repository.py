"""
Nonce challenge repository using SQLAlchemy ORM
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.service.auth.models.challenge import NonceChallenge
from src.infra.models import NonceChallengeModel
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class NonceRepository:
    """Repository for auth_nonces table operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, challenge: NonceChallenge) -> None:
        """Persist a pending challenge"""
        model = NonceChallengeModel(
            nonce=challenge.nonce,
            wallet_address=challenge.wallet_address,
            protocol=challenge.protocol,
            created_at=challenge.created_at,
            used=False
        )
        try:
            self.session.add(model)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Failed to store nonce",
                extra={"wallet_address": challenge.wallet_address, "error": str(e)}
            )
            raise

    async def get(self, nonce: str) -> Optional[NonceChallengeModel]:
        result = await self.session.execute(
            select(NonceChallengeModel).where(NonceChallengeModel.nonce == nonce)
        )
        return result.scalar_one_or_none()

    async def mark_used(self, nonce: str, wallet_address: str, cutoff: datetime) -> bool:
        """
        Flip a pending challenge to used in one conditional UPDATE.

        Returns True only for the caller whose UPDATE changed the row; a concurrent
        second consumer of the same nonce sees rowcount 0.
        """
        stmt = (
            update(NonceChallengeModel)
            .where(
                NonceChallengeModel.nonce == nonce,
                NonceChallengeModel.wallet_address == wallet_address,
                NonceChallengeModel.used.is_(False),
                NonceChallengeModel.created_at >= cutoff
            )
            .values(used=True, consumed_at=datetime.now(timezone.utc))
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Failed to consume nonce",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            raise
        return result.rowcount == 1

    async def purge_stale(self, cutoff: datetime) -> int:
        """Delete challenges created before cutoff, used or not"""
        try:
            result = await self.session.execute(
                delete(NonceChallengeModel).where(NonceChallengeModel.created_at < cutoff)
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to purge stale nonces", extra={"error": str(e)})
            raise
        return result.rowcount or 0
