"""
Identity repository using SQLAlchemy ORM
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from src.core.service.auth.models.identity import IdentityRecord
from src.infra.models import IdentityModel
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class IdentityRepository:
    """Repository for nft_registrations table operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _model_to_entity(self, model: IdentityModel) -> IdentityRecord:
        """Convert SQLAlchemy model to Pydantic entity"""
        return IdentityRecord.model_validate(model)

    async def _fetch_one(self, stmt) -> Optional[IdentityRecord]:
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        record = self._model_to_entity(model) if model else None
        # Callers go on to network I/O; do not hold the read transaction open
        await self.session.commit()
        return record

    async def get_by_wallet(self, wallet_address: str) -> Optional[IdentityRecord]:
        return await self._fetch_one(
            select(IdentityModel).where(IdentityModel.wallet_address == wallet_address)
        )

    async def get_by_chat_user_id(self, chat_user_id: str) -> Optional[IdentityRecord]:
        return await self._fetch_one(
            select(IdentityModel).where(IdentityModel.chat_user_id == chat_user_id)
        )

    async def insert_or_get(self, record: IdentityRecord) -> Tuple[Optional[IdentityRecord], bool]:
        """
        Insert a new identity, falling back to the stored row when another
        request registered the same wallet first.

        Returns:
            (record, created). record is None when the insert lost on a
            column other than wallet_address (chat_user_id collision).
        """
        now = datetime.now(timezone.utc)
        model = IdentityModel(
            wallet_address=record.wallet_address,
            protocol=record.protocol,
            chat_user_id=record.chat_user_id,
            pseudonym=record.pseudonym,
            pseudonym_variant=record.pseudonym_variant,
            chat_secret=record.chat_secret,
            asset_mint=record.asset_mint,
            asset_creator=record.asset_creator,
            asset_name=record.asset_name,
            asset_image=record.asset_image,
            registered_at=now,
            last_verified_at=now,
            is_active=True
        )

        try:
            self.session.add(model)
            await self.session.commit()
            await self.session.refresh(model)
            record = self._model_to_entity(model)
            await self.session.commit()

            logger.info(
                "New identity stored",
                extra={
                    "wallet_address": record.wallet_address,
                    "protocol": record.protocol,
                    "chat_user_id": record.chat_user_id
                }
            )
            return record, True

        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                f"Identity already exists (race condition): {e.orig}",
                extra={
                    "wallet_address": record.wallet_address,
                    "chat_user_id": record.chat_user_id
                }
            )
            return await self.get_by_wallet(record.wallet_address), False

    async def touch_last_verified(self, wallet_address: str) -> None:
        stmt = (
            update(IdentityModel)
            .where(IdentityModel.wallet_address == wallet_address)
            .values(last_verified_at=datetime.now(timezone.utc))
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Failed to update last verification time",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            raise

    async def list_identities(self, limit: int = 100, offset: int = 0) -> List[IdentityRecord]:
        """Newest registrations first"""
        result = await self.session.execute(
            select(IdentityModel)
            .order_by(IdentityModel.registered_at.desc(), IdentityModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def count_identities(self) -> Dict[str, object]:
        total = await self.session.scalar(select(func.count(IdentityModel.id)))
        active = await self.session.scalar(
            select(func.count(IdentityModel.id)).where(IdentityModel.is_active.is_(True))
        )
        rows = await self.session.execute(
            select(IdentityModel.protocol, func.count(IdentityModel.id)).group_by(IdentityModel.protocol)
        )
        return {
            "total": total or 0,
            "active": active or 0,
            "by_protocol": {protocol: count for protocol, count in rows.all()}
        }
