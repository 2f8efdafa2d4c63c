"""
SQLAlchemy ORM models for database tables
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Boolean, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NonceChallengeModel(Base):
    """SQLAlchemy ORM model for auth_nonces table"""

    __tablename__ = "auth_nonces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nonce = Column(String(128), nullable=False, unique=True)
    wallet_address = Column(String(255), nullable=False)
    protocol = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    used = Column(Boolean, default=False, nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_auth_nonces_wallet', 'wallet_address'),
        Index('idx_auth_nonces_created', 'created_at'),
    )

    def __repr__(self):
        return f"<NonceChallenge(wallet_address='{self.wallet_address}', used={self.used})>"


class IdentityModel(Base):
    """SQLAlchemy ORM model for nft_registrations table"""

    __tablename__ = "nft_registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(255), nullable=False, unique=True)
    protocol = Column(String(20), nullable=False)
    chat_user_id = Column(String(255), nullable=False, unique=True)
    pseudonym = Column(String(100), nullable=False)
    pseudonym_variant = Column(Integer, default=0, nullable=False)
    chat_secret = Column(String(255), nullable=False)
    asset_mint = Column(String(255), nullable=True)
    asset_creator = Column(String(255), nullable=True)
    asset_name = Column(String(255), nullable=True)
    asset_image = Column(String(1024), nullable=True)
    registered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_verified_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index('idx_nft_registrations_registered', 'registered_at'),
        Index('idx_nft_registrations_protocol', 'protocol'),
    )

    def __repr__(self):
        return f"<Identity(wallet_address='{self.wallet_address}', chat_user_id='{self.chat_user_id}')>"
