"""
FastAPI dependency injection functions.
Long-lived components live on app.state and are built once at startup.
"""

import secrets
from typing import Optional
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions.base import UnauthorizedError, ServiceError, ServiceErrorCode
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.infra.database import get_async_session
from src.infra.repository.identity_repository import IdentityRepository
from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP, handling proxies.

    Proxy headers are only read when the socket peer is in TRUSTED_PROXIES;
    a direct client could otherwise pick its own rate limit key.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = set(settings.TRUSTED_PROXIES)
    if peer not in trusted:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Nearest hop that is not one of our own proxies
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        for hop in reversed(hops):
            if hop not in trusted:
                return hop
        if hops:
            return hops[0]

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return peer


def get_orchestrator(request: Request) -> AuthenticationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ServiceError(
            code=ServiceErrorCode.SERVICE_UNAVAILABLE,
            message="Authentication service is starting up",
            status_code=503
        )
    return orchestrator


async def get_identity_repository(session: AsyncSession = Depends(get_async_session)) -> IdentityRepository:
    """Get identity repository with SQLAlchemy session dependency."""
    return IdentityRepository(session)


async def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """Bearer ADMIN_API_TOKEN (or SYNAPSE_ADMIN_TOKEN when unset)"""
    expected = settings.admin_token
    if not expected:
        logger.warning("Admin endpoint called but no admin token is configured")
        raise UnauthorizedError("Admin API is disabled")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip(), expected):
        raise UnauthorizedError("Invalid admin token")
