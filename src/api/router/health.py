from datetime import datetime, timezone
from typing import Dict
from fastapi import APIRouter, Request, status
from sqlalchemy import text

from src.core.logger.logger import logger
from src.api.controller.auth.dto.output_dto import HealthCheckResponseDto

router = APIRouter(tags=["Health"])


async def check_database_health(request: Request) -> Dict[str, str]:
    """Run a trivial query through the orchestrator's session factory."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        return {"status": "starting"}
    try:
        async with orchestrator.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        return {"status": "unavailable"}


@router.get("/health", status_code=status.HTTP_200_OK, response_model=HealthCheckResponseDto)
async def health_check(request: Request):
    """
    Service health with the size of the active gate configuration.
    Upstream services (indexer, homeserver) are not probed.
    """
    database = await check_database_health(request)
    services = {"database": database["status"], "api": "ok"}

    orchestrator = getattr(request.app.state, "orchestrator", None)
    config = orchestrator.config if orchestrator else None

    return HealthCheckResponseDto(
        status="ok" if all(s == "ok" for s in services.values()) else "degraded",
        timestamp=datetime.now(timezone.utc),
        services=services,
        authorized_creators=len(config.authorized_creators) if config else 0,
        approved_wallets=len(config.approved_wallets) if config else 0
    )
