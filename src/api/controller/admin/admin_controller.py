"""
Admin controller: registered identities, stats and gate configuration reload.
All routes require the admin bearer token.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query

from src.api.controller.auth.dto.output_dto import (
    AdminUserDto, AdminUsersResponseDto, AdminStatsResponseDto, ConfigReloadResponseDto
)
from src.api.controller.auth.dto.error_responses import ADMIN_ERROR_RESPONSES
from src.core.dependencies import get_identity_repository, get_orchestrator, require_admin
from src.core.service.auth.gate_config import GateConfig
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.infra.config.settings import Settings
from src.infra.repository.identity_repository import IdentityRepository
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses=ADMIN_ERROR_RESPONSES
)


@router.get("/users", response_model=AdminUsersResponseDto)
async def list_users(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    repository: IdentityRepository = Depends(get_identity_repository)
):
    """Registered identities, newest first. Chat secrets are never returned."""
    identities = await repository.list_identities(limit=limit, offset=offset)
    users = [
        AdminUserDto(**identity.model_dump(include=set(AdminUserDto.model_fields)))
        for identity in identities
    ]
    return AdminUsersResponseDto(users=users, count=len(users))


@router.get("/stats", response_model=AdminStatsResponseDto)
async def get_stats(
    repository: IdentityRepository = Depends(get_identity_repository),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    counts = await repository.count_identities()
    config = orchestrator.config
    return AdminStatsResponseDto(
        total_identities=counts["total"],
        active_identities=counts["active"],
        identities_by_protocol=counts["by_protocol"],
        authorized_creators=len(config.authorized_creators),
        approved_wallets=len(config.approved_wallets),
        timestamp=datetime.now(timezone.utc)
    )


@router.post("/config/reload", response_model=ConfigReloadResponseDto)
async def reload_config(
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    """Re-read creators, approved wallets and policy from the environment and the allow-list file."""
    config = GateConfig.from_settings(Settings())
    orchestrator.reload_config(config)
    return ConfigReloadResponseDto(
        authorized_creators=len(config.authorized_creators),
        approved_wallets=len(config.approved_wallets),
        eligibility_policy=config.eligibility_policy
    )
