"""
Authentication controller: nonce issuance and signature verification.

Bodies are read by hand instead of as FastAPI body parameters so that a
request which is not even JSON still reaches the rate limiter.
"""

from typing import Type, TypeVar

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.api.controller.auth.dto.input_dto import NonceRequestDto, VerifyRequestDto
from src.api.controller.auth.dto.output_dto import (
    NonceResponseDto, VerifyResponseDto, AssetDto, ProtocolsResponseDto, ProtocolInfo,
    ApprovedWalletsResponseDto
)
from src.api.controller.auth.dto.error_responses import AUTH_ERROR_RESPONSES
from src.core.dependencies import get_client_ip, get_orchestrator
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/auth", tags=["Authentication"])

DtoT = TypeVar("DtoT", bound=BaseModel)


def _json_body_schema(dto: Type[BaseModel]) -> dict:
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": dto.model_json_schema()}}
        }
    }


async def read_body(request: Request, dto: Type[DtoT]) -> DtoT:
    """Parse the JSON body; anything that is not a JSON object reads as empty"""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Request body is not valid JSON", extra={"path": request.url.path})
        payload = None

    if not isinstance(payload, dict):
        payload = {}
    return dto.model_validate(payload)


@router.post(
    "/nonce",
    response_model=NonceResponseDto,
    responses=AUTH_ERROR_RESPONSES,
    openapi_extra=_json_body_schema(NonceRequestDto)
)
async def request_nonce(
    request: Request,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    """
    Issue a single-use challenge for a wallet.

    The wallet signs `message` and sends the signature to /auth/verify within
    `expires_in` seconds. Protocol is detected from the address when omitted.
    """
    body = await read_body(request, NonceRequestDto)
    challenge = await orchestrator.request_nonce(
        wallet_address=body.wallet_address,
        caller=get_client_ip(request),
        protocol=body.protocol
    )

    return NonceResponseDto(
        nonce=challenge.nonce,
        message=challenge.message,
        expires_in=orchestrator.nonce_ttl_seconds or settings.NONCE_TTL_SECONDS,
        protocol=challenge.protocol
    )


@router.post(
    "/verify",
    response_model=VerifyResponseDto,
    responses=AUTH_ERROR_RESPONSES,
    openapi_extra=_json_body_schema(VerifyRequestDto)
)
async def verify_signature(
    request: Request,
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    """
    Verify a signed challenge and return chat credentials.

    First-time wallets must pass the eligibility check for their chain family;
    returning wallets get their existing credentials back.
    """
    body = await read_body(request, VerifyRequestDto)
    bundle = await orchestrator.verify(
        wallet_address=body.wallet_address,
        signature=body.signature,
        nonce=body.nonce,
        caller=get_client_ip(request),
        protocol=body.protocol
    )

    return VerifyResponseDto(
        success=True,
        chat_user_id=bundle.chat_user_id,
        pseudonym=bundle.pseudonym,
        secret=bundle.secret,
        homeserver_url=bundle.homeserver_url,
        is_new_user=bundle.is_new_user,
        asset=AssetDto(**bundle.asset.model_dump()) if bundle.asset else None
    )


@router.get("/protocols", response_model=ProtocolsResponseDto)
async def get_supported_protocols(
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    """Supported chain families and the eligibility check each one uses."""
    protocols = [ProtocolInfo(**info) for info in orchestrator.list_protocols()]
    return ProtocolsResponseDto(protocols=protocols, total_count=len(protocols))


@router.get("/approved-wallets", response_model=ApprovedWalletsResponseDto)
async def get_approved_wallets(
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator)
):
    """The wallet allow-list used by the allow-list eligibility check."""
    wallets = sorted(orchestrator.config.approved_wallets)
    return ApprovedWalletsResponseDto(wallets=wallets, total_count=len(wallets))
