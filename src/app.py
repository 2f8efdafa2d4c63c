from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from src.infra.config.settings import settings
from src.infra.database import get_database_manager
from src.core.logger.logger import logger
from src.api.router import health, auth, admin
from src.api.middleware.logging.request_logging import RequestLoggingMiddleware
from src.core.exceptions.handler import ServiceError, GlobalErrorHandler
from src.core.service.assets.eligibility import create_eligibility_service
from src.core.service.assets.indexer_client import AssetIndexerClient
from src.core.service.auth.gate_config import GateConfig
from src.core.service.auth.multi_protocol_signature_service import MultiProtocolSignatureService
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.core.service.auth.rate_limiter import create_rate_limiter
from src.core.service.chat.synapse_client import SynapseAdminClient


async def build_orchestrator() -> AuthenticationOrchestrator:
    """Wire the long-lived components from settings"""
    db_manager = get_database_manager()
    await db_manager.create_tables()

    signature_service = MultiProtocolSignatureService()
    await signature_service.registry.initialize_all()

    return AuthenticationOrchestrator(
        session_factory=db_manager.get_session_factory(),
        signature_service=signature_service,
        eligibility_service=create_eligibility_service(AssetIndexerClient()),
        chat_client=SynapseAdminClient(),
        rate_limiter=await create_rate_limiter(),
        config=GateConfig.from_settings(settings)
    )


def log_configuration_warnings() -> None:
    if not settings.HELIUS_API_KEY:
        logger.warning("HELIUS_API_KEY not set - NFT verification will fail")
    if not settings.SYNAPSE_ADMIN_TOKEN:
        logger.warning("SYNAPSE_ADMIN_TOKEN not set - chat account creation will fail")
    if not settings.AUTHORIZED_NFT_CREATORS:
        logger.warning("AUTHORIZED_NFT_CREATORS not set - no NFT holder can register")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="""
Chatimics wallet-gated chat identity service.

## Flow
1. `POST /api/v1/auth/nonce` with a wallet address to get a challenge message.
2. Sign the message with the wallet (Solana signMessage or EVM personal_sign).
3. `POST /api/v1/auth/verify` with the signature and nonce to receive Matrix credentials.

Solana wallets must hold an NFT from an authorized creator; EVM wallets must be on the allow-list.
        """,
        version=settings.APP_VERSION,
        docs_url="/",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=600,  # 10 minutes
    )

    # Request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Add centralized error handlers
    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "Starting auth service",
            extra={"service": settings.APP_NAME, "version": settings.APP_VERSION, "port": settings.PORT}
        )
        log_configuration_warnings()

        # An orchestrator installed before startup is kept as is
        if getattr(app.state, "orchestrator", None) is None:
            app.state.orchestrator = await build_orchestrator()

        try:
            await app.state.orchestrator.purge_stale_nonces()
        except Exception as e:
            logger.error(f"Failed to purge stale nonces on startup: {str(e)}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(
            "Shutting down auth service",
            extra={"service": settings.APP_NAME, "version": settings.APP_VERSION}
        )
        orchestrator = getattr(app.state, "orchestrator", None)
        if orchestrator is not None:
            await orchestrator.close()
        await get_database_manager().close()

    return app
