"""
API fixtures. The app runs without its startup hook: the orchestrator is
installed on app.state directly, backed by a fresh SQLite file and the fake
upstreams from the top-level conftest.
"""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.app import create_app
from src.core.service.assets.eligibility import create_eligibility_service
from src.core.service.assets.indexer_client import AssetIndexerClient
from src.core.service.auth.multi_protocol_signature_service import MultiProtocolSignatureService
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.core.service.auth.rate_limiter import MemoryRateLimiter
from src.core.service.chat.synapse_client import SynapseAdminClient
from src.infra.database import get_async_session
from src.infra.models import Base


@pytest.fixture
def api_session_factory(tmp_path):
    db_path = tmp_path / "api.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    # TestClient runs every request on its own event loop, so connections are not pooled
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def app(api_session_factory, synapse, indexer, gate_config):
    application = create_app()
    application.state.orchestrator = AuthenticationOrchestrator(
        session_factory=api_session_factory,
        signature_service=MultiProtocolSignatureService(),
        eligibility_service=create_eligibility_service(AssetIndexerClient(
            base_url="https://indexer.test",
            api_key="helius-key",
            transport=httpx.MockTransport(indexer.handler)
        )),
        chat_client=SynapseAdminClient(
            server_url="https://matrix.test",
            admin_token="synapse-admin-token",
            transport=httpx.MockTransport(synapse.handler)
        ),
        rate_limiter=MemoryRateLimiter(max_attempts=100, window_seconds=900),
        config=gate_config,
        nonce_ttl_seconds=300
    )

    async def override_session():
        async with api_session_factory() as session:
            yield session

    application.dependency_overrides[get_async_session] = override_session
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
