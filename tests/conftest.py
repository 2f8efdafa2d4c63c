"""
Shared fixtures: a throwaway SQLite database per test, fake upstreams built on
httpx.MockTransport, and real Solana / EVM wallets that can sign challenges.
"""

import json
import os
import sys
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from eth_account import Account
from eth_account.messages import encode_defunct
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add the project root to the sys.path to allow importing modules from src
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.infra.models import Base
from src.core.service.assets.eligibility import create_eligibility_service
from src.core.service.assets.indexer_client import AssetIndexerClient
from src.core.service.auth.gate_config import GateConfig
from src.core.service.auth.multi_protocol_signature_service import MultiProtocolSignatureService
from src.core.service.auth.orchestrator import AuthenticationOrchestrator
from src.core.service.auth.rate_limiter import MemoryRateLimiter
from src.core.service.auth.utils.crypto import generate_ed25519_keypair, sign_message_ed25519
from src.core.service.chat.synapse_client import SynapseAdminClient

HOMESERVER_URL = "https://matrix.test"
CREATOR_A = "CrEaToRaAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
CREATOR_B = "CrEaToRbBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB"


class SynapseStub:
    """Records homeserver calls and answers them with configurable statuses"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.put_status = 200
        self.invite_status = 200
        self.transport_error = False
        self.before_put = None  # optional coroutine function(request)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.transport_error:
            raise httpx.ConnectError("connection refused", request=request)
        if request.method == "PUT":
            if self.before_put is not None:
                await self.before_put(request)
            return httpx.Response(self.put_status, json={})
        return httpx.Response(self.invite_status, json={})

    @property
    def puts(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    @property
    def put_payloads(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.puts]

    @property
    def invites(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and r.url.path.endswith("/invite")]


class IndexerStub:
    """Serves a fixed NFT list for every wallet"""

    def __init__(self):
        self.assets: Any = []
        self.status_code = 200
        self.transport_error = False
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.transport_error:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(self.status_code, json=self.assets)

    def holds(self, creator: str, mint: str = "MintAddress1111111111111111111111111111111", verified: bool = True):
        self.assets = [{
            "mint": mint,
            "name": "Ratimics #42",
            "image": "https://example.test/42.png",
            "creators": [{"address": creator, "verified": verified, "share": 100}]
        }]


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'registrations.db'}",
        connect_args={"timeout": 15}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def synapse():
    return SynapseStub()


@pytest_asyncio.fixture
async def chat_client(synapse):
    client = SynapseAdminClient(
        server_url=HOMESERVER_URL,
        admin_token="synapse-admin-token",
        transport=httpx.MockTransport(synapse.handler)
    )
    yield client
    await client.close()


@pytest.fixture
def indexer():
    return IndexerStub()


@pytest_asyncio.fixture
async def indexer_client(indexer):
    client = AssetIndexerClient(
        base_url="https://indexer.test",
        api_key="helius-key",
        transport=httpx.MockTransport(indexer.handler)
    )
    yield client
    await client.close()


@pytest.fixture
def solana_wallet():
    """Solana keypair; the address is the base58 public key"""
    private_key, address = generate_ed25519_keypair()
    return {
        "address": address,
        "sign": lambda message: sign_message_ed25519(message, private_key)
    }


@pytest.fixture
def evm_wallet():
    account = Account.create()

    def sign(message: str) -> str:
        signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
        return "0x" + bytes(signed.signature).hex()

    return {"address": account.address, "sign": sign}


@pytest.fixture
def gate_config():
    return GateConfig.build(
        authorized_creators=[CREATOR_B],
        approved_wallets=[],
        main_room_id="!main:chat.test"
    )


@pytest.fixture
def make_orchestrator(session_factory, chat_client, indexer_client, gate_config):
    """Build an orchestrator over the test database and fake upstreams"""

    def factory(
        config: Optional[GateConfig] = None,
        max_attempts: int = 100,
        nonce_ttl_seconds: int = 300,
        **kwargs
    ) -> AuthenticationOrchestrator:
        return AuthenticationOrchestrator(
            session_factory=session_factory,
            signature_service=MultiProtocolSignatureService(),
            eligibility_service=create_eligibility_service(indexer_client),
            chat_client=chat_client,
            rate_limiter=MemoryRateLimiter(max_attempts=max_attempts, window_seconds=900),
            config=config or gate_config,
            nonce_ttl_seconds=nonce_ttl_seconds,
            **kwargs
        )

    return factory
