from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App Settings
    APP_NAME: str = "Chatimics"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3002

    # Reverse proxies whose X-Forwarded-For / X-Real-IP headers are believed
    TRUSTED_PROXIES: List[str] = []

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development
        "https://chat.ratimics.com",  # Production frontend
    ]

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/nft_registrations.db"
    DB_LOGGING_ENABLED: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Redis Settings (only used when RATE_LIMIT_BACKEND=redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10

    # Rate Limiting (shared by /auth/nonce and /auth/verify)
    RATE_LIMIT_BACKEND: str = "memory"  # memory or redis
    AUTH_RATE_LIMIT_MAX_ATTEMPTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 900  # 15 minutes

    # Nonce Settings
    NONCE_TTL_SECONDS: int = 300  # 5 minutes
    NONCE_BYTES: int = 32  # 256 bits
    CHALLENGE_MESSAGE_PREFIX: str = "Sign this message to authenticate with Chatimics"

    # Asset indexer (Helius compatible)
    ASSET_INDEXER_URL: str = "https://api.helius.xyz"
    HELIUS_API_KEY: Optional[str] = None
    AUTHORIZED_NFT_CREATORS: str = ""  # comma-separated creator addresses

    # Allow-list variant
    APPROVED_WALLETS: str = ""  # comma-separated wallet addresses
    APPROVED_WALLETS_FILE: Optional[str] = None  # one wallet per line, first column

    # Which eligibility check applies to which chain family
    ELIGIBILITY_POLICY: Dict[str, str] = {"solana": "nft", "evm": "allowlist"}

    # Matrix / Synapse
    MATRIX_SERVER_URL: str = "https://chat.ratimics.com"
    MATRIX_SERVER_NAME: str = "chat.ratimics.com"
    SYNAPSE_ADMIN_TOKEN: Optional[str] = None
    MAIN_ROOM_ID: Optional[str] = "!main:chat.ratimics.com"

    # Admin API (falls back to SYNAPSE_ADMIN_TOKEN)
    ADMIN_API_TOKEN: Optional[str] = None

    # Identity Settings
    CHAT_SECRET_BYTES: int = 16
    PSEUDONYM_MAX_VARIANTS: int = 5

    # HTTP client Settings
    HTTP_DEFAULT_TIMEOUT: float = 10.0
    HTTP_INDEXER_TIMEOUT: float = 15.0
    HTTP_MATRIX_TIMEOUT: float = 10.0
    HTTP_MAX_CONNECTIONS: int = 50
    HTTP_MAX_KEEPALIVE_CONNECTIONS: int = 10

    @property
    def admin_token(self) -> Optional[str]:
        return self.ADMIN_API_TOKEN or self.SYNAPSE_ADMIN_TOKEN

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
