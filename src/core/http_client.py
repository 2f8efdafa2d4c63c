"""
HTTP client configuration for outbound calls (asset indexer, chat homeserver).
NO RETRY mechanisms - every upstream call is attempted once.
NO GLOBAL instances - each service manages its own client lifecycle.
"""

import httpx
from typing import Optional, Dict, Any

from src.infra.config.settings import get_settings

settings = get_settings()


class HTTPClientConfig:
    """HTTP client configuration shared by the upstream clients"""

    @classmethod
    def get_timeout(cls, service: str) -> float:
        """Get timeout for specific service"""
        timeout_map = {
            "default": settings.HTTP_DEFAULT_TIMEOUT,
            "indexer": settings.HTTP_INDEXER_TIMEOUT,
            "matrix": settings.HTTP_MATRIX_TIMEOUT,
        }
        return timeout_map.get(service, settings.HTTP_DEFAULT_TIMEOUT)

    @classmethod
    def get_base_headers(cls) -> Dict[str, str]:
        """Get base headers for HTTP requests"""
        return {
            "User-Agent": f"{settings.APP_NAME}-Auth/{settings.APP_VERSION}",
            "Accept": "application/json",
        }

    @classmethod
    def create_client_config(cls, service: str = "default", timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Create HTTP client configuration (NOT the client itself).
        Each service should create its own client instance using this config.

        Args:
            service: Service name for timeout configuration
            timeout: Override timeout (optional)

        Returns:
            Dict with client configuration
        """
        client_timeout = timeout or cls.get_timeout(service)

        return {
            "timeout": client_timeout,
            "limits": httpx.Limits(
                max_connections=settings.HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE_CONNECTIONS
            ),
            "headers": cls.get_base_headers(),
            "follow_redirects": False,
        }
