"""
Matrix Synapse admin client used to provision chat accounts.
"""

from typing import Optional
from urllib.parse import quote

import httpx

from src.core.exceptions.base import ProvisioningFailureError, UpstreamUnavailableError
from src.core.http_client import HTTPClientConfig
from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class SynapseAdminClient:
    """
    Wraps the two homeserver calls the registrar needs.

    PUT /_synapse/admin/v2/users/{user_id} is an upsert: calling it again for an
    existing account updates password and display name, which is how a losing
    concurrent registration re-syncs the winner's secret.
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        admin_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.server_url = (server_url or settings.MATRIX_SERVER_URL).rstrip("/")
        self.admin_token = admin_token if admin_token is not None else settings.SYNAPSE_ADMIN_TOKEN
        config = HTTPClientConfig.create_client_config("matrix")
        config["headers"] = {
            **config["headers"],
            "Authorization": f"Bearer {self.admin_token or ''}",
            "Content-Type": "application/json",
        }
        if transport is not None:
            config["transport"] = transport
        self.client = httpx.AsyncClient(base_url=self.server_url, **config)

    async def close(self) -> None:
        await self.client.aclose()

    def _raise_for_status(self, response: httpx.Response, action: str, user_id: str) -> None:
        if response.is_success:
            return

        body = response.text[:500]
        extra = {"chat_user_id": user_id, "status_code": response.status_code, "body": body}
        if response.status_code >= 500:
            logger.error(f"Homeserver error during {action}", extra=extra)
            raise UpstreamUnavailableError(
                f"Chat homeserver unavailable during {action}",
                details={"status_code": response.status_code}
            )

        logger.error(f"Homeserver rejected {action}", extra=extra)
        raise ProvisioningFailureError(
            "Failed to create chat account",
            details={"status_code": response.status_code}
        )

    async def upsert_user(self, user_id: str, password: str, display_name: str) -> None:
        """
        Raises:
            UpstreamUnavailableError: transport failure or 5xx
            ProvisioningFailureError: 4xx
        """
        payload = {
            "password": password,
            "displayname": display_name,
            "admin": False,
            "deactivated": False,
        }
        try:
            response = await self.client.put(
                f"/_synapse/admin/v2/users/{quote(user_id, safe='@:')}",
                json=payload
            )
        except httpx.HTTPError as e:
            logger.error(
                "Homeserver unreachable",
                extra={"chat_user_id": user_id, "error": str(e)}
            )
            raise UpstreamUnavailableError("Chat homeserver unreachable") from e

        self._raise_for_status(response, "account provisioning", user_id)
        logger.info("Chat account provisioned", extra={"chat_user_id": user_id})

    async def invite_to_room(self, room_id: str, user_id: str) -> bool:
        """Best effort. Returns False instead of raising."""
        try:
            response = await self.client.post(
                f"/_matrix/client/v3/rooms/{quote(room_id, safe='')}/invite",
                json={"user_id": user_id}
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Room invite failed",
                extra={"chat_user_id": user_id, "room_id": room_id, "error": str(e)}
            )
            return False

        if not response.is_success:
            logger.warning(
                "Room invite rejected",
                extra={
                    "chat_user_id": user_id,
                    "room_id": room_id,
                    "status_code": response.status_code
                }
            )
            return False

        logger.info("Invited user to main room", extra={"chat_user_id": user_id, "room_id": room_id})
        return True
