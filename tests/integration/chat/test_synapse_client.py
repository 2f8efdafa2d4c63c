import pytest

from src.core.exceptions.base import ProvisioningFailureError, UpstreamUnavailableError

USER_ID = "@cosmicpioneer255:chat.test"


class TestSynapseAdminClient:
    @pytest.mark.asyncio
    async def test_upsert_user_request(self, chat_client, synapse):
        await chat_client.upsert_user(USER_ID, "s3cret", "CosmicPioneer255")

        request = synapse.puts[0]
        assert request.url.host == "matrix.test"
        assert request.url.path == "/_synapse/admin/v2/users/@cosmicpioneer255:chat.test"
        assert request.headers["Authorization"] == "Bearer synapse-admin-token"
        assert synapse.put_payloads[0] == {
            "password": "s3cret",
            "displayname": "CosmicPioneer255",
            "admin": False,
            "deactivated": False,
        }

    @pytest.mark.asyncio
    async def test_upsert_is_repeatable(self, chat_client, synapse):
        await chat_client.upsert_user(USER_ID, "first", "CosmicPioneer255")
        await chat_client.upsert_user(USER_ID, "second", "CosmicPioneer255")

        assert [p["password"] for p in synapse.put_payloads] == ["first", "second"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 403, 409])
    async def test_client_error_is_provisioning_failure(self, chat_client, synapse, status_code):
        synapse.put_status = status_code

        with pytest.raises(ProvisioningFailureError) as exc_info:
            await chat_client.upsert_user(USER_ID, "s3cret", "CosmicPioneer255")

        assert exc_info.value.details["status_code"] == status_code

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_unavailable(self, chat_client, synapse):
        synapse.put_status = 503

        with pytest.raises(UpstreamUnavailableError):
            await chat_client.upsert_user(USER_ID, "s3cret", "CosmicPioneer255")

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream_unavailable(self, chat_client, synapse):
        synapse.transport_error = True

        with pytest.raises(UpstreamUnavailableError):
            await chat_client.upsert_user(USER_ID, "s3cret", "CosmicPioneer255")

    @pytest.mark.asyncio
    async def test_invite_to_room(self, chat_client, synapse):
        assert await chat_client.invite_to_room("!main:chat.test", USER_ID) is True

        request = synapse.invites[0]
        assert request.url.raw_path.decode() == "/_matrix/client/v3/rooms/%21main%3Achat.test/invite"

    @pytest.mark.asyncio
    async def test_invite_failure_is_reported_not_raised(self, chat_client, synapse):
        synapse.invite_status = 403
        assert await chat_client.invite_to_room("!main:chat.test", USER_ID) is False

        synapse.transport_error = True
        assert await chat_client.invite_to_room("!main:chat.test", USER_ID) is False
