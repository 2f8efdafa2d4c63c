"""
Contract tests for authentication API endpoints.
Tests API contracts, request/response schemas, and error handling.
"""

import pytest

from src.api.controller.auth.dto.input_dto import NonceRequestDto, VerifyRequestDto
from src.core.service.auth.gate_config import GateConfig
from src.core.dependencies import settings as dependency_settings
from src.core.service.auth.rate_limiter import MemoryRateLimiter

CREATOR_B = "CrEaToRbBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB"
NONCE_URL = "/api/v1/auth/nonce"
VERIFY_URL = "/api/v1/auth/verify"


def request_nonce(client, address, **extra):
    return client.post(NONCE_URL, json={"wallet_address": address, **extra})


def sign_in(client, wallet):
    challenge = request_nonce(client, wallet["address"]).json()
    return client.post(VERIFY_URL, json={
        "wallet_address": wallet["address"],
        "signature": wallet["sign"](challenge["message"]),
        "nonce": challenge["nonce"]
    })


def assert_error(response, status_code, code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert "timestamp" in body["error"]
    return body["error"]


class TestRequestSchemas:
    """DTO validation."""

    def test_nonce_request_accepts_both_spellings(self):
        assert NonceRequestDto(wallet_address="abc").wallet_address == "abc"
        assert NonceRequestDto.model_validate({"walletAddress": "abc"}).wallet_address == "abc"

    def test_blank_fields_become_missing(self):
        dto = VerifyRequestDto(wallet_address="  ", signature="", nonce=" n ")
        assert dto.wallet_address is None
        assert dto.signature is None
        assert dto.nonce == "n"

    def test_values_are_not_type_checked_at_schema_level(self):
        assert NonceRequestDto(wallet_address=12345).wallet_address == 12345
        assert VerifyRequestDto(signature="x" * 500).signature == "x" * 500


class TestNonceEndpoint:
    def test_nonce_for_solana_wallet(self, client, solana_wallet):
        response = request_nonce(client, solana_wallet["address"])

        assert response.status_code == 200
        data = response.json()
        assert len(data["nonce"]) == 64
        assert data["message"] == f"Sign this message to authenticate with Chatimics: {data['nonce']}"
        assert data["expires_in"] == 300
        assert data["protocol"] == "solana"

    def test_nonce_for_evm_wallet_camel_case(self, client, evm_wallet):
        response = client.post(NONCE_URL, json={"walletAddress": evm_wallet["address"]})

        assert response.status_code == 200
        assert response.json()["protocol"] == "evm"

    def test_missing_wallet_address(self, client):
        assert_error(client.post(NONCE_URL, json={}), 400, "INVALID_INPUT")

    def test_invalid_wallet_address(self, client):
        assert_error(request_nonce(client, "not-a-wallet"), 400, "INVALID_ADDRESS")

    def test_unsupported_protocol(self, client, solana_wallet):
        assert_error(request_nonce(client, solana_wallet["address"], protocol="near"), 400, "UNSUPPORTED_PROTOCOL")

    def test_malformed_body(self, client):
        response = client.post(NONCE_URL, content="not json", headers={"Content-Type": "application/json"})
        error = assert_error(response, 400, "INVALID_INPUT")
        assert error["message"] == "Wallet address is required"

    def test_oversized_wallet_address(self, client):
        error = assert_error(request_nonce(client, "x" * 101), 400, "INVALID_INPUT")
        assert error["details"] == {"field": "wallet_address", "max_length": 100}

    def test_non_string_wallet_address(self, client):
        error = assert_error(request_nonce(client, 12345), 400, "INVALID_INPUT")
        assert error["details"]["field"] == "wallet_address"


class TestVerifyEndpoint:
    def test_first_login_returns_credentials(self, client, indexer, synapse, solana_wallet):
        indexer.holds(CREATOR_B)

        response = sign_in(client, solana_wallet)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["is_new_user"] is True
        assert data["chat_user_id"].startswith("@")
        assert data["pseudonym"]
        assert data["secret"] == synapse.put_payloads[0]["password"]
        assert data["homeserver_url"]
        assert data["asset"]["creator"] == CREATOR_B

    def test_returning_login_returns_same_credentials(self, client, indexer, solana_wallet):
        indexer.holds(CREATOR_B)

        first = sign_in(client, solana_wallet).json()
        second = sign_in(client, solana_wallet).json()

        assert second["is_new_user"] is False
        assert second["chat_user_id"] == first["chat_user_id"]
        assert second["secret"] == first["secret"]

    def test_not_eligible(self, client, indexer, solana_wallet):
        indexer.assets = []
        assert_error(sign_in(client, solana_wallet), 403, "NOT_ELIGIBLE")

    def test_indexer_unavailable(self, client, indexer, solana_wallet):
        indexer.transport_error = True
        assert_error(sign_in(client, solana_wallet), 503, "SERVICE_UNAVAILABLE")

    def test_provisioning_failure(self, client, indexer, synapse, solana_wallet):
        indexer.holds(CREATOR_B)
        synapse.put_status = 400
        assert_error(sign_in(client, solana_wallet), 500, "PROVISIONING_FAILED")

    def test_bad_signature(self, client, solana_wallet):
        challenge = request_nonce(client, solana_wallet["address"]).json()

        response = client.post(VERIFY_URL, json={
            "wallet_address": solana_wallet["address"],
            "signature": solana_wallet["sign"]("something else"),
            "nonce": challenge["nonce"]
        })

        assert_error(response, 401, "INVALID_SIGNATURE")

    def test_replayed_nonce(self, client, app, evm_wallet):
        app.state.orchestrator.reload_config(GateConfig.build(approved_wallets=[evm_wallet["address"]]))
        challenge = request_nonce(client, evm_wallet["address"]).json()
        body = {
            "wallet_address": evm_wallet["address"],
            "signature": evm_wallet["sign"](challenge["message"]),
            "nonce": challenge["nonce"]
        }

        assert client.post(VERIFY_URL, json=body).status_code == 200
        assert_error(client.post(VERIFY_URL, json=body), 400, "INVALID_NONCE")

    def test_missing_fields(self, client, solana_wallet):
        response = client.post(VERIFY_URL, json={"wallet_address": solana_wallet["address"]})

        error = assert_error(response, 400, "INVALID_INPUT")
        assert error["details"]["missing_fields"] == ["signature", "nonce"]


class TestRateLimiting:
    def test_sixth_attempt_returns_429(self, client, app, solana_wallet):
        app.state.orchestrator.rate_limiter = MemoryRateLimiter(max_attempts=5, window_seconds=900)

        for _ in range(5):
            assert request_nonce(client, solana_wallet["address"]).status_code == 200

        response = request_nonce(client, solana_wallet["address"])

        assert_error(response, 429, "RATE_LIMIT_EXCEEDED")
        assert 0 < int(response.headers["Retry-After"]) <= 900
        assert response.headers["X-RateLimit-Limit"] == "5"

    def test_verify_shares_the_budget(self, client, app, solana_wallet):
        app.state.orchestrator.rate_limiter = MemoryRateLimiter(max_attempts=2, window_seconds=900)

        request_nonce(client, solana_wallet["address"])
        client.post(VERIFY_URL, json={})

        assert_error(client.post(VERIFY_URL, json={}), 429, "RATE_LIMIT_EXCEEDED")

    def test_malformed_requests_count_towards_limit(self, client, app, solana_wallet):
        app.state.orchestrator.rate_limiter = MemoryRateLimiter(max_attempts=5, window_seconds=900)

        for _ in range(5):
            assert_error(request_nonce(client, "x" * 101), 400, "INVALID_INPUT")

        assert_error(request_nonce(client, 12345), 429, "RATE_LIMIT_EXCEEDED")
        assert_error(request_nonce(client, solana_wallet["address"]), 429, "RATE_LIMIT_EXCEEDED")
        response = client.post(VERIFY_URL, content="not json", headers={"Content-Type": "application/json"})
        assert_error(response, 429, "RATE_LIMIT_EXCEEDED")

    def test_spoofed_forwarded_for_is_ignored(self, client, app, solana_wallet):
        app.state.orchestrator.rate_limiter = MemoryRateLimiter(max_attempts=5, window_seconds=900)

        statuses = [
            client.post(NONCE_URL, json={"wallet_address": solana_wallet["address"]},
                        headers={"X-Forwarded-For": f"198.51.100.{i}", "X-Real-IP": f"198.51.100.{i}"}).status_code
            for i in range(8)
        ]

        assert statuses == [200] * 5 + [429] * 3

    def test_forwarded_for_from_trusted_proxy(self, client, app, monkeypatch, solana_wallet):
        # TestClient connects from the host "testclient"
        monkeypatch.setattr(dependency_settings, "TRUSTED_PROXIES", ["testclient", "10.0.0.1"])
        app.state.orchestrator.rate_limiter = MemoryRateLimiter(max_attempts=1, window_seconds=900)

        def nonce_via(forwarded_for):
            return client.post(NONCE_URL, json={"wallet_address": solana_wallet["address"]},
                               headers={"X-Forwarded-For": forwarded_for})

        assert nonce_via("203.0.113.1, 10.0.0.1").status_code == 200
        assert nonce_via("203.0.113.2").status_code == 200
        assert_error(nonce_via("203.0.113.1"), 429, "RATE_LIMIT_EXCEEDED")


class TestDiscoveryEndpoints:
    def test_protocols(self, client):
        response = client.get("/api/v1/auth/protocols")

        assert response.status_code == 200
        data = response.json()
        assert data["total_count"] == 2
        eligibility = {p["protocol"]: p["eligibility"] for p in data["protocols"]}
        assert eligibility == {"solana": "nft", "evm": "allowlist"}

    def test_approved_wallets(self, client, app):
        app.state.orchestrator.reload_config(GateConfig.build(approved_wallets=["0xABC", "0xdef"]))

        response = client.get("/api/v1/auth/approved-wallets")

        assert response.status_code == 200
        assert response.json() == {"wallets": ["0xabc", "0xdef"], "total_count": 2}

    def test_orchestrator_missing(self, client, app):
        app.state.orchestrator = None
        assert_error(client.get("/api/v1/auth/protocols"), 503, "SERVICE_UNAVAILABLE")
