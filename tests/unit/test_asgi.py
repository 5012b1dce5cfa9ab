"""
Unit tests for the FastAPI ASGI application — REST endpoints.

Uses FastAPI's TestClient without running the lifespan; module state is
set directly per test.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from jks_truststore import asgi
from jks_truststore.config import AppSettings
from jks_truststore.railway import ErrorCode, FailureDescription
from tests.conftest import FIXED_TIMESTAMP


@pytest.fixture(autouse=True)
def _reset_asgi_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset ASGI module-level state before each test."""
    for name in ("LOG_LEVEL", "TRUSTSTORE__PASSWORD", "TRUSTSTORE__CERTIFICATE_TYPE", "STATE__PATH"):
        monkeypatch.delenv(name, raising=False)
    asgi._settings = AppSettings(_env_file=None)
    asgi._startup_failure = None


@pytest.fixture()
def client() -> TestClient:
    """Create a TestClient without running the lifespan (no real startup)."""
    return TestClient(asgi.app, raise_server_exceptions=False)


# ─────────────────────── POST /truststores ───────────────────────


class TestCreateTruststore:
    def test_returns_artifact(self, client: TestClient, pem_a: str, pem_b: str) -> None:
        """
        GIVEN two PEM certificates
        WHEN POST /truststores is called
        THEN it returns 200 with a 40-char id, a timestamp and base64 jks.
        """
        response = client.post("/truststores", json={"certificates": [pem_a, pem_b]})

        assert response.status_code == 200
        body = response.json()
        assert len(body["id"]) == 40
        assert body["timestamp"].endswith("Z")
        assert body["jks"].startswith("/u3+7Q")  # base64 of FEEDFEED

    def test_rebuild_with_timestamp_is_identical(self, client: TestClient, pem_a: str) -> None:
        first = client.post("/truststores", json={"certificates": [pem_a], "timestamp": FIXED_TIMESTAMP}).json()
        second = client.post("/truststores", json={"certificates": [pem_a], "timestamp": FIXED_TIMESTAMP}).json()

        assert first == second
        assert first["timestamp"] == FIXED_TIMESTAMP

    def test_password_changes_id(self, client: TestClient, pem_a: str) -> None:
        payload = {"certificates": [pem_a], "timestamp": FIXED_TIMESTAMP}

        plain = client.post("/truststores", json=payload).json()
        sealed = client.post("/truststores", json={**payload, "password": "changeit"}).json()

        assert plain["id"] != sealed["id"]

    def test_empty_certificates_returns_422(self, client: TestClient) -> None:
        response = client.post("/truststores", json={"certificates": []})

        assert response.status_code == 422
        assert response.json()["error_code"] == "EMPTY_INPUT"

    def test_malformed_pem_returns_422(self, client: TestClient) -> None:
        response = client.post("/truststores", json={"certificates": ["nope"]})

        assert response.status_code == 422
        assert response.json()["error_code"] == "DECODE_ERROR"

    def test_non_string_certificates_rejected_by_schema(self, client: TestClient) -> None:
        response = client.post("/truststores", json={"certificates": [42]})
        assert response.status_code == 422

    def test_returns_503_before_startup(self, client: TestClient, pem_a: str) -> None:
        asgi._settings = None

        response = client.post("/truststores", json={"certificates": [pem_a]})

        assert response.status_code == 503


# ─────────────────────── GET /health, /info ───────────────────────


class TestProbes:
    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_reports_startup_error(self, client: TestClient) -> None:
        asgi._startup_failure = FailureDescription(ErrorCode.CONFIGURATION_ERROR, "Configuration error: bad")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["error_code"] == "CONFIGURATION_ERROR"
        assert "bad" in response.json()["error"]

    def test_invalid_settings_fail_startup_with_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """
        GIVEN LOG_LEVEL=LOUD in the environment
        WHEN the app starts
        THEN startup aborts and /health reports CONFIGURATION_ERROR.
        """
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        asgi._settings = None

        async def _start() -> None:
            async with asgi.lifespan(asgi.app):
                pass

        with pytest.raises(RuntimeError, match="Configuration error"):
            asyncio.run(_start())

        response = TestClient(asgi.app, raise_server_exceptions=False).get("/health")
        assert response.status_code == 503
        assert response.json()["error_code"] == "CONFIGURATION_ERROR"

    def test_info(self, client: TestClient) -> None:
        body = client.get("/info").json()
        assert body["name"] == "jks-truststore"
        assert body["certificate_type"] == "X.509"
