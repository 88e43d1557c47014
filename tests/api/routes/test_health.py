"""Tests for GET /health."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from student_api.core.errors import PERMISSION_DENIED_MESSAGE
from tests.utils.fakes import FakeConnector, FakeTokenProvider, access_denied_error


def test_health_ok(client: TestClient, connector: FakeConnector) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.text == "I am OK. Database connection successful."
    assert connector.created[0].pings == 1


def test_health_reuses_pooled_connection(
    client: TestClient, token_provider: FakeTokenProvider
) -> None:
    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200
    assert len(token_provider.calls) == 1


def test_health_permission_denied_from_token(
    client: TestClient, token_provider: FakeTokenProvider
) -> None:
    token_provider.error = RuntimeError("AccessDenied: access denied for sts:AssumeRole")
    r = client.get("/health")
    assert r.status_code == 403
    assert r.json() == {"status": "ERROR", "message": PERMISSION_DENIED_MESSAGE}


def test_health_permission_denied_from_database(
    client: TestClient, connector: FakeConnector
) -> None:
    connector.error = access_denied_error()
    r = client.get("/health")
    assert r.status_code == 403
    assert r.json()["message"] == PERMISSION_DENIED_MESSAGE


def test_health_connect_failure_reports_cause(
    client: TestClient, connector: FakeConnector
) -> None:
    connector.error = ConnectionRefusedError(111, "Connection refused")
    r = client.get("/health")
    assert r.status_code == 500
    data = r.json()
    assert data["status"] == "ERROR"
    assert data["message"].startswith("Health check failed: ")
    assert "Connection refused" in data["message"]


def test_health_ping_failure_reports_cause(
    client: TestClient, connector: FakeConnector
) -> None:
    connector.ping_error = OSError("Lost connection to MySQL server during query")
    r = client.get("/health")
    assert r.status_code == 500
    assert "Lost connection" in r.json()["message"]


def test_health_timeout_reports_cause(client: TestClient) -> None:
    with patch("student_api.api.routes.health.settings") as mock_settings:
        mock_settings.REQUEST_TIMEOUT = 0
        r = client.get("/health")
    assert r.status_code == 500
    assert r.json() == {
        "status": "ERROR",
        "message": "Health check failed: timed out after 0s",
    }
