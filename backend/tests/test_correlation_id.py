"""Tests for correlation ID header on all responses."""

from fastapi.testclient import TestClient

import island_rewards.main as main_module
from island_rewards.database import get_db
from island_rewards.main import app
from island_rewards.middleware.rate_limit import limiter
from tests.test_utils import PUBKEY


def test_correlation_id_on_success(client):
    """Test that correlation ID is included on successful responses."""
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-Correlation-ID" in response.headers
    assert len(response.headers["X-Correlation-ID"]) == 8  # 4 bytes as hex


def test_correlation_id_on_validation_error(client):
    """Test that correlation ID is included on validation error (422) responses."""
    response = client.post("/api/v1/challenges", json={"pubkey": "tooshort", "score": 100})
    assert response.status_code == 422
    assert "X-Correlation-ID" in response.headers
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_correlation_id_on_unauthorized_error(client):
    """Test that correlation ID is included on 401 error responses (HTTPException)."""
    response = client.post(
        "/api/v1/withdrawals", json={"amount": 500}, headers={"X-API-Key": "wrong"}
    )
    assert response.status_code == 401
    assert "X-Correlation-ID" in response.headers
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_incoming_correlation_id_reused(client):
    response = client.get("/health", headers={"X-Correlation-ID": "DEADBEEF"})
    assert response.headers["X-Correlation-ID"] == "deadbeef"


def test_malformed_incoming_correlation_id_replaced(client):
    response = client.get("/health", headers={"X-Correlation-ID": "not-an-id; drop"})
    corr_id = response.headers["X-Correlation-ID"]
    assert corr_id != "not-an-id; drop"
    assert len(corr_id) == 8


def test_correlation_id_on_unhandled_exception(db_session, monkeypatch):
    """Test that correlation ID is included on 500 responses from unhandled exceptions."""
    from island_rewards.routers import challenges

    def raise_error(*args, **kwargs):
        raise RuntimeError("Unexpected database error")

    monkeypatch.setattr(challenges, "issue_challenge", raise_error)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.post(
                "/api/v1/challenges", json={"pubkey": PUBKEY, "score": 100}
            )

            assert response.status_code == 500
            assert "X-Correlation-ID" in response.headers
            assert len(response.headers["X-Correlation-ID"]) == 8
            assert response.json()["detail"] == "Internal Server Error"
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True
        main_module.engine = original_engine


def test_correlation_ids_unique_across_requests(client):
    """Test that each request gets a unique correlation ID."""
    response1 = client.get("/health")
    response2 = client.get("/health")

    corr_id_1 = response1.headers.get("X-Correlation-ID")
    corr_id_2 = response2.headers.get("X-Correlation-ID")

    assert corr_id_1 != corr_id_2, "Correlation IDs should be unique across requests"
