"""Tests for the HTTP API routes."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from tests.fixtures.common import MINT_A, WALLET
from wallet_trades.__version__ import __version__
from wallet_trades.app import create_app
from wallet_trades.services.trade_service import TradeService
from wallet_trades.utils.errors import ExternalServiceError


@pytest.fixture
def container(mock_transaction_source, price_service):
    """Create a service container backed by mocks."""
    container = MagicMock()
    container.trade_service = TradeService(mock_transaction_source, price_service)
    container.get_stats.return_value = {"prices": {"inFlight": 0}}
    container.aclose = AsyncMock()
    return container


@pytest.fixture
def client(container):
    """Create a test client."""
    with TestClient(create_app(container), raise_server_exceptions=False) as test_client:
        yield test_client


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_get_trades(client):
    response = client.get(f"/api/trades/{WALLET}", params={"limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == __version__
    assert data["address"] == WALLET
    assert [tx["signature"] for tx in data["transactions"]] == ["sig1", "sig2"]
    assert data["transactions"][0]["trades"][0]["mint"] == MINT_A
    assert data["transactions"][0]["trades"][0]["priceAnalysis"]["purchasePrice"] == 3.0
    assert data["summary"]["overview"]["totalTrades"] == 2
    assert data["pagination"] == {"limit": 2, "hasMore": True, "nextCursor": "sig2"}


def test_get_trade_summary(client):
    response = client.get(f"/api/trades/{WALLET}/summary")

    assert response.status_code == 200
    data = response.json()
    assert "transactions" not in data
    assert data["summary"]["overview"]["purchases"] == 1
    assert data["summary"]["overview"]["sales"] == 1


def test_invalid_address_returns_400(client):
    response = client.get("/api/trades/not-a-wallet")

    assert response.status_code == 400
    data = response.json()
    assert data["version"] == __version__
    assert data["error"]["code"] == "INVALID_ACCOUNT"


def test_invalid_limit_returns_400(client):
    assert client.get(f"/api/trades/{WALLET}", params={"limit": 0}).status_code == 400
    assert client.get(f"/api/trades/{WALLET}", params={"limit": "many"}).status_code == 400


def test_provider_error_is_reported(client, container):
    container.trade_service = MagicMock()
    container.trade_service.get_trades_for_address = AsyncMock(
        side_effect=ExternalServiceError("helius returned HTTP 503", service_name="helius", upstream_status=503)
    )

    response = client.get(f"/api/trades/{WALLET}")

    assert response.status_code == 502
    assert response.json()["error"]["details"]["upstream_status"] == 503


def test_unexpected_error_returns_500(client, container):
    container.trade_service = MagicMock()
    container.trade_service.get_trades_for_address = AsyncMock(side_effect=RuntimeError("boom"))

    response = client.get(f"/api/trades/{WALLET}")

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"


def test_stats(client):
    response = client.get("/api/stats")

    assert response.status_code == 200
    assert response.json()["stats"] == {"prices": {"inFlight": 0}}


def test_container_is_not_closed_when_injected(container):
    with TestClient(create_app(container)):
        pass

    container.aclose.assert_not_called()
