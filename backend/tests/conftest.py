"""Pytest configuration and fixtures for the knowledge proxy tests."""

import os
import sys

# Set required env vars BEFORE any imports that might trigger Settings
os.environ.setdefault("TENANT_ID", "test-tenant")
os.environ.setdefault("CLIENT_ID", "test-client")
os.environ.setdefault("CLIENT_SECRET", "test-secret")
os.environ.setdefault("SITE_ID", "site-1")
os.environ.setdefault("DRIVE_ID", "drive-1")
os.environ["API_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture
def mock_settings():
    """Mock application settings."""
    settings = MagicMock()
    settings.tenant_id = "test-tenant"
    settings.client_id = "test-client"
    settings.client_secret = "test-secret"
    settings.site_id = "site-1"
    settings.drive_id = "drive-1"
    settings.drive_path = "/sites/site-1/drives/drive-1"
    settings.graph_base_url = "https://graph.microsoft.com/v1.0"
    settings.graph_scope = "https://graph.microsoft.com/.default"
    settings.token_url = (
        "https://login.microsoftonline.com/test-tenant/oauth2/v2.0/token"
    )
    settings.token_refresh_margin_seconds = 300
    settings.retrieve_timeout_seconds = 5.0
    settings.max_concurrent_downloads = 4
    settings.max_chunks_per_document = 50
    return settings


@pytest.fixture
def mock_token_manager():
    """Token manager that never talks to the identity provider."""
    manager = AsyncMock()
    manager.get_token.return_value = "test-token"
    manager.auth_headers.return_value = {"Authorization": "Bearer test-token"}
    return manager


@pytest.fixture
def graph_routes():
    """Map of (method, decoded path) -> httpx.Response served by the fake Graph."""
    return {}


@pytest.fixture
def graph_requests():
    """Requests received by the fake Graph, in order."""
    return []


@pytest.fixture
def graph_http(graph_routes, graph_requests):
    """httpx client backed by a MockTransport serving `graph_routes`."""

    def handler(request: httpx.Request) -> httpx.Response:
        graph_requests.append(request)
        response = graph_routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(
                404,
                json={"error": {"code": "itemNotFound", "message": "Item not found"}},
            )
        # Fresh copy so a route can be served more than once
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def graph_client(graph_http, mock_token_manager, mock_settings):
    """GraphClient wired to the fake Graph transport."""
    from services.graph_client import GraphClient

    return GraphClient(graph_http, mock_token_manager, mock_settings)


@pytest.fixture
def sample_policy_text():
    """Plain-text policy document used across retrieval tests."""
    return "Our vacation policy allows 15 days"
