"""Tests for request id assignment and client/server correlation."""

import logging

import httpx
import pytest

from engagement_dashboard.core.logging import LOGGER_NAME
from engagement_dashboard.services.api_client import APIService


class RecordingTransport(httpx.ASGITransport):
    """ASGI transport that keeps every response it hands back."""

    def __init__(self, app):
        super().__init__(app=app)
        self.responses = []

    async def handle_async_request(self, request):
        response = await super().handle_async_request(request)
        self.responses.append(response)
        return response


def test_generates_request_id_when_missing(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    rid = resp.headers.get("x-request-id")
    assert rid and len(rid) == 36


def test_echoes_provided_request_id_on_errors(client):
    resp = client.get("/api/engagement", params={"type": "bogus"}, headers={"X-Request-Id": "dash-77"})

    assert resp.status_code == 400
    assert resp.headers.get("x-request-id") == "dash-77"
    assert resp.json()["error"]["request_id"] == "dash-77"


@pytest.mark.asyncio
async def test_client_correlation_id_reaches_server(app, caplog):
    transport = RecordingTransport(app)
    api = APIService("http://dashboard.test", transport=transport)

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        outcome = await api.get_engagements({"limit": 3})
    await api.aclose()

    assert outcome.ok
    assert transport.responses[0].headers["x-request-id"] == str(outcome.request_id)
    server_lines = [
        r for r in caplog.records
        if r.getMessage() == "request.complete" and getattr(r, "request_id", None) == str(outcome.request_id)
    ]
    assert len(server_lines) == 1
    assert server_lines[0].path == "/api/engagement"
