"""Tests for structured logging and request_id propagation."""

import json
import logging

from engagement_dashboard.core.logging import (
    LOGGER_NAME,
    JsonFormatter,
    PrettyFormatter,
    RequestIdFilter,
    latency_bucket_ms,
    log_event,
    request_id_ctx_var,
)


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        response = client.get("/api/health")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_request_id_in_error_response(client):
    response = client.get("/api/analytics/segments", params={"segment": "vip"})
    rid = response.headers.get("x-request-id")
    assert response.status_code == 400
    assert rid
    payload = response.json()
    assert payload["error"]["request_id"] == rid


def test_unknown_route_is_normalized(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_json_formatter_includes_request_id():
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "client.retry", None, None)
    record.error_code = "NETWORK_ERROR"
    token = request_id_ctx_var.set("rid-42")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_ctx_var.reset(token)

    payload = json.loads(JsonFormatter().format(record))
    assert payload["request_id"] == "rid-42"
    assert payload["error_code"] == "NETWORK_ERROR"
    assert payload["message"] == "client.retry"


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(2500) == ">=1000ms"


def _record(msg, **fields):
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, msg, None, None)
    record.request_id = "rid-7"
    for key, value in fields.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_dashboard_fields():
    record = _record("engagement.list", data_source="uploaded", total=12, returned=10, status=None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["data_source"] == "uploaded"
    assert payload["total"] == 12
    assert payload["returned"] == 10
    assert "status" not in payload
    assert "upload_name" not in payload


def test_pretty_formatter_appends_fields():
    record = _record("request.complete", method="GET", path="/api/engagement", status=200)

    line = PrettyFormatter().format(record)

    assert "[rid=rid-7] request.complete" in line
    assert line.endswith("status=200 method=GET path=/api/engagement")


def test_log_event_fills_request_id_from_context(caplog):
    token = request_id_ctx_var.set("rid-ctx")
    try:
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_event("info", "engagement.upload", request_id=None, extra={"processed": 3})
    finally:
        request_id_ctx_var.reset(token)

    record = next(r for r in caplog.records if r.getMessage() == "engagement.upload")
    assert record.request_id == "rid-ctx"
    assert record.processed == "3"
