"""Tests for the esummary HTTP fetcher using httpx.MockTransport."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from pubmed_cache.config import FetchConfig
from pubmed_cache.core.types import FetchError, InvalidRequestError
from pubmed_cache.fetch.fetcher import build_params, fetch_esummary


PAYLOAD = {"result": {"uids": ["40382193"], "40382193": {"uid": "40382193", "title": "T"}}}


def _cfg(**overrides) -> FetchConfig:
    cfg = FetchConfig(backoff_seconds=0.0, retries=2, trust_env=False)
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


def _transport(responses: list, seen: list[httpx.Request]) -> httpx.MockTransport:
    """Replay responses (or raise exceptions) in order, recording requests."""
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler)


def test_build_params_includes_optional_email_and_key():
    cfg = _cfg(email="dev@example.org", tool="my-tool")
    params = build_params("1", cfg, api_key="secret")
    assert params == {
        "db": "pubmed",
        "id": "1",
        "retmode": "json",
        "tool": "my-tool",
        "email": "dev@example.org",
        "api_key": "secret",
    }
    assert "email" not in build_params("1", _cfg())


def test_fetch_esummary_returns_json_payload():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(200, json=PAYLOAD)], seen)

    data = asyncio.run(fetch_esummary("40382193", _cfg(), transport=transport))

    assert data == PAYLOAD
    assert len(seen) == 1
    assert seen[0].url.path.endswith("/esummary.fcgi")
    assert seen[0].url.params["id"] == "40382193"
    assert seen[0].url.params["retmode"] == "json"
    assert seen[0].headers["accept"] == "application/json"


def test_fetch_esummary_retries_rate_limit_then_succeeds():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(429), httpx.Response(200, json=PAYLOAD)], seen)

    data = asyncio.run(fetch_esummary("40382193", _cfg(), transport=transport))

    assert data == PAYLOAD
    assert len(seen) == 2


def test_fetch_esummary_does_not_retry_client_errors():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(404), httpx.Response(200, json=PAYLOAD)], seen)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(), transport=transport))

    assert excinfo.value.kind == "http_error"
    assert excinfo.value.status_code == 404
    assert len(seen) == 1


def test_fetch_esummary_gives_up_after_retries():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(503) for _ in range(3)], seen)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(retries=2), transport=transport))

    assert excinfo.value.status_code == 503
    assert excinfo.value.retryable is True
    assert len(seen) == 3


def test_fetch_esummary_reports_timeout_as_fetch_error():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.ReadTimeout("timed out")], seen)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(retries=0), transport=transport))

    assert excinfo.value.kind == "timeout"
    assert excinfo.value.identifier == "1"


def test_fetch_esummary_reports_connection_failure_as_network_error():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.ConnectError("refused"), httpx.ConnectError("refused")], seen)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(retries=1), transport=transport))

    assert excinfo.value.kind == "network"
    assert len(seen) == 2


def test_fetch_esummary_rejects_non_json_body():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(200, text="<html>oops</html>")], seen)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(), transport=transport))

    assert excinfo.value.kind == "invalid_response"
    assert len(seen) == 1


def test_fetch_esummary_maps_api_error_to_invalid_request():
    seen: list[httpx.Request] = []
    transport = _transport([httpx.Response(200, json={"error": "Invalid uid abc"})], seen)

    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(fetch_esummary("1", _cfg(), transport=transport))

    assert "Invalid uid abc" in excinfo.value.message
