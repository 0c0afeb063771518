# tests/test_http_resilience.py
import httpx
import pytest

from app.adapters.clients import http_resilience
from app.adapters.clients.http_resilience import describe_http_error, redact_url, resilient_request


@pytest.mark.asyncio
async def test_no_retry_by_default():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(httpx.HTTPStatusError):
        await resilient_request("GET", "https://upstream/x", transport=httpx.MockTransport(handler))

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_retries_retryable_status_when_enabled(monkeypatch):
    monkeypatch.setattr(http_resilience.settings, "HTTP_BACKOFF_BASE_S", 0.0)
    statuses = iter([503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), json={"ok": True})

    resp = await resilient_request("GET", "https://upstream/x", max_retries=2, transport=httpx.MockTransport(handler))

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, text="bad")

    with pytest.raises(httpx.HTTPStatusError):
        await resilient_request("GET", "https://upstream/x", max_retries=3, transport=httpx.MockTransport(handler))

    assert len(calls) == 1


def test_redact_url_hides_access_token():
    url = "https://api/OData/x/Property?access_token=secret&$top=1"
    assert redact_url(url) == "https://api/OData/x/Property?access_token=***&$top=1"
    assert redact_url("https://api/x?a=1") == "https://api/x?a=1"


def test_describe_timeout():
    exc = httpx.ReadTimeout("slow")
    assert describe_http_error("Bridge", exc) == "Bridge API timeout"
