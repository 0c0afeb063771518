# app/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ...config import settings

log = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


async def resilient_request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    json: Any | None = None,
    data: Any | None = None,
    timeout_s: float | None = None,
    max_retries: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """
    One outbound call. Non-2xx raises httpx.HTTPStatusError; 429/5xx and
    transport errors are retried only when max_retries > 0 (default from
    HTTP_MAX_RETRIES, which is 0).
    """
    timeout = httpx.Timeout(float(timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S))
    retries = int(max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES)
    backoff = float(settings.HTTP_BACKOFF_BASE_S)

    last_exc: Exception | None = None
    for attempt in range(retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                resp = await client.request(method, url, headers=headers, params=params, json=json, data=data)

            if resp.status_code in RETRYABLE_STATUSES:
                raise httpx.HTTPStatusError(
                    f"retryable_status {resp.status_code}", request=resp.request, response=resp
                )

            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            last_exc = e
            if e.response.status_code not in RETRYABLE_STATUSES or attempt >= retries:
                break
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            last_exc = e
            if attempt >= retries:
                break

        delay = min(5.0, backoff * (2**attempt))
        log.info("retrying %s %s in %.2fs (attempt %d/%d)", method, redact_url(url), delay, attempt + 1, retries)
        await asyncio.sleep(delay)

    assert last_exc is not None
    raise last_exc


def redact_url(url: str) -> str:
    # Bridge puts its token in the query string
    if "access_token=" not in url:
        return url
    head, _, tail = url.partition("access_token=")
    _, amp, rest = tail.partition("&")
    return f"{head}access_token=***{amp}{rest}"


def describe_http_error(label: str, exc: Exception) -> str:
    """Human-readable failure text carried in a provider's error field."""
    if isinstance(exc, httpx.HTTPStatusError):
        body = (exc.response.text or "").strip()
        if len(body) > 200:
            body = body[:200] + "..."
        return f"{label} API error: {exc.response.status_code} - {body}"
    if isinstance(exc, httpx.TimeoutException):
        return f"{label} API timeout"
    return f"{label} error: {exc}" if str(exc) else f"{label} error: {type(exc).__name__}"
