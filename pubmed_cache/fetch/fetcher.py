"""
HTTP fetching of PubMed summaries via NCBI E-utilities.

This module calls the esummary endpoint for a single PMID and returns
the decoded JSON payload. Retryable failures (rate limiting, server
errors, timeouts, connection problems) are retried with exponential
backoff; everything else fails on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..config import FetchConfig
from ..core.types import FetchError, InvalidRequestError
from ..logging_utils import log_event


logger = logging.getLogger(__name__)


def build_params(pmid: str, cfg: FetchConfig, api_key: str | None = None) -> dict[str, str]:
    """Build esummary query parameters for one PMID."""
    params = {
        "db": "pubmed",
        "id": pmid,
        "retmode": "json",
        "tool": cfg.tool,
    }
    if cfg.email:
        params["email"] = cfg.email
    if api_key:
        params["api_key"] = api_key
    return params


async def fetch_esummary(
    pmid: str,
    cfg: FetchConfig,
    api_key: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Fetch the esummary JSON payload for a PMID.

    Args:
        pmid: Cleaned PubMed identifier
        cfg: Fetch settings (endpoint, timeout, retry policy)
        api_key: Optional NCBI API key
        transport: Optional httpx transport, used to fake the network in tests

    Returns:
        Decoded JSON body of a successful response

    Raises:
        FetchError: When every attempt fails or the failure is not retryable
    """
    endpoint = f"{cfg.base_url.rstrip('/')}/esummary.fcgi"
    params = build_params(pmid, cfg, api_key)
    headers = {"Accept": "application/json"}
    timeout_config = httpx.Timeout(cfg.timeout_seconds)

    last_error: FetchError | None = None

    retries = max(cfg.retries, 0)
    for attempt in range(retries + 1):
        try:
            async with httpx.AsyncClient(
                timeout=timeout_config,
                trust_env=cfg.trust_env,
                transport=transport,
            ) as client:
                resp = await client.get(endpoint, params=params, headers=headers)
            return _decode_response(pmid, resp)
        except httpx.TimeoutException as exc:
            last_error = FetchError(
                f"PubMed request timed out after {cfg.timeout_seconds}s: {exc}",
                identifier=pmid,
                kind="timeout",
            )
        except httpx.RequestError as exc:
            last_error = FetchError(
                f"Network error while contacting PubMed: {type(exc).__name__}: {exc}",
                identifier=pmid,
                kind="network",
            )
        except FetchError as exc:
            last_error = exc

        if not last_error.retryable or attempt >= retries:
            break

        delay = cfg.backoff_seconds * (2**attempt)
        log_event(
            logger,
            "PubMed fetch failed, retrying",
            level=logging.WARNING,
            event="fetch_retry",
            pmid=pmid,
            attempt=attempt + 1,
            kind=last_error.kind,
            delay=delay,
        )
        await asyncio.sleep(delay)

    raise last_error


def _decode_response(pmid: str, resp: httpx.Response) -> dict[str, Any]:
    if resp.status_code == 429:
        raise FetchError(
            "Rate limit exceeded. Please wait before making another request.",
            identifier=pmid,
            kind="rate_limited",
            status_code=resp.status_code,
        )
    if not resp.is_success:
        raise FetchError(
            f"PubMed API error: {resp.status_code} {resp.reason_phrase}",
            identifier=pmid,
            kind="http_error",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as exc:
        raise FetchError(
            f"Invalid JSON response from PubMed API: {resp.text[:200]}",
            identifier=pmid,
            kind="invalid_response",
            status_code=resp.status_code,
        ) from exc

    if isinstance(data, dict) and data.get("error"):
        raise InvalidRequestError(
            f"PubMed API returned error: {data['error']}",
            identifier=pmid,
            status_code=resp.status_code,
        )
    return data
