"""Shared HTTP client utilities (httpx + retry/backoff).

We keep HTTP logic centralized so that every provider reports failures as
``ExternalServiceError`` with a structured kind and status code.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from printpay.domain.errors import ExternalServiceError, FailureKind
from printpay.infrastructure.retry import RetryPolicy, describe_failure, with_retry

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        text = response.text
    except Exception:
        return ""
    return text[:500]


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    service: str,
    json: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Any:
    """Send a request and decode the JSON body.

    Raises:
        ExternalServiceError: On transport failures, non-2xx statuses or invalid JSON
    """
    logger.debug(f"HTTP {method} {url}")
    try:
        response = await client.request(method, url, json=json, headers=headers, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise ExternalServiceError(
            service,
            f"HTTP {status} from {method} {url}: {_error_detail(e.response)}",
            kind=FailureKind.HTTP,
            status_code=status,
        ) from e
    except httpx.HTTPError as e:
        failure = describe_failure(e)
        raise ExternalServiceError(
            service, f"{method} {url} failed: {e!r}", kind=failure.kind
        ) from e

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise ExternalServiceError(
            service, f"Invalid JSON from {method} {url}", kind=FailureKind.INVALID_RESPONSE
        ) from e


async def post_json_with_retries(
    client: httpx.AsyncClient,
    url: str,
    *,
    service: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    retry: RetryPolicy,
    label: Optional[str] = None,
) -> Any:
    """POST JSON with retry on network errors, 429 and 5xx."""
    return await with_retry(
        lambda: request_json(
            client, "POST", url, service=service, json=payload, headers=headers, timeout=timeout
        ),
        retry,
        label or f"{service} POST {url}",
    )
