"""HTTP helpers: retry/backoff for reads and error classification."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

from helpdesk.core.errors import Conflict, NotFound, RemoteError, RemoteUnauthorized, TransportError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_STATUSES = {429, 500, 502, 503, 504}


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = min(max_delay, base_delay * (2**attempt))
    if delay:
        delay = delay + random.uniform(0, delay / 2)
    return delay


async def request_with_retries(
    request_fn: Callable[[], Awaitable[httpx.Response]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_statuses: set[int] | None = None,
) -> httpx.Response:
    """Execute an idempotent HTTP request with exponential backoff retries."""
    statuses = retry_statuses or DEFAULT_RETRY_STATUSES
    attempts = max(1, max_attempts)

    for attempt in range(attempts):
        try:
            response = await request_fn()
        except httpx.RequestError as exc:
            if attempt >= attempts - 1:
                raise
            delay = _backoff(attempt, base_delay, max_delay)
            logger.warning("Request failed (attempt %d/%d): %s", attempt + 1, attempts, exc)
            if delay:
                await asyncio.sleep(delay)
            continue

        if response.status_code in statuses and attempt < attempts - 1:
            delay = _backoff(attempt, base_delay, max_delay)
            logger.warning(
                "Backend returned %s (attempt %d/%d), retrying",
                response.status_code,
                attempt + 1,
                attempts,
            )
            if delay:
                await asyncio.sleep(delay)
            continue

        return response

    return response


def _detail(response: httpx.Response) -> str:
    """Backend error detail, verbatim when the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        detail = body["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return response.reason_phrase


def error_for_response(response: httpx.Response, *, ticket_id: int | None = None) -> RemoteError:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    message = _detail(response)
    if status == 404:
        return NotFound(message, status_code=status, ticket_id=ticket_id)
    if status == 409:
        return Conflict(message, status_code=status, ticket_id=ticket_id)
    if status in (401, 403):
        return RemoteUnauthorized(message, status_code=status, ticket_id=ticket_id)
    return TransportError(message, status_code=status, ticket_id=ticket_id)


def raise_for_response(response: httpx.Response, *, ticket_id: int | None = None) -> None:
    if response.is_success:
        return
    raise error_for_response(response, ticket_id=ticket_id)
