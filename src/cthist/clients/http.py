"""HTTP client and resilience helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from cthist import __version__

if TYPE_CHECKING:
    from cthist.settings import Settings


class SoftErrorDetected(Exception):
    """Raised when a response looks successful but its content is unusable (empty body, wrong shape)."""


class RetryableStatusError(Exception):
    """Raised when a response has a retryable HTTP status code, so tenacity can retry."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Retryable HTTP {status_code}")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    """Loguru-compatible before_sleep callback for tenacity."""
    if retry_state.next_action:
        sleep = retry_state.next_action.sleep
        outcome = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Request failed ({}), attempt {}, sleeping {:.1f}s",
            outcome,
            retry_state.attempt_number,
            sleep,
        )


def create_http_client(settings: Settings, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Create the blocking client shared by one download run."""

    return httpx.Client(
        transport=transport,
        timeout=httpx.Timeout(
            connect=5.0,
            read=settings.request_timeout,
            write=10.0,
            pool=10.0,
        ),
        headers={
            "User-Agent": f"cthist/{__version__}",
            "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
        },
        follow_redirects=True,
    )


def _is_retryable_status(response: httpx.Response) -> bool:
    return response.status_code in {408, 429, 500, 502, 503, 504}


def fetch_with_retry(
    client: httpx.Client,
    url: str,
    *,
    attempts: int = 3,
    backoff: float = 1.0,
    max_wait: float = 10.0,
) -> httpx.Response:
    """GET with retries on transport errors and retryable statuses."""

    retrying = Retrying(
        retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException, RetryableStatusError)),
        wait=wait_exponential(multiplier=backoff, max=max_wait) + wait_random(0, backoff),
        stop=stop_after_attempt(attempts),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            response = client.get(url)
            if _is_retryable_status(response):
                status = response.status_code
                response.close()
                raise RetryableStatusError(status)
    return response


def fetch_json(client: httpx.Client, url: str, *, attempts: int = 3, backoff: float = 1.0) -> dict[str, Any]:
    """Fetch a JSON object with retries and fail-fast on non-2xx."""

    response = fetch_with_retry(client, url, attempts=attempts, backoff=backoff)
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as exc:
        raise SoftErrorDetected(f"Response from {url} is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise SoftErrorDetected(f"Expected object JSON payload from {url}")
    return payload


def host_reachable(client: httpx.Client, url: str) -> bool:
    """Single connectivity probe; any transport failure or 5xx counts as unreachable."""

    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        logger.debug("Connectivity probe to {} failed: {}", url, exc)
        return False
    return response.status_code < 500
