"""HTTP client for the LytSpot backend API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 1
DEFAULT_USER_AGENT = "LytSpotOutbox/0.1"
PING_PATH = "/api/ping"


@dataclass(slots=True)
class DeliveryResult:
    """Outcome of one request against the API."""

    url: str
    status_code: int
    is_success: bool
    error: str | None = None


class HttpTransport:
    """httpx wrapper that posts JSON payloads and pings the API.

    ``base_urls`` are tried in order. A network-level failure moves on to the
    next base URL; any HTTP response, successful or not, ends the attempt.
    """

    def __init__(
        self,
        base_urls: tuple[str, ...],
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_urls:
            raise ValueError("HttpTransport needs at least one base URL.")
        self.base_urls = tuple(url.rstrip("/") for url in base_urls)
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 10.0))
        self._client = httpx.Client(
            timeout=self._timeout,
            headers={"User-Agent": user_agent},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    def post_json(self, path: str, payload: Mapping[str, Any]) -> DeliveryResult:
        """POST ``payload`` as a JSON body; success means a 2xx response."""

        return self._request("POST", path, json=dict(payload))

    def ping(self) -> DeliveryResult:
        """GET the liveness endpoint; the body is ignored."""

        return self._request("GET", PING_PATH)

    def _request(self, method: str, path: str, **kwargs: Any) -> DeliveryResult:
        last = DeliveryResult(url=path, status_code=0, is_success=False, error="no base URL")
        for base_url in self.base_urls:
            url = f"{base_url}{path}"
            try:
                response = self._client.request(method, url, **kwargs)
            except httpx.TimeoutException:
                logger.warning("Timeout calling %s %s", method, url)
                last = DeliveryResult(url=url, status_code=0, is_success=False, error="timeout")
                continue
            except httpx.HTTPError as exc:
                logger.warning("HTTP error calling %s %s: %s", method, url, exc)
                last = DeliveryResult(url=url, status_code=0, is_success=False, error=str(exc))
                continue
            return DeliveryResult(
                url=url,
                status_code=response.status_code,
                is_success=response.is_success,
                error=None if response.is_success else f"HTTP {response.status_code}",
            )
        return last

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
