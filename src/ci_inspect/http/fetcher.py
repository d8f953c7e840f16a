"""HTTP client with retries, timeout and auth configuration."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ci_inspect.errors import CiRequestError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = "ci-inspect/0.1"


@dataclass(slots=True)
class FetchResult:
    """Result of an HTTP fetch operation."""

    url: str
    status_code: int
    content: str
    content_type: str
    is_success: bool
    error: str | None = None


class HttpFetcher:
    """HTTP client wrapper with retry, timeout, user-agent and auth configuration."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        base_headers = {"User-Agent": user_agent}
        if headers:
            base_headers.update(headers)
        self._client = httpx.Client(
            timeout=self._timeout,
            headers=base_headers,
            auth=auth,
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    def fetch(self, url: str, *, params: dict[str, str] | None = None) -> FetchResult:
        """Fetch URL content, returning structured result."""

        try:
            response = self._client.get(url, params=params)
        except httpx.TimeoutException:
            logger.warning("Timeout fetching %s", url)
            return FetchResult(
                url=url,
                status_code=0,
                content="",
                content_type="",
                is_success=False,
                error="timeout",
            )
        except httpx.HTTPError as exc:
            logger.warning("HTTP error fetching %s: %s", url, exc)
            return FetchResult(
                url=url,
                status_code=0,
                content="",
                content_type="",
                is_success=False,
                error=str(exc),
            )
        logger.debug("GET %s -> %d", response.url, response.status_code)
        return FetchResult(
            url=str(response.url),
            status_code=response.status_code,
            content=response.text,
            content_type=response.headers.get("content-type", ""),
            is_success=response.is_success,
            error=None if response.is_success else f"HTTP {response.status_code}",
        )

    def get_text(self, url: str, *, params: dict[str, str] | None = None) -> str:
        """Return response body text or raise ``CiRequestError``."""

        result = self.fetch(url, params=params)
        if not result.is_success:
            raise CiRequestError(
                f"Request to {url} failed: {result.error}",
                url=url,
                status_code=result.status_code,
            )
        return result.content

    def get_json(self, url: str, *, params: dict[str, str] | None = None) -> Any:
        """Return decoded JSON body or raise ``CiRequestError``."""

        text = self.get_text(url, params=params)
        try:
            return json.loads(text)
        except json.JSONDecodeError as error:
            raise CiRequestError(
                f"Response from {url} is not valid JSON: {error}",
                code="invalid_json",
                url=url,
            ) from error

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpFetcher:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
