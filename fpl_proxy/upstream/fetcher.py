"""
Upstream HTTP fetcher.

Performs one GET per call against the FPL API (or its mirror) and
classifies what happened into a :class:`FetchOutcome`.  Never raises for
upstream failures; the resolver decides what to do next.
"""

import logging
from typing import Optional

import httpx

from fpl_proxy.upstream.models import FetchOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "Fantasy-PL-Proxy/1.0"


def _reject_constant(token: str) -> None:
    raise ValueError(f"Non-standard JSON constant: {token}")


class UpstreamFetcher:
    """Classifying wrapper around a shared ``httpx.AsyncClient``.

    Args:
        client: Pre-built client (tests inject one with a mock
            transport).  When omitted, the fetcher builds and owns one.
        timeout_seconds: Per-call timeout for the owned client.
        user_agent: User-Agent header for the owned client.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_seconds),
                headers={"User-Agent": user_agent},
                follow_redirects=True,
            )
        self._client = client

    async def fetch(self, url: str) -> FetchOutcome:
        """GET *url* and classify the result.

        Args:
            url: Absolute upstream URL.

        Returns:
            ``success`` with the parsed body for a 2xx JSON response,
            ``unparsable`` for a 2xx body that is not strict JSON
            (``NaN`` and ``Infinity`` are rejected),
            ``unavailable`` (retryable) for HTTP 503 and transport
            errors, and ``unavailable`` (not retryable) for any other
            status.
        """
        try:
            response = await self._client.get(url)
        except httpx.RequestError as exc:
            # Transport failures count as overload.
            logger.error(
                "Upstream request failed",
                extra={"url": url, "error": f"{type(exc).__name__}: {exc}"},
            )
            return FetchOutcome.unavailable(url, retryable=True)

        status = response.status_code
        if not response.is_success:
            if status == 503:
                logger.warning(
                    "Upstream returned 503 Service Unavailable",
                    extra={"url": url, "status_code": status},
                )
                return FetchOutcome.unavailable(url, retryable=True, status_code=status)
            logger.error(
                "Upstream returned non-success status",
                extra={"url": url, "status_code": status},
            )
            return FetchOutcome.unavailable(url, retryable=False, status_code=status)

        try:
            payload = response.json(parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error(
                "Failed to parse upstream JSON",
                extra={"url": url, "status_code": status, "error": str(exc)},
            )
            return FetchOutcome.unparsable(url, status)

        return FetchOutcome.success(url, payload, status)

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
