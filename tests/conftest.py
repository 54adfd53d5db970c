"""
Shared fixtures for FPL proxy tests.

Provides a controllable clock, a scripted fetcher for resolver tests,
and helpers for building an ``httpx.AsyncClient`` on a mock transport.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from fpl_proxy.config import reset_settings
from fpl_proxy.upstream.fetcher import UpstreamFetcher
from fpl_proxy.upstream.models import FetchOutcome


@pytest.fixture(autouse=True)
def _clean_settings():
    """Reset the settings singleton around each test."""
    reset_settings()
    yield
    reset_settings()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFetcher:
    """Fetcher returning canned outcomes per URL and recording calls."""

    def __init__(self, outcomes: Optional[Dict[str, FetchOutcome]] = None) -> None:
        self.outcomes: Dict[str, FetchOutcome] = dict(outcomes or {})
        self.calls: List[str] = []

    async def fetch(self, url: str) -> FetchOutcome:
        self.calls.append(url)
        outcome = self.outcomes.get(url)
        if outcome is None:
            return FetchOutcome.unavailable(url, retryable=False, status_code=404)
        return outcome

    async def aclose(self) -> None:
        pass


class FakeSnapshots:
    """In-memory snapshot source recording lookups."""

    def __init__(self, payloads: Optional[Dict[str, Any]] = None) -> None:
        self.payloads = dict(payloads or {})
        self.lookups: List[str] = []

    def lookup(self, key: str) -> Optional[Any]:
        self.lookups.append(key)
        return self.payloads.get(key)

    @property
    def available_keys(self) -> List[str]:
        return sorted(self.payloads)


Handler = Callable[[httpx.Request], httpx.Response]


def make_fetcher(handler: Handler) -> UpstreamFetcher:
    """Build an UpstreamFetcher whose client never touches the network."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamFetcher(client=client)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
