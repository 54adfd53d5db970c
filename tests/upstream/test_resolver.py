"""
Tests for the tiered resolver's fallback order and snapshot gating.
"""

import httpx
import pytest

from conftest import FakeSnapshots, ScriptedFetcher, make_fetcher
from fpl_proxy.exceptions import UpstreamExhaustedError
from fpl_proxy.upstream.models import FallbackSpec, FetchOutcome, Tier
from fpl_proxy.upstream.resolver import TieredResolver

PRIMARY = "https://fantasy.premierleague.com/api/bootstrap-static/"
MIRROR = "https://fpl-static-data.vercel.app/2025-2026/bootstrap-static.json"

PRIMARY_PAYLOAD = {"events": [], "teams": [], "elements": []}
MIRROR_PAYLOAD = {"events": [{"id": 1}], "teams": [], "elements": []}
SNAPSHOT_PAYLOAD = {"events": [{"id": 99}], "teams": [], "elements": []}


def _overloaded(url: str) -> FetchOutcome:
    return FetchOutcome.unavailable(url, retryable=True, status_code=503)


def _rejected(url: str, status: int = 404) -> FetchOutcome:
    return FetchOutcome.unavailable(url, retryable=False, status_code=status)


@pytest.fixture
def snapshots() -> FakeSnapshots:
    return FakeSnapshots({"bootstrap-static": SNAPSHOT_PAYLOAD})


class TestPrimary:
    """Tests for the first tier."""

    async def test_primary_success_short_circuits(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({PRIMARY: FetchOutcome.success(PRIMARY, PRIMARY_PAYLOAD)})
        resolver = TieredResolver(fetcher, snapshots)
        result = await resolver.resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
        )
        assert result.payload == PRIMARY_PAYLOAD
        assert result.source is Tier.PRIMARY
        assert fetcher.calls == [PRIMARY]
        assert snapshots.lookups == []


class TestMirror:
    """Tests for the mirror tier."""

    async def test_overloaded_primary_falls_back_to_mirror(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({
            PRIMARY: _overloaded(PRIMARY),
            MIRROR: FetchOutcome.success(MIRROR, MIRROR_PAYLOAD),
        })
        resolver = TieredResolver(fetcher, snapshots)
        result = await resolver.resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
        )
        assert result.payload == MIRROR_PAYLOAD
        assert result.source is Tier.MIRROR
        assert fetcher.calls == [PRIMARY, MIRROR]
        assert snapshots.lookups == []

    async def test_rejected_primary_still_tries_mirror(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({
            PRIMARY: _rejected(PRIMARY, 500),
            MIRROR: FetchOutcome.success(MIRROR, MIRROR_PAYLOAD),
        })
        result = await TieredResolver(fetcher, snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR)
        )
        assert result.source is Tier.MIRROR

    async def test_unparsable_primary_still_tries_mirror(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({
            PRIMARY: FetchOutcome.unparsable(PRIMARY, 200),
            MIRROR: FetchOutcome.success(MIRROR, MIRROR_PAYLOAD),
        })
        result = await TieredResolver(fetcher, snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR)
        )
        assert result.payload == MIRROR_PAYLOAD


class TestSnapshot:
    """Tests for the snapshot tier and its gating."""

    async def test_overloaded_primary_without_mirror_uses_snapshot(
        self, snapshots: FakeSnapshots
    ) -> None:
        fetcher = ScriptedFetcher({PRIMARY: _overloaded(PRIMARY)})
        result = await TieredResolver(fetcher, snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, snapshot_key="bootstrap-static")
        )
        assert result.payload == SNAPSHOT_PAYLOAD
        assert result.source is Tier.SNAPSHOT
        assert result.stale is True

    async def test_overloaded_primary_and_failed_mirror_uses_snapshot(
        self, snapshots: FakeSnapshots
    ) -> None:
        fetcher = ScriptedFetcher({
            PRIMARY: _overloaded(PRIMARY),
            MIRROR: _rejected(MIRROR, 404),
        })
        result = await TieredResolver(fetcher, snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
        )
        assert result.source is Tier.SNAPSHOT
        assert fetcher.calls == [PRIMARY, MIRROR]

    async def test_rejected_primary_does_not_unlock_snapshot(
        self, snapshots: FakeSnapshots
    ) -> None:
        fetcher = ScriptedFetcher({PRIMARY: _rejected(PRIMARY, 404)})
        with pytest.raises(UpstreamExhaustedError, match="all available sources"):
            await TieredResolver(fetcher, snapshots).resolve(
                FallbackSpec(primary_url=PRIMARY, snapshot_key="bootstrap-static")
            )
        assert snapshots.lookups == []

    async def test_overloaded_mirror_does_not_unlock_snapshot(
        self, snapshots: FakeSnapshots
    ) -> None:
        fetcher = ScriptedFetcher({
            PRIMARY: _rejected(PRIMARY, 500),
            MIRROR: _overloaded(MIRROR),
        })
        with pytest.raises(UpstreamExhaustedError):
            await TieredResolver(fetcher, snapshots).resolve(
                FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
            )
        assert snapshots.lookups == []

    async def test_missing_snapshot_exhausts(self) -> None:
        fetcher = ScriptedFetcher({PRIMARY: _overloaded(PRIMARY)})
        with pytest.raises(UpstreamExhaustedError):
            await TieredResolver(fetcher, FakeSnapshots()).resolve(
                FallbackSpec(primary_url=PRIMARY, snapshot_key="bootstrap-static")
            )


class TestExhaustion:
    """Tests for the terminal failure."""

    async def test_no_mirror_no_snapshot(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({PRIMARY: _overloaded(PRIMARY)})
        with pytest.raises(UpstreamExhaustedError):
            await TieredResolver(fetcher, snapshots).resolve(FallbackSpec(primary_url=PRIMARY))
        assert fetcher.calls == [PRIMARY]
        assert snapshots.lookups == []

    async def test_each_url_tried_once(self, snapshots: FakeSnapshots) -> None:
        fetcher = ScriptedFetcher({PRIMARY: _rejected(PRIMARY), MIRROR: _rejected(MIRROR)})
        with pytest.raises(UpstreamExhaustedError):
            await TieredResolver(fetcher, snapshots).resolve(
                FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR)
            )
        assert fetcher.calls == [PRIMARY, MIRROR]


class TestWithHttpFetcher:
    """End-to-end through the real fetcher on a mock transport."""

    async def test_transport_failure_unlocks_snapshot(self, snapshots: FakeSnapshots) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("dns failure")

        result = await TieredResolver(make_fetcher(handler), snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, snapshot_key="bootstrap-static")
        )
        assert result.source is Tier.SNAPSHOT

    async def test_nan_primary_falls_through_to_mirror(self, snapshots: FakeSnapshots) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == PRIMARY:
                return httpx.Response(200, content=b'{"events": NaN}')
            return httpx.Response(200, json=MIRROR_PAYLOAD)

        result = await TieredResolver(make_fetcher(handler), snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
        )
        assert result.source is Tier.MIRROR
        assert result.payload == MIRROR_PAYLOAD

    async def test_503_then_mirror(self, snapshots: FakeSnapshots) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == PRIMARY:
                return httpx.Response(503)
            return httpx.Response(200, json=MIRROR_PAYLOAD)

        result = await TieredResolver(make_fetcher(handler), snapshots).resolve(
            FallbackSpec(primary_url=PRIMARY, mirror_url=MIRROR, snapshot_key="bootstrap-static")
        )
        assert result.payload == MIRROR_PAYLOAD
        assert snapshots.lookups == []
