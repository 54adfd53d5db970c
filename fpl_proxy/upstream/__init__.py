"""Upstream access: fetcher, snapshot store, and tiered resolver."""

from fpl_proxy.upstream.fetcher import UpstreamFetcher
from fpl_proxy.upstream.models import FallbackSpec, FetchOutcome, OutcomeKind, Resolution, Tier
from fpl_proxy.upstream.resolver import TieredResolver
from fpl_proxy.upstream.snapshots import LocalSnapshotStore

__all__ = [
    "FallbackSpec",
    "FetchOutcome",
    "LocalSnapshotStore",
    "OutcomeKind",
    "Resolution",
    "Tier",
    "TieredResolver",
    "UpstreamFetcher",
]
