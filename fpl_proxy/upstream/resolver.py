"""
Tiered resolver: primary upstream, then mirror, then bundled snapshot.

Every URL is tried at most once per resolution, strictly in order, and
the first success wins.  The snapshot tier is only unlocked when the
primary looked overloaded (HTTP 503 or a transport failure); a primary
that answered with any other error never falls through to stale data.
"""

import logging
from typing import Any, Optional, Protocol

from fpl_proxy.exceptions import UpstreamExhaustedError
from fpl_proxy.upstream.models import FallbackSpec, FetchOutcome, Resolution, Tier
from fpl_proxy.upstream.snapshots import LocalSnapshotStore

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = "Failed to fetch data from all available sources"


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchOutcome:
        ...


class SnapshotSource(Protocol):
    def lookup(self, key: str) -> Optional[Any]:
        ...


class TieredResolver:
    """Walks a :class:`FallbackSpec` until one tier yields a payload.

    Args:
        fetcher: Classifies single upstream GETs.
        snapshots: Last-resort payload store.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        snapshots: Optional[SnapshotSource] = None,
    ) -> None:
        self._fetcher = fetcher
        self._snapshots: SnapshotSource = snapshots or LocalSnapshotStore()

    async def resolve(self, spec: FallbackSpec) -> Resolution:
        """Resolve one logical resource.

        Args:
            spec: Primary URL, optional mirror URL, optional snapshot key.

        Returns:
            The first successful :class:`Resolution`.

        Raises:
            UpstreamExhaustedError: If no tier produced a payload.
        """
        primary = await self._fetcher.fetch(spec.primary_url)
        if primary.ok:
            return Resolution(payload=primary.payload, source=Tier.PRIMARY)
        overload_seen = primary.overloaded

        # The mirror outcome never affects snapshot eligibility.
        if spec.mirror_url:
            mirror = await self._fetcher.fetch(spec.mirror_url)
            if mirror.ok:
                logger.info(
                    "Served from mirror",
                    extra={"primary_url": spec.primary_url, "mirror_url": spec.mirror_url},
                )
                return Resolution(payload=mirror.payload, source=Tier.MIRROR)

        if overload_seen and spec.snapshot_key:
            payload = self._snapshots.lookup(spec.snapshot_key)
            if payload is not None:
                logger.warning(
                    "Using local snapshot data",
                    extra={"snapshot_key": spec.snapshot_key, "primary_url": spec.primary_url},
                )
                return Resolution(payload=payload, source=Tier.SNAPSHOT)

        logger.error(
            "All sources exhausted",
            extra={
                "primary_url": spec.primary_url,
                "mirror_url": spec.mirror_url,
                "snapshot_key": spec.snapshot_key,
                "overload_seen": overload_seen,
            },
        )
        raise UpstreamExhaustedError(EXHAUSTED_MESSAGE)
