"""
Request-level orchestration for the FPL proxy.

Looks up the resource definition, builds its fallback spec, and either
goes through the response cache or straight to the tiered resolver for
resources that are never cached.
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional

from fpl_proxy.cache.ttl import ResponseCache
from fpl_proxy.config import Settings, UpstreamSettings, get_settings
from fpl_proxy.exceptions import ResourceNotFoundError
from fpl_proxy.resources import RESOURCES_BY_NAME, ResourceDefinition
from fpl_proxy.upstream.fetcher import UpstreamFetcher
from fpl_proxy.upstream.models import Resolution
from fpl_proxy.upstream.resolver import TieredResolver
from fpl_proxy.upstream.snapshots import LocalSnapshotStore

logger = logging.getLogger(__name__)


class ProxyService:
    """Serves logical FPL resources through cache and fallback chain.

    Args:
        resolver: Tiered resolver shared by all requests.
        cache: Response cache shared by all requests.
        upstream: Upstream URL settings used to build fallback specs.
        resources: Resource table, keyed by name.
        fetcher: Fetcher to close on :meth:`aclose`, if the service owns it.
        snapshots: Snapshot store, exposed for health reporting.
    """

    def __init__(
        self,
        resolver: TieredResolver,
        cache: ResponseCache,
        upstream: Optional[UpstreamSettings] = None,
        resources: Optional[Mapping[str, ResourceDefinition]] = None,
        *,
        fetcher: Optional[UpstreamFetcher] = None,
        snapshots: Optional[LocalSnapshotStore] = None,
    ) -> None:
        self._resolver = resolver
        self._cache = cache
        self._upstream = upstream or get_settings().upstream
        self._resources = resources if resources is not None else RESOURCES_BY_NAME
        self._fetcher = fetcher
        self._snapshots = snapshots

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def snapshots(self) -> Optional[LocalSnapshotStore]:
        return self._snapshots

    async def aclose(self) -> None:
        if self._fetcher is not None:
            await self._fetcher.aclose()

    async def fetch(self, resource_name: str, params: Optional[Mapping[str, Any]] = None) -> Resolution:
        """Resolve one request for a logical resource.

        Args:
            resource_name: Name from the resource table.
            params: Path parameters, e.g. ``{"gw": "7"}``.

        Returns:
            The resolved payload and the tier it came from.

        Raises:
            ResourceNotFoundError: Unknown resource name.
            InvalidParameterError: Bad or missing path parameter.
            UpstreamExhaustedError: Every tier failed.
        """
        definition = self._resources.get(resource_name)
        if definition is None:
            raise ResourceNotFoundError(f"Unknown resource: {resource_name}")
        request = definition.build(params or {}, self._upstream)

        start = time.perf_counter()
        if request.cache_key is None:
            resolution = await self._resolver.resolve(request.fallback)
        else:
            resolution = await self._cache.get_or_compute(
                request.cache_key,
                lambda: self._resolver.resolve(request.fallback),
            )

        logger.info(
            "Resource served",
            extra={
                "resource": resource_name,
                "cache_key": request.cache_key,
                "source": resolution.source.value,
                "from_cache": resolution.from_cache,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return resolution


def build_service(
    settings: Optional[Settings] = None,
    *,
    fetcher: Optional[UpstreamFetcher] = None,
    snapshots: Optional[LocalSnapshotStore] = None,
    cache: Optional[ResponseCache] = None,
) -> ProxyService:
    """Construct a :class:`ProxyService` and its collaborators.

    Anything not supplied is built from *settings*.  The caller owns the
    returned service's fetcher and must ``aclose()`` it.
    """
    settings = settings or get_settings()
    if fetcher is None:
        fetcher = UpstreamFetcher(
            timeout_seconds=settings.upstream.timeout_seconds,
            user_agent=settings.upstream.user_agent,
        )
    if snapshots is None:
        snapshots = LocalSnapshotStore(directory=settings.snapshots.directory or None)
    if cache is None:
        cache = ResponseCache(
            ttl_seconds=settings.cache.ttl_seconds,
            max_entries=settings.cache.max_entries,
        )
    resolver = TieredResolver(fetcher, snapshots)
    return ProxyService(
        resolver,
        cache,
        upstream=settings.upstream,
        fetcher=fetcher,
        snapshots=snapshots,
    )


def describe_resources() -> Dict[str, Dict[str, Any]]:
    """Summarize the resource table (used by the CLI)."""
    return {
        definition.name: {
            "route": definition.route,
            "params": list(definition.params),
            "mirror": definition.mirror_path is not None,
            "snapshot": definition.snapshot_key,
            "cached": definition.cacheable,
        }
        for definition in RESOURCES_BY_NAME.values()
    }
