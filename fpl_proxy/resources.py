"""
Declarative table of the FPL resources the proxy serves.

Each :class:`ResourceDefinition` row says where a resource lives
upstream, whether it has a mirror and a bundled snapshot, and whether
(and under which key) it is cached.  Turning request parameters into a
:class:`ResourceRequest` is pure: no I/O happens here.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from fpl_proxy.config import UpstreamSettings
from fpl_proxy.exceptions import InvalidParameterError
from fpl_proxy.upstream.models import FallbackSpec

MAX_GAMEWEEK = 38

_ROUTE_PARAM = re.compile(r"{(\w+)}")
_DIGITS = re.compile(r"[0-9]+")

_PARAM_LABELS = {
    "element_id": "element ID",
    "gw": "gameweek",
    "manager_id": "manager ID",
    "league_id": "league ID",
    "page": "page",
    "phase": "phase",
}


@dataclass(frozen=True)
class ResourceRequest:
    """Everything needed to serve one request for a resource."""

    resource: str
    fallback: FallbackSpec
    cache_key: Optional[str] = None


@dataclass(frozen=True)
class ResourceDefinition:
    """One row of the resource table.

    Templates use ``str.format`` fields named after the route's
    parameters; mirror templates may also use ``{season}``.
    """

    name: str
    route: str
    primary_path: str
    mirror_path: Optional[str] = None
    snapshot_key: Optional[str] = None
    cache_key: Optional[str] = None

    @property
    def params(self) -> Tuple[str, ...]:
        return tuple(_ROUTE_PARAM.findall(self.route))

    @property
    def cacheable(self) -> bool:
        return self.cache_key is not None

    def build(
        self, params: Mapping[str, Any], upstream: UpstreamSettings
    ) -> ResourceRequest:
        """Map request parameters to URLs and a cache key.

        Raises:
            InvalidParameterError: If a parameter is missing, not a
                positive integer, or (for gameweeks) out of range.
        """
        values = normalize_params(self.params, params)
        primary_url = _join(upstream.base_url, self.primary_path.format(**values))
        mirror_url = None
        if self.mirror_path:
            mirror_url = _join(
                upstream.mirror_base_url,
                self.mirror_path.format(season=upstream.mirror_season, **values),
            )
        return ResourceRequest(
            resource=self.name,
            fallback=FallbackSpec(
                primary_url=primary_url,
                mirror_url=mirror_url,
                snapshot_key=self.snapshot_key,
            ),
            cache_key=self.cache_key.format(**values) if self.cache_key else None,
        )


def _join(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def normalize_params(names: Tuple[str, ...], params: Mapping[str, Any]) -> Dict[str, int]:
    """Validate path parameters and convert them to canonical integers.

    ``"07"`` and ``"7"`` normalize to the same value, so equal logical
    queries always share a cache key.
    """
    values: Dict[str, int] = {}
    for name in names:
        label = _PARAM_LABELS.get(name, name)
        raw = params.get(name)
        if raw is None:
            raise InvalidParameterError(f"Missing {label}")
        text = str(raw).strip()
        if not _DIGITS.fullmatch(text) or int(text) <= 0:
            raise InvalidParameterError(f"Invalid {label}: {raw!r}")
        value = int(text)
        if name == "gw" and value > MAX_GAMEWEEK:
            raise InvalidParameterError(
                f"Invalid {label}: {raw!r} (must be between 1 and {MAX_GAMEWEEK})"
            )
        values[name] = value
    return values


RESOURCES: Tuple[ResourceDefinition, ...] = (
    ResourceDefinition(
        name="bootstrap-static",
        route="/bootstrap-static",
        primary_path="bootstrap-static/",
        mirror_path="{season}/bootstrap-static.json",
        snapshot_key="bootstrap-static",
        cache_key="bootstrap-static",
    ),
    ResourceDefinition(
        name="fixtures",
        route="/fixtures",
        primary_path="fixtures/",
        mirror_path="{season}/fixtures.json",
        snapshot_key="fixtures",
    ),
    ResourceDefinition(
        name="element-summary",
        route="/element-summary/{element_id}",
        primary_path="element-summary/{element_id}/",
    ),
    ResourceDefinition(
        name="live-event",
        route="/live-event/{gw}",
        primary_path="event/{gw}/live/",
        snapshot_key="live-event",
        cache_key="live-event-{gw}",
    ),
    ResourceDefinition(
        name="picks",
        route="/picks/{manager_id}/{gw}",
        primary_path="entry/{manager_id}/event/{gw}/picks/",
        cache_key="picks-{manager_id}-{gw}",
    ),
    ResourceDefinition(
        name="manager",
        route="/manager/{manager_id}",
        primary_path="entry/{manager_id}/",
    ),
    ResourceDefinition(
        name="manager-transfers",
        route="/manager/{manager_id}/transfers",
        primary_path="entry/{manager_id}/transfers/",
    ),
    ResourceDefinition(
        name="manager-history",
        route="/manager/{manager_id}/history",
        primary_path="entry/{manager_id}/history/",
    ),
    ResourceDefinition(
        name="league-standings",
        route="/league/{league_id}/{page}",
        primary_path="leagues-classic/{league_id}/standings/?page_standings={page}",
    ),
    ResourceDefinition(
        name="league-standings-phase",
        route="/league/mon/{league_id}/{phase}",
        primary_path="leagues-classic/{league_id}/standings/?page_standings=1&phase={phase}",
    ),
)

RESOURCES_BY_NAME: Dict[str, ResourceDefinition] = {r.name: r for r in RESOURCES}

