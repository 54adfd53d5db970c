"""
Value types shared by the fetcher, resolver, and cache.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class Tier(str, Enum):
    """Where a payload came from."""

    PRIMARY = "primary"
    MIRROR = "mirror"
    SNAPSHOT = "snapshot"


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    UNPARSABLE = "unparsable"


class FetchOutcome(BaseModel):
    """Classified result of a single upstream GET.

    Attributes:
        kind: Success, unavailable, or unparsable.
        url: The URL that was requested.
        payload: Parsed JSON body (only for successes).
        retryable: For unavailable outcomes, whether the failure looks
            like overload (HTTP 503 or a transport error).
        status_code: HTTP status, or ``None`` when no response arrived.
    """

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    url: str
    payload: Any = None
    retryable: bool = False
    status_code: Optional[int] = None

    @classmethod
    def success(cls, url: str, payload: Any, status_code: int = 200) -> "FetchOutcome":
        return cls(kind=OutcomeKind.SUCCESS, url=url, payload=payload, status_code=status_code)

    @classmethod
    def unavailable(
        cls, url: str, *, retryable: bool, status_code: Optional[int] = None
    ) -> "FetchOutcome":
        return cls(
            kind=OutcomeKind.UNAVAILABLE,
            url=url,
            retryable=retryable,
            status_code=status_code,
        )

    @classmethod
    def unparsable(cls, url: str, status_code: int) -> "FetchOutcome":
        return cls(kind=OutcomeKind.UNPARSABLE, url=url, status_code=status_code)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def overloaded(self) -> bool:
        """True when the upstream looked capacity-constrained."""
        return self.kind is OutcomeKind.UNAVAILABLE and self.retryable


class FallbackSpec(BaseModel):
    """Ordered sources for one logical resource.

    Attributes:
        primary_url: Upstream URL tried first.
        mirror_url: Optional like-for-like mirror tried second.
        snapshot_key: Optional bundled snapshot, served only when the
            primary looked overloaded.
    """

    model_config = ConfigDict(frozen=True)

    primary_url: str
    mirror_url: Optional[str] = None
    snapshot_key: Optional[str] = None


class Resolution(BaseModel):
    """A payload obtained through the fallback chain.

    Attributes:
        payload: JSON value, passed through unmodified.
        source: Tier that produced the payload.
        from_cache: Whether this copy was served from the response cache.
    """

    payload: Any
    source: Tier
    from_cache: bool = False

    @property
    def stale(self) -> bool:
        """Snapshot payloads are pre-captured and may be out of date."""
        return self.source is Tier.SNAPSHOT
