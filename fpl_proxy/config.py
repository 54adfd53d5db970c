"""
Central configuration loader for the FPL proxy.

Reads ``config/config.yaml`` and ``.env``, merges environment-variable
overrides (``FPLPROXY_`` prefix), and exposes a typed :class:`Settings`
singleton via :func:`get_settings`.
"""

import logging
import os
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, get_origin

import yaml
from dotenv import load_dotenv

from fpl_proxy.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve project root (directory containing ``config/``)
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent          # fpl_proxy/
_PROJECT_ROOT = _THIS_DIR.parent                     # repo root


def _project_path(*parts: str) -> Path:
    """Build an absolute path relative to the project root."""
    return _PROJECT_ROOT.joinpath(*parts)


# ---------------------------------------------------------------------------
# Nested settings dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ApiSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    version: str = "1.0.0"
    service_name: str = "Fantasy PL Proxy"
    response_max_age_seconds: int = 300


@dataclass
class UpstreamSettings:
    base_url: str = "https://fantasy.premierleague.com/api"
    mirror_base_url: str = "https://fpl-static-data.vercel.app"
    mirror_season: str = "2025-2026"
    timeout_seconds: float = 30.0
    user_agent: str = "Fantasy-PL-Proxy/1.0"


@dataclass
class CacheSettings:
    ttl_seconds: int = 600
    max_entries: int = 1000


@dataclass
class SnapshotSettings:
    # Empty means the snapshots bundled inside the package.
    directory: str = ""


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = "json"


@dataclass
class Settings:
    """Top-level settings container."""
    api: ApiSettings = field(default_factory=ApiSettings)
    upstream: UpstreamSettings = field(default_factory=UpstreamSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    snapshots: SnapshotSettings = field(default_factory=SnapshotSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> Dict[str, Any]:
    """Read and parse a YAML file.  Returns ``{}`` if the file is missing."""
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _apply_dict(target: object, data: Dict[str, Any]) -> None:
    """Apply *data* values onto a dataclass instance, ignoring unknown keys."""
    for key, value in data.items():
        if not hasattr(target, key):
            logger.debug("Ignoring unknown config key: %s", key)
            continue
        setattr(target, key, value)


# ---------------------------------------------------------------------------
# Env-var overrides  (FPLPROXY_SECTION_KEY  e.g. FPLPROXY_API_PORT)
# ---------------------------------------------------------------------------

_SECTIONS = ["api", "upstream", "cache", "snapshots", "logging"]

_TYPE_MAP = {
    int: int,
    float: float,
    bool: lambda v: v.lower() in ("1", "true", "yes"),
    str: str,
    list: lambda v: [item.strip() for item in v.split(",") if item.strip()],
}


def _apply_env_overrides(settings: Settings) -> None:
    """Override scalar fields via ``FPLPROXY_<SECTION>_<KEY>`` env vars."""
    for section_name in _SECTIONS:
        section = getattr(settings, section_name, None)
        if section is None:
            continue
        prefix = f"FPLPROXY_{section_name.upper()}_"
        for spec in fields(section):
            key = spec.name
            env_key = prefix + key.upper()
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            # Cast by declared type; YAML may have stored 30 for a float.
            cast = _TYPE_MAP.get(get_origin(spec.type) or spec.type, str)
            try:
                setattr(section, key, cast(env_val))
                logger.debug("Env override applied: %s=%s", env_key, env_val)
            except (ValueError, TypeError):
                logger.warning("Invalid env override %s=%s", env_key, env_val)


def validate_settings(settings: Settings) -> None:
    """Reject settings the proxy cannot run with.

    Raises:
        ConfigurationError: If a bound or timeout is not positive, or the
            logging format is unknown.
    """
    if settings.cache.ttl_seconds <= 0:
        raise ConfigurationError("cache.ttl_seconds must be positive")
    if settings.cache.max_entries <= 0:
        raise ConfigurationError("cache.max_entries must be positive")
    if settings.upstream.timeout_seconds <= 0:
        raise ConfigurationError("upstream.timeout_seconds must be positive")
    if settings.logging.format not in ("json", "plain"):
        raise ConfigurationError(
            f"logging.format must be 'json' or 'plain', got {settings.logging.format!r}"
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Optional[Settings] = None
_lock = threading.Lock()


def get_settings(
    *,
    yaml_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    _force_reload: bool = False,
) -> Settings:
    """Return the application-wide :class:`Settings` singleton.

    On first call (or when ``_force_reload=True``) the function:

    1. Calls ``load_dotenv()`` to populate env vars from ``.env``.
    2. Reads ``config/config.yaml``.
    3. Applies ``FPLPROXY_*`` environment-variable overrides.
    4. Validates the result.

    Args:
        yaml_path: Override the YAML config file path (testing).
        env_path: Override the ``.env`` file path (testing).
        _force_reload: Re-read everything even if already loaded.

    Returns:
        The global ``Settings`` instance.

    Raises:
        ConfigurationError: If the merged settings are invalid.
    """
    global _settings

    if _settings is not None and not _force_reload:
        return _settings

    with _lock:
        # Double-check after acquiring lock
        if _settings is not None and not _force_reload:
            return _settings

        # 1. Load .env
        dotenv_path = env_path or _project_path(".env")
        load_dotenv(dotenv_path, override=True)

        # 2. Read YAML
        config_path = yaml_path or _project_path("config", "config.yaml")
        raw = _load_yaml(config_path)

        # 3. Build Settings with defaults, then overlay YAML values
        settings = Settings()
        for section_name in _SECTIONS:
            section_data = raw.get(section_name)
            if isinstance(section_data, dict):
                _apply_dict(getattr(settings, section_name), section_data)

        # 4. Apply FPLPROXY_* env-var overrides
        _apply_env_overrides(settings)

        validate_settings(settings)

        _settings = settings
        logger.info("Settings loaded from %s", config_path)
        return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for testing)."""
    global _settings
    with _lock:
        _settings = None
