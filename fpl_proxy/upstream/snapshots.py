"""
Read-only store of pre-captured FPL payloads used as last-resort data.

Each known key maps to ``<key>.json`` in the snapshot directory.  Files
are parsed once, on first lookup or an explicit :meth:`load`, and never
modified afterwards.  A file that is missing or not valid JSON disables
only its own key.
"""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

BUNDLED_SNAPSHOT_DIR = Path(__file__).resolve().parent.parent / "snapshots"

SNAPSHOT_KEYS: Tuple[str, ...] = ("bootstrap-static", "fixtures", "live-event")


class LocalSnapshotStore:
    """Lazily loaded, immutable key -> payload mapping.

    Args:
        directory: Folder holding ``<key>.json`` files.  Defaults to the
            snapshots bundled with the package.
        keys: The closed set of keys to load.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        keys: Iterable[str] = SNAPSHOT_KEYS,
    ) -> None:
        self._directory = Path(directory) if directory else BUNDLED_SNAPSHOT_DIR
        self._keys: Tuple[str, ...] = tuple(keys)
        self._payloads: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def load(self) -> List[str]:
        """Parse all snapshot files if not done yet.

        Returns:
            The keys that loaded successfully.
        """
        with self._lock:
            if self._payloads is None:
                self._payloads = self._read_all()
            return sorted(self._payloads)

    def _read_all(self) -> Dict[str, Any]:
        payloads: Dict[str, Any] = {}
        for key in self._keys:
            path = self._directory / f"{key}.json"
            try:
                payloads[key] = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.error(
                    "Snapshot unavailable; key disabled",
                    extra={"snapshot_key": key, "path": str(path), "error": str(exc)},
                )
        logger.info(
            "Snapshots loaded",
            extra={"directory": str(self._directory), "keys": sorted(payloads)},
        )
        return payloads

    def lookup(self, key: str) -> Optional[Any]:
        """Return a copy of the snapshot for *key*, or ``None`` if absent."""
        payloads = self._payloads
        if payloads is None:
            self.load()
            payloads = self._payloads or {}
        if key not in payloads:
            return None
        return copy.deepcopy(payloads[key])

    @property
    def available_keys(self) -> List[str]:
        return self.load()
