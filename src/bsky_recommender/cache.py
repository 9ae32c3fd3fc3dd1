"""Time-expiring file cache for directory lookups.

Each entry is stored in its own file named after the SHA-256 of its key, so
arbitrary identifiers (DIDs, handles) map to safe file names. Entries carry a
schema version; a version mismatch, an expired file or an unreadable file are
all treated as a miss.
"""
import hashlib
import json
import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)

CACHE_VERSION = "1"
DEFAULT_MAX_AGE = timedelta(hours=24)


class FileCache:
    """Content-addressed JSON file cache with an expiry policy."""

    def __init__(
        self,
        root: Path,
        *,
        version: str = CACHE_VERSION,
        max_age: timedelta = DEFAULT_MAX_AGE
    ):
        self.root = Path(root)
        self.version = version
        self.max_age = max_age
        self.root.mkdir(parents=True, exist_ok=True, mode=0o700)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.root / digest

    def _is_fresh(self, path: Path) -> bool:
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return False
        return time.time() - mtime < self.max_age.total_seconds()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload for ``key`` or None on a miss."""
        path = self._path(key)
        if not self._is_fresh(path):
            return None

        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"Ignoring unreadable cache entry for {key}: {e}")
            return None

        if not isinstance(entry, dict) or entry.get("version") != self.version:
            return None
        return entry.get("payload")

    def put(self, key: str, payload: Any) -> None:
        """Store a JSON-serializable payload under ``key``."""
        entry = {"version": self.version, "payload": payload}
        self._path(key).write_text(json.dumps(entry), encoding="utf-8")
