"""Time-bounded page cache keyed by source URL."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=30)


def cache_key(url: str) -> str:
    """Return a stable key for ``url``."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class CacheBackend(Protocol):
    """Minimal protocol for page cache stores."""

    def get(self, key: str, max_age: timedelta) -> Optional[str]:
        """Return the cached body if it was written less than ``max_age`` ago."""

    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""


class FileCache:
    """One file per key; freshness is the file's modification time."""

    def __init__(self, directory: Optional[str] = None, prefix: str = "mk-rss-") -> None:
        self.directory = Path(directory or tempfile.gettempdir())
        self.prefix = prefix

    def path_for(self, key: str) -> Path:
        return self.directory / f"{self.prefix}{key}"

    def get(self, key: str, max_age: timedelta) -> Optional[str]:
        path = self.path_for(key)
        try:
            age = time.time() - path.stat().st_mtime
            if age >= max_age.total_seconds():
                logger.debug("Cache entry %s is stale (%.0fs old)", path, age)
                return None
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

    def put(self, key: str, value: str) -> None:
        """Write ``value`` to a sibling temp file, then rename it over the entry."""
        self.directory.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.directory,
            prefix=f".{self.prefix}",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                handle.write(value)
            os.replace(handle.name, self.path_for(key))
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise
