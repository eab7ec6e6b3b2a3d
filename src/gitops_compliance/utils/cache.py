"""
Content-addressed cache for parsed IaC files.

Each entry is a JSON file named after a hash of the file path and a hash
of its content, so editing a file naturally misses the old entry.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from gitops_compliance.models import IaCParseResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = os.path.join(tempfile.gettempdir(), "gce-cache")


def hash_content(content: str) -> str:
    """Return the short SHA-256 digest used in cache keys."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class IaCFileCache:
    """
    File-based cache of IaCParseResult objects.

    Attributes:
        cache_dir: Directory holding cache entries
        enabled: When False every lookup misses and writes are skipped
    """

    def __init__(self, cache_dir: str | None = None, enabled: bool = True) -> None:
        """
        Initialize the cache.

        Args:
            cache_dir: Cache directory, ``<tmpdir>/gce-cache`` when None.
                Supports ~ for home directory.
            enabled: Whether the cache is active
        """
        self.cache_dir = Path(os.path.expanduser(cache_dir or DEFAULT_CACHE_DIR))
        self.enabled = enabled

    def _cache_path(self, file_path: str, content_hash: str) -> Path:
        path_hash = hashlib.sha256(str(file_path).encode("utf-8")).hexdigest()[:16]
        return self.cache_dir / f"{path_hash}-{content_hash}.json"

    def _read_source(self, file_path: str | Path) -> str | None:
        try:
            return Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def get(self, file_path: str | Path, content: str | None = None) -> IaCParseResult | None:
        """
        Look up a cached parse result.

        Args:
            file_path: Path of the source file
            content: Current file content, read from disk when None

        Returns:
            Cached result if present and matching the content, else None
        """
        if not self.enabled:
            return None

        if content is None:
            content = self._read_source(file_path)
            if content is None:
                return None

        content_hash = hash_content(content)
        cache_path = self._cache_path(str(file_path), content_hash)

        try:
            data = json.loads(cache_path.read_text(encoding="utf-8"))
            cached = IaCParseResult.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring unreadable cache entry {cache_path}: {e}")
            return None

        if cached.metadata.get("content_hash") != content_hash:
            return None

        logger.debug(f"Cache hit for {file_path}")
        return cached

    def set(
        self,
        file_path: str | Path,
        result: IaCParseResult,
        content: str | None = None,
    ) -> None:
        """
        Store a parse result.

        Write failures are logged and otherwise ignored.

        Args:
            file_path: Path of the source file
            result: Parse result to store
            content: File content the result was parsed from, read from
                disk when None
        """
        if not self.enabled:
            return

        if content is None:
            content = self._read_source(file_path)
            if content is None:
                return

        content_hash = hash_content(content)
        data = result.to_dict()
        data["metadata"] = {**result.metadata, "content_hash": content_hash}

        cache_path = self._cache_path(str(file_path), content_hash)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_path.write_text(json.dumps(data, default=str), encoding="utf-8")
        except OSError as e:
            logger.debug(f"Failed to write cache entry for {file_path}: {e}")

    def is_stale(self, file_path: str | Path, cached: IaCParseResult) -> bool:
        """
        Check whether a cached result no longer matches the file.

        Args:
            file_path: Path of the source file
            cached: Previously cached result

        Returns:
            True if the file changed or cannot be read
        """
        content = self._read_source(file_path)
        if content is None:
            return True
        return cached.metadata.get("content_hash") != hash_content(content)

    def clear(self) -> int:
        """
        Remove all cache entries.

        Returns:
            Number of entries removed
        """
        removed = 0
        if not self.cache_dir.is_dir():
            return removed

        for entry in self.cache_dir.glob("*.json"):
            try:
                entry.unlink()
                removed += 1
            except OSError as e:
                logger.debug(f"Failed to remove cache entry {entry}: {e}")

        logger.info(f"Cleared {removed} cache entries from {self.cache_dir}")
        return removed

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with ``size`` in bytes, ``file_count`` and
            ``cache_dir``
        """
        size = 0
        file_count = 0
        if self.cache_dir.is_dir():
            for entry in self.cache_dir.glob("*.json"):
                try:
                    size += entry.stat().st_size
                    file_count += 1
                except OSError:
                    continue

        return {
            "size": size,
            "file_count": file_count,
            "cache_dir": str(self.cache_dir),
        }
