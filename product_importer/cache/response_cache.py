"""On-disk cache for raw vendor responses.

One JSON file per source URL. The file stores the raw vendor body (not the
normalized product), so changes to normalization never invalidate entries.
The file modification time is the write timestamp used for TTL checks.
"""

import hashlib
import json
import time
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_CACHE_DIR = Path(".cache/vendor_responses")
DEFAULT_TTL_SECONDS = 30 * 60


class ResponseCache:
    """TTL-bounded filesystem cache keyed by a short hash of the URL.

    Expired entries are treated as misses and overwritten on the next write.
    Concurrent writers to one key race harmlessly (last write wins).
    """

    def __init__(
        self,
        cache_dir: Path | str = DEFAULT_CACHE_DIR,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def cache_key(url: str) -> str:
        """Generate cache key from source URL.

        Args:
            url: Source product URL

        Returns:
            First 12 hex characters of the URL's MD5 hash
        """
        return hashlib.md5(url.encode("utf-8")).hexdigest()[:12]

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _ensure_cache_dir(self) -> None:
        """Ensure cache directory exists (lazy creation)."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def age_seconds(self, key: str) -> float | None:
        """Seconds since the entry was written, or None if it does not exist."""
        path = self._path(key)
        try:
            return time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return None

    def get(self, key: str) -> Any | None:
        """Load a raw response if present and younger than the TTL.

        Args:
            key: Cache key from cache_key()

        Returns:
            Parsed raw response, or None on miss, expiry or unreadable entry
        """
        age = self.age_seconds(key)
        if age is None:
            return None

        if age > self.ttl_seconds:
            logger.debug(f"Cache expired for {key} ({round(age)}s old)")
            return None

        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load cache entry {key}: {e}")
            return None

    def set(self, key: str, raw_response: Any) -> None:
        """Persist a raw response under the given key.

        Args:
            key: Cache key from cache_key()
            raw_response: JSON-serializable vendor response body
        """
        self._ensure_cache_dir()
        path = self._path(key)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(raw_response, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save cache entry {key}: {e}")
