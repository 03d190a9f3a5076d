"""In-memory analysis cache.

Maps an absolute file path to its last successful AnalysisResult for the
lifetime of the process. Entries are never invalidated when a file changes;
the cache is bounded by entry count with least-recently-used eviction.
"""

import logging
import threading
from collections import OrderedDict
from pathlib import Path

from horizon.models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 2048


class AnalysisCache:
    """Thread-safe LRU mapping from file path to AnalysisResult."""

    def __init__(self, max_entries: int = DEFAULT_CACHE_SIZE) -> None:
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive. Got: {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, AnalysisResult] = OrderedDict()
        # Reads reorder the LRU list, so they take the lock too
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(path: str | Path) -> str:
        """Normalize a path into a cache key."""
        return str(Path(path).resolve())

    def get(self, path: str | Path) -> AnalysisResult | None:
        """Return the cached result for path, if any."""
        key = self.key_for(path)
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, path: str | Path, result: AnalysisResult) -> None:
        """Store result for path, replacing any previous entry."""
        key = self.key_for(path)
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached analysis for %s", evicted)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return self.key_for(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
