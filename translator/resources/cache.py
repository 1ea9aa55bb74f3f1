"""
Keyed pipeline cache with TTL expiry and least-recently-used eviction.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import asyncio
import logging

from ..models.results import ModelInfo

logger = logging.getLogger(__name__)


class EntryState(Enum):
    """Lifecycle state of a cache entry."""
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


@dataclass
class CacheEntry:
    """Cache entry with lifecycle metadata."""
    key: str
    last_used: float
    state: EntryState = EntryState.LOADING
    handle: Any = None
    error_message: Optional[str] = None
    model_info: Optional[ModelInfo] = None
    load: Optional["asyncio.Future[Any]"] = field(default=None, repr=False)

    @property
    def is_loading(self) -> bool:
        return self.state is EntryState.LOADING

    def age(self, now: float) -> float:
        return now - self.last_used


class PipelineCache:
    """Bounded map of cache entries, one per key."""

    def __init__(self,
                 max_size: int = 2,
                 ttl_seconds: float = 30 * 60,
                 on_evict: Optional[Callable[[CacheEntry], None]] = None):
        """Initialize pipeline cache.

        Args:
            max_size: Maximum number of entries kept after a sweep
            ttl_seconds: Idle time after which a settled entry expires
            on_evict: Called with every entry removed by a sweep
        """
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._on_evict = on_evict
        self._entries: Dict[str, CacheEntry] = {}

        logger.debug(f"Pipeline cache initialized: max_size={max_size}, ttl_seconds={ttl_seconds}")

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def remove(self, key: str) -> Optional[CacheEntry]:
        return self._entries.pop(key, None)

    def entries(self) -> List[CacheEntry]:
        return list(self._entries.values())

    def clear(self) -> List[CacheEntry]:
        """Remove every entry and return what was removed."""
        removed = list(self._entries.values())
        self._entries.clear()
        logger.debug("Cache cleared")
        return removed

    def remove_errored(self) -> List[str]:
        """Remove entries in the errored state."""
        keys = [key for key, entry in self._entries.items() if entry.state is EntryState.ERRORED]
        for key in keys:
            del self._entries[key]
            logger.info(f"Cleared error state for: {key}")
        return keys

    def sweep(self, now: float, protect: Optional[str] = None) -> List[str]:
        """Expire idle entries, then evict the least recently used until the size fits.

        Loading entries are never removed, nor is the entry under 'protect'.

        Returns:
            Keys removed by the sweep
        """
        removed: List[str] = []

        # Expire by TTL
        for key, entry in list(self._entries.items()):
            if not entry.is_loading and entry.age(now) > self.ttl_seconds:
                self._evict(key)
                removed.append(key)
                logger.info(f"Removed expired cache entry: {key}")

        # Evict by count
        if len(self._entries) > self.max_size:
            candidates = sorted(
                (entry for entry in self._entries.values()
                 if not entry.is_loading and entry.key != protect),
                key=lambda entry: entry.last_used
            )
            for entry in candidates:
                if len(self._entries) <= self.max_size:
                    break
                self._evict(entry.key)
                removed.append(entry.key)
                logger.info(f"Removed old cache entry: {entry.key}")

        return removed

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key)
        if self._on_evict is not None:
            self._on_evict(entry)

    def __len__(self) -> int:
        """Get number of entries in cache."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
