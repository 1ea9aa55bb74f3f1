"""
Pipeline cache manager with single-flight loading, TTL expiry and error cooldown.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.settings import CacheConfig
from ..models.errors import CooldownError, LoadTimeoutError
from ..models.results import LoadedPipeline, ModelInfo
from ..utils.logger import PerformanceLogger
from ..utils.memory import free_accelerator_memory, release_handle
from .cache import CacheEntry, EntryState, PipelineCache

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], Awaitable[Any]]


def _consume_result(load: "asyncio.Future[Any]") -> None:
    # A load whose callers all went away still settles; mark its error as seen.
    if not load.cancelled():
        load.exception()


class PipelineManager:
    """Caches pipeline handles by key and coordinates their loading.

    Concurrent ``acquire`` calls for a key that is not cached share one load.
    Every waiter receives the same handle, or the same error if the load fails.
    A failed key is refused with ``CooldownError`` until ``error_cooldown``
    has passed. After each successful load, idle entries expire and the
    least recently used settled entries are evicted down to ``max_cache_size``.
    """

    def __init__(self,
                 config: Optional[CacheConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 log_memory_usage: bool = False):
        """Initialize pipeline manager.

        Args:
            config: Cache settings, defaults if None
            clock: Monotonic time source in seconds
            log_memory_usage: Log process memory after every load
        """
        self.config = config or CacheConfig()
        self._clock = clock
        self._log_memory_usage = log_memory_usage
        self.cache = PipelineCache(
            max_size=self.config.max_cache_size,
            ttl_seconds=self.config.cache_duration,
            on_evict=self._release
        )
        self.perf_logger = PerformanceLogger(logger)
        self._hits = 0
        self._misses = 0
        self._closed = False

        logger.info(
            f"PipelineManager initialized: max_cache_size={self.config.max_cache_size}, "
            f"cache_duration={self.config.cache_duration:g}s, error_cooldown={self.config.error_cooldown:g}s"
        )

    async def acquire(self, key: str, factory: PipelineFactory, timeout: Optional[float] = None) -> Any:
        """Return the cached handle for a key, loading it with the factory on a miss.

        Args:
            key: Cache key, e.g. "translation"
            factory: Zero-argument coroutine function returning the handle,
                or a ``LoadedPipeline`` that also carries model metadata
            timeout: Load time budget, the configured value for the key if None

        Returns:
            The pipeline handle

        Raises:
            CooldownError: A recent load failure for this key is still cooling down
            LoadTimeoutError: The load exceeded its time budget
            LoadError: The factory could not build a handle
        """
        if self._closed:
            raise RuntimeError("PipelineManager has been shut down")

        now = self._clock()
        entry = self.cache.get(key)

        if entry is not None:
            if entry.state is EntryState.READY and entry.age(now) < self.config.cache_duration:
                entry.last_used = now
                self._hits += 1
                logger.debug(f"Cache hit for {key} pipeline")
                return entry.handle

            if entry.state is EntryState.ERRORED and entry.age(now) < self.config.error_cooldown:
                retry_after = self.config.error_cooldown - entry.age(now)
                logger.debug(f"Refusing {key} pipeline for another {retry_after:.1f}s")
                raise CooldownError(key, entry.error_message or "Unknown error", retry_after)

            if entry.is_loading:
                self._misses += 1
                logger.info(f"Waiting for {key} pipeline to load...")
                return await asyncio.shield(entry.load)

        self._misses += 1
        logger.info(f"Cache miss for {key} pipeline")

        if entry is not None:
            # Expired handle or spent error record being replaced
            self._release(entry)

        if timeout is None:
            timeout = self.config.timeout_for(key)

        entry = CacheEntry(key=key, last_used=now)
        entry.load = asyncio.ensure_future(self._load(entry, factory, timeout))
        entry.load.add_done_callback(_consume_result)
        self.cache.put(entry)

        # Shielded so an abandoning caller does not cancel the shared load
        return await asyncio.shield(entry.load)

    async def _load(self, entry: CacheEntry, factory: PipelineFactory, timeout: float) -> Any:
        key = entry.key
        timer = f"loading {key} pipeline"
        self.perf_logger.start_timer(timer)

        try:
            loaded = await asyncio.wait_for(factory(), timeout=timeout)
        except asyncio.TimeoutError:
            self.perf_logger.stop_timer(timer)
            error = LoadTimeoutError(key, timeout)
            self._settle_error(entry, str(error))
            logger.error(f"Failed to load {key} pipeline: {error}")
            raise error from None
        except asyncio.CancelledError:
            self.perf_logger.stop_timer(timer)
            if self.cache.get(key) is entry:
                self.cache.remove(key)
            raise
        except Exception as e:
            self.perf_logger.stop_timer(timer)
            self._settle_error(entry, str(e) or type(e).__name__)
            logger.error(f"Failed to load {key} pipeline: {e}")
            raise

        self.perf_logger.stop_timer(timer)
        if isinstance(loaded, LoadedPipeline):
            handle, model_info = loaded.handle, loaded.model_info
        else:
            handle, model_info = loaded, None

        now = self._clock()
        entry.handle = handle
        entry.state = EntryState.READY
        entry.last_used = now
        entry.error_message = None
        entry.model_info = model_info

        if self._store(entry):
            self.cache.sweep(now, protect=key)
        if self._log_memory_usage:
            self.perf_logger.log_memory_usage()

        logger.info(f"Successfully loaded {key} pipeline")
        return handle

    def _settle_error(self, entry: CacheEntry, message: str) -> None:
        entry.handle = None
        entry.state = EntryState.ERRORED
        entry.error_message = message
        entry.last_used = self._clock()
        self._store(entry)

    def _store(self, entry: CacheEntry) -> bool:
        # A clear may have dropped the loading entry; never overwrite a newer one.
        current = self.cache.get(entry.key)
        if current is None or current is entry:
            self.cache.put(entry)
            return True
        logger.debug(f"Discarding stale load result for {entry.key}")
        return False

    def _release(self, entry: CacheEntry) -> None:
        if entry.handle is None:
            return
        release_handle(entry.handle)
        entry.handle = None
        free_accelerator_memory()

    def clear_cache(self) -> None:
        """Drop all entries and reset hit/miss counters.

        In-flight loads are not cancelled.
        """
        for entry in self.cache.clear():
            if not entry.is_loading:
                self._release(entry)
        self._hits = 0
        self._misses = 0
        logger.info("Cache cleared")

    def clear_errors(self) -> List[str]:
        """Drop errored entries so their keys can be retried immediately.

        Returns:
            Keys whose error state was cleared
        """
        return self.cache.remove_errored()

    def get_cache_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            'size': len(self.cache),
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': self._hits / total if total else 0.0
        }

    def get_model_info(self, key: str) -> Optional[ModelInfo]:
        """Get metadata about the candidate behind a cached handle."""
        entry = self.cache.get(key)
        return entry.model_info if entry is not None else None

    def describe(self) -> Dict[str, Any]:
        """Snapshot of every entry for diagnostics."""
        now = self._clock()
        entries = {}
        for entry in self.cache.entries():
            entries[entry.key] = {
                'state': entry.state.value,
                'age_seconds': round(entry.age(now), 3),
                'error': entry.error_message,
                'model': entry.model_info.name if entry.model_info else None
            }
        return {
            'stats': self.get_cache_stats(),
            'entries': entries,
            'load_timings': self.perf_logger.get_summary()
        }

    async def shutdown(self) -> None:
        """Cancel in-flight loads and release every cached handle."""
        if self._closed:
            return
        self._closed = True

        pending = [entry.load for entry in self.cache.entries()
                   if entry.load is not None and not entry.load.done()]
        for load in pending:
            load.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for entry in self.cache.clear():
            self._release(entry)
        self._hits = 0
        self._misses = 0
        logger.info("PipelineManager shut down")

    @property
    def closed(self) -> bool:
        return self._closed
