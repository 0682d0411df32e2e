"""
=============================================================================
RESPONSE CACHE
=============================================================================

URL path → Outcome, with per-entry TTL and an out-of-band flush.

=============================================================================
LIFECYCLE OF AN ENTRY
=============================================================================

    store("/docs/")                      lookup("/docs/") → Rendered(...)
         │                                      ▲
         ▼                                      │
    ┌─────────┐   ttl elapses    ┌──────────┐   │ janitor sweep or any store()
    │  live   │ ───────────────► │ expired  │ ──┴──► removed, "Evicted" logged
    └─────────┘                  └──────────┘
         │
         │ flush() / SIGUSR1
         ▼
      removed (all entries, atomically)

=============================================================================
TTL SEMANTICS
=============================================================================

    ttl is None   caching disabled: lookup() always misses, store() and
                  flush() do nothing
    ttl > 0       cachetools.TTLCache; store() restarts the countdown
    ttl < 0       cachetools.Cache; entries live until a flush

=============================================================================
THREADING
=============================================================================

Worker threads call lookup()/store(), the janitor thread sweeps, and the
signal handler calls request_flush(). cachetools caches are not thread-safe,
so every access goes through one lock.

request_flush() only sets an Event: signal handlers run between bytecodes
of the main thread, which may already hold the lock. The janitor wakes up
and does the actual flush.

=============================================================================
"""

import logging
import math
import threading
import time
from typing import Callable, Optional

import cachetools

from .outcome import Outcome


logger = logging.getLogger(__name__)


class EvictingTTLCache(cachetools.TTLCache):
    """
    TTLCache that logs every entry it expires.

    TTLCache expires entries on writes, len() and clear() as well as on an
    explicit expire(), so the log line lives here rather than in sweep().
    """

    def expire(self, time=None):
        expired = super().expire(time)
        for path, _ in expired:
            logger.info(f"Evicted {path}")
        return expired


class ResponseCache:
    """
    Thread-safe Outcome cache keyed by the exact request path.

    Usage:
        cache = ResponseCache(ttl=300)
        cache.start()                 # background sweeps + flush requests

        outcome = cache.lookup(path)
        if outcome is None:
            outcome = build(path)
            cache.store(path, outcome)

        cache.stop()
    """

    def __init__(
        self,
        ttl: Optional[float],
        sweep_interval: float = 60.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval

        self._lock = threading.Lock()
        self._flush_requested = threading.Event()
        self._stopping = False
        self._janitor: Optional[threading.Thread] = None

        self._entries: Optional[cachetools.Cache]
        if ttl is None:
            self._entries = None
        elif ttl < 0:
            self._entries = cachetools.Cache(maxsize=math.inf)
        else:
            self._entries = EvictingTTLCache(maxsize=math.inf, ttl=ttl, timer=timer)

        # Statistics
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._entries is not None

    def __len__(self) -> int:
        if self._entries is None:
            return 0
        with self._lock:
            return len(self._entries)

    # =========================================================================
    # LOOKUP / STORE / FLUSH
    # =========================================================================

    def lookup(self, path: str) -> Optional[Outcome]:
        """The live Outcome stored for `path`, or None."""
        if self._entries is None:
            return None

        with self._lock:
            outcome = self._entries.get(path)
            if outcome is None:
                self.misses += 1
            else:
                self.hits += 1

        if outcome is not None:
            logger.debug(f"Cache hit: {path}")
        return outcome

    def store(self, path: str, outcome: Outcome) -> None:
        """Store `outcome` for `path`, replacing any entry and restarting its TTL."""
        if self._entries is None:
            return

        with self._lock:
            self._entries[path] = outcome

        logger.debug(f"Cached {path}: {type(outcome).__name__}")

    def flush(self) -> int:
        """
        Remove every entry. Returns how many were removed.

        Lookups that start after this returns all miss.
        """
        if self._entries is None:
            return 0

        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        logger.info(f"Flushing cache ({count} entries)")
        return count

    def request_flush(self) -> None:
        """Ask the janitor to flush. Safe to call from a signal handler."""
        self._flush_requested.set()

    def sweep(self) -> int:
        """
        Drop expired entries. Returns how many expired.

        Entries expired by an earlier store() were already evicted (and
        logged) there, so they aren't counted again.
        """
        if not isinstance(self._entries, EvictingTTLCache):
            return 0

        with self._lock:
            return len(self._entries.expire())

    # =========================================================================
    # JANITOR THREAD
    # =========================================================================

    def start(self) -> None:
        """Start the janitor thread (sweeps + flush requests)."""
        if self._entries is None or self._janitor is not None:
            return

        self._stopping = False
        self._janitor = threading.Thread(
            target=self._janitor_loop,
            name="cache-janitor",
            daemon=True,
        )
        self._janitor.start()
        logger.debug(f"Cache janitor started (ttl={self.ttl}s, sweep every {self.sweep_interval}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the janitor thread and wait for it to exit."""
        if self._janitor is None:
            return

        self._stopping = True
        self._flush_requested.set()
        self._janitor.join(timeout=timeout)
        self._janitor = None

    def _janitor_loop(self) -> None:
        while True:
            requested = self._flush_requested.wait(timeout=self.sweep_interval)

            if self._stopping:
                break

            if requested:
                self._flush_requested.clear()
                self.flush()
            else:
                self.sweep()

    def stats(self) -> dict:
        return {
            "enabled": self.enabled,
            "entries": len(self),
            "hits": self.hits,
            "misses": self.misses,
        }
