"""
Relay forwarding dedup cache.

A transaction should reach the relay at most once per retention window.
The cache maps a transaction identifier to the time it was last
forwarded and is shared by every concurrently handled request, so all
access goes through a single lock.

Duplicate suppression must use mark_if_absent(): a was_forwarded()
followed by mark_forwarded() leaves a window where two requests both
see "absent" and both forward.

Expired entries are invisible to lookups immediately and are physically
removed by sweep(), which CacheSweeper runs on a fixed interval.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from relaygate.utils.timestamps import Clock, utc_now

from .models import DEFAULT_DEDUP_WINDOW_S

logger = logging.getLogger(__name__)


class RelayForwardCache:
    """
    Thread-safe map of transaction id -> last forward time.

    Usage:
        cache = RelayForwardCache()
        if cache.mark_if_absent(tx_hash):
            try:
                forward(tx)
            except ForwardingError:
                cache.discard(tx_hash)
                raise
    """

    def __init__(
        self,
        window: Optional[timedelta] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._window = window if window is not None else timedelta(seconds=DEFAULT_DEDUP_WINDOW_S)
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._entries: Dict[str, datetime] = {}

    @property
    def window(self) -> timedelta:
        return self._window

    def _is_live(self, forwarded_at: datetime, now: datetime) -> bool:
        return now - forwarded_at <= self._window

    def was_forwarded(self, tx_hash: str) -> bool:
        """True iff an unexpired entry exists for tx_hash."""
        now = self._clock()
        with self._lock:
            forwarded_at = self._entries.get(tx_hash)
            return forwarded_at is not None and self._is_live(forwarded_at, now)

    def mark_forwarded(self, tx_hash: str) -> None:
        """Insert or refresh the entry to now."""
        now = self._clock()
        with self._lock:
            self._entries[tx_hash] = now

    def mark_if_absent(self, tx_hash: str) -> bool:
        """
        Atomically record tx_hash unless an unexpired entry exists.

        Returns True for the caller that recorded it (and should forward),
        False for every caller that found it already forwarded.
        """
        now = self._clock()
        with self._lock:
            forwarded_at = self._entries.get(tx_hash)
            if forwarded_at is not None and self._is_live(forwarded_at, now):
                return False
            self._entries[tx_hash] = now
            return True

    def discard(self, tx_hash: str) -> None:
        """Forget tx_hash so a later resubmission is forwarded again."""
        with self._lock:
            self._entries.pop(tx_hash, None)

    def sweep(self) -> int:
        """Remove every entry older than the window. Returns the eviction count."""
        now = self._clock()
        with self._lock:
            expired = [k for k, t in self._entries.items() if not self._is_live(t, now)]
            for key in expired:
                del self._entries[key]
            remaining = len(self._entries)
        if expired:
            logger.debug("Swept %d expired relay forwardings (%d remaining)", len(expired), remaining)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, tx_hash: object) -> bool:
        if not isinstance(tx_hash, str):
            return False
        return self.was_forwarded(tx_hash)


class CacheSweeper:
    """Runs RelayForwardCache.sweep() on a fixed interval in a daemon thread."""

    def __init__(self, cache: RelayForwardCache, interval_s: float = 60.0) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._cache = cache
        self._interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="relaygate-dedup-sweeper",
                daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            t = self._thread
            self._stop.set()
            self._thread = None
        if t is not None:
            t.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop.wait(self._interval_s):
            try:
                self._cache.sweep()
            except Exception:
                logger.exception("Dedup cache sweep failed")
