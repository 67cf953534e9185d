"""Per-pass overlap guard.

A pass holds its guard for the whole pass body. A trigger that finds the
guard held is dropped, never queued.
"""
import logging
import threading
from contextlib import contextmanager
from collections.abc import Iterator

logger = logging.getLogger(__name__)


class PassGuard:
    """Single-slot, non-blocking exclusion gate for one pass type."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        """Check if a pass holding this guard is in flight."""
        return self._lock.locked()

    def try_acquire(self) -> bool:
        """Atomically take the guard. Returns False if already held."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Hold the guard for a block.

        Yields True when the guard was taken, False when another pass of
        the same type is running and the block should not run.
        """
        acquired = self.try_acquire()
        if not acquired:
            logger.info(f"{self.name} already running, dropping trigger")
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
