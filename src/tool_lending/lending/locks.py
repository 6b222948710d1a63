"""
Per-tool locks.

Create and return are check-then-write sequences; holding the tool's lock for
the whole transaction makes them atomic per tool within one engine. Each
engine owns its own registry, so two engines never share lock state. Engines
or processes sharing a database are kept apart by the database itself: the
tool row is selected FOR UPDATE, and file-backed SQLite opens every
transaction with BEGIN IMMEDIATE (see ``DatabaseManager.engine``).
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..database.repository import LockTimeoutError

logger = logging.getLogger(__name__)


class ToolLockRegistry:
    """
    Lazily created ``threading.Lock`` per tool ID with bounded waits.

    Locks are never evicted; the registry holds one entry per tool this engine
    has touched, which is bounded by the inventory size.
    """

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, tool_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(tool_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tool_id] = lock
            return lock

    @contextmanager
    def hold(self, tool_id: str) -> Iterator[None]:
        """Hold the lock for ``tool_id`` or raise LockTimeoutError."""
        lock = self._lock_for(tool_id)
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.warning(
                "Timed out after %.1fs waiting for lock on tool %s",
                self.timeout_seconds,
                tool_id,
            )
            raise LockTimeoutError(
                f"Tool {tool_id} is busy; could not acquire lock within "
                f"{self.timeout_seconds} seconds"
            )
        try:
            yield
        finally:
            lock.release()
