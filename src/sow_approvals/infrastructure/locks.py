# src/sow_approvals/infrastructure/locks.py
"""
Per-document locks.

Serializes read-then-write sequences against one SOW's approval set inside
this process. Acquisition waits at most `timeout` seconds; the store's
conditional updates and the consistency checker cover writers in other
processes.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ..exceptions import ConflictError

logger = logging.getLogger(__name__)


class DocumentLocks:
    """Registry of re-entrant locks keyed by SOW id.

    An entry lives only while some thread holds or waits on it, so the
    registry stays bounded by the number of SOWs currently in flight.
    """

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._users: Dict[str, int] = {}

    def active_count(self) -> int:
        """Number of SOW ids with a lock currently held or awaited."""
        with self._guard:
            return len(self._locks)

    def _checkout(self, sow_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(sow_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[sow_id] = lock
            self._users[sow_id] = self._users.get(sow_id, 0) + 1
            return lock

    def _checkin(self, sow_id: str):
        with self._guard:
            remaining = self._users[sow_id] - 1
            if remaining:
                self._users[sow_id] = remaining
            else:
                del self._users[sow_id]
                del self._locks[sow_id]

    @contextmanager
    def hold(self, sow_id: str) -> Iterator[None]:
        """Hold the SOW's lock for the duration of the block."""
        lock = self._checkout(sow_id)
        try:
            if not lock.acquire(timeout=self._timeout):
                logger.warning(f"Timed out waiting for lock on SOW {sow_id}")
                raise ConflictError(
                    "SOW is being modified by another request",
                    detail=f"Lock wait exceeded {self._timeout}s",
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(sow_id)
