import logging
import threading
from collections import OrderedDict
from typing import Optional

from smsrelay.errors import ConfigurationError
from smsrelay.models import ProcessingState
from smsrelay.state_store import StateStore

log = logging.getLogger(__name__)


class DedupTracker:
    """Per-fingerprint processing state with crash recovery.

    Memory is the source of truth for concurrency control. The state store is
    written after each in-memory transition and only matters across restarts,
    so store failures are logged and otherwise ignored.

    Completed fingerprints are kept up to ``capacity`` entries and evicted
    oldest first. Failed fingerprints do not block a later redelivery.
    """

    def __init__(self, store: StateStore, capacity: int = 100):
        if capacity < 1:
            raise ConfigurationError(f"dedup capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._store = store
        self._lock = threading.Lock()
        self._processing: set[str] = set()
        self._completed: OrderedDict[str, None] = OrderedDict()
        self._failed: OrderedDict[str, None] = OrderedDict()

    def recover(self) -> int:
        """Reload persisted state after a restart.

        Entries persisted as processing belong to a run that died mid-task.
        They are removed and never resumed. Returns how many were cleared.
        """
        try:
            entries = self._store.list_all()
        except Exception as e:
            log.error(f"[dedup] Could not read state store, starting empty: {e}")
            return 0

        orphaned = [key for key, state in entries if state is not ProcessingState.COMPLETED]
        completed = [key for key, state in entries if state is ProcessingState.COMPLETED]

        for key in orphaned:
            self._persist(self._store.remove, key)

        with self._lock:
            for key in completed:
                if key in self._processing:
                    continue
                self._completed[key] = None
                self._completed.move_to_end(key)
            evicted = self._evict_completed()

        for key in evicted:
            self._persist(self._store.remove, key)

        if orphaned:
            log.info(f"[dedup] Cleared {len(orphaned)} orphaned in-progress entries from a previous run")
        log.info(f"[dedup] Restored {len(self._completed)} completed fingerprints")
        return len(orphaned)

    def try_begin(self, key: str) -> bool:
        """Atomically claim a fingerprint. False means drop the message silently."""
        with self._lock:
            if key in self._processing or key in self._completed:
                return False
            self._processing.add(key)
            self._failed.pop(key, None)
        self._persist(self._store.put, key, ProcessingState.PROCESSING)
        return True

    def finish(self, key: str, outcome: ProcessingState):
        """Move a claimed fingerprint to its terminal state."""
        if outcome is ProcessingState.PROCESSING:
            raise ValueError("finish() needs a terminal outcome")

        with self._lock:
            if key not in self._processing:
                raise ValueError(f"{key} is not being processed")
            self._processing.discard(key)
            evicted = []
            if outcome is ProcessingState.COMPLETED:
                self._completed[key] = None
                evicted = self._evict_completed()
            else:
                self._failed[key] = None
                while len(self._failed) > self.capacity:
                    self._failed.popitem(last=False)

        if outcome is ProcessingState.COMPLETED:
            self._persist(self._store.put, key, ProcessingState.COMPLETED)
        else:
            self._persist(self._store.remove, key)
        for old in evicted:
            self._persist(self._store.remove, old)

    def state(self, key: str) -> Optional[ProcessingState]:
        with self._lock:
            if key in self._processing:
                return ProcessingState.PROCESSING
            if key in self._completed:
                return ProcessingState.COMPLETED
            if key in self._failed:
                return ProcessingState.FAILED
        return None

    @property
    def processing_count(self) -> int:
        return len(self._processing)

    @property
    def completed_count(self) -> int:
        return len(self._completed)

    def _evict_completed(self) -> list[str]:
        """Drop oldest completed entries over capacity. Caller holds the lock."""
        evicted = []
        while len(self._completed) > self.capacity:
            key, _ = self._completed.popitem(last=False)
            evicted.append(key)
        return evicted

    def _persist(self, operation, *args):
        try:
            operation(*args)
        except Exception as e:
            log.warning(f"[dedup] State store write failed for {args[0]}: {e}")
