"""Persisted fingerprint -> state set used for crash recovery."""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict

from smsrelay import db
from smsrelay.models import ProcessingState


class StateStore(ABC):
    """Durable key -> ProcessingState set that survives a restart."""

    @abstractmethod
    def put(self, key: str, state: ProcessingState) -> None:
        """Store state for key, moving it to the newest position."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    @abstractmethod
    def list_all(self) -> list[tuple[str, ProcessingState]]:
        """All entries, oldest first."""
        pass


class SqliteStateStore(StateStore):
    """State store backed by the relay_state table."""

    def put(self, key: str, state: ProcessingState) -> None:
        db.put_state(key, state.value)

    def remove(self, key: str) -> None:
        db.remove_state(key)

    def list_all(self) -> list[tuple[str, ProcessingState]]:
        entries = []
        for key, value in db.list_states():
            try:
                entries.append((key, ProcessingState(value)))
            except ValueError:
                # Unknown states are dropped on the next recovery pass
                entries.append((key, ProcessingState.FAILED))
        return entries


class InMemoryStateStore(StateStore):
    """Non-durable store for tests and throwaway runs."""

    def __init__(self):
        self._entries: OrderedDict[str, ProcessingState] = OrderedDict()
        self._lock = threading.Lock()

    def put(self, key: str, state: ProcessingState) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = state

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def list_all(self) -> list[tuple[str, ProcessingState]]:
        with self._lock:
            return list(self._entries.items())
