"""Concurrent in-memory mapping from transfer key to entry."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Protocol

from .models import Clock, TransferEntry, utc_now


class EntryStore(Protocol):
    def put(self, key: str, entry: TransferEntry) -> TransferEntry | None:
        ...

    def add(self, key: str, entry: TransferEntry) -> bool:
        ...

    def get(self, key: str) -> TransferEntry | None:
        ...

    def touch(self, key: str) -> TransferEntry | None:
        ...

    def remove(self, key: str) -> TransferEntry | None:
        ...

    def evict_if(self, key: str, predicate: Callable[[TransferEntry], bool]) -> TransferEntry | None:
        ...

    def for_each(self, visit: Callable[[TransferEntry], None]) -> None:
        ...

    def __len__(self) -> int:
        ...


@dataclass(slots=True)
class _Slot:
    entry: TransferEntry
    lock: threading.Lock = field(default_factory=threading.Lock)
    evicted: bool = False


class InMemoryEntryStore:
    """Thread-safe entry store with one lock per key.

    ``_lock`` only guards the dictionary itself. Timestamp refreshes and
    evictions take the slot lock of their own key, so unrelated keys never
    wait on each other. A slot lock may be held while taking ``_lock``; the
    reverse never happens.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._slots: Dict[str, _Slot] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def put(self, key: str, entry: TransferEntry) -> TransferEntry | None:
        """Insert or replace; returns the entry that was replaced, if any."""
        with self._lock:
            previous = self._slots.get(key)
            self._slots[key] = _Slot(entry)
        if previous is None:
            return None
        with previous.lock:
            previous.evicted = True
            return previous.entry

    def add(self, key: str, entry: TransferEntry) -> bool:
        """Insert only when ``key`` has no live entry."""
        with self._lock:
            if key in self._slots:
                return False
            self._slots[key] = _Slot(entry)
            return True

    def get(self, key: str) -> TransferEntry | None:
        slot = self._slot(key)
        if slot is None:
            return None
        with slot.lock:
            return None if slot.evicted else slot.entry

    def touch(self, key: str) -> TransferEntry | None:
        slot = self._slot(key)
        if slot is None:
            return None
        with slot.lock:
            if slot.evicted:
                return None
            now = self._clock()
            # never move backwards if the clock is adjusted between callers
            if now > slot.entry.last_accessed_at:
                slot.entry = replace(slot.entry, last_accessed_at=now)
            return slot.entry

    def remove(self, key: str) -> TransferEntry | None:
        return self.evict_if(key, lambda _entry: True)

    def evict_if(self, key: str, predicate: Callable[[TransferEntry], bool]) -> TransferEntry | None:
        """Remove ``key`` when ``predicate`` holds, checked under the key's lock."""
        slot = self._slot(key)
        if slot is None:
            return None
        with slot.lock:
            if slot.evicted or not predicate(slot.entry):
                return None
            slot.evicted = True
            with self._lock:
                if self._slots.get(key) is slot:
                    del self._slots[key]
            return slot.entry

    def for_each(self, visit: Callable[[TransferEntry], None]) -> None:
        with self._lock:
            snapshot = list(self._slots.values())
        for slot in snapshot:
            with slot.lock:
                if slot.evicted:
                    continue
                entry = slot.entry
            visit(entry)

    def _slot(self, key: str) -> Optional[_Slot]:
        with self._lock:
            return self._slots.get(key)
