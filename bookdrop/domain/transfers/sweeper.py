"""Background eviction of idle and expired transfers."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .models import Clock, TransferEntry, utc_now
from .store import EntryStore

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    def __init__(
        self,
        store: EntryStore,
        *,
        idle_limit: timedelta = timedelta(seconds=30),
        max_lifetime: timedelta = timedelta(hours=1),
        interval: float = 10,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.idle_limit = idle_limit
        self.max_lifetime = max_lifetime
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    def is_expired(self, entry: TransferEntry, now: datetime) -> bool:
        return entry.idle_for(now) > self.idle_limit or entry.age(now) > self.max_lifetime

    def sweep(self, now: Optional[datetime] = None) -> list[TransferEntry]:
        """Run one eviction pass and return the evicted entries."""
        now = now or self._clock()
        candidates: list[TransferEntry] = []

        def collect(entry: TransferEntry) -> None:
            if self.is_expired(entry, now):
                candidates.append(entry)

        self.store.for_each(collect)

        evicted: list[TransferEntry] = []
        for candidate in candidates:
            # re-checked under the key's lock: a touch since the snapshot keeps it alive
            entry = self.store.evict_if(candidate.key, lambda current: self.is_expired(current, now))
            if entry is None:
                continue
            _discard_file(entry)
            evicted.append(entry)
            logger.info("Cleaned up file: %s (key: %s)", entry.display_name, entry.key)
        if evicted:
            logger.info("Evicted %d transfer(s), %d still live", len(evicted), len(self.store))
        return evicted

    def flush(self) -> int:
        """Evict every entry regardless of age."""
        entries: list[TransferEntry] = []
        self.store.for_each(entries.append)
        removed = 0
        for candidate in entries:
            entry = self.store.remove(candidate.key)
            if entry is None:
                continue
            _discard_file(entry)
            removed += 1
        logger.info("Flushed %d transfer(s), %d still live", removed, len(self.store))
        return removed

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    self.sweep()
                except Exception:  # pylint: disable=broad-except
                    logger.exception("Expiration sweep failed")
        except asyncio.CancelledError:
            logger.debug("Expiration sweeper cancelled")
            raise


def _discard_file(entry: TransferEntry) -> None:
    try:
        Path(entry.storage_path).unlink()
    except FileNotFoundError:
        logger.warning("Backing file already gone for key %s: %s", entry.key, entry.storage_path)
    except OSError as exc:
        logger.warning("Failed to delete %s for key %s: %s", entry.storage_path, entry.key, exc)
