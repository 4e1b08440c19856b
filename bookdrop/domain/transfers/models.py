"""Domain models for key-addressed transfers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TransferEntry:
    key: str
    display_name: str
    storage_path: str
    converted: bool
    created_at: datetime
    last_accessed_at: datetime
    size_bytes: int = 0

    def idle_for(self, now: datetime) -> timedelta:
        return now - self.last_accessed_at

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at


@dataclass(slots=True)
class TransferPayload:
    """An opened payload ready to be streamed; the caller closes ``stream``."""

    entry: TransferEntry
    stream: BinaryIO

    def iter_chunks(self, chunk_size: int = 64 * 1024):
        try:
            while True:
                chunk = self.stream.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.stream.close()
