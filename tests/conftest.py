"""Test configuration."""

import io
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from bookdrop.domain.transfers import (
    ConversionFailureError,
    ExpirationSweeper,
    InMemoryEntryStore,
    KeyGenerator,
    TransferCoordinator,
)
from bookdrop.services import KepubConverter

EPUB_BYTES = b"PK\x03\x04" + b"\x00" * 26 + b"mimetypeapplication/epub+zip" + b"chapter one" * 64


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class BytesPayload:
    """Async ``read(size)`` over an in-memory buffer, like ``UploadFile``."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class FakeConverter:
    def __init__(self, available: bool = True, fail: bool = False, error: Optional[Exception] = None) -> None:
        self.available = available
        self.fail = fail
        self.error = error
        self.calls: list[Path] = []

    converted_name = staticmethod(KepubConverter.converted_name)

    def convert(self, source: Path) -> Path:
        self.calls.append(source)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise ConversionFailureError("kepubify exited with code 1")
        target = source.with_name(self.converted_name(source.name))
        target.write_bytes(b"kepub:" + source.read_bytes())
        return target


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryEntryStore:
    return InMemoryEntryStore(clock=clock)


@pytest.fixture
def sweeper(store: InMemoryEntryStore, clock: FakeClock) -> ExpirationSweeper:
    return ExpirationSweeper(
        store,
        idle_limit=timedelta(seconds=30),
        max_lifetime=timedelta(hours=1),
        interval=10,
        clock=clock,
    )


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def coordinator(store, sweeper, converter, uploads_dir, clock) -> TransferCoordinator:
    return TransferCoordinator(
        store=store,
        keys=KeyGenerator(4),
        sweeper=sweeper,
        uploads_dir=uploads_dir,
        converter=converter,
        max_upload_bytes=64 * 1024,
        chunk_size=1024,
        clock=clock,
    )
