"""Transfer coordinator orchestrating upload, conversion and download."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from starlette.concurrency import run_in_threadpool

from bookdrop.services.epub import sanitize_filename

from .exceptions import (
    ConversionFailureError,
    EmptyPayloadError,
    InvalidKeyError,
    KeyInUseError,
    PayloadTooLargeError,
    StorageFailureError,
    TransferNotFoundError,
)
from .keys import KeyGenerator
from .models import Clock, TransferEntry, TransferPayload, utc_now
from .store import EntryStore
from .sweeper import ExpirationSweeper

logger = logging.getLogger(__name__)


class PayloadStream(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


class Converter(Protocol):
    @property
    def available(self) -> bool:
        ...

    def converted_name(self, name: str) -> str:
        ...

    def convert(self, source: Path) -> Path:
        ...


@dataclass(slots=True)
class TransferCoordinator:
    store: EntryStore
    keys: KeyGenerator
    sweeper: ExpirationSweeper
    uploads_dir: Path
    converter: Optional[Converter] = None
    max_upload_bytes: int = 800 * 1024 * 1024
    chunk_size: int = 1024 * 1024
    clock: Clock = field(default=utc_now)

    def ensure_storage(self) -> None:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def conversion_available(self) -> bool:
        return self.converter is not None and self.converter.available

    def begin_transfer(self) -> str:
        """Mint a key. The entry is only created once an upload completes."""
        return self.keys.generate()

    async def complete_upload(
        self,
        key: str,
        stream: PayloadStream,
        display_name: Optional[str],
        request_conversion: bool = False,
    ) -> TransferEntry:
        self._require_well_formed(key)
        if self.store.get(key) is not None:
            raise KeyInUseError(f"key {key} already holds a file")

        display_name = sanitize_filename(display_name)
        # unique per upload so racing uploads on one key never share a file
        target_path = self.uploads_dir / f"{key}_{os.urandom(4).hex()}_{display_name}"
        size_bytes = await self._write_payload(stream, target_path)

        storage_path = target_path
        converted = False
        try:
            if request_conversion and self.conversion_available:
                result = await self._convert(key, target_path)
                if result is not None:
                    storage_path, size_bytes = result
                    target_path.unlink(missing_ok=True)
                    display_name = self.converter.converted_name(display_name)
                    converted = True

            now = self.clock()
            entry = TransferEntry(
                key=key,
                display_name=display_name,
                storage_path=str(storage_path),
                converted=converted,
                created_at=now,
                last_accessed_at=now,
                size_bytes=size_bytes,
            )
            if not self.store.add(key, entry):
                raise KeyInUseError(f"key {key} already holds a file")
        except BaseException:
            # nothing outside the store tracks these files
            target_path.unlink(missing_ok=True)
            storage_path.unlink(missing_ok=True)
            raise

        logger.info("Stored %s under key %s (converted=%s, %d bytes)", display_name, key, converted, size_bytes)
        return entry

    def check_status(self, key: str) -> TransferEntry:
        self._require_well_formed(key)
        entry = self.store.touch(key)
        if entry is None:
            raise TransferNotFoundError("Key not found or expired")
        return entry

    def fetch(self, key: str, expected_display_name: str) -> TransferPayload:
        self._require_well_formed(key)
        entry = self.store.touch(key)
        if entry is None or entry.display_name != expected_display_name:
            raise TransferNotFoundError("File not found")

        try:
            stream = Path(entry.storage_path).open("rb")
        except FileNotFoundError as exc:
            # evicted between the touch and the open
            raise TransferNotFoundError("File not found") from exc
        except OSError as exc:
            raise StorageFailureError(f"failed to read payload for key {key}") from exc
        return TransferPayload(entry=entry, stream=stream)

    def shutdown(self) -> int:
        return self.sweeper.flush()

    async def _convert(self, key: str, source: Path) -> Optional[tuple[Path, int]]:
        """Run the converter; any failure keeps the original payload."""
        output: Optional[Path] = None
        try:
            output = await run_in_threadpool(self.converter.convert, source)
            return output, output.stat().st_size
        except ConversionFailureError as exc:
            logger.warning("kepubify conversion failed for key %s: %s", key, exc)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("kepubify conversion failed for key %s: %r", key, exc)
        if output is not None and output != source:
            output.unlink(missing_ok=True)
        return None

    def _require_well_formed(self, key: str) -> None:
        if not self.keys.is_well_formed(key):
            raise InvalidKeyError("Invalid key")

    async def _write_payload(self, stream: PayloadStream, target_path: Path) -> int:
        total_size = 0
        try:
            with target_path.open("wb") as buffer:
                while True:
                    chunk = await stream.read(self.chunk_size)
                    if not chunk:
                        break
                    total_size += len(chunk)
                    if total_size > self.max_upload_bytes:
                        raise PayloadTooLargeError(
                            f"payload exceeds {self.max_upload_bytes} bytes"
                        )
                    buffer.write(chunk)
        except PayloadTooLargeError:
            target_path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            target_path.unlink(missing_ok=True)
            raise StorageFailureError(f"failed to save {target_path.name}") from exc

        if total_size == 0:
            target_path.unlink(missing_ok=True)
            raise EmptyPayloadError("uploaded file is empty")
        return total_size
