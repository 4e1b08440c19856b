"""Tests for the transfer coordinator."""

from dataclasses import replace
from pathlib import Path

import pytest

from bookdrop.domain.transfers import (
    EmptyPayloadError,
    InvalidKeyError,
    KeyInUseError,
    PayloadTooLargeError,
    StorageFailureError,
    TransferNotFoundError,
)

from .conftest import EPUB_BYTES, BytesPayload, FakeConverter


def stored_files(uploads_dir: Path) -> list[str]:
    return sorted(path.name for path in uploads_dir.iterdir())


class TestBeginTransfer:
    def test_mints_key_without_creating_entry(self, coordinator, store):
        key = coordinator.begin_transfer()
        assert coordinator.keys.is_well_formed(key)
        assert len(store) == 0
        with pytest.raises(TransferNotFoundError):
            coordinator.check_status(key)


class TestCompleteUpload:
    async def test_book_scenario(self, coordinator):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", False)
        assert entry.display_name == "Book.epub"
        assert entry.converted is False
        assert entry.size_bytes == len(EPUB_BYTES)

        status = coordinator.check_status("a1b2")
        assert (status.display_name, status.converted) == ("Book.epub", False)

        payload = coordinator.fetch("a1b2", "Book.epub")
        assert b"".join(payload.iter_chunks()) == EPUB_BYTES
        assert payload.stream.closed

        with pytest.raises(TransferNotFoundError):
            coordinator.fetch("a1b2", "Other.epub")

    async def test_storage_name_is_derived_from_key(self, coordinator, uploads_dir):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        path = Path(entry.storage_path)
        assert path.parent == uploads_dir
        assert path.name.startswith("a1b2_")
        assert path.name.endswith("_Book.epub")

    async def test_same_display_name_on_two_keys(self, coordinator):
        first = await coordinator.complete_upload("aaaa", BytesPayload(b"PK\x03\x04first"), "Book.epub")
        second = await coordinator.complete_upload("bbbb", BytesPayload(b"PK\x03\x04second"), "Book.epub")
        assert first.storage_path != second.storage_path
        assert b"".join(coordinator.fetch("aaaa", "Book.epub").iter_chunks()) == b"PK\x03\x04first"
        assert b"".join(coordinator.fetch("bbbb", "Book.epub").iter_chunks()) == b"PK\x03\x04second"

    async def test_sanitizes_display_name(self, coordinator):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "../../etc/Bad  Näme.epub")
        assert entry.display_name == "Bad Nme.epub"

    async def test_conversion_swaps_name_and_path(self, coordinator, converter, uploads_dir):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is True
        assert entry.display_name == "Book.kepub.epub"
        assert entry.storage_path.endswith("_Book.kepub.epub")
        assert len(converter.calls) == 1
        # original payload removed once the conversion is stored
        assert stored_files(uploads_dir) == [Path(entry.storage_path).name]
        assert entry.size_bytes == len(b"kepub:" + EPUB_BYTES)

        status = coordinator.check_status("a1b2")
        assert (status.display_name, status.converted) == ("Book.kepub.epub", True)
        with pytest.raises(TransferNotFoundError):
            coordinator.fetch("a1b2", "Book.epub")

    async def test_conversion_failure_falls_back_to_original(self, coordinator, uploads_dir):
        coordinator.converter = FakeConverter(fail=True)
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is False
        assert entry.display_name == "Book.epub"
        assert b"".join(coordinator.fetch("a1b2", "Book.epub").iter_chunks()) == EPUB_BYTES

    async def test_unexpected_converter_error_falls_back_to_original(self, coordinator, uploads_dir):
        coordinator.converter = FakeConverter(error=PermissionError("kepubify: permission denied"))
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is False
        assert entry.display_name == "Book.epub"
        assert stored_files(uploads_dir) == [Path(entry.storage_path).name]
        assert coordinator.check_status("a1b2").display_name == "Book.epub"

        assert coordinator.shutdown() == 1
        assert stored_files(uploads_dir) == []

    async def test_converter_output_missing_falls_back_to_original(self, coordinator, uploads_dir):
        class VanishingConverter(FakeConverter):
            def convert(self, source):
                return source.with_name("gone.kepub.epub")

        coordinator.converter = VanishingConverter()
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is False
        assert entry.size_bytes == len(EPUB_BYTES)
        assert stored_files(uploads_dir) == [Path(entry.storage_path).name]

    async def test_failure_before_insert_leaves_no_files(self, coordinator, store, uploads_dir):
        def broken_add(key, entry):
            raise RuntimeError("store unavailable")

        store.add = broken_add
        with pytest.raises(RuntimeError):
            await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert stored_files(uploads_dir) == []

    async def test_conversion_skipped_when_unavailable(self, coordinator):
        coordinator.converter = FakeConverter(available=False)
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is False
        assert coordinator.converter.calls == []

    async def test_conversion_skipped_without_converter(self, coordinator):
        coordinator.converter = None
        assert not coordinator.conversion_available
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub", True)
        assert entry.converted is False

    @pytest.mark.parametrize("key", ["", "A1B2", "a1b", "a1b2c", "../x"])
    async def test_rejects_malformed_key(self, coordinator, uploads_dir, key):
        with pytest.raises(InvalidKeyError):
            await coordinator.complete_upload(key, BytesPayload(EPUB_BYTES), "Book.epub")
        assert stored_files(uploads_dir) == []

    async def test_rejects_key_in_use(self, coordinator, uploads_dir):
        await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        with pytest.raises(KeyInUseError):
            await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Other.epub")
        assert len(stored_files(uploads_dir)) == 1
        assert coordinator.check_status("a1b2").display_name == "Book.epub"

    async def test_lost_race_removes_payload(self, coordinator, store, uploads_dir):
        original_add = store.add

        def add_after_competitor(key, entry):
            competitor = replace(entry, display_name="Winner.epub", storage_path=str(uploads_dir / "winner"))
            original_add(key, competitor)
            return original_add(key, entry)

        store.add = add_after_competitor
        with pytest.raises(KeyInUseError):
            await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        assert stored_files(uploads_dir) == []
        assert store.get("a1b2").display_name == "Winner.epub"

    async def test_rejects_oversized_payload(self, coordinator, store, uploads_dir):
        too_big = b"PK\x03\x04" + b"x" * coordinator.max_upload_bytes
        with pytest.raises(PayloadTooLargeError):
            await coordinator.complete_upload("a1b2", BytesPayload(too_big), "Book.epub")
        assert stored_files(uploads_dir) == []
        assert store.get("a1b2") is None

    async def test_payload_at_ceiling_is_accepted(self, coordinator):
        exact = b"PK\x03\x04" + b"x" * (coordinator.max_upload_bytes - 4)
        entry = await coordinator.complete_upload("a1b2", BytesPayload(exact), "Book.epub")
        assert entry.size_bytes == coordinator.max_upload_bytes

    async def test_rejects_empty_payload(self, coordinator, uploads_dir):
        with pytest.raises(EmptyPayloadError):
            await coordinator.complete_upload("a1b2", BytesPayload(b""), "Book.epub")
        assert stored_files(uploads_dir) == []

    async def test_storage_failure(self, coordinator, tmp_path):
        coordinator.uploads_dir = tmp_path / "missing"
        with pytest.raises(StorageFailureError):
            await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")


class TestStatusAndFetch:
    async def test_status_refreshes_last_accessed(self, coordinator, clock):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        clock.advance(20)
        status = coordinator.check_status("a1b2")
        assert status.last_accessed_at == clock()
        assert status.created_at == entry.created_at

    async def test_fetch_refreshes_last_accessed(self, coordinator, store, clock):
        await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        clock.advance(20)
        coordinator.fetch("a1b2", "Book.epub").stream.close()
        assert store.get("a1b2").last_accessed_at == clock()

    def test_status_malformed_key(self, coordinator):
        with pytest.raises(InvalidKeyError):
            coordinator.check_status("nope!")

    def test_fetch_malformed_key(self, coordinator):
        with pytest.raises(InvalidKeyError):
            coordinator.fetch("", "Book.epub")

    def test_fetch_unknown_key(self, coordinator):
        with pytest.raises(TransferNotFoundError):
            coordinator.fetch("zzzz", "Book.epub")

    async def test_fetch_after_file_vanished(self, coordinator):
        entry = await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        Path(entry.storage_path).unlink()
        with pytest.raises(TransferNotFoundError):
            coordinator.fetch("a1b2", "Book.epub")

    async def test_open_download_survives_eviction(self, coordinator, sweeper, clock):
        await coordinator.complete_upload("a1b2", BytesPayload(EPUB_BYTES), "Book.epub")
        payload = coordinator.fetch("a1b2", "Book.epub")
        clock.advance(31)
        assert len(sweeper.sweep()) == 1
        assert b"".join(payload.iter_chunks()) == EPUB_BYTES
        with pytest.raises(TransferNotFoundError):
            coordinator.check_status("a1b2")

    async def test_shutdown_flushes_all_files(self, coordinator, uploads_dir, store):
        await coordinator.complete_upload("aaaa", BytesPayload(EPUB_BYTES), "One.epub")
        await coordinator.complete_upload("bbbb", BytesPayload(EPUB_BYTES), "Two.epub")
        assert coordinator.shutdown() == 2
        assert stored_files(uploads_dir) == []
        assert len(store) == 0
