"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from bookdrop.core.config import Settings, get_settings
from bookdrop.domain.transfers import (
    ExpirationSweeper,
    InMemoryEntryStore,
    KeyGenerator,
    TransferCoordinator,
    utc_now,
)
from bookdrop.services import KepubConverter


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    coordinator: TransferCoordinator

    @classmethod
    def from_settings(cls, settings: Settings, *, converter=None, clock=utc_now) -> "ApplicationContainer":
        store = InMemoryEntryStore(clock=clock)
        sweeper = ExpirationSweeper(
            store,
            idle_limit=settings.idle_timeout,
            max_lifetime=settings.max_age,
            interval=settings.sweep_interval,
            clock=clock,
        )
        if converter is None:
            converter = KepubConverter(
                command=settings.conversion.command,
                timeout=settings.conversion.timeout_seconds,
            )
        coordinator = TransferCoordinator(
            store=store,
            keys=KeyGenerator(settings.transfer.key_length),
            sweeper=sweeper,
            uploads_dir=_resolve_path(settings.uploads_dir),
            converter=converter,
            max_upload_bytes=settings.max_upload_bytes,
            chunk_size=settings.transfer.chunk_size,
            clock=clock,
        )
        return cls(settings=settings, coordinator=coordinator)

    @property
    def sweeper(self) -> ExpirationSweeper:
        return self.coordinator.sweeper

    def init_infrastructure(self) -> None:
        """Ensure the uploads directory exists."""
        self.coordinator.ensure_storage()


def _resolve_path(path: Path) -> Path:
    return path if path.is_absolute() else path.resolve()


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer.from_settings(get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
