"""Key-addressed transfer domain exports."""

from .exceptions import (
    ConversionFailureError,
    EmptyPayloadError,
    InvalidKeyError,
    KeyInUseError,
    PayloadTooLargeError,
    StorageFailureError,
    TransferError,
    TransferNotFoundError,
)
from .keys import KeyGenerator
from .models import TransferEntry, TransferPayload, utc_now
from .service import TransferCoordinator
from .store import EntryStore, InMemoryEntryStore
from .sweeper import ExpirationSweeper

__all__ = [
    "ConversionFailureError",
    "EmptyPayloadError",
    "EntryStore",
    "ExpirationSweeper",
    "InMemoryEntryStore",
    "InvalidKeyError",
    "KeyGenerator",
    "KeyInUseError",
    "PayloadTooLargeError",
    "StorageFailureError",
    "TransferCoordinator",
    "TransferEntry",
    "TransferError",
    "TransferNotFoundError",
    "TransferPayload",
    "utc_now",
]
