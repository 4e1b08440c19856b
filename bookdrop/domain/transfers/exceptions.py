"""Transfer domain specific exceptions."""


class TransferError(Exception):
    """Base class for transfer related domain errors."""


class InvalidKeyError(TransferError):
    """Raised when a supplied key is malformed."""


class KeyInUseError(InvalidKeyError):
    """Raised when uploading under a key that already holds a live entry."""


class TransferNotFoundError(TransferError):
    """Raised when no live entry matches the key (or the requested name)."""


class PayloadTooLargeError(TransferError):
    """Raised when the uploaded payload exceeds the configured ceiling."""


class EmptyPayloadError(TransferError):
    """Raised when the uploaded payload contains no bytes."""


class StorageFailureError(TransferError):
    """Raised when the payload cannot be written to or read from disk."""


class ConversionFailureError(TransferError):
    """Raised by the converter; the coordinator degrades to the original payload."""
