"""Short-lived, key-addressed EPUB relay server."""

__version__ = "1.0.0"
