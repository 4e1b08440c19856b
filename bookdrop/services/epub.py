"""Filename sanitizing and EPUB container sniffing."""

from __future__ import annotations

import re
from pathlib import PureWindowsPath
from typing import Optional

ZIP_LOCAL_HEADER = b"PK\x03\x04"
FALLBACK_NAME = "book"

_DASHES = {"–", "—"}
_KEEP = {".", "-", "_", " "}
_SPACES = re.compile(r"\s+")
_DOTS = re.compile(r"\.+")


def sanitize_filename(raw_name: Optional[str]) -> str:
    """Reduce an uploaded filename to a safe, ASCII display name."""
    # PureWindowsPath splits on both separators; some browsers send client paths
    base = PureWindowsPath(raw_name or "").name

    chars = []
    for ch in base:
        if ch.isascii() and (ch.isalnum() or ch in _KEEP):
            chars.append(ch)
        elif ch in _DASHES:
            chars.append("-")
        elif ch.isspace():
            chars.append(" ")

    name = _SPACES.sub(" ", "".join(chars))
    name = _DOTS.sub(".", name).strip()
    if not name or name == ".":
        return FALLBACK_NAME
    return name


def ensure_epub_suffix(name: str) -> str:
    if name.lower().endswith(".epub"):
        return name
    return f"{name}.epub"


def looks_like_epub(head: bytes) -> bool:
    """Return True for ZIP containers, the format every EPUB uses.

    A strict EPUB also stores an uncompressed ``mimetype`` member first;
    that is not required here since many tools do not write it.
    """
    return head.startswith(ZIP_LOCAL_HEADER)
