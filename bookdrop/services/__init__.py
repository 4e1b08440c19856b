from .converter import KepubConverter
from .epub import ensure_epub_suffix, looks_like_epub, sanitize_filename

__all__ = [
    "KepubConverter",
    "ensure_epub_suffix",
    "looks_like_epub",
    "sanitize_filename",
]
