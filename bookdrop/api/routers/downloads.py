"""Download route serving a finished transfer under its display name."""
from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from bookdrop.api.deps import get_coordinator
from bookdrop.domain.transfers import (
    InvalidKeyError,
    StorageFailureError,
    TransferCoordinator,
    TransferNotFoundError,
)

router = APIRouter()

EPUB_MEDIA_TYPE = "application/epub+zip"


def _content_disposition(filename: str) -> str:
    return f"attachment; filename=\"{filename}\"; filename*=UTF-8''{quote(filename)}"


@router.get("/{filename}", name="download_book", summary="Download the book stored under a key")
async def download_book(
    filename: str,
    key: str = Query(""),
    coordinator: TransferCoordinator = Depends(get_coordinator),
) -> StreamingResponse:
    try:
        payload = coordinator.fetch(key, filename)
    except (InvalidKeyError, TransferNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found") from exc
    except StorageFailureError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to read file") from exc

    entry = payload.entry
    return StreamingResponse(
        payload.iter_chunks(),
        media_type=EPUB_MEDIA_TYPE,
        headers={
            "Content-Disposition": _content_disposition(entry.display_name),
            "Content-Length": str(entry.size_bytes),
        },
    )
