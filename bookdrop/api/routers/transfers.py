"""Routes for minting keys, uploading books and polling transfer status."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from bookdrop.api.deps import get_coordinator
from bookdrop.domain.transfers import (
    EmptyPayloadError,
    InvalidKeyError,
    KeyInUseError,
    PayloadTooLargeError,
    StorageFailureError,
    TransferCoordinator,
    TransferNotFoundError,
)
from bookdrop.schemas import KeyResponse, StatusResponse, UploadResponse
from bookdrop.services import ensure_epub_suffix, looks_like_epub, sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter()

SNIFF_BYTES = 512


@router.post("/generate", response_model=KeyResponse, summary="Mint a transfer key")
async def generate_key(coordinator: TransferCoordinator = Depends(get_coordinator)) -> KeyResponse:
    return KeyResponse(key=coordinator.begin_transfer())


@router.post("/upload", response_model=UploadResponse, summary="Upload a book under a key")
async def upload_book(
    key: str = Form(...),
    file: UploadFile = File(...),
    kepubify: Optional[str] = Form(None),
    coordinator: TransferCoordinator = Depends(get_coordinator),
) -> UploadResponse:
    try:
        head = await file.read(SNIFF_BYTES)
        if not head:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot read file")
        if not looks_like_epub(head):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only EPUB files are allowed")
        await file.seek(0)

        entry = await coordinator.complete_upload(
            key,
            file,
            ensure_epub_suffix(sanitize_filename(file.filename)),
            request_conversion=kepubify == "on",
        )
    except KeyInUseError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Key already in use") from exc
    except InvalidKeyError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid key") from exc
    except PayloadTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large") from exc
    except EmptyPayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded") from exc
    except StorageFailureError as exc:
        logger.error("Failed to store upload for key %s: %s", key, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save file") from exc
    finally:
        await file.close()

    return UploadResponse(filename=entry.display_name, key=entry.key, converted=entry.converted)


@router.get(
    "/status/{key}",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    summary="Poll whether a key holds a file",
)
async def transfer_status(key: str, coordinator: TransferCoordinator = Depends(get_coordinator)) -> StatusResponse:
    try:
        entry = coordinator.check_status(key)
    except InvalidKeyError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid key") from exc
    except TransferNotFoundError as exc:
        return StatusResponse(ready=False, error=str(exc))
    return StatusResponse(ready=True, filename=entry.display_name, converted=entry.converted)
