"""Pydantic schemas used by the HTTP layer."""
from typing import Optional

from pydantic import BaseModel


class KeyResponse(BaseModel):
    key: str


class UploadResponse(BaseModel):
    success: bool = True
    filename: str
    key: str
    converted: bool = False


class StatusResponse(BaseModel):
    ready: bool
    filename: Optional[str] = None
    converted: Optional[bool] = None
    error: Optional[str] = None
