from fastapi import APIRouter

from bookdrop.api.routers import downloads, transfers


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(transfers.router, tags=["transfers"])
    return router


def create_download_router() -> APIRouter:
    """Catch-all ``/{filename}`` route; include after every other route."""
    return downloads.router


__all__ = [
    "create_api_router",
    "create_download_router",
]
