import uvicorn

from bookdrop.core.config import get_settings
from bookdrop.core.logging import setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings.logging.level)
    # uvicorn turns SIGINT/SIGTERM into lifespan shutdown, which flushes every stored file
    uvicorn.run(
        "bookdrop.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
