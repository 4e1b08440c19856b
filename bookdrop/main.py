import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from bookdrop import __version__
from bookdrop.api import create_api_router, create_download_router
from bookdrop.core.container import ApplicationContainer, get_container

logger = logging.getLogger(__name__)


def is_kobo(request: Request) -> bool:
    return "Kobo" in request.headers.get("user-agent", "")


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    container.init_infrastructure()
    container.sweeper.start()
    logger.info("Bookdrop %s ready, storing uploads in %s", __version__, container.coordinator.uploads_dir)
    try:
        yield
    finally:
        logger.info("Shutting down...")
        await container.sweeper.stop()
        container.coordinator.shutdown()


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or get_container()
    app = FastAPI(
        title=container.settings.project_name,
        description="Send books from any browser to an e-reader with a short key",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    # appended as ?v= to static asset links for cache busting
    app.state.static_version = __version__

    templates = Jinja2Templates(directory=str(container.settings.template_dir))
    static_dir = container.settings.static_dir
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    app.include_router(create_api_router())

    @app.get("/", include_in_schema=False)
    async def homepage(request: Request):
        if is_kobo(request):
            return await receive_page(request)
        return RedirectResponse(request.url_for("send_page"), status_code=302)

    @app.get("/send", response_class=HTMLResponse, name="send_page")
    async def send_page(request: Request):
        return templates.TemplateResponse(
            request,
            "upload.html",
            {
                "static_version": app.state.static_version,
                "conversion_available": container.coordinator.conversion_available,
                "key_length": container.settings.transfer.key_length,
            },
        )

    @app.get("/receive", response_class=HTMLResponse, name="receive_page")
    async def receive_page(request: Request):
        return templates.TemplateResponse(
            request,
            "download.html",
            {"static_version": app.state.static_version},
        )

    # must stay last: matches any single path segment
    app.include_router(create_download_router())

    return app
