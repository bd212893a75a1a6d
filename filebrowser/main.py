import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging, load_settings
from .errors import FileBrowserError
from .routes.files import FilesRouter

VERSION = "1.0.0"

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API for *settings* (read from the environment when omitted)."""
    settings = settings or load_settings()
    files_router = FilesRouter(version=VERSION, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        # The storage root is never created here; a missing root is a deployment error.
        files_router.resolver.ensure_root()
        log.info("Serving files from the configured storage root (version %s)", VERSION)
        yield

    app = FastAPI(title="File Browser API", version=VERSION, lifespan=lifespan, root_path=settings.root_path)
    app.add_middleware(CORSMiddleware, allow_origins=[], allow_credentials=False, allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(FileBrowserError)
    async def file_browser_error_handler(request: Request, exc: FileBrowserError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.kind.value})

    app.include_router(files_router.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
