"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from confdrop import __version__
from confdrop.config import Settings, settings as default_settings
from confdrop.exceptions import ConfdropError, StorageError
from confdrop.rate_limit import configure_limiter, limiter, rate_limit_exceeded_handler
from confdrop.services.auth import AdminAuthService, SecretVerifier, SessionStore
from confdrop.services.download import DownloadService
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry
from confdrop.services.upload import UploadService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create storage locations on startup. Any failure aborts startup."""
    cfg: Settings = app.state.settings
    app.state.storage.initialize()
    await app.state.registry.initialize()
    logger.info(f"Registry: {cfg.DATA_FILE.resolve()}")
    logger.info(f"Uploads:  {cfg.UPLOAD_DIR.resolve()}")
    logger.info("Admin:    /admin")

    yield

    logger.info("Shutting down")


async def confdrop_error_handler(request: Request, exc: ConfdropError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors() if err.get("loc"))
    message = f"Invalid request: {fields}." if fields else "Invalid request."
    return JSONResponse(status_code=400, content={"success": False, "message": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error."},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="Confdrop API",
        version=__version__,
        description="Distribution of expiring configuration bundles.",
        lifespan=lifespan,
    )

    registry = FileRegistry(settings.DATA_FILE)
    storage = FileStorageService(settings.UPLOAD_DIR)
    app.state.settings = settings
    app.state.registry = registry
    app.state.storage = storage
    app.state.auth = AdminAuthService(
        SecretVerifier(settings.ADMIN_HASH),
        SessionStore(),
        code_length=settings.ADMIN_CODE_LENGTH,
    )
    app.state.uploads = UploadService(
        registry,
        storage,
        allowed_extensions=settings.allowed_extensions,
        max_bytes=settings.MAX_UPLOAD_BYTES,
    )
    app.state.downloads = DownloadService(registry, storage)
    configure_limiter(settings)
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ConfdropError, confdrop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/api/health")
    async def health_check():
        """Verify the registry can be read."""
        try:
            await registry.all()
            return {"status": "ok", "registry": "readable"}
        except StorageError as e:
            return {"status": "error", "registry": e.message}

    # Register routers
    from confdrop.routes.admin import router as admin_router
    from confdrop.routes.pages import router as pages_router
    from confdrop.routes.public import router as public_router
    app.include_router(public_router)
    app.include_router(admin_router)
    app.include_router(pages_router)

    if settings.PUBLIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=settings.PUBLIC_DIR), name="static")

    return app


app = create_app()
