import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import analytics_router, books_router, covers_router, recommendations_router
from .api.responses import ApiError, error_response, timestamp
from .config import Config
from .covers import CoverStorage, LocalCoverStorage, build_cover_storage
from .storage import (
    BookNotFoundError,
    BookRepository,
    StorageError,
    build_repository,
    create_supabase_client,
)


logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = [
    "GET /health",
    "GET /api/v1/books",
    "GET /api/v1/books/stats",
    "GET /api/v1/books/{id}",
    "POST /api/v1/books",
    "PUT /api/v1/books/{id}",
    "DELETE /api/v1/books/{id}",
    "POST /api/v1/covers",
    "GET /api/v1/analytics/overview",
    "GET /api/v1/analytics/dashboard",
    "POST /api/v1/recommendations",
    "POST /api/v1/recommendations/insights",
    "POST /api/v1/recommendations/analyze",
]


def _validation_summary(exc: RequestValidationError) -> str:
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        fields.append(f"{name}: {err.get('msg')}")
    return "; ".join(fields)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error(request: Request, exc: ApiError):
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.error, exc.message)
        return error_response(exc.status_code, exc.error, exc.message)

    @app.exception_handler(BookNotFoundError)
    async def book_not_found(request: Request, exc: BookNotFoundError):
        return error_response(404, "Book not found")

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return error_response(400, "Missing or invalid fields", _validation_summary(exc))

    @app.exception_handler(ValueError)
    async def value_error(request: Request, exc: ValueError):
        return error_response(400, "Invalid request", str(exc))

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return error_response(500, "Database error", str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                404,
                f"Route not found - {request.url.path}",
                available_routes=AVAILABLE_ROUTES,
                path=request.url.path,
                method=request.method,
            )
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Server Error", str(exc))


def create_app(
    config: Optional[Config] = None,
    repository: Optional[BookRepository] = None,
    cover_storage: Optional[CoverStorage] = None,
) -> FastAPI:
    """Build the API.

    The persistence backend and cover storage come from ``config`` unless
    they are passed in explicitly.
    """
    config = config or Config()
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    app = FastAPI(
        title="Digital Bookshelf API",
        description=(
            "Personal book tracking: books, reading progress, analytics "
            "and AI reading recommendations."
        ),
        version=__version__,
    )
    app.state.config = config
    client = None
    if (repository is None or cover_storage is None) and config.STORAGE_BACKEND.lower() == "supabase":
        # repository and cover storage share one auth session
        client = create_supabase_client(config)
    app.state.repository = repository or build_repository(config, client)
    app.state.cover_storage = cover_storage or build_cover_storage(config, client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/")
    def root():
        return {
            "message": "Digital Bookshelf Backend API",
            "version": "v1",
            "timestamp": timestamp(),
        }

    @app.get("/health")
    def health_check():
        connected = app.state.repository.ping()
        return {
            "status": "OK",
            "database": "Connected" if connected else "Disconnected",
            "timestamp": timestamp(),
            "port": config.PORT,
        }

    app.include_router(books_router)
    app.include_router(analytics_router)
    app.include_router(covers_router)
    app.include_router(recommendations_router)

    covers = app.state.cover_storage
    if isinstance(covers, LocalCoverStorage):
        Path(covers.directory).mkdir(parents=True, exist_ok=True)
        app.mount(covers.base_url, StaticFiles(directory=str(covers.directory)), name="covers")

    logger.info(
        "Bookshelf API ready (storage=%s, covers=%s)",
        type(app.state.repository).__name__,
        type(covers).__name__,
    )
    return app
