import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ..stats import analytics_overview, render_dashboard
from ..storage import BookRepository, StorageError
from .responses import ApiError, envelope, get_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/overview")
def overview(repo: BookRepository = Depends(get_repository)):
    try:
        books = repo.list_books()
    except StorageError as exc:
        raise ApiError(500, "Failed to calculate analytics", str(exc))
    return envelope(analytics_overview(books))


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(repo: BookRepository = Depends(get_repository)):
    try:
        books = repo.list_books()
    except StorageError as exc:
        logger.error("Dashboard failed: %s", exc)
        return HTMLResponse(
            "<h1>Error</h1><p>Failed to load analytics dashboard.</p>",
            status_code=500,
        )
    return HTMLResponse(render_dashboard(books))
