"""
AI endpoints under /api/v1/recommendations.

All three endpoints always answer with a well-formed payload: when the
language model cannot be used the fixed fallbacks in ``ai`` are served.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from .. import ai, openlibrary
from ..models import BookAnalysis, BookAnalysisRequest, RecommendationRequest
from ..storage import BookRepository, StorageError
from .responses import ApiError, envelope, get_config, get_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/recommendations", tags=["recommendations"])


def _history(req: Optional[RecommendationRequest], repo: BookRepository):
    """Books sent by the client, or the stored library when none were sent."""
    if req is not None and req.books is not None:
        return req.books
    try:
        return repo.list_books()
    except StorageError as exc:
        raise ApiError(500, "Failed to fetch books", str(exc))


@router.post("")
def recommend(
    req: Optional[RecommendationRequest] = Body(default=None),
    repo: BookRepository = Depends(get_repository),
    config=Depends(get_config),
):
    books = _history(req, repo)
    result = ai.recommend_books(
        books,
        limit=config.RECOMMENDATION_COUNT,
        lookup_cover=openlibrary.find_cover_url,
    )
    logger.info("Returning %d recommendations", len(result.recommendations))
    return envelope(result)


@router.post("/insights")
def insights(
    req: Optional[RecommendationRequest] = Body(default=None),
    repo: BookRepository = Depends(get_repository),
):
    return envelope(ai.analyze_reading_patterns(_history(req, repo)))


@router.post("/analyze")
def analyze(req: BookAnalysisRequest):
    analysis = ai.analyze_book(req.title, req.author)
    return envelope(BookAnalysis(title=req.title, author=req.author, analysis=analysis))
