"""
Book endpoints under /api/v1/books:

- GET    /books          : all books, newest first
- GET    /books/stats    : totals and top categories
- GET    /books/{id}     : one book
- POST   /books          : create a book
- PUT    /books/{id}     : partial update
- DELETE /books/{id}     : delete a book (and its uploaded cover)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..covers import CoverStorage
from ..models import BookCreate, BookUpdate
from ..stats import book_stats
from ..storage import BookRepository, StorageError
from .responses import ApiError, envelope, get_cover_storage, get_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/books", tags=["books"])


@router.get("")
def list_books(repo: BookRepository = Depends(get_repository)):
    try:
        books = repo.list_books()
    except StorageError as exc:
        raise ApiError(500, "Failed to fetch books", str(exc))
    logger.info("Found %d books", len(books))
    return envelope(books, count=len(books))


@router.get("/stats")
def get_stats(repo: BookRepository = Depends(get_repository)):
    try:
        books = repo.list_books()
    except StorageError as exc:
        raise ApiError(500, "Failed to calculate statistics", str(exc))
    return envelope(book_stats(books))


@router.get("/{book_id}")
def get_book(book_id: str, repo: BookRepository = Depends(get_repository)):
    try:
        book = repo.get_book(book_id)
    except StorageError as exc:
        raise ApiError(500, "Failed to fetch book", str(exc))
    return envelope(book)


@router.post("", status_code=201)
def create_book(req: BookCreate, repo: BookRepository = Depends(get_repository)):
    logger.info("Creating book %r by %r", req.title, req.author)
    try:
        book = repo.create_book(req)
    except StorageError as exc:
        raise ApiError(500, "Failed to create book", str(exc))
    logger.info("Created book %s", book.id)
    return envelope(book, message="Book created successfully", status_code=201)


@router.put("/{book_id}")
def update_book(book_id: str, req: BookUpdate, repo: BookRepository = Depends(get_repository)):
    logger.info("Updating book %s", book_id)
    try:
        book = repo.update_book(book_id, req.changes(mode="json"))
    except StorageError as exc:
        raise ApiError(500, "Failed to update book", str(exc))
    return envelope(book, message="Book updated successfully")


@router.delete("/{book_id}")
def delete_book(
    book_id: str,
    repo: BookRepository = Depends(get_repository),
    covers: CoverStorage = Depends(get_cover_storage),
):
    logger.info("Deleting book %s", book_id)
    try:
        book = repo.delete_book(book_id)
    except StorageError as exc:
        raise ApiError(500, "Failed to delete book", str(exc))

    if covers.owns(book.cover_url):
        try:
            covers.delete(book.cover_url)
        except Exception as exc:
            # the row is gone already; an orphaned image is only logged
            logger.warning("Could not remove cover %s: %s", book.cover_url, exc)
    return envelope(message="Book deleted successfully")
