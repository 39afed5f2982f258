"""
Controller between the views and the persistence layer.

``Shelf`` does what the view layer of the web client does: it validates
form input locally, makes one round trip to the backend, and only when
that succeeds mirrors the outcome into its ``BookStore``. A failed call
leaves the store untouched and puts a message in ``error`` for the UI to
show. The backend can be any ``BookRepository``, including the remote
``BookshelfClient``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional, Union

from .models import Book, BookCreate, BookUpdate, reading_fields
from .storage import BookNotFoundError, BookRepository, StorageError
from .store import BookStore


logger = logging.getLogger(__name__)


class Shelf:
    def __init__(self, backend: BookRepository, store: Optional[BookStore] = None):
        self.backend = backend
        self.store = store or BookStore()
        self.error: Optional[str] = None

    def _fail(self, action: str, exc: Exception) -> None:
        if isinstance(exc, BookNotFoundError):
            self.error = "Book not found"
        else:
            self.error = f"Failed to {action}: {exc}"
        logger.error("Could not %s: %s", action, exc)

    def load(self) -> bool:
        self.error = None
        self.store.set_loading(True)
        try:
            books = self.backend.list_books()
        except StorageError as exc:
            self._fail("load books", exc)
            return False
        finally:
            self.store.set_loading(False)
        self.store.replace_all(books)
        return True

    def add_book(self, fields: Union[BookCreate, Dict[str, Any]]) -> Optional[Book]:
        """Create a book and prepend it to the store.

        Invalid input raises ``pydantic.ValidationError`` before anything is
        sent. Returns ``None`` when a previous add is still in flight or the
        backend call fails.
        """
        req = fields if isinstance(fields, BookCreate) else BookCreate.model_validate(fields)
        if self.store.adding_book:
            self.error = "A book is already being added"
            return None

        self.error = None
        self.store.set_adding_book(True)
        try:
            book = self.backend.create_book(req)
        except (StorageError, ValueError) as exc:
            self._fail("add book", exc)
            return None
        finally:
            self.store.set_adding_book(False)

        self.store.add(book)
        self.store.close_add_modal()
        return book

    def edit_book(self, book_id: str, fields: Union[BookUpdate, Dict[str, Any]]) -> Optional[Book]:
        req = fields if isinstance(fields, BookUpdate) else BookUpdate.model_validate(fields)
        self.error = None
        try:
            book = self.backend.update_book(book_id, req.changes())
        except (BookNotFoundError, StorageError, ValueError) as exc:
            self._fail("update book", exc)
            return None

        if not self.store.update(book_id, book.model_dump()):
            logger.warning("Updated book %s was not in the local store", book_id)
        self.store.close_edit_modal()
        return book

    def change_status(
        self,
        book_id: str,
        status: str,
        progress: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Optional[Book]:
        current = self.store.get(book_id)
        started = current.date_started if current is not None else None
        return self.edit_book(book_id, reading_fields(status, progress, started, today))

    def delete_book(self, book_id: str) -> bool:
        self.error = None
        try:
            self.backend.delete_book(book_id)
        except (BookNotFoundError, StorageError) as exc:
            self._fail("delete book", exc)
            return False

        self.store.remove(book_id)
        self.store.close_delete_modal()
        return True
