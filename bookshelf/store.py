"""
In-memory state for a running bookshelf client.

``BookStore`` holds the user's collection exactly as the persistence
layer last reported it, together with the transient UI state that the
views render from: search text, the active category and status
filters, the display mode and the add/edit/delete modals.

The store never talks to the network. Callers perform the round trip
first and only then mirror its outcome here (see ``shelf.Shelf``), so
the collection stays consistent with the remote table without a full
reload. Derived views (``filtered_books()``, ``categories()``) are
recomputed on every call; a personal library is small enough that a
linear scan per render is fine.

A store is an ordinary object: whoever owns the application creates
one and hands it to the code that needs it.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .models import Book, ViewMode


class BookStore:
    """Book collection plus filter, display and modal state."""

    def __init__(self, books: Optional[Iterable[Book]] = None) -> None:
        self.books: List[Book] = list(books or [])
        self.loading = False
        self.adding_book = False

        self.search_query = ""
        self.selected_category: Optional[str] = None
        self.selected_reading_status: Optional[str] = None
        self.view_mode: ViewMode = "grid"

        self.show_add_modal = False
        self.show_edit_modal = False
        self.show_delete_modal = False
        self.book_to_edit: Optional[Book] = None
        self.book_to_delete: Optional[Book] = None

    # ------------------------------------------------------------------
    # Collection

    def replace_all(self, books: Iterable[Book]) -> None:
        self.books = list(books)

    def add(self, book: Book) -> None:
        """Prepend ``book``. The caller decides the ordering; no re-sort."""
        self.books = [book] + self.books

    def update(self, book_id: str, fields: Dict[str, Any]) -> bool:
        """Merge ``fields`` into the book with ``book_id``.

        The merged record goes back through ``Book`` validation so the
        status/progress rule still holds. ``id`` cannot be changed and is
        ignored if present. Returns ``False`` (and changes nothing) when
        no book has that id.
        """
        for index, book in enumerate(self.books):
            if book.id == book_id:
                changes = {k: v for k, v in fields.items() if k != "id"}
                merged = Book.model_validate({**book.model_dump(), **changes})
                books = list(self.books)
                books[index] = merged
                self.books = books
                return True
        return False

    def remove(self, book_id: str) -> bool:
        """Drop the book with ``book_id``; removing a missing id is a no-op."""
        remaining = [b for b in self.books if b.id != book_id]
        removed = len(remaining) != len(self.books)
        self.books = remaining
        return removed

    def get(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.books if b.id == book_id), None)

    # ------------------------------------------------------------------
    # Filters and display

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_category_filter(self, category: Optional[str]) -> None:
        self.selected_category = category

    def set_status_filter(self, status: Optional[str]) -> None:
        self.selected_reading_status = status

    def set_view_mode(self, mode: ViewMode) -> None:
        self.view_mode = mode

    def set_loading(self, loading: bool) -> None:
        self.loading = loading

    def set_adding_book(self, adding: bool) -> None:
        self.adding_book = adding

    def _matches(self, book: Book, query: str) -> bool:
        if self.selected_category is not None and book.category != self.selected_category:
            return False
        if query and query not in book.title.lower() and query not in book.author.lower():
            return False
        if (
            self.selected_reading_status is not None
            and book.reading_status != self.selected_reading_status
        ):
            return False
        return True

    def filtered_books(self) -> List[Book]:
        """Books passing the category, search and status filters, in order."""
        query = self.search_query.lower()
        return [b for b in self.books if self._matches(b, query)]

    def categories(self) -> List[str]:
        """Distinct categories in the collection, first occurrence first."""
        return list(dict.fromkeys(b.category for b in self.books))

    # ------------------------------------------------------------------
    # Modals

    def open_add_modal(self) -> None:
        self.show_add_modal = True

    def close_add_modal(self) -> None:
        self.show_add_modal = False

    def open_edit_modal(self, book: Book) -> None:
        self.show_edit_modal = True
        self.book_to_edit = book

    def close_edit_modal(self) -> None:
        self.show_edit_modal = False
        self.book_to_edit = None

    def open_delete_modal(self, book: Book) -> None:
        self.show_delete_modal = True
        self.book_to_delete = book

    def close_delete_modal(self) -> None:
        self.show_delete_modal = False
        self.book_to_delete = None
