import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import create_client

from .auth import resolve_user_id
from .config import Config
from .models import Book, BookCreate


logger = logging.getLogger(__name__)

# Never taken from an update payload
PROTECTED_FIELDS = ("id", "created_at", "user_id")


class StorageError(RuntimeError):
    """The persistence backend failed for a reason other than a missing row."""


class BookNotFoundError(LookupError):
    def __init__(self, book_id: str):
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class BookRepository:
    """CRUD contract over the table of book records.

    ``list_books`` returns newest first. ``get_book``, ``update_book`` and
    ``delete_book`` raise ``BookNotFoundError`` for unknown ids; every
    other backend failure surfaces as ``StorageError``.
    """

    def list_books(self) -> List[Book]:
        raise NotImplementedError

    def get_book(self, book_id: str) -> Book:
        raise NotImplementedError

    def create_book(self, req: BookCreate) -> Book:
        raise NotImplementedError

    def update_book(self, book_id: str, changes: Dict[str, Any]) -> Book:
        raise NotImplementedError

    def delete_book(self, book_id: str) -> Book:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class InMemoryBookRepository(BookRepository):
    """Books held in process. Used for local runs and the test suite.

    With ``user_id`` set, new books are stamped with it and only that
    user's books are visible.
    """

    def __init__(self, books: Optional[List[Book]] = None, user_id: Optional[str] = None):
        self._books: List[Book] = list(books or [])
        self.user_id = user_id

    def _visible(self) -> List[Book]:
        if self.user_id is None:
            return list(self._books)
        return [b for b in self._books if b.user_id == self.user_id]

    def list_books(self) -> List[Book]:
        return sorted(self._visible(), key=lambda b: b.created_at, reverse=True)

    def get_book(self, book_id: str) -> Book:
        book = next((b for b in self._visible() if b.id == book_id), None)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def create_book(self, req: BookCreate) -> Book:
        book = Book(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            user_id=self.user_id,
            **req.model_dump(),
        )
        self._books.append(book)
        return book

    def update_book(self, book_id: str, changes: Dict[str, Any]) -> Book:
        current = self.get_book(book_id)
        changes = {k: v for k, v in changes.items() if k not in PROTECTED_FIELDS}
        updated = Book.model_validate({**current.model_dump(), **changes})
        self._books = [updated if b.id == book_id else b for b in self._books]
        return updated

    def delete_book(self, book_id: str) -> Book:
        book = self.get_book(book_id)
        self._books = [b for b in self._books if b.id != book_id]
        return book


class SupabaseBookRepository(BookRepository):
    """Books stored in a Supabase (PostgREST) table.

    With ``user_id`` set, inserts carry it and every query is filtered on
    ``user_id``, as the table's row level security expects.
    """

    def __init__(self, client: Any, table: str = "books", user_id: Optional[str] = None):
        self.client = client
        self.table = table
        self.user_id = user_id

    def _query(self):
        return self.client.table(self.table)

    def _owned(self, builder):
        if self.user_id is None:
            return builder
        return builder.eq("user_id", self.user_id)

    def _run(self, action: str, builder) -> List[Dict[str, Any]]:
        try:
            response = builder.execute()
        except Exception as exc:
            logger.error("Supabase %s failed: %s", action, exc)
            raise StorageError(str(exc)) from exc
        return response.data or []

    def list_books(self) -> List[Book]:
        rows = self._run(
            "list", self._owned(self._query().select("*")).order("created_at", desc=True)
        )
        return [Book.model_validate(row) for row in rows]

    def get_book(self, book_id: str) -> Book:
        rows = self._run(
            "get", self._owned(self._query().select("*").eq("id", book_id)).limit(1)
        )
        if not rows:
            raise BookNotFoundError(book_id)
        return Book.model_validate(rows[0])

    def create_book(self, req: BookCreate) -> Book:
        row = req.model_dump(mode="json")
        if self.user_id is not None:
            row["user_id"] = self.user_id
        rows = self._run("insert", self._query().insert(row))
        if not rows:
            raise StorageError("Insert returned no row")
        return Book.model_validate(rows[0])

    def update_book(self, book_id: str, changes: Dict[str, Any]) -> Book:
        payload = {
            k: (v.isoformat() if hasattr(v, "isoformat") else v)
            for k, v in changes.items()
            if k not in PROTECTED_FIELDS
        }
        if not payload:
            return self.get_book(book_id)
        rows = self._run(
            "update", self._owned(self._query().update(payload).eq("id", book_id))
        )
        if not rows:
            raise BookNotFoundError(book_id)
        return Book.model_validate(rows[0])

    def delete_book(self, book_id: str) -> Book:
        rows = self._run("delete", self._owned(self._query().delete().eq("id", book_id)))
        if not rows:
            raise BookNotFoundError(book_id)
        return Book.model_validate(rows[0])

    def ping(self) -> bool:
        try:
            self._query().select("id").limit(1).execute()
        except Exception as exc:
            logger.warning("Supabase ping failed: %s", exc)
            return False
        return True


def create_supabase_client(config: Config):
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        raise ValueError("Supabase credentials missing. Set SUPABASE_URL and SUPABASE_KEY.")
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


def build_repository(config: Config, client: Any = None) -> BookRepository:
    """Pick the persistence backend named by ``config.STORAGE_BACKEND``.

    Books are scoped to the owner from ``auth.resolve_user_id``.
    """
    backend = (config.STORAGE_BACKEND or "memory").lower()
    if backend == "memory":
        return InMemoryBookRepository(user_id=resolve_user_id(config))
    if backend == "supabase":
        client = client or create_supabase_client(config)
        return SupabaseBookRepository(
            client,
            table=config.BOOKS_TABLE,
            user_id=resolve_user_id(config, client),
        )
    raise ValueError(f"Unknown storage backend: {config.STORAGE_BACKEND!r}")
