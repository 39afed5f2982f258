"""HTTP client for the bookshelf REST API."""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from .models import Book, BookCreate, BookStats, BookSummary, BookUpdate, RecommendationResponse
from .storage import BookNotFoundError, BookRepository, StorageError

logger = logging.getLogger(__name__)

BOOKS_PATH = "/api/v1/books"


class BookshelfClient(BookRepository):
    """Remote implementation of the ``BookRepository`` contract.

    Error envelopes are mapped back to the exceptions the in-process
    repositories raise, so callers such as ``shelf.Shelf`` handle both the
    same way.
    """

    def __init__(self, base_url: str = "http://localhost:3001", http: Optional[httpx.Client] = None):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the API
            http: Pre-built client (for example FastAPI's ``TestClient``)
        """
        self.http = http or httpx.Client(base_url=base_url)

    def _request(self, method: str, path: str, book_id: Optional[str] = None, **kwargs) -> Any:
        try:
            response = self.http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Request %s %s failed: %s", method, path, exc)
            raise StorageError(str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code == 404 and book_id is not None:
            raise BookNotFoundError(book_id)
        if response.status_code == 400:
            raise ValueError(body.get("message") or body.get("error") or "Invalid request")
        if response.status_code >= 400:
            error = body.get("error") or f"HTTP {response.status_code}"
            message = body.get("message")
            logger.error("Request %s %s failed: %s", method, path, error)
            raise StorageError(f"{error}: {message}" if message else str(error))
        return body.get("data")

    # Persistence contract

    def list_books(self) -> List[Book]:
        data = self._request("GET", BOOKS_PATH) or []
        return [Book.model_validate(row) for row in data]

    def get_book(self, book_id: str) -> Book:
        return Book.model_validate(self._request("GET", f"{BOOKS_PATH}/{book_id}", book_id=book_id))

    def create_book(self, req: Union[BookCreate, Dict[str, Any]]) -> Book:
        if not isinstance(req, BookCreate):
            req = BookCreate.model_validate(req)
        data = self._request("POST", BOOKS_PATH, json=req.model_dump(mode="json"))
        return Book.model_validate(data)

    def update_book(self, book_id: str, changes: Dict[str, Any]) -> Book:
        payload = BookUpdate.model_validate(changes).changes(mode="json")
        data = self._request("PUT", f"{BOOKS_PATH}/{book_id}", book_id=book_id, json=payload)
        return Book.model_validate(data)

    def delete_book(self, book_id: str) -> None:
        self._request("DELETE", f"{BOOKS_PATH}/{book_id}", book_id=book_id)

    def ping(self) -> bool:
        try:
            response = self.http.get("/health")
        except httpx.HTTPError as exc:
            logger.warning("Health check failed: %s", exc)
            return False
        return response.status_code == 200 and response.json().get("database") == "Connected"

    # Extras

    def stats(self) -> BookStats:
        return BookStats.model_validate(self._request("GET", f"{BOOKS_PATH}/stats"))

    def recommendations(self, books: Optional[Iterable[Any]] = None) -> RecommendationResponse:
        payload = None
        if books is not None:
            payload = {
                "books": [
                    BookSummary.model_validate(b.model_dump() if isinstance(b, Book) else b).model_dump()
                    for b in books
                ]
            }
        data = self._request("POST", "/api/v1/recommendations", json=payload)
        return RecommendationResponse.model_validate(data)

    def close(self):
        """Close the underlying HTTP client."""
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
