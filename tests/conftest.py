"""Shared fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from bookshelf import ai
from bookshelf.config import Config
from bookshelf.covers import LocalCoverStorage
from bookshelf.main import create_app
from bookshelf.models import Book
from bookshelf.storage import InMemoryBookRepository


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_book(book_id, title="Test Book", author="Test Author", category="Programming", **fields):
    """Build a Book; ``created_at`` grows with the numeric part of the id."""
    fields.setdefault("created_at", BASE_TIME + timedelta(days=int("".join(c for c in book_id if c.isdigit()) or 0)))
    return Book(id=book_id, title=title, author=author, category=category, **fields)


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.STORAGE_BACKEND = "memory"
    cfg.COVER_DIR = str(tmp_path / "covers")
    cfg.RECOMMENDATION_COUNT = 4
    cfg.LOG_LEVEL = "WARNING"
    return cfg


@pytest.fixture
def repo():
    return InMemoryBookRepository(
        [
            make_book("1", "Dune", "Frank Herbert", "Sci-Fi", reading_status="finished"),
            make_book("2", "JavaScript Guide", "Different Author", "Programming",
                      reading_status="reading", progress_percentage=40),
            make_book("3", "Sapiens", "Yuval Noah Harari", "Science"),
        ]
    )


@pytest.fixture
def covers(config):
    return LocalCoverStorage(config.COVER_DIR)


@pytest.fixture
def app(config, repo, covers):
    return create_app(config, repository=repo, cover_storage=covers)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class FakeGenerator:
    """Stands in for the transformers pipeline."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def __call__(self, prompt, max_new_tokens=256):
        self.prompts.append(prompt)
        if self.text is None:
            raise self.error
        return [{"generated_text": self.text}]


@pytest.fixture(autouse=True)
def fake_generator(monkeypatch):
    """Replace the language model. It fails unless a test sets ``.text``."""
    generator = FakeGenerator(error=RuntimeError("model unavailable"))
    monkeypatch.setattr(ai, "get_generator", lambda: generator)
    return generator


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Cover lookups and embeddings never leave the process in tests."""
    from bookshelf import openlibrary

    openlibrary.clear_cache()
    monkeypatch.setattr(openlibrary, "_http_get_json", lambda url: None)

    def no_embedder():
        raise RuntimeError("embedder disabled in tests")

    monkeypatch.setattr(ai, "get_embedder", no_embedder)
