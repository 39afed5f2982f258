"""Tests for the client-side book store."""
import pytest
from pydantic import ValidationError

from bookshelf.store import BookStore
from conftest import make_book


@pytest.fixture
def store():
    s = BookStore()
    s.add(make_book("test-1"))
    s.add(make_book("test-2", title="JavaScript Guide", author="Different Author"))
    return s


def test_add_prepends_each_book():
    s = BookStore()
    for n in range(1, 4):
        book = make_book(f"b{n}")
        s.add(book)
        assert len(s.books) == n
        assert s.books[0] is book


def test_add_does_not_resort_by_created_at():
    s = BookStore()
    newer = make_book("9")
    older = make_book("1")
    s.add(newer)
    s.add(older)
    assert [b.id for b in s.books] == ["1", "9"]


def test_replace_all_resets_collection(store):
    store.replace_all([make_book("x1")])
    assert [b.id for b in store.books] == ["x1"]
    assert store.filtered_books() == store.books


def test_update_changes_only_named_fields(store):
    before = store.get("test-1")
    untouched = store.get("test-2")

    assert store.update("test-1", {"title": "B"}) is True

    after = store.get("test-1")
    assert after.title == "B"
    assert after.model_dump(exclude={"title"}) == before.model_dump(exclude={"title"})
    assert store.get("test-2") is untouched


def test_update_missing_id_is_noop(store):
    snapshot = list(store.books)
    assert store.update("nope", {"title": "B"}) is False
    assert store.books == snapshot
    assert all(a is b for a, b in zip(store.books, snapshot))


def test_update_ignores_id_change(store):
    store.update("test-1", {"id": "other", "author": "Someone"})
    assert store.get("test-1").author == "Someone"
    assert store.get("other") is None


def test_update_keeps_status_consistent(store):
    store.update("test-1", {"reading_status": "finished"})
    assert store.get("test-1").progress_percentage == 100


def test_update_rejects_invalid_values(store):
    with pytest.raises(ValidationError):
        store.update("test-1", {"progress_percentage": 150, "reading_status": "reading"})


def test_remove_present_and_missing(store):
    s = BookStore()
    for n in range(1, 5):
        s.add(make_book(f"r{n}"))
    order = [b.id for b in s.books]

    assert s.remove("r2") is True
    assert [b.id for b in s.books] == [i for i in order if i != "r2"]

    assert s.remove("r2") is False
    assert len(s.books) == 3


def test_filtered_books_without_filters_returns_everything(store):
    assert store.filtered_books() == store.books


def test_search_is_case_insensitive_on_title(store):
    store.set_search_query("javascript")
    assert [b.title for b in store.filtered_books()] == ["JavaScript Guide"]


def test_search_matches_author(store):
    store.set_search_query("DIFFERENT")
    assert [b.id for b in store.filtered_books()] == ["test-2"]


def test_filters_combine_with_and():
    s = BookStore()
    s.add(make_book("1", "Python Basics", category="Programming", reading_status="finished"))
    s.add(make_book("2", "Python Tricks", category="Programming", reading_status="reading"))
    s.add(make_book("3", "Python Snakes", category="Nature", reading_status="reading"))

    s.set_category_filter("Programming")
    s.set_search_query("python")
    s.set_status_filter("reading")
    assert [b.id for b in s.filtered_books()] == ["2"]

    s.set_status_filter(None)
    assert [b.id for b in s.filtered_books()] == ["2", "1"]


def test_category_filter_is_exact():
    s = BookStore([make_book("1", category="Sci-Fi"), make_book("2", category="sci-fi")])
    s.set_category_filter("Sci-Fi")
    assert [b.id for b in s.filtered_books()] == ["1"]


def test_categories_are_distinct():
    s = BookStore()
    for n, cat in enumerate(["Fiction", "Science", "Fiction", "Fiction", "History"]):
        s.add(make_book(str(n), category=cat))
    cats = s.categories()
    assert sorted(cats) == ["Fiction", "History", "Science"]
    assert len(cats) == len(set(cats))


def test_view_mode_and_flags():
    s = BookStore()
    assert s.view_mode == "grid"
    s.set_view_mode("table")
    s.set_loading(True)
    s.set_adding_book(True)
    assert (s.view_mode, s.loading, s.adding_book) == ("table", True, True)


def test_add_modal():
    s = BookStore()
    assert s.show_add_modal is False
    s.open_add_modal()
    assert s.show_add_modal is True
    s.close_add_modal()
    assert s.show_add_modal is False


def test_edit_modal_open_overwrites_and_close_is_idempotent(store):
    first, second = store.books
    store.close_edit_modal()
    assert (store.show_edit_modal, store.book_to_edit) == (False, None)

    store.open_edit_modal(first)
    store.open_edit_modal(second)
    assert store.show_edit_modal is True
    assert store.book_to_edit is second

    store.close_edit_modal()
    store.close_edit_modal()
    assert (store.show_edit_modal, store.book_to_edit) == (False, None)


def test_delete_modal_clears_target(store):
    store.open_delete_modal(store.books[0])
    assert store.book_to_delete is store.books[0]
    store.close_delete_modal()
    assert (store.show_delete_modal, store.book_to_delete) == (False, None)


def test_add_then_filter_to_empty():
    s = BookStore()
    dune = make_book("1", "Dune", "Herbert", "Sci-Fi", reading_status="to-read")
    s.add(dune)
    assert [b.id for b in s.filtered_books()] == ["1"]

    s.set_category_filter("Fantasy")
    assert s.filtered_books() == []
