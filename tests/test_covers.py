"""Tests for cover image storage."""
import pytest

from bookshelf.covers import (
    LocalCoverStorage,
    SupabaseCoverStorage,
    cover_filename,
    validate_cover,
)


class FakeBucket:
    def __init__(self, name):
        self.name = name
        self.uploads = {}
        self.removed = []

    def upload(self, path, data, options):
        self.uploads[path] = (data, options)

    def get_public_url(self, path):
        return f"https://proj.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        self.removed.extend(paths)


class FakeStorage:
    def __init__(self):
        self.buckets = {}

    def from_(self, name):
        return self.buckets.setdefault(name, FakeBucket(name))


class FakeClient:
    def __init__(self):
        self.storage = FakeStorage()


def test_cover_filename_keeps_extension():
    name = cover_filename("My Photo.PNG")
    assert name.startswith("book-cover-")
    assert name.endswith(".png")
    assert cover_filename("My Photo.PNG") != name


def test_cover_filename_defaults_to_jpg():
    assert cover_filename(None).endswith(".jpg")
    assert cover_filename("noext").endswith(".jpg")


def test_validate_cover():
    validate_cover("image/jpeg", 1024)
    with pytest.raises(ValueError, match="image file"):
        validate_cover("application/pdf", 10)
    with pytest.raises(ValueError, match="smaller than 5MB"):
        validate_cover("image/png", 5 * 1024 * 1024 + 1)


def test_local_storage_save_and_delete(tmp_path):
    storage = LocalCoverStorage(str(tmp_path / "covers"))
    url = storage.save(b"jpeg-bytes", "front.jpg", "image/jpeg")
    path = storage.directory / url.rsplit("/", 1)[-1]
    assert path.read_bytes() == b"jpeg-bytes"
    assert storage.owns(url)
    assert not storage.owns("https://covers.openlibrary.org/b/id/1-L.jpg")
    assert not storage.owns(None)

    storage.delete(url)
    assert not path.exists()
    storage.delete(url)


def test_local_storage_enforces_size(tmp_path):
    storage = LocalCoverStorage(str(tmp_path), max_bytes=4)
    with pytest.raises(ValueError):
        storage.save(b"12345", "a.png", "image/png")
    assert list(tmp_path.iterdir()) == []


def test_supabase_storage_upload_and_remove():
    client = FakeClient()
    storage = SupabaseCoverStorage(client, bucket="book-covers")
    url = storage.save(b"data", "a.webp", "image/webp")
    bucket = client.storage.buckets["book-covers"]
    (name, (data, options)), = bucket.uploads.items()
    assert name.endswith(".webp")
    assert data == b"data"
    assert options == {"content-type": "image/webp"}
    assert url.endswith(name)
    assert storage.owns(url)

    storage.delete(url)
    assert bucket.removed == [name]
