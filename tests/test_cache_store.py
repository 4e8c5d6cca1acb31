from __future__ import annotations

from pathlib import Path

import pytest

from mediapeek.core.cache import LocalCacheStore, get_cache_store
from mediapeek.core.errors import CacheIOFailure, CacheMiss
from mediapeek.ingest.content_id import content_identifier


def test_write_then_read(tmp_path: Path):
    store = LocalCacheStore(tmp_path / "thumbnails")
    content_id = content_identifier("/media/clip.mp4")

    assert not store.exists(content_id)
    written = store.write(content_id, b"\xff\xd8jpeg\xff\xd9")

    assert written == tmp_path / "thumbnails" / f"{content_id}.jpg"
    assert store.exists(content_id)
    assert store.read(content_id) == b"\xff\xd8jpeg\xff\xd9"
    assert list(store.list()) == [content_id]


def test_write_replaces_and_leaves_no_staging_files(tmp_path: Path):
    store = LocalCacheStore(tmp_path)
    store.write("abc", b"first")
    store.write("abc", b"second")

    assert store.read("abc") == b"second"
    assert [p.name for p in tmp_path.iterdir()] == ["abc.jpg"]


def test_read_missing_raises_cache_miss(tmp_path: Path):
    store = LocalCacheStore(tmp_path)

    with pytest.raises(CacheMiss):
        store.read("missing")
    with pytest.raises(KeyError):
        store.read("missing")


def test_ensure_ready_is_idempotent(tmp_path: Path):
    store = LocalCacheStore(tmp_path / "a" / "b")
    store.ensure_ready()
    store.ensure_ready()

    assert (tmp_path / "a" / "b").is_dir()


def test_ensure_ready_reports_unusable_directory(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = LocalCacheStore(blocker / "thumbnails")

    with pytest.raises(CacheIOFailure):
        store.ensure_ready()
    with pytest.raises(CacheIOFailure):
        store.write("abc", b"payload")
    assert store.exists("abc") is False


@pytest.mark.parametrize("content_id", ["", "../escape", "nested/id", ".hidden"])
def test_path_for_rejects_unsafe_identifiers(tmp_path: Path, content_id: str):
    with pytest.raises(ValueError):
        LocalCacheStore(tmp_path).path_for(content_id)


def test_list_on_missing_directory_is_empty(tmp_path: Path):
    assert list(LocalCacheStore(tmp_path / "nope").list()) == []


def test_get_cache_store_uses_thumbnails_dir(settings, tmp_path: Path):
    store = get_cache_store(settings)

    assert isinstance(store, LocalCacheStore)
    assert store.base_path == tmp_path / "cache" / "thumbnails"
