"""Tests for state_store module."""

import json
import os
from unittest.mock import patch

from rsvp_pacer.models import SavedState
from rsvp_pacer.state_store import (
    StateStore,
    load_artifact,
    slug_from_path,
    state_key,
    write_artifact,
)


def test_slug_from_path():
    """Various filename formats → correct slugs."""
    assert slug_from_path("/path/to/Tell-Tale Heart.md") == "tell_tale_heart"
    assert slug_from_path("the_open_window.txt") == "the_open_window"
    assert slug_from_path("/a/b/My Story.epub") == "my_story"
    assert slug_from_path("???.txt") == "source"


def test_state_key_distinguishes_same_name():
    """Two files with the same basename get different keys."""
    a = state_key("/one/notes.md")
    b = state_key("/two/notes.md")
    assert a != b
    assert a.startswith("notes-")
    assert state_key("/one/notes.md") == a


def test_write_and_load_artifact(tmp_path):
    """Writes valid JSON that loads back."""
    path = write_artifact(str(tmp_path), "x.json", {"a": 1})
    with open(path) as f:
        assert json.load(f) == {"a": 1}
    assert load_artifact(str(tmp_path), "x.json") == {"a": 1}
    assert load_artifact(str(tmp_path), "missing.json") is None


def test_save_and_load(tmp_path):
    """Saved positions load back, directory created on demand."""
    store = StateStore(str(tmp_path / "state"))
    state = SavedState(cursor=12, wpm=500, chunk_size=3, timestamp=100.0, total_chunks=40)
    assert store.save("/books/a.md", state)
    assert store.load("/books/a.md") == state
    assert store.load("/books/b.md") is None


def test_saved_payload_shape(tmp_path):
    """One JSON file per source holding identity and state."""
    store = StateStore(str(tmp_path))
    store.save("/books/a.md", SavedState(cursor=1, wpm=450, chunk_size=1, timestamp=5.0))
    (name,) = os.listdir(tmp_path)
    with open(tmp_path / name) as f:
        data = json.load(f)
    assert data["source"] == "/books/a.md"
    assert set(data["state"]) == {"cursor", "wpm", "chunk_size", "timestamp", "total_chunks"}


def test_load_malformed_returns_none(tmp_path):
    """Corrupt or incomplete files are ignored."""
    store = StateStore(str(tmp_path))
    path = tmp_path / f"{state_key('/books/a.md')}.json"
    path.write_text("{not json")
    assert store.load("/books/a.md") is None

    path.write_text(json.dumps({"source": "/books/a.md", "state": {"cursor": 1}}))
    assert store.load("/books/a.md") is None


def test_save_failure_is_reported(tmp_path):
    """A failed write returns False instead of raising."""
    store = StateStore(str(tmp_path))
    with patch("rsvp_pacer.state_store.write_artifact", side_effect=OSError("read-only")):
        assert not store.save("/books/a.md", SavedState(cursor=1, wpm=450, chunk_size=1, timestamp=1.0))


def test_discard(tmp_path):
    """Discard removes the file once."""
    store = StateStore(str(tmp_path))
    store.save("/books/a.md", SavedState(cursor=1, wpm=450, chunk_size=1, timestamp=1.0))
    assert store.discard("/books/a.md")
    assert store.load("/books/a.md") is None
    assert not store.discard("/books/a.md")


def test_list_states_newest_first(tmp_path):
    """Listing is ordered by save time and skips junk."""
    store = StateStore(str(tmp_path))
    store.save("/old.md", SavedState(cursor=1, wpm=450, chunk_size=1, timestamp=10.0))
    store.save("/new.md", SavedState(cursor=2, wpm=450, chunk_size=1, timestamp=20.0))
    (tmp_path / "junk.json").write_text("[]")
    (tmp_path / "notes.txt").write_text("ignored")

    assert [source for source, _ in store.list_states()] == ["/new.md", "/old.md"]


def test_list_states_missing_dir(tmp_path):
    """No directory, no states."""
    assert StateStore(str(tmp_path / "nope")).list_states() == []
