"""Tests for CLI module."""

import io
import json
import logging
import os
from unittest.mock import patch

import pytest
from rich.console import Console

from rsvp_pacer.cli import TerminalSink, build_keymap, main, orp_text, read_key
from rsvp_pacer.config import ReaderConfig
from rsvp_pacer.messages import DisplayChunk, LoadFailed, SpeedUp, TogglePause
from rsvp_pacer.models import SavedState
from rsvp_pacer.sources import source_from_path
from rsvp_pacer.state_store import StateStore


# --- Helpers ---

def _create_source(tmp_path, name="story.md", content="# Hello\nalpha beta gamma"):
    path = tmp_path / name
    path.write_text(content)
    return str(path)


def _run(*argv):
    with patch("sys.argv", ["rsvp-pacer", *argv]):
        main()


# --- Rendering ---

def test_orp_text_highlights_pivot():
    """The pivot letter carries the highlight style."""
    text = orp_text("hello world")
    assert text.plain == "hello world"
    styled = [text.plain[span.start:span.end] for span in text.spans]
    assert styled == ["e", "o"]


def test_terminal_sink_prints_chunks():
    """Without a live display each chunk is printed with its status."""
    out = io.StringIO()
    sink = TerminalSink(Console(file=out, width=120))
    sink(DisplayChunk(text="reading", type="body", level=None,
                      progress_percent=50.0, wpm=450, estimated_remaining=75))
    sink(LoadFailed(source_id="x.md", message="No content to read"))
    printed = out.getvalue()
    assert "reading" in printed
    assert "450 wpm" in printed
    assert "1:15 left" in printed
    assert "No content to read" in printed


def test_keymap_uses_config_steps():
    """Bindings pick up configured step sizes."""
    keymap = build_keymap(ReaderConfig(speed_step=25))
    assert keymap[" "] == TogglePause()
    assert keymap["+"] == SpeedUp(25)
    assert "q" not in keymap


# --- Subcommands ---

def test_cli_chunks_json(tmp_path, capsys):
    """chunks prints the segmented sequence."""
    path = _create_source(tmp_path)
    _run("chunks", path, "--chunk-size", "2", "--config", str(tmp_path / "none.json"))

    chunks = json.loads(capsys.readouterr().out)
    assert [c["type"] for c in chunks] == ["title", "pause", "body", "body"]
    assert chunks[0]["text"] == "Hello"
    assert chunks[1]["duration_ms"] == 500
    assert chunks[2]["text"] == "alpha beta"
    assert '<span class="orp">' in chunks[2]["html"]


def test_cli_chunks_missing_file(tmp_path):
    """Missing file exits with an error."""
    with pytest.raises(SystemExit):
        _run("chunks", str(tmp_path / "nope.md"))


def test_cli_chunks_empty_content(tmp_path, capsys):
    """Unreadable content is reported on stderr."""
    path = _create_source(tmp_path, content="```\ncode\n```\n")
    with pytest.raises(SystemExit):
        _run("chunks", path, "--config", str(tmp_path / "none.json"))
    assert "No content to read" in capsys.readouterr().err


def test_cli_status_empty(tmp_path, capsys):
    """No saved positions."""
    _run("status", "--state-dir", str(tmp_path / "state"))
    assert "No saved reading positions" in capsys.readouterr().out


def test_cli_status_lists_positions(tmp_path, capsys):
    """Saved positions are listed with progress."""
    store = StateStore(str(tmp_path / "state"))
    store.save("/books/novel.md", SavedState(cursor=5, wpm=450, chunk_size=1, timestamp=1.0, total_chunks=20))
    _run("status", "--state-dir", str(tmp_path / "state"))
    out = capsys.readouterr().out
    assert "novel.md" in out
    assert "25%" in out


def test_cli_forget(tmp_path, capsys):
    """forget discards the saved position of a file."""
    path = _create_source(tmp_path)
    state_dir = str(tmp_path / "state")
    StateStore(state_dir).save(
        source_from_path(path).id,
        SavedState(cursor=1, wpm=450, chunk_size=1, timestamp=1.0),
    )
    _run("forget", path, "--state-dir", state_dir)
    assert "Forgot: story.md" in capsys.readouterr().out
    assert StateStore(state_dir).list_states() == []

    _run("forget", path, "--state-dir", state_dir)
    assert "No saved position" in capsys.readouterr().out


def test_cli_read_non_interactive(tmp_path, capsys):
    """read plays to the end when stdin is not a terminal, then saves the position."""
    path = _create_source(tmp_path)
    state_dir = str(tmp_path / "state")
    with patch("sys.stdin") as mock_stdin:
        mock_stdin.isatty.return_value = False
        _run(
            "read", path, "--wpm", "1200", "--pause-ms", "0",
            "--state-dir", state_dir, "--config", str(tmp_path / "none.json"),
        )

    out = capsys.readouterr().out
    for word in ("Hello", "alpha", "beta", "gamma"):
        assert word in out
    (_, state), = StateStore(state_dir).list_states()
    assert state.cursor == state.total_chunks


def test_cli_read_no_sources(tmp_path):
    """Nothing readable exits with an error."""
    with pytest.raises(SystemExit):
        _run("read", str(tmp_path / "missing.md"))


def test_cli_read_unloadable_source(tmp_path, capsys, caplog):
    """A first source that fails to load is reported once, with its reason."""
    path = _create_source(tmp_path, content="   \n")
    with patch("sys.stdin") as mock_stdin:
        mock_stdin.isatty.return_value = False
        with pytest.raises(SystemExit):
            _run("read", path, "--state-dir", str(tmp_path / "state"), "--config", str(tmp_path / "none.json"))

    captured = capsys.readouterr()
    assert "Could not load" not in captured.out
    assert captured.err.count("Could not load") == 1
    assert "No content to read" in captured.err
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_read_key_one_byte_at_a_time():
    """Keys typed together are read one per call, none left in a buffer."""
    read_fd, write_fd = os.pipe()
    try:
        os.write(write_fd, b"+-")
        assert read_key(read_fd) == "+"
        assert read_key(read_fd) == "-"
    finally:
        os.close(read_fd)
        os.close(write_fd)
