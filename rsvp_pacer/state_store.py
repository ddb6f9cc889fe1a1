"""Persisted reading positions, one JSON file per source."""

import hashlib
import json
import logging
import os
import re
import time

from rsvp_pacer.models import SavedState

logger = logging.getLogger(__name__)


def slug_from_path(path: str) -> str:
    """Convert a source name to a filesystem-safe slug.

    "Tell-Tale Heart.md" → "tell_tale_heart"
    "/path/to/The Open Window.txt" → "the_open_window"
    """
    basename = os.path.splitext(os.path.basename(path))[0]
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()
    return slug or "source"


def state_key(source_id: str) -> str:
    """Stable file stem for a source identity: readable slug + short hash."""
    digest = hashlib.sha256(source_id.encode()).hexdigest()[:12]
    return f"{slug_from_path(source_id)}-{digest}"


def write_artifact(directory: str, filename: str, data: dict) -> str:
    """Write JSON to directory/filename. Returns the written path."""
    path = os.path.join(directory, filename)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def load_artifact(directory: str, filename: str) -> dict | None:
    """Read JSON. Returns None if the file doesn't exist."""
    path = os.path.join(directory, filename)
    if not os.path.exists(path):
        return None
    with open(path) as f:
        return json.load(f)


def _state_from_dict(data: dict) -> SavedState:
    return SavedState(
        cursor=int(data["cursor"]),
        wpm=int(data["wpm"]),
        chunk_size=int(data["chunk_size"]),
        timestamp=float(data.get("timestamp", 0.0)),
        total_chunks=int(data.get("total_chunks", 0)),
    )


class StateStore:
    """Reading positions keyed by source identity.

    Writes are best effort: a failed save is logged and playback carries on.
    """

    def __init__(self, base_dir: str):
        self.base_dir = os.path.expanduser(base_dir)

    def _filename(self, source_id: str) -> str:
        return f"{state_key(source_id)}.json"

    def load(self, source_id: str) -> SavedState | None:
        try:
            data = load_artifact(self.base_dir, self._filename(source_id))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable state for %s: %s, starting fresh", source_id, e)
            return None
        if data is None:
            return None
        try:
            return _state_from_dict(data["state"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed state for %s, starting fresh", source_id)
            return None

    def save(self, source_id: str, state: SavedState) -> bool:
        """Persist ``state``. Returns False (and logs) if the write failed."""
        payload = {
            "source": source_id,
            "state": {
                "cursor": state.cursor,
                "wpm": state.wpm,
                "chunk_size": state.chunk_size,
                "timestamp": state.timestamp or time.time(),
                "total_chunks": state.total_chunks,
            },
        }
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            write_artifact(self.base_dir, self._filename(source_id), payload)
        except OSError as e:
            logger.warning("Could not save reading position for %s: %s", source_id, e)
            return False
        return True

    def discard(self, source_id: str) -> bool:
        """Delete saved state. Returns True if a file was removed."""
        path = os.path.join(self.base_dir, self._filename(source_id))
        if not os.path.exists(path):
            return False
        try:
            os.remove(path)
        except OSError as e:
            logger.warning("Could not discard state for %s: %s", source_id, e)
            return False
        return True

    def list_states(self) -> list[tuple[str, SavedState]]:
        """All saved (source_id, state) pairs, most recently saved first."""
        if not os.path.isdir(self.base_dir):
            return []
        results = []
        for name in os.listdir(self.base_dir):
            if not name.endswith(".json"):
                continue
            try:
                data = load_artifact(self.base_dir, name)
                results.append((data["source"], _state_from_dict(data["state"])))
            except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed state file: %s", name)
        results.sort(key=lambda item: item[1].timestamp, reverse=True)
        return results
