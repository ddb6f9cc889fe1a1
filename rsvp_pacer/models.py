"""Data models for structured RSVP playback."""

from dataclasses import dataclass, field
from typing import ClassVar, Union


# --- Structural units (TextStructurer output) ---

@dataclass(frozen=True)
class Title:
    level: int         # 1..6
    text: str


@dataclass(frozen=True)
class Body:
    text: str


StructuralUnit = Union[Title, Body]


# --- Chunks (ChunkSegmenter output) ---
# unit_index/word_index locate a chunk in the unit sequence so a reading
# position survives resegmentation.

@dataclass(frozen=True)
class TitleChunk:
    kind: ClassVar[str] = "title"
    level: int
    text: str
    unit_index: int = 0
    word_index: int = 0


@dataclass(frozen=True)
class BodyChunk:
    kind: ClassVar[str] = "body"
    text: str
    unit_index: int = 0
    word_index: int = 0


@dataclass(frozen=True)
class PauseChunk:
    kind: ClassVar[str] = "pause"
    duration_ms: int
    unit_index: int = 0
    word_index: int = 0


Chunk = Union[TitleChunk, BodyChunk, PauseChunk]


# --- Playback and persistence ---

@dataclass
class PlaybackState:
    cursor: int
    wpm: int
    chunk_size: int
    running: bool = False


@dataclass
class SavedState:
    cursor: int
    wpm: int
    chunk_size: int
    timestamp: float
    total_chunks: int = 0

    @property
    def progress_percent(self) -> float:
        if self.total_chunks <= 0:
            return 0.0
        return min(100.0, self.cursor / self.total_chunks * 100)


@dataclass(frozen=True)
class Source:
    id: str            # stable identity (absolute path for files)
    label: str         # display name
    format: str        # "markdown", "plaintext" or "opaque"
    path: str = ""
    text: str | None = field(default=None, compare=False, repr=False)
