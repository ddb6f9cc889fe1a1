"""Commands accepted by a reading session and events it emits.

Each direction is a closed set of frozen dataclasses. Handlers dispatch on the
concrete type through a lookup table, so an unknown message is a programming
error rather than a silently ignored one.
"""

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Union

from rsvp_pacer.constants import NAV_STEP, SPEED_STEP


# --- Commands (host → session) ---

@dataclass(frozen=True)
class Play:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class TogglePause:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class SpeedUp:
    delta: int = SPEED_STEP


@dataclass(frozen=True)
class SpeedDown:
    delta: int = SPEED_STEP


@dataclass(frozen=True)
class ResetSpeed:
    pass


@dataclass(frozen=True)
class Rewind:
    n: int = NAV_STEP


@dataclass(frozen=True)
class Skip:
    n: int = NAV_STEP


@dataclass(frozen=True)
class CycleChunkSize:
    pass


@dataclass(frozen=True)
class SelectSource:
    index: int


@dataclass(frozen=True)
class NextSource:
    pass


@dataclass(frozen=True)
class PrevSource:
    pass


@dataclass(frozen=True)
class ToggleAutoAdvance:
    pass


@dataclass(frozen=True)
class ToggleHelp:
    pass


Command = Union[
    Play, Pause, TogglePause, Stop,
    SpeedUp, SpeedDown, ResetSpeed,
    Rewind, Skip, CycleChunkSize,
    SelectSource, NextSource, PrevSource,
    ToggleAutoAdvance, ToggleHelp,
]


# --- Events (session → display sink) ---

@dataclass(frozen=True)
class DisplayChunk:
    name: ClassVar[str] = "displayChunk"
    text: str
    type: str                    # "title" or "body"
    level: int | None
    progress_percent: float
    wpm: int
    estimated_remaining: int     # seconds


@dataclass(frozen=True)
class Stopped:
    name: ClassVar[str] = "stopped"


@dataclass(frozen=True)
class SpeedChanged:
    name: ClassVar[str] = "speedChanged"
    wpm: int
    playing: bool


@dataclass(frozen=True)
class AutoAdvanceChanged:
    name: ClassVar[str] = "autoAdvanceChanged"
    enabled: bool


@dataclass(frozen=True)
class SourceEntry:
    id: str
    label: str
    progress_percent: float


@dataclass(frozen=True)
class SourceList:
    name: ClassVar[str] = "sourceList"
    entries: tuple[SourceEntry, ...] = field(default_factory=tuple)
    active_index: int = 0


@dataclass(frozen=True)
class SourceProgress:
    name: ClassVar[str] = "sourceProgress"
    index: int
    progress_percent: float


@dataclass(frozen=True)
class Help:
    name: ClassVar[str] = "help"
    text: str


@dataclass(frozen=True)
class LoadFailed:
    name: ClassVar[str] = "loadFailed"
    source_id: str
    message: str


Event = Union[
    DisplayChunk, Stopped, SpeedChanged, AutoAdvanceChanged,
    SourceList, SourceProgress, Help, LoadFailed,
]


def event_to_dict(event: Event) -> dict:
    """Serialize an event as a tagged dict (``{"event": name, ...fields}``)."""
    return {"event": event.name, **asdict(event)}
