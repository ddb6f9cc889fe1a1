"""Reading sessions over a list of sources, and the registry that owns them."""

import logging
import time
import uuid
from typing import Callable

from rsvp_pacer.clock import Clock
from rsvp_pacer.config import ReaderConfig
from rsvp_pacer.constants import HELP_TEXT, MAX_CHUNK_SIZE
from rsvp_pacer.errors import ReaderError
from rsvp_pacer.messages import (
    AutoAdvanceChanged,
    Command,
    CycleChunkSize,
    DisplayChunk,
    Event,
    Help,
    LoadFailed,
    NextSource,
    Pause,
    Play,
    PrevSource,
    ResetSpeed,
    Rewind,
    SelectSource,
    Skip,
    SourceEntry,
    SourceList,
    SourceProgress,
    SpeedChanged,
    SpeedDown,
    SpeedUp,
    Stop,
    Stopped,
    ToggleAutoAdvance,
    ToggleHelp,
    TogglePause,
)
from rsvp_pacer.models import PlaybackState, SavedState, Source
from rsvp_pacer.scheduler import PlaybackScheduler, PlaybackStatus
from rsvp_pacer.sources import read_source
from rsvp_pacer.state_store import StateStore
from rsvp_pacer.structurer import structure_source

logger = logging.getLogger(__name__)


class ReadingSession:
    """One playback session: an ordered source list, one active source, one scheduler.

    Commands arrive through ``handle``; display events leave through ``emit``.
    Both the command path and the scheduler's timer run on the same clock's
    thread, so they never interleave.
    """

    def __init__(
        self,
        session_id: str,
        clock: Clock,
        emit: Callable[[Event], None],
        *,
        store: StateStore | None = None,
        config: ReaderConfig | None = None,
        loader: Callable[[Source], str] = read_source,
    ):
        self.session_id = session_id
        self.config = (config or ReaderConfig()).validated()
        self.auto_advance = self.config.auto_advance
        self._emit = emit
        self._store = store
        self._loader = loader

        self._sources: list[Source] = []
        self._active_index = 0
        self._active: Source | None = None
        self._progress: dict[str, float] = {}

        self.scheduler = PlaybackScheduler(
            clock,
            self._on_scheduler_event,
            wpm=self.config.wpm,
            chunk_size=self.config.chunk_size,
            pause_duration_ms=self.config.pause_duration_ms,
            default_wpm=self.config.wpm,
            on_checkpoint=self._on_checkpoint,
            on_finished=self._on_finished,
        )

        self._handlers = {
            Play: self._handle_play,
            Pause: lambda cmd: self.scheduler.pause(),
            TogglePause: self._handle_toggle_pause,
            Stop: lambda cmd: self.scheduler.stop(),
            SpeedUp: lambda cmd: self.scheduler.change_speed(cmd.delta),
            SpeedDown: lambda cmd: self.scheduler.change_speed(-cmd.delta),
            ResetSpeed: lambda cmd: self.scheduler.reset_speed(),
            Rewind: lambda cmd: self.scheduler.rewind(cmd.n),
            Skip: lambda cmd: self.scheduler.skip(cmd.n),
            CycleChunkSize: lambda cmd: self.scheduler.cycle_chunk_size(),
            SelectSource: lambda cmd: self._navigate(cmd.index),
            NextSource: lambda cmd: self._navigate(self._active_index + 1),
            PrevSource: lambda cmd: self._navigate(self._active_index - 1),
            ToggleAutoAdvance: self._handle_toggle_auto_advance,
            ToggleHelp: lambda cmd: self._emit(Help(text=HELP_TEXT)),
        }

    # --- Views ---

    @property
    def sources(self) -> tuple[Source, ...]:
        return tuple(self._sources)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_source(self) -> Source | None:
        return self._active

    def source_list(self) -> SourceList:
        entries = tuple(
            SourceEntry(id=s.id, label=s.label, progress_percent=self._progress_of(s))
            for s in self._sources
        )
        return SourceList(entries=entries, active_index=self._active_index)

    # --- Source management ---

    def set_sources(self, sources: list[Source]) -> bool:
        """Replace the source list and load the first source.

        Returns False if the first source could not be loaded (reported as
        LoadFailed).
        """
        self._release_active()
        self._sources = []
        self._active_index = 0
        self._progress = {}
        self._append(sources)
        self._emit(self.source_list())
        if not self._sources:
            return False
        return self._switch_to(0, resume=False)

    def add_sources(self, sources: list[Source]) -> int:
        """Queue sources not already present. Returns how many were added."""
        added = self._append(sources)
        if added:
            self._emit(self.source_list())
            if self._active is None:
                self._switch_to(self._active_index, resume=False)
        return added

    def remove_source(self, index: int) -> Source:
        """Drop a source from the active set and discard its saved state."""
        source = self._sources[index]
        removing_active = self._active is not None and index == self._active_index
        if removing_active:
            self.scheduler.dispose()
            self._active = None

        del self._sources[index]
        self._progress.pop(source.id, None)
        if self._store is not None:
            self._store.discard(source.id)

        if index < self._active_index:
            self._active_index -= 1
        self._active_index = max(0, min(self._active_index, len(self._sources) - 1))

        self._emit(self.source_list())
        if removing_active:
            if self._sources:
                self._switch_to(self._active_index, resume=False)
            else:
                self.scheduler.load([])
                self._emit(Stopped())
        return source

    def load_source(self, index: int) -> None:
        """Make ``sources[index]`` active, restoring its saved position.

        Raises ReaderError (EmptyContent, UnsupportedFormat, ...) without
        changing any session state when the source cannot be prepared.
        """
        source = self._sources[index]
        text = self._loader(source)
        units = structure_source(text, source.format, source.label)
        saved = self._store.load(source.id) if self._store is not None else None

        self._release_active()
        self._active_index = index
        self._active = source
        if saved is not None:
            self.scheduler.load(
                units,
                cursor=saved.cursor,
                wpm=saved.wpm,
                chunk_size=max(1, min(MAX_CHUNK_SIZE, saved.chunk_size)),
            )
            logger.info("Resuming %s at chunk %d", source.label, self.scheduler.cursor)
        else:
            self.scheduler.load(units)
            logger.info("Loaded %s (%d chunks)", source.label, self.scheduler.chunk_count)
        self._progress[source.id] = self.scheduler.progress_percent
        self._emit(self.source_list())

    # --- Commands ---

    def handle(self, command: Command) -> None:
        handler = self._handlers[type(command)]
        handler(command)

    def close(self) -> None:
        """Cancel playback and checkpoint the active source."""
        self._release_active()

    # --- Internals ---

    def _append(self, sources: list[Source]) -> int:
        known = {s.id for s in self._sources}
        added = 0
        for source in sources:
            if source.id in known:
                continue
            known.add(source.id)
            self._sources.append(source)
            if self._store is not None:
                saved = self._store.load(source.id)
                if saved is not None:
                    self._progress[source.id] = saved.progress_percent
            added += 1
        return added

    def _progress_of(self, source: Source) -> float:
        if self._active is not None and source.id == self._active.id:
            return self.scheduler.progress_percent
        return self._progress.get(source.id, 0.0)

    def _release_active(self) -> None:
        """Stop the timer and save the active source's position, if any."""
        if self._active is None:
            return
        if self.scheduler.state is PlaybackStatus.FINISHED:
            # _finish already checkpointed
            return
        self.scheduler.dispose()
        self._on_checkpoint(self.scheduler.snapshot())

    def _switch_to(self, index: int, resume: bool) -> bool:
        try:
            self.load_source(index)
        except ReaderError as e:
            self._report_failure(self._sources[index], e)
            return False
        if resume:
            self.scheduler.play()
        else:
            self._emit(Stopped())
        return True

    def _navigate(self, index: int) -> None:
        if not 0 <= index < len(self._sources):
            logger.debug("Ignoring navigation to source %d of %d", index, len(self._sources))
            return
        self._switch_to(index, resume=self.auto_advance)

    def _report_failure(self, source: Source, error: ReaderError) -> None:
        logger.info("Could not load %s: %s", source.label, error)
        self._emit(LoadFailed(source_id=source.id, message=str(error)))

    def _ensure_loaded(self) -> bool:
        if self._active is not None:
            return True
        if not self._sources:
            return False
        return self._switch_to(self._active_index, resume=False)

    def _handle_play(self, command: Play) -> None:
        if self._ensure_loaded():
            self.scheduler.play()

    def _handle_toggle_pause(self, command: TogglePause) -> None:
        if not self._ensure_loaded():
            return
        self.scheduler.toggle_pause()
        self._emit(SpeedChanged(wpm=self.scheduler.wpm, playing=self.scheduler.running))

    def _handle_toggle_auto_advance(self, command: ToggleAutoAdvance) -> None:
        self.auto_advance = not self.auto_advance
        self._emit(AutoAdvanceChanged(enabled=self.auto_advance))

    def _on_scheduler_event(self, event: Event) -> None:
        self._emit(event)
        if isinstance(event, DisplayChunk) and self._active is not None:
            self._progress[self._active.id] = event.progress_percent
            self._emit(SourceProgress(index=self._active_index, progress_percent=event.progress_percent))

    def _on_checkpoint(self, state: PlaybackState) -> None:
        if self._active is None:
            return
        total = self.scheduler.chunk_count
        self._progress[self._active.id] = self.scheduler.progress_percent
        if self._store is None:
            return
        self._store.save(self._active.id, SavedState(
            cursor=state.cursor,
            wpm=state.wpm,
            chunk_size=state.chunk_size,
            timestamp=time.time(),
            total_chunks=total,
        ))

    def _on_finished(self) -> bool:
        next_index = self._active_index + 1
        if not self.auto_advance or next_index >= len(self._sources):
            return False
        if not self._switch_to(next_index, resume=True):
            return False
        return self.scheduler.running


class SessionRegistry:
    """Explicit owner of live sessions, keyed by stable session id."""

    def __init__(self):
        self._sessions: dict[str, ReadingSession] = {}

    def create(
        self,
        clock: Clock,
        emit: Callable[[Event], None],
        session_id: str | None = None,
        **kwargs,
    ) -> ReadingSession:
        session_id = session_id or uuid.uuid4().hex
        if session_id in self._sessions:
            raise ValueError(f"Session already exists: {session_id}")
        session = ReadingSession(session_id, clock, emit, **kwargs)
        self._sessions[session_id] = session
        logger.debug("Created session %s", session_id)
        return session

    def get(self, session_id: str) -> ReadingSession:
        return self._sessions[session_id]

    def dispose(self, session_id: str) -> bool:
        """Close and forget a session. Returns False if it was unknown."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.debug("Disposed session %s", session_id)
        return True

    def dispose_all(self) -> None:
        for session_id in list(self._sessions):
            self.dispose(session_id)

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
