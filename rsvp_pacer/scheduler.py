"""Timed playback of a chunk sequence.

The scheduler is the only writer of the cursor and of the single pending
timer. Every transition that changes speed, chunk size, position while
playing, or running state cancels the pending timer before arming a new one,
so two timers can never race to advance the cursor.
"""

import enum
import logging
import math
from typing import Callable

from rsvp_pacer.clock import Clock, TimerHandle
from rsvp_pacer.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PAUSE_MS,
    DEFAULT_WPM,
    MAX_CHUNK_SIZE,
    MAX_WPM,
    MIN_WPM,
)
from rsvp_pacer.messages import DisplayChunk, Event, SpeedChanged, Stopped
from rsvp_pacer.models import Chunk, PauseChunk, PlaybackState, StructuralUnit, TitleChunk
from rsvp_pacer.segmenter import find_position, position_of, segment

logger = logging.getLogger(__name__)


class PlaybackStatus(enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


def clamp_wpm(wpm: int) -> int:
    return max(MIN_WPM, min(MAX_WPM, int(wpm)))


def estimate_remaining(remaining_chunks: int, wpm: int, chunk_size: int) -> int:
    """Seconds left at the current pace: ceil(chunks / (wpm / 60 / chunk_size)).

    Returns 0 rather than dividing by zero when wpm or chunk_size is not positive.
    """
    if wpm <= 0 or chunk_size <= 0:
        return 0
    return math.ceil(remaining_chunks / (wpm / 60 / chunk_size))


class PlaybackScheduler:
    """State machine turning a chunk sequence into a timed event stream.

    States: IDLE → PLAYING ⇄ PAUSED, any → IDLE on stop, PLAYING → FINISHED
    one interval after the last chunk is shown. FINISHED is left immediately: either
    ``on_finished`` loads another sequence and resumes playing (returning
    True), or the scheduler stops.

    Callbacks:
      emit(event)            display events (DisplayChunk, Stopped, SpeedChanged)
      on_checkpoint(state)   persist cursor/wpm/chunk size (pause, stop, navigation, finish)
      on_finished() -> bool  end of sequence; True if playback continues elsewhere
    """

    def __init__(
        self,
        clock: Clock,
        emit: Callable[[Event], None],
        *,
        wpm: int = DEFAULT_WPM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        pause_duration_ms: int = DEFAULT_PAUSE_MS,
        default_wpm: int = DEFAULT_WPM,
        on_checkpoint: Callable[[PlaybackState], None] | None = None,
        on_finished: Callable[[], bool] | None = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._clock = clock
        self._emit = emit
        self._wpm = clamp_wpm(wpm)
        self._default_wpm = clamp_wpm(default_wpm)
        self._chunk_size = chunk_size
        self._pause_duration_ms = pause_duration_ms
        self._on_checkpoint = on_checkpoint
        self._on_finished = on_finished

        self._state = PlaybackStatus.IDLE
        self._units: list[StructuralUnit] = []
        self._chunks: list[Chunk] = []
        self._cursor = 0
        self._timer: TimerHandle | None = None

    # --- Read-only views ---

    @property
    def state(self) -> PlaybackStatus:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is PlaybackStatus.PLAYING

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def wpm(self) -> int:
        return self._wpm

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return tuple(self._chunks)

    @property
    def units(self) -> tuple[StructuralUnit, ...]:
        return tuple(self._units)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    @property
    def progress_percent(self) -> float:
        if not self._chunks:
            return 0.0
        return min(100.0, self._cursor / len(self._chunks) * 100)

    def chunk_delay_ms(self) -> float:
        """Delay before a title or body chunk at the current speed."""
        return 60000 / self._wpm

    def snapshot(self) -> PlaybackState:
        return PlaybackState(
            cursor=self._cursor,
            wpm=self._wpm,
            chunk_size=self._chunk_size,
            running=self.running,
        )

    # --- Loading ---

    def load(
        self,
        units: list[StructuralUnit],
        cursor: int = 0,
        wpm: int | None = None,
        chunk_size: int | None = None,
    ) -> None:
        """Replace the sequence. Any pending timer is cancelled; state becomes IDLE."""
        self._cancel_timer()
        self._state = PlaybackStatus.IDLE
        if wpm is not None:
            self._wpm = clamp_wpm(wpm)
        if chunk_size is not None:
            if chunk_size < 1:
                raise ValueError(f"chunk_size must be positive, got {chunk_size}")
            self._chunk_size = chunk_size
        self._units = list(units)
        self._chunks = segment(self._units, self._chunk_size, self._pause_duration_ms)
        self._cursor = self._clamp_cursor(cursor)
        logger.debug(
            "Loaded %d chunks (chunk size %d, cursor %d)",
            len(self._chunks), self._chunk_size, self._cursor,
        )

    def dispose(self) -> None:
        """Cancel the pending timer without emitting or persisting anything."""
        self._cancel_timer()
        self._state = PlaybackStatus.IDLE

    # --- Transport ---

    def play(self) -> None:
        if self._state is PlaybackStatus.PLAYING:
            return
        if not self._chunks:
            logger.debug("play ignored: nothing loaded")
            return
        # Resuming a pause taken on the last chunk only finishes its interval
        if self._cursor >= len(self._chunks) and self._state is not PlaybackStatus.PAUSED:
            self._cursor = 0
        self._state = PlaybackStatus.PLAYING
        self._schedule()

    def pause(self) -> None:
        if self._state is not PlaybackStatus.PLAYING:
            return
        self._cancel_timer()
        self._state = PlaybackStatus.PAUSED
        self._checkpoint()

    def toggle_pause(self) -> None:
        if self._state is PlaybackStatus.PLAYING:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Cancel playback. The cursor is kept so playback can resume later."""
        self._cancel_timer()
        self._state = PlaybackStatus.IDLE
        self._checkpoint()
        self._emit(Stopped())

    def rewind(self, n: int) -> None:
        self._move_to(max(0, self._cursor - n))

    def skip(self, n: int) -> None:
        self._move_to(min(len(self._chunks) - 1, self._cursor + n))

    def change_speed(self, delta: int) -> None:
        self._set_wpm(self._wpm + delta)

    def reset_speed(self) -> None:
        self._set_wpm(self._default_wpm)

    def cycle_chunk_size(self) -> None:
        """Advance chunk size 1→2→3→4→5→1 and resegment the loaded units.

        The cursor stays on the chunk holding the word being read. If playing,
        playback stops, resegments, then restarts.
        """
        was_playing = self._state is PlaybackStatus.PLAYING
        position = None
        if self._cursor < len(self._chunks):
            position = position_of(self._chunks[self._cursor])
        if was_playing:
            self.stop()

        self._chunk_size = self._chunk_size % MAX_CHUNK_SIZE + 1
        self._chunks = segment(self._units, self._chunk_size, self._pause_duration_ms)
        if position is not None:
            self._cursor = find_position(self._chunks, position)
        else:
            self._cursor = self._clamp_cursor(self._cursor)
        logger.debug("Chunk size now %d (%d chunks)", self._chunk_size, len(self._chunks))
        self._checkpoint()

        if was_playing:
            self.play()

    # --- Internals ---

    def _clamp_cursor(self, cursor: int) -> int:
        if not self._chunks:
            return 0
        return max(0, min(cursor, len(self._chunks) - 1))

    def _move_to(self, cursor: int) -> None:
        self._cursor = self._clamp_cursor(cursor)
        if self._state is PlaybackStatus.PLAYING:
            self._schedule()
        self._checkpoint()

    def _set_wpm(self, wpm: int) -> None:
        self._wpm = clamp_wpm(wpm)
        if self._state is PlaybackStatus.PLAYING:
            self._schedule()
        self._emit(SpeedChanged(wpm=self._wpm, playing=self.running))

    def _checkpoint(self) -> None:
        if self._on_checkpoint is not None:
            self._on_checkpoint(self.snapshot())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        """Arm the one timer for the chunk at the cursor.

        Past the last chunk the timer still runs one interval, so the final
        chunk stays on screen as long as any other before playback finishes.
        """
        self._cancel_timer()
        if self._cursor >= len(self._chunks):
            self._timer = self._clock.arm(self.chunk_delay_ms(), self._on_end_timer)
            return
        chunk = self._chunks[self._cursor]
        if isinstance(chunk, PauseChunk):
            delay = chunk.duration_ms
        else:
            delay = self.chunk_delay_ms()
        self._timer = self._clock.arm(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        chunk = self._chunks[self._cursor]
        event = None
        if not isinstance(chunk, PauseChunk):
            total = len(self._chunks)
            event = DisplayChunk(
                text=chunk.text,
                type=chunk.kind,
                level=chunk.level if isinstance(chunk, TitleChunk) else None,
                progress_percent=self._cursor / total * 100,
                wpm=self._wpm,
                estimated_remaining=estimate_remaining(
                    total - self._cursor, self._wpm, self._chunk_size,
                ),
            )
        self._cursor += 1
        if event is not None:
            self._emit(event)
        # The sink may have issued a command while handling the event
        if self._state is PlaybackStatus.PLAYING and self._timer is None:
            self._schedule()

    def _on_end_timer(self) -> None:
        self._timer = None
        self._finish()

    def _finish(self) -> None:
        self._state = PlaybackStatus.FINISHED
        logger.debug("Reached end of sequence (%d chunks)", len(self._chunks))
        self._checkpoint()
        if self._on_finished is not None and self._on_finished():
            return
        self.stop()
