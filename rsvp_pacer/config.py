"""Reader configuration: defaults from constants, optional JSON overrides."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields

from rsvp_pacer.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PAUSE_MS,
    DEFAULT_WPM,
    MAX_CHUNK_SIZE,
    MAX_WPM,
    MIN_WPM,
    NAV_STEP,
    SPEED_STEP,
    SPEED_STEP_BIG,
)

logger = logging.getLogger(__name__)


@dataclass
class ReaderConfig:
    wpm: int = DEFAULT_WPM
    chunk_size: int = DEFAULT_CHUNK_SIZE
    pause_duration_ms: int = DEFAULT_PAUSE_MS
    auto_advance: bool = False
    rewind_step: int = NAV_STEP
    skip_step: int = NAV_STEP
    speed_step: int = SPEED_STEP
    speed_step_big: int = SPEED_STEP_BIG

    def validated(self) -> "ReaderConfig":
        """Return a copy with every value coerced into its valid range."""
        return ReaderConfig(
            wpm=_bounded_int(self.wpm, MIN_WPM, MAX_WPM, DEFAULT_WPM),
            chunk_size=_bounded_int(self.chunk_size, 1, MAX_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
            pause_duration_ms=_bounded_int(self.pause_duration_ms, 0, None, DEFAULT_PAUSE_MS),
            auto_advance=bool(self.auto_advance),
            rewind_step=_bounded_int(self.rewind_step, 1, None, NAV_STEP),
            skip_step=_bounded_int(self.skip_step, 1, None, NAV_STEP),
            speed_step=_bounded_int(self.speed_step, 1, MAX_WPM, SPEED_STEP),
            speed_step_big=_bounded_int(self.speed_step_big, 1, MAX_WPM, SPEED_STEP_BIG),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def _bounded_int(value, low: int, high: int | None, default: int) -> int:
    """Coerce to int within [low, high]; unparseable values fall back to default."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(low, number)
    if high is not None:
        number = min(high, number)
    return number


def load_config(path: str | None = None, **overrides) -> ReaderConfig:
    """Load configuration from a JSON file, then apply non-None overrides.

    A missing file yields defaults. A malformed file is logged and ignored.
    Unknown keys are ignored with a warning.
    """
    values = {}
    if path:
        path = os.path.expanduser(path)
    if path and os.path.exists(path):
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Malformed config file: %s, using defaults", path)
            data = {}
        if not isinstance(data, dict):
            logger.warning("Config file %s is not a JSON object, using defaults", path)
            data = {}
        known = {f.name for f in fields(ReaderConfig)}
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.warning("Unknown config key in %s: %s", path, key)

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    return ReaderConfig(**values).validated()
