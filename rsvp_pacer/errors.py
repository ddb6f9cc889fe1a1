"""Errors surfaced to callers when a source cannot be prepared for reading."""


class ReaderError(Exception):
    """Base class for load-time failures. Playback state is never created."""


class EmptyContent(ReaderError):
    """Structuring produced no readable units."""

    def __init__(self, source: str = ""):
        self.source = source
        suffix = f": {source}" if source else ""
        super().__init__(f"No content to read{suffix}")


class UnsupportedFormat(ReaderError):
    """The format tag or file type is handled by no structuring path."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported format: {fmt}")


class SourceTooLarge(ReaderError):
    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(
            f"File is too large ({size / 1024 / 1024:.1f}MB). "
            f"Maximum size is {limit / 1024 / 1024:.0f}MB: {path}"
        )


class SourceReadError(ReaderError):
    """The source could not be read or decoded as text."""
