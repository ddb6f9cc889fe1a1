"""Locating reading sources and loading their raw text."""

import logging
import os

from rsvp_pacer.constants import MAX_BINARY_BYTES, MAX_TEXT_BYTES, SUPPORTED_EXTENSIONS
from rsvp_pacer.errors import SourceReadError, SourceTooLarge
from rsvp_pacer.models import Source

logger = logging.getLogger(__name__)

FORMAT_MAP = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".txt": "plaintext",
    ".pdf": "opaque",
    ".epub": "opaque",
}


def detect_format(path: str) -> str:
    """Format tag from the file extension. Unknown extensions read as plain text."""
    ext = os.path.splitext(path)[1].lower()
    return FORMAT_MAP.get(ext, "plaintext")


def is_supported(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in SUPPORTED_EXTENSIONS


def source_from_path(path: str) -> Source:
    abs_path = os.path.abspath(path)
    return Source(
        id=abs_path,
        label=os.path.basename(abs_path),
        format=detect_format(abs_path),
        path=abs_path,
    )


def source_from_text(source_id: str, text: str, format_tag: str = "plaintext", label: str = "") -> Source:
    """In-memory source, for text handed over by an external extractor."""
    return Source(id=source_id, label=label or source_id, format=format_tag, text=text)


def _scan_directory(directory: str) -> list[str]:
    found = []
    for root, dirs, files in os.walk(directory, onerror=_log_walk_error):
        dirs.sort()
        for name in files:
            if is_supported(name):
                found.append(os.path.join(root, name))
    return found


def _log_walk_error(error: OSError) -> None:
    logger.warning("Failed to scan directory %s: %s", error.filename, error)


def scan_paths(paths: list[str]) -> list[Source]:
    """Expand files and folders into a sorted, de-duplicated source list.

    Folders are scanned recursively for supported extensions. Explicitly
    named files are kept whatever their extension.
    """
    found = []
    for path in paths:
        if os.path.isdir(path):
            found.extend(sorted(_scan_directory(path)))
        elif os.path.isfile(path):
            found.append(path)
        else:
            logger.warning("Skipping missing path: %s", path)

    seen = set()
    sources = []
    for path in found:
        source = source_from_path(path)
        if source.id in seen:
            continue
        seen.add(source.id)
        sources.append(source)
    return sources


def check_size(path: str, format_tag: str) -> None:
    limit = MAX_BINARY_BYTES if format_tag == "opaque" else MAX_TEXT_BYTES
    size = os.path.getsize(path)
    if size > limit:
        raise SourceTooLarge(path, size, limit)


def read_source(source: Source) -> str:
    """Return the raw text of a source.

    In-memory sources return their text. Markdown and plain text files are
    decoded as UTF-8; PDF and EPUB files go through extraction.
    """
    if source.text is not None:
        return source.text

    path = source.path or source.id
    if not os.path.isfile(path):
        raise SourceReadError(f"File not found: {path}")
    check_size(path, source.format)

    if source.format == "opaque":
        from rsvp_pacer.extract import extract_text

        return extract_text(path, os.path.splitext(path)[1])

    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise SourceReadError(f"File is not valid UTF-8 text: {path}") from e
    except OSError as e:
        raise SourceReadError(f"Could not read {path}: {e}") from e
