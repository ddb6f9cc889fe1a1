"""Turn structural units into the ordered chunk sequence the scheduler plays."""

from rsvp_pacer.models import (
    Body,
    BodyChunk,
    Chunk,
    PauseChunk,
    StructuralUnit,
    Title,
    TitleChunk,
)


def chunk_text(text: str, words_per_chunk: int) -> list[str]:
    """Group whitespace-delimited words into runs of ``words_per_chunk``.

    "one two three", 2 → ["one two", "three"]
    """
    if words_per_chunk < 1:
        raise ValueError(f"words_per_chunk must be positive, got {words_per_chunk}")
    words = text.split()
    return [
        " ".join(words[i:i + words_per_chunk])
        for i in range(0, len(words), words_per_chunk)
    ]


def segment(
    units: list[StructuralUnit],
    chunk_size: int,
    pause_duration_ms: int,
) -> list[Chunk]:
    """Segment units into chunks.

    Titles stay atomic and are always followed by one pause chunk; body text
    is split into runs of ``chunk_size`` words. Output depends only on the
    arguments, so re-running with a new chunk size is the only way chunk
    boundaries move.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if pause_duration_ms < 0:
        raise ValueError(f"pause_duration_ms must be non-negative, got {pause_duration_ms}")

    chunks: list[Chunk] = []
    for unit_index, unit in enumerate(units):
        if isinstance(unit, Title):
            chunks.append(TitleChunk(level=unit.level, text=unit.text, unit_index=unit_index))
            # word 1 orders the pause after its title for find_position
            chunks.append(PauseChunk(duration_ms=pause_duration_ms, unit_index=unit_index, word_index=1))
        elif isinstance(unit, Body):
            words = unit.text.split()
            for start in range(0, len(words), chunk_size):
                chunks.append(BodyChunk(
                    text=" ".join(words[start:start + chunk_size]),
                    unit_index=unit_index,
                    word_index=start,
                ))
        else:
            raise TypeError(f"Not a structural unit: {unit!r}")
    return chunks


def position_of(chunk: Chunk) -> tuple[int, int]:
    return (chunk.unit_index, chunk.word_index)


def find_position(chunks: list[Chunk], position: tuple[int, int]) -> int:
    """Index of the last chunk starting at or before ``position``.

    Used after resegmentation so the reader lands on the chunk that contains
    the word they were on (never skipping ahead).
    """
    found = 0
    for i, chunk in enumerate(chunks):
        if position_of(chunk) <= position:
            found = i
        else:
            break
    return found
