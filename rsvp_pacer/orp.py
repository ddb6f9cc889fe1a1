"""Optimal Recognition Point (ORP) decomposition of words."""

import math
from dataclasses import dataclass

from rsvp_pacer.constants import ORP_RATIO

# Default template mirrors the pre/orp/post span markup used by display sinks
HTML_TEMPLATE = (
    '<span class="pre-orp">{pre}</span>'
    '<span class="orp">{pivot}</span>'
    '<span class="post-orp">{post}</span>'
)


@dataclass(frozen=True)
class OrpSplit:
    pre: str
    pivot: str
    post: str

    @property
    def has_pivot(self) -> bool:
        return self.pivot != ""


def pivot_index(word: str) -> int:
    """Character index of the recognition point: floor(len * 0.38)."""
    return math.floor(len(word) * ORP_RATIO)


def render_word(word: str) -> OrpSplit:
    """Split a word around its recognition point.

    Words of length <= 1 come back whole in ``pre`` with no pivot.
    """
    if len(word) <= 1:
        return OrpSplit(pre=word, pivot="", post="")
    idx = pivot_index(word)
    return OrpSplit(pre=word[:idx], pivot=word[idx], post=word[idx + 1:])


def highlight_chunk(chunk: str, template: str = HTML_TEMPLATE) -> str:
    """Apply ``template`` to every splittable word of a chunk."""
    rendered = []
    for word in chunk.split(" "):
        split = render_word(word)
        if split.has_pivot:
            rendered.append(template.format(pre=split.pre, pivot=split.pivot, post=split.post))
        else:
            rendered.append(word)
    return " ".join(rendered)
