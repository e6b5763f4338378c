"""Split LLM replies into numbered, size-bounded SMS segments."""

from smsrelay.errors import ConfigurationError
from smsrelay.models import Segment

TRUNCATION_MARKER = "... [truncated]"
# Characters given up at the end of the budget to make room for the marker
TRUNCATION_RESERVE = 20


def prefix_length(max_segments: int) -> int:
    """Width of the widest possible "(k/max) " prefix."""
    return len(f"({max_segments}/{max_segments}) ")


def segment(text: str, max_segment_length: int, max_segments: int) -> list[Segment]:
    """Split a reply into at most ``max_segments`` segments of at most
    ``max_segment_length`` characters each.

    Text that already fits is returned unchanged as one unprefixed segment.
    Longer text is truncated to what the segments can hold (with an explicit
    marker), split at word boundaries where possible, and only then numbered
    "(i/n) " using the real count. The prefix width is budgeted for
    ``max_segments``, which is never narrower than the final prefix.

    Empty or whitespace-only text yields no segments.

    Raises:
        ConfigurationError: the limits leave no room for any text.
    """
    if max_segment_length < 1 or max_segments < 1:
        raise ConfigurationError(
            f"max_segment_length and max_segments must be positive "
            f"(got {max_segment_length}, {max_segments})"
        )

    if not text.strip():
        return []

    if len(text) <= max_segment_length:
        return [Segment(index=1, total=1, text=text)]

    text = text.strip()
    if len(text) <= max_segment_length:
        return [Segment(index=1, total=1, text=text)]

    width = max_segment_length - prefix_length(max_segments)
    if width < 1:
        raise ConfigurationError(
            f"segments of {max_segment_length} chars cannot hold a "
            f"{prefix_length(max_segments)} char prefix"
        )

    budget = max_segments * width
    if len(text) > budget:
        keep = budget - TRUNCATION_RESERVE
        if keep < 1:
            raise ConfigurationError(
                f"{max_segments} segment(s) of {max_segment_length} chars leave no room "
                f"to truncate a {len(text)} char reply"
            )
        text = text[:keep].rstrip() + TRUNCATION_MARKER

    chunks = _split_raw(text, width, max_segments)
    total = len(chunks)
    return [
        Segment(index=i, total=total, text=f"({i}/{total}) {chunk}", numbered=True)
        for i, chunk in enumerate(chunks, start=1)
    ]


def _split_raw(text: str, width: int, max_chunks: int) -> list[str]:
    """Split into at most ``max_chunks`` chunks of at most ``width`` chars.

    ``text`` must fit in ``max_chunks * width``. Word boundaries are preferred;
    when the whitespace they consume leaves too little room, the text is hard
    split instead so nothing is lost.
    """
    chunks = []
    remaining = text

    while remaining and len(chunks) < max_chunks:
        if len(remaining) <= width:
            chunks.append(remaining)
            remaining = ""
            break

        if remaining[width].isspace():
            # Window ends exactly on a word boundary
            cut = width
        else:
            cut = _last_whitespace(remaining[:width])

        if cut == -1:
            # No whitespace in the window, hard split
            chunks.append(remaining[:width])
            remaining = remaining[width:]
        else:
            chunks.append(remaining[:cut].rstrip())
            remaining = remaining[cut:].lstrip()

    if remaining:
        return [text[i:i + width] for i in range(0, len(text), width)]
    return chunks


def _last_whitespace(window: str) -> int:
    for i in range(len(window) - 1, 0, -1):
        if window[i].isspace():
            return i
    return -1
