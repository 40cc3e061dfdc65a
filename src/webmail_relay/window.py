"""Selection of the most recent messages to fetch."""

from __future__ import annotations

from contracts import SequenceRange

WINDOW = 10


def compute_range(total: int, window: int = WINDOW) -> SequenceRange | None:
    """
    Return the sequence range covering the newest ``window`` messages.

    Returns None when the mailbox is empty. The range always ends at
    ``total`` and never starts below 1.
    """
    if total < 0:
        raise ValueError(f"Message count cannot be negative: {total}")
    if window < 1:
        raise ValueError(f"Window must be positive: {window}")
    if total == 0:
        return None
    return SequenceRange(start=max(1, total - window + 1), end=total)
