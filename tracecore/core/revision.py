"""Two-digit, monotonically increasing revision strings."""

from __future__ import annotations

import re

INITIAL_REVISION = "01"

_DIGITS = re.compile(r"\d+", re.ASCII)


def _parse(revision: str | None) -> int | None:
    if revision is None:
        return None
    text = str(revision).strip()
    if not _DIGITS.fullmatch(text):
        return None
    return int(text, 10)


def increment_revision(current: str | None) -> str:
    """Return the revision following *current*.

    ``"01" -> "02"``, ``"09" -> "10"``, ``"99" -> "100"``.  Anything that
    is not a run of ASCII digits (``None``, ``""``, ``"invalid"``, ``"-3"``,
    ``"+3"``, ``"1_000"``) recovers to ``"01"``.
    """
    value = _parse(current)
    if value is None:
        return INITIAL_REVISION
    return f"{value + 1:02d}"


def revision_key(revision: str) -> int:
    """Sort key giving numeric order for revision strings (``"10" > "9"``)."""
    value = _parse(revision)
    return 0 if value is None else value
