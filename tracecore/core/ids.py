"""Dense, type-prefixed sequential identifiers (``REQ-001``, ``UC-012``).

Numbers are gap-filling: the lowest free positive integer is always handed
out first, so ids freed by permanent deletion are reused.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import AbstractSet

from tracecore.errors import IdExhaustionError, ValidationError

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^([A-Z][A-Z0-9]*)-(\d+)$")


def format_id(prefix: str, number: int) -> str:
    """Format ``PREFIX-NNN``; the number widens past three digits."""
    return f"{prefix}-{number:03d}"


def parse_id(record_id: str) -> tuple[str, int] | None:
    """Split ``REQ-007`` into ``("REQ", 7)``; *None* if it is not an id."""
    match = _ID_RE.match(record_id or "")
    if match is None:
        return None
    return match.group(1), int(match.group(2))


def allocate_id(
    used_numbers: AbstractSet[int],
    prefix: str,
    *,
    limit: int = sys.maxsize,
) -> tuple[str, set[int]]:
    """Allocate the smallest positive number not in *used_numbers*.

    Returns the formatted id and a new set including the allocated number.
    The input set is not modified.

    Raises
    ------
    IdExhaustionError
        If every number from 1 to *limit* is taken.
    """
    number = 1
    while number in used_numbers:
        number += 1
    if number > limit:
        raise IdExhaustionError(f"No free id left for prefix '{prefix}' (limit {limit})")
    return format_id(prefix, number), set(used_numbers) | {number}


class IdAllocator:
    """Per-project registry of used numbers, one independent set per prefix.

    Parameters
    ----------
    limit:
        Highest number any prefix may allocate.
    """

    def __init__(self, limit: int = sys.maxsize) -> None:
        self.limit = limit
        self._used: dict[str, set[int]] = {}

    def allocate(self, prefix: str) -> str:
        """Allocate and reserve the next free id for *prefix*."""
        new_id, updated = allocate_id(self._used.get(prefix, set()), prefix, limit=self.limit)
        self._used[prefix] = updated
        logger.debug("Allocated id %s", new_id)
        return new_id

    def reserve(self, record_id: str) -> None:
        """Mark an existing id as used (e.g. after loading from disk)."""
        prefix, number = self._split(record_id)
        self._used.setdefault(prefix, set()).add(number)

    def release(self, record_id: str) -> bool:
        """Free an id's number for reuse.  Returns *True* if it was reserved."""
        prefix, number = self._split(record_id)
        used = self._used.get(prefix, set())
        if number not in used:
            return False
        used.discard(number)
        logger.debug("Released id %s", record_id)
        return True

    def is_reserved(self, record_id: str) -> bool:
        parsed = parse_id(record_id)
        if parsed is None:
            return False
        return parsed[1] in self._used.get(parsed[0], set())

    def used(self, prefix: str) -> frozenset[int]:
        return frozenset(self._used.get(prefix, set()))

    @staticmethod
    def _split(record_id: str) -> tuple[str, int]:
        parsed = parse_id(record_id)
        if parsed is None:
            raise ValidationError(f"'{record_id}' is not a PREFIX-NUMBER id")
        return parsed


def natural_key(record_id: str) -> tuple:
    """Numeric-aware sort key: ``REQ-2`` sorts before ``REQ-10``."""
    parts = re.split(r"(\d+)", record_id or "")
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p.lower()) for p in parts if p)
