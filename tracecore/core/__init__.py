"""Revision numbering and id allocation primitives."""

from tracecore.core.ids import IdAllocator, allocate_id, format_id, parse_id
from tracecore.core.revision import INITIAL_REVISION, increment_revision

__all__ = [
    "INITIAL_REVISION",
    "IdAllocator",
    "allocate_id",
    "format_id",
    "increment_revision",
    "parse_id",
]
