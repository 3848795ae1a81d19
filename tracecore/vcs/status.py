"""Typed view over raw ``(path, head, workdir, stage)`` status rows."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Sequence


class FileState(IntEnum):
    """One cell of a status row."""

    ABSENT = 0
    UNMODIFIED = 1
    MODIFIED = 2
    STAGED = 3


@dataclass(frozen=True)
class StatusEntry:
    path: str
    head: FileState
    workdir: FileState
    stage: FileState

    @classmethod
    def from_row(cls, row: Sequence) -> StatusEntry:
        path, head, workdir, stage = row
        return cls(path, FileState(head), FileState(workdir), FileState(stage))

    @property
    def is_clean(self) -> bool:
        return (self.head, self.workdir, self.stage) == (
            FileState.UNMODIFIED, FileState.UNMODIFIED, FileState.UNMODIFIED,
        )

    @property
    def is_new(self) -> bool:
        """Not present in the last commit."""
        return self.head == FileState.ABSENT


def parse_status_matrix(rows: Iterable[Sequence]) -> list[StatusEntry]:
    return [StatusEntry.from_row(row) for row in rows]
