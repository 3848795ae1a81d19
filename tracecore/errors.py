"""Exception taxonomy shared by every tracecore subsystem.

Every mutating operation either returns the new state or raises one of
these.  Callers decide between retrying and surfacing a message.
"""

from __future__ import annotations

from typing import Any, Iterable


class TracecoreError(Exception):
    """Base class for all tracecore errors."""


class ValidationError(TracecoreError):
    """A required field is missing or a value is invalid."""


class NotFoundError(TracecoreError):
    """No record exists with the requested id."""

    def __init__(self, record_id: str, what: str = "artifact") -> None:
        super().__init__(f"{what} '{record_id}' not found")
        self.record_id = record_id


class DirtyTreeError(TracecoreError):
    """A baseline was requested while in-scope changes are uncommitted."""

    def __init__(self, changes: Iterable[Any]) -> None:
        self.changes = list(changes)
        ids = ", ".join(sorted({c.id for c in self.changes}))
        super().__init__(
            f"Cannot create baseline: {len(self.changes)} uncommitted "
            f"change(s) in scope ({ids}). Commit first."
        )


class RepositoryUnavailable(TracecoreError):
    """The underlying repository cannot report its status.

    Distinct from "no pending changes": a broken repository is never clean.
    """


class IdExhaustionError(TracecoreError):
    """No free number is left in a prefix's numeric space."""


class InvalidTransitionError(TracecoreError):
    """A trash lifecycle transition is not allowed from the current state."""


class BaselineExistsError(TracecoreError):
    """A baseline with the same project and version is already stored."""


class PersistenceError(TracecoreError):
    """A record file could not be written or removed.

    The in-memory change has already happened; the file on disk is stale
    until the record is saved again or the workspace is reopened.
    """
