"""ChangeSetTracker — the pending (uncommitted) changes of a workspace.

The tracker never mutates anything.  Each call asks the repository for a
fresh status matrix and projects it onto record ids, using the store only
to look up display titles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Protocol, Sequence

from tracecore.config import LINKS_DIR, PROJECTS_DIR, RECORD_SUFFIX, TRACKED_FOLDERS
from tracecore.core.ids import natural_key
from tracecore.errors import NotFoundError
from tracecore.models.artifact import kind_for_folder
from tracecore.store.artifacts import ArtifactStore
from tracecore.vcs.status import StatusEntry, parse_status_matrix

logger = logging.getLogger(__name__)

NEW = "new"
MODIFIED = "modified"


class StatusSource(Protocol):
    def status_matrix(self) -> Sequence[Sequence]: ...


@dataclass(frozen=True)
class ArtifactChange:
    """One pending record file."""

    id: str
    type: str
    title: str
    status: str
    """``"new"`` or ``"modified"``."""

    path: str


def split_record_path(path: str) -> tuple[str, str] | None:
    """``requirements/REQ-001.json`` -> ``("requirements", "REQ-001")``.

    Returns *None* for anything outside the tracked record folders.
    """
    parts = PurePosixPath(path).parts
    if len(parts) != 2 or parts[0] not in TRACKED_FOLDERS:
        return None
    name = PurePosixPath(parts[1])
    record_id = name.stem if name.suffix == RECORD_SUFFIX else parts[1]
    return parts[0], record_id


class ChangeSetTracker:
    """Compute pending changes from *source*'s status matrix.

    Parameters
    ----------
    store:
        Provides titles for the records behind changed files.
    source:
        Anything with a ``status_matrix()`` method, usually a
        :class:`~tracecore.vcs.repo.RepoManager`.  It raises
        :class:`~tracecore.errors.RepositoryUnavailable` when it cannot
        report status; the tracker lets that propagate.
    """

    def __init__(self, store: ArtifactStore, source: StatusSource) -> None:
        self.store = store
        self.source = source

    def pending_changes(self) -> list[ArtifactChange]:
        """All pending record changes, ordered by folder then natural id."""
        entries = parse_status_matrix(self.source.status_matrix())
        changes = [c for c in map(self._to_change, entries) if c is not None]
        changes.sort(key=lambda c: (c.path.split("/", 1)[0], natural_key(c.id)))
        logger.debug("%d pending change(s)", len(changes))
        return changes

    def pending_for(self, ids: Iterable[str]) -> list[ArtifactChange]:
        wanted = set(ids)
        return [c for c in self.pending_changes() if c.id in wanted]

    def is_clean(self, scope: Iterable[str] | None = None) -> bool:
        """*True* when nothing (or nothing among *scope* ids) is pending."""
        if scope is None:
            return not self.pending_changes()
        return not self.pending_for(scope)

    def _to_change(self, entry: StatusEntry) -> ArtifactChange | None:
        if entry.is_clean:
            return None
        split = split_record_path(entry.path)
        if split is None:
            return None
        folder, record_id = split
        return ArtifactChange(
            id=record_id,
            type=TRACKED_FOLDERS[folder],
            title=self._title(folder, record_id),
            status=NEW if entry.is_new else MODIFIED,
            path=entry.path,
        )

    def _title(self, folder: str, record_id: str) -> str:
        try:
            if kind_for_folder(folder) is not None:
                return self.store.get(record_id).title
            if folder == LINKS_DIR:
                link = self.store.get_link(record_id)
                return f"{link.source_id} {link.type.value} {link.target_id}"
            if folder == PROJECTS_DIR:
                return self.store.get_project(record_id).name
        except NotFoundError:
            pass
        return record_id
