"""Workspace — one open project directory with its store, repository, and services.

The workspace owns every per-project object (id allocator, store, trash
bin, change tracker, baseline manager) and keeps the record files in the
working tree in step with the in-memory store.

Usage::

    ws = Workspace.open("/path/to/project")
    req = ws.create("requirement", title="Login", text="Users can log in")
    ws.commit("Add login requirement")
    proj = ws.create_project("Release 1", artifact_ids=[req.id])
    ws.commit("Add release project")
    baseline = ws.create_baseline(proj.id, "R1 freeze")
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from tracecore.baselines.manager import BaselineManager
from tracecore.baselines.storage import BaselineStorage
from tracecore.config import Settings, load_config
from tracecore.errors import PersistenceError
from tracecore.core.ids import IdAllocator
from tracecore.models.artifact import Artifact, ArtifactKind
from tracecore.models.baseline import BaselineDiff, ProjectBaseline
from tracecore.models.link import Link, LinkType
from tracecore.models.project import Project
from tracecore.storage import RecordStorage, folder_of, record_path
from tracecore.store.artifacts import ArtifactStore
from tracecore.store.events import RecordErased, RecordSaved, StoreEvent
from tracecore.store.trash import TrashBin
from tracecore.traceability.graph import GapPolicy, TraceabilityGraph
from tracecore.traceability.matrix import TraceabilityMatrix
from tracecore.vcs.changes import ArtifactChange, ChangeSetTracker
from tracecore.vcs.commits import commit_all, commit_paths, unstage_new
from tracecore.vcs.history import LogEntry, get_file_log
from tracecore.vcs.repo import RepoManager

logger = logging.getLogger(__name__)


class Workspace:
    """Single-writer facade over one project directory.

    Every mutating call holds a per-workspace re-entrant lock, so calls
    from several threads run one at a time.  Reads do not lock; they see
    whole records because the store swaps records atomically.

    Record files are written after the in-memory change.  If a write fails
    the call raises :class:`~tracecore.errors.PersistenceError` and memory
    stays ahead of disk until that record is saved again.

    Parameters
    ----------
    root:
        Project directory (the git working tree).
    settings:
        Resolved configuration; loaded from *root* when omitted.
    clock:
        Returns "now" in epoch milliseconds.  Injected for tests.
    """

    def __init__(
        self,
        root: str | Path,
        settings: Settings | None = None,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.settings = settings or load_config(self.root)
        self._lock = threading.RLock()

        self.repo = RepoManager(
            self.root,
            author_name=self.settings.author_name,
            author_email=self.settings.author_email,
        )
        self.records = RecordStorage(self.root)
        self.store = ArtifactStore(IdAllocator(), clock=clock)
        self.trash_bin = TrashBin(self.store)
        self.tracker = ChangeSetTracker(self.store, self.repo)
        self.baselines = BaselineManager(
            self.store, self.tracker, self.repo, BaselineStorage(self.root), clock=clock,
        )
        self.store.subscribe(self._persist)

    @classmethod
    def open(
        cls,
        root: str | Path,
        settings: Settings | None = None,
        *,
        clock: Callable[[], int] | None = None,
    ) -> Workspace:
        """Open (and if needed initialise or repair) *root*, then load its records."""
        ws = cls(root, settings, clock=clock)
        if ws.settings.auto_repair and ws.repo.ensure_ready():
            logger.info("Prepared repository at %s", ws.root)
        artifacts, links, projects = ws.records.load_all()
        ws.store.load(artifacts, links, projects)
        return ws

    def _persist(self, event: StoreEvent) -> None:
        try:
            if isinstance(event, RecordSaved):
                self.records.write(event.record)
            elif isinstance(event, RecordErased):
                self.records.erase(event.folder, event.record_id)
        except OSError as exc:
            logger.error("Could not persist record file: %s", exc)
            raise PersistenceError(f"Could not persist record file: {exc}") from exc

    # -- Artifacts ------------------------------------------------------------

    def get(self, artifact_id: str) -> Artifact:
        return self.store.get(artifact_id)

    def list(
        self,
        kind: ArtifactKind | str | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[Artifact]:
        return self.store.list(kind, include_deleted=include_deleted)

    def create(
        self,
        kind: ArtifactKind | str,
        payload: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> Artifact:
        with self._lock:
            return self.store.create(kind, payload, **fields)

    def update(self, artifact_id: str, patch: Mapping[str, Any]) -> Artifact:
        with self._lock:
            return self.store.update(artifact_id, patch)

    def trash(self, artifact_id: str) -> Artifact:
        with self._lock:
            return self.trash_bin.trash(artifact_id)

    def restore(self, artifact_id: str) -> Artifact:
        with self._lock:
            return self.trash_bin.restore(artifact_id)

    def purge(self, artifact_id: str) -> None:
        with self._lock:
            self.trash_bin.purge(artifact_id)

    def empty_trash(self, kind: ArtifactKind | str | None = None) -> list[str]:
        with self._lock:
            return self.trash_bin.empty(kind)

    def list_trashed(self, kind: ArtifactKind | str | None = None) -> list[Artifact]:
        return self.trash_bin.list_trashed(kind)

    def history(self, artifact_id: str, max_count: int | None = None) -> list[LogEntry]:
        """Commits that touched an artifact's file, newest first."""
        artifact = self.store.get(artifact_id)
        return get_file_log(
            self.repo, record_path(folder_of(artifact), artifact.id), max_count=max_count,
        )

    # -- Links and projects ---------------------------------------------------

    def link(
        self,
        source_id: str,
        target_id: str,
        link_type: LinkType | str,
        project_ids: Iterable[str] = (),
    ) -> Link:
        with self._lock:
            return self.store.create_link(source_id, target_id, link_type, project_ids)

    def update_link(self, link_id: str, patch: Mapping[str, Any]) -> Link:
        with self._lock:
            return self.store.update_link(link_id, patch)

    def unlink(self, link_id: str) -> None:
        with self._lock:
            self.store.remove_link(link_id)

    def create_project(
        self,
        name: str,
        description: str = "",
        artifact_ids: Iterable[str] = (),
    ) -> Project:
        with self._lock:
            return self.store.create_project(name, description, artifact_ids)

    def add_to_project(self, project_id: str, artifact_id: str) -> Project:
        with self._lock:
            return self.store.add_to_project(project_id, artifact_id)

    def remove_from_project(self, project_id: str, artifact_id: str) -> Project:
        with self._lock:
            return self.store.remove_from_project(project_id, artifact_id)

    # -- Version control ------------------------------------------------------

    def pending_changes(self) -> list[ArtifactChange]:
        return self.tracker.pending_changes()

    def is_clean(self) -> bool:
        return self.tracker.is_clean()

    def commit(self, message: str, author: str | None = None) -> str:
        """Commit every pending change.  Returns the hash, or ``""`` if clean."""
        with self._lock:
            return commit_all(self.repo, message, author=author)

    def create_baseline(
        self,
        project_id: str,
        name: str,
        description: str = "",
    ) -> ProjectBaseline:
        """Snapshot a committed project and commit the baseline record.

        If the commit fails the baseline file is removed again, so a retry
        reuses the same version number.
        """
        with self._lock:
            baseline = self.baselines.create_baseline(project_id, name, description)
            rel = self.baselines.storage.relative_path(baseline.project_id, baseline.version)
            try:
                commit_paths(
                    self.repo, [rel], f"Baseline created: {baseline.name} ({baseline.version})",
                )
            except Exception:
                logger.warning("Commit of baseline %s failed; discarding it", baseline.id)
                unstage_new(self.repo, [rel])
                self.baselines.storage.discard(baseline.project_id, baseline.version)
                raise
            return baseline

    def list_baselines(self, project_id: str) -> list[ProjectBaseline]:
        return self.baselines.list_baselines(project_id)

    def baseline_snapshot(self, project_id: str, version: str) -> list[Artifact]:
        return self.baselines.snapshot(project_id, version)

    def compare_baselines(
        self, project_id: str, from_version: str, to_version: str,
    ) -> BaselineDiff:
        return self.baselines.compare(project_id, from_version, to_version)

    # -- Traceability ---------------------------------------------------------

    def traceability(
        self,
        project_id: str | None = None,
        policy: GapPolicy | None = None,
    ) -> TraceabilityGraph:
        return TraceabilityGraph.from_store(self.store, project_id, policy=policy)

    def matrix(self, project_id: str | None = None) -> TraceabilityMatrix:
        return self.traceability(project_id).matrix(self.settings.matrix_max_size)
