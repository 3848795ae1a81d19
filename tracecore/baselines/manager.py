"""BaselineManager — named, immutable snapshots of committed project state.

A baseline pins every active member of a project to the newest commit of
its record file.  Baselines can only be taken over a committed tree, so
each one can be reproduced from git history alone.
"""

from __future__ import annotations

import logging
from typing import Callable

from tracecore.baselines.storage import BaselineStorage
from tracecore.core.ids import natural_key
from tracecore.core.revision import INITIAL_REVISION, increment_revision
from tracecore.errors import DirtyTreeError, NotFoundError, ValidationError
from tracecore.models.artifact import Artifact, now_ms
from tracecore.models.baseline import ArtifactCommit, BaselineDiff, ProjectBaseline
from tracecore.storage import record_path
from tracecore.store.artifacts import ArtifactStore
from tracecore.vcs.changes import ChangeSetTracker
from tracecore.vcs.history import latest_commit, read_file_at_commit
from tracecore.vcs.repo import RepoManager

logger = logging.getLogger(__name__)


def _sorted_ids(ids) -> list[str]:
    return sorted(ids, key=natural_key)


class BaselineManager:
    """Create, list, and compare baselines of the projects in *store*.

    Parameters
    ----------
    store:
        Source of project membership.
    tracker:
        Pending-change view used to refuse baselines over a dirty tree.
    repo:
        Repository queried for each member's latest commit.
    storage:
        Append-only baseline persistence.
    clock:
        Returns "now" in epoch milliseconds.
    """

    def __init__(
        self,
        store: ArtifactStore,
        tracker: ChangeSetTracker,
        repo: RepoManager,
        storage: BaselineStorage | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.store = store
        self.tracker = tracker
        self.repo = repo
        self.storage = storage or BaselineStorage()
        self._clock = clock or now_ms

    def create_baseline(
        self,
        project_id: str,
        name: str,
        description: str = "",
    ) -> ProjectBaseline:
        """Snapshot *project_id* at its current commits.

        Soft-deleted members are out of scope: they are not pinned, and
        show up in ``removed_artifacts`` if the previous baseline had them.

        Raises
        ------
        NotFoundError
            If the project does not exist.
        DirtyTreeError
            If any member (trashed ones included) or the project record
            itself has uncommitted changes.
        ValidationError
            If *name* is blank or a member has never been committed.
        """
        project = self.store.get_project(project_id)
        if not name or not name.strip():
            raise ValidationError("Baseline name is required")

        scope = {*project.artifact_ids, project.id}
        pending = self.tracker.pending_for(scope)
        if pending:
            raise DirtyTreeError(pending)

        commits: dict[str, ArtifactCommit] = {}
        for artifact in self.store.members(project_id):
            path = record_path(artifact.kind.folder, artifact.id)
            sha = latest_commit(self.repo, path)
            if sha is None:
                raise ValidationError(f"{artifact.id} has never been committed ({path})")
            commits[artifact.id] = ArtifactCommit(commit_hash=sha, type=artifact.kind)

        previous = self.latest(project_id)
        if previous is None:
            version = INITIAL_REVISION
            added, removed = _sorted_ids(commits), []
        else:
            version = increment_revision(previous.version)
            before = set(previous.artifact_commits)
            added = _sorted_ids(set(commits) - before)
            removed = _sorted_ids(before - set(commits))

        timestamp = self._clock()
        if previous is not None and timestamp <= previous.timestamp:
            timestamp = previous.timestamp + 1

        baseline = ProjectBaseline(
            id=f"{project_id}-BL-{version}",
            project_id=project_id,
            version=version,
            name=name.strip(),
            description=description,
            timestamp=timestamp,
            artifact_commits={i: commits[i] for i in _sorted_ids(commits)},
            added_artifacts=added,
            removed_artifacts=removed,
        )
        self.storage.save(baseline)
        logger.info(
            "Created baseline %s '%s' (%d artifact(s), +%d/-%d)",
            baseline.id, baseline.name, len(commits), len(added), len(removed),
        )
        return baseline

    def list_baselines(self, project_id: str) -> list[ProjectBaseline]:
        """Baselines of a project, oldest first."""
        return self.storage.list(project_id)

    def latest(self, project_id: str) -> ProjectBaseline | None:
        baselines = self.storage.list(project_id)
        return baselines[-1] if baselines else None

    def get(self, project_id: str, version: str) -> ProjectBaseline:
        baseline = self.storage.get(project_id, version)
        if baseline is None:
            raise NotFoundError(f"{project_id}@{version}", "baseline")
        return baseline

    def snapshot(self, project_id: str, version: str) -> list[Artifact]:
        """Artifacts of a baseline as they were at their pinned commits.

        Raises
        ------
        NotFoundError
            If the baseline does not exist, or a pinned record is missing
            from its commit.
        ValidationError
            If a pinned record no longer parses.
        """
        baseline = self.get(project_id, version)
        artifacts: list[Artifact] = []
        for artifact_id in _sorted_ids(baseline.artifact_commits):
            entry = baseline.artifact_commits[artifact_id]
            path = record_path(entry.type.folder, artifact_id)
            text = read_file_at_commit(self.repo, path, entry.commit_hash)
            if text is None:
                raise NotFoundError(f"{path}@{entry.commit_hash[:7]}", "record")
            try:
                artifacts.append(entry.type.spec.model.model_validate_json(text))
            except ValueError as exc:
                raise ValidationError(
                    f"Corrupt record {path} at {entry.commit_hash[:7]}: {exc}"
                ) from exc
        return artifacts

    def compare(self, project_id: str, from_version: str, to_version: str) -> BaselineDiff:
        """What changed between two baselines of the same project."""
        old = self.get(project_id, from_version)
        new = self.get(project_id, to_version)
        before, after = set(old.artifact_commits), set(new.artifact_commits)
        both = before & after
        changed = {i for i in both if old.commit_for(i) != new.commit_for(i)}
        return BaselineDiff(
            from_version=from_version,
            to_version=to_version,
            added=_sorted_ids(after - before),
            removed=_sorted_ids(before - after),
            changed=_sorted_ids(changed),
            unchanged=_sorted_ids(both - changed),
        )
