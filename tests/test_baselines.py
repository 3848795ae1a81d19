"""Tests for BaselineManager and BaselineStorage against real git repos."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tracecore.baselines.manager import BaselineManager
from tracecore.baselines.storage import BaselineStorage
from tracecore.errors import (
    BaselineExistsError,
    DirtyTreeError,
    NotFoundError,
    ValidationError,
)
from tracecore.models import ArtifactKind, ProjectBaseline
from tracecore.storage import RecordStorage
from tracecore.store.artifacts import ArtifactStore
from tracecore.store.events import RecordErased, RecordSaved
from tracecore.vcs.changes import ChangeSetTracker
from tracecore.vcs.commits import commit_all
from tracecore.vcs.history import latest_commit
from tracecore.vcs.repo import RepoManager


class _Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now


class _Env:
    """A store whose records are written into a git working tree."""

    def __init__(self, root: Path) -> None:
        self.repo = RepoManager(root)
        self.repo.init_repo()
        self.clock = _Clock()
        self.store = ArtifactStore(clock=self.clock)
        records = RecordStorage(self.repo.path)

        def persist(event):
            if isinstance(event, RecordSaved):
                records.write(event.record)
            elif isinstance(event, RecordErased):
                records.erase(event.folder, event.record_id)

        self.store.subscribe(persist)
        self.tracker = ChangeSetTracker(self.store, self.repo)
        self.manager = BaselineManager(
            self.store, self.tracker, self.repo, BaselineStorage(self.repo.path), clock=self.clock,
        )

    def commit(self, message: str = "save") -> str:
        return commit_all(self.repo, message)


@pytest.fixture()
def env(tmp_path: Path) -> _Env:
    return _Env(tmp_path / "ws")


def _project_with_two(env: _Env):
    req = env.store.create("requirement", title="Login", text="Users log in")
    uc = env.store.create("usecase", title="Sign in")
    project = env.store.create_project("Release 1", artifact_ids=[req.id, uc.id])
    env.commit("initial records")
    return project, req, uc


# ---------------------------------------------------------------------------
# create_baseline
# ---------------------------------------------------------------------------


class TestCreateBaseline:
    def test_first_baseline_maps_members_to_latest_commits(self, env: _Env):
        project, req, uc = _project_with_two(env)
        env.store.update(req.id, {"text": "Users log in with SSO"})
        second = env.commit("update requirement")

        baseline = env.manager.create_baseline(project.id, "R1 freeze", "first cut")

        assert isinstance(baseline, ProjectBaseline)
        assert baseline.version == "01"
        assert baseline.id == f"{project.id}-BL-01"
        assert set(baseline.artifact_commits) == {req.id, uc.id}
        assert baseline.commit_for(req.id) == second
        assert baseline.commit_for(uc.id) == latest_commit(env.repo, "usecases/UC-001.json")
        assert baseline.commit_for(uc.id) != second
        assert baseline.artifact_commits[uc.id].type is ArtifactKind.USE_CASE
        assert baseline.added_artifacts == [req.id, uc.id]
        assert baseline.removed_artifacts == []

    def test_dirty_member_refuses(self, env: _Env):
        project, req, _ = _project_with_two(env)
        env.store.update(req.id, {"title": "Changed"})
        with pytest.raises(DirtyTreeError) as excinfo:
            env.manager.create_baseline(project.id, "R1")
        assert [c.id for c in excinfo.value.changes] == [req.id]
        assert env.manager.list_baselines(project.id) == []

    def test_dirty_project_record_refuses(self, env: _Env):
        project, _, _ = _project_with_two(env)
        other = env.store.create("risk", title="Outage")
        env.store.add_to_project(project.id, other.id)
        with pytest.raises(DirtyTreeError) as excinfo:
            env.manager.create_baseline(project.id, "R1")
        assert {c.id for c in excinfo.value.changes} == {project.id, other.id}

    def test_changes_outside_project_do_not_block(self, env: _Env):
        project, _, _ = _project_with_two(env)
        env.store.create("document", title="Unrelated")
        baseline = env.manager.create_baseline(project.id, "R1")
        assert "DOC-001" not in baseline.artifact_commits

    def test_uncommitted_member_without_file(self, tmp_path: Path):
        repo = RepoManager(tmp_path / "bare")
        repo.init_repo()
        store = ArtifactStore()
        req = store.create("requirement", title="T", text="x")
        project = store.create_project("P", artifact_ids=[req.id])
        manager = BaselineManager(store, ChangeSetTracker(store, repo), repo)
        with pytest.raises(ValidationError, match="never been committed"):
            manager.create_baseline(project.id, "R1")

    def test_unknown_project_and_blank_name(self, env: _Env):
        project, _, _ = _project_with_two(env)
        with pytest.raises(NotFoundError):
            env.manager.create_baseline("PROJ-099", "R1")
        with pytest.raises(ValidationError):
            env.manager.create_baseline(project.id, "  ")

    def test_versions_and_deltas(self, env: _Env):
        project, req, uc = _project_with_two(env)
        first = env.manager.create_baseline(project.id, "B1")

        tc = env.store.create("testcase", title="Check login")
        env.store.add_to_project(project.id, tc.id)
        env.store.remove_from_project(project.id, uc.id)
        env.commit("rescope")
        second = env.manager.create_baseline(project.id, "B2")

        assert (first.version, second.version) == ("01", "02")
        assert second.added_artifacts == [tc.id]
        assert second.removed_artifacts == [uc.id]
        assert second.timestamp > first.timestamp

    def test_soft_deleted_member_counts_as_removed(self, env: _Env):
        project, req, uc = _project_with_two(env)
        env.manager.create_baseline(project.id, "B1")
        env.store.soft_delete(uc.id)
        env.commit("trash use case")

        second = env.manager.create_baseline(project.id, "B2")
        assert uc.id not in second.artifact_commits
        assert second.removed_artifacts == [uc.id]

    def test_timestamps_strictly_increase_with_frozen_clock(self, env: _Env):
        project, _, _ = _project_with_two(env)
        stamps = [env.manager.create_baseline(project.id, f"B{i}").timestamp for i in range(3)]
        assert stamps == sorted(set(stamps))

    def test_baselines_are_frozen(self, env: _Env):
        project, _, _ = _project_with_two(env)
        baseline = env.manager.create_baseline(project.id, "B1")
        with pytest.raises(Exception):
            baseline.name = "renamed"


# ---------------------------------------------------------------------------
# Listing and comparison
# ---------------------------------------------------------------------------


class TestQueries:
    def test_list_latest_get(self, env: _Env):
        project, _, _ = _project_with_two(env)
        b1 = env.manager.create_baseline(project.id, "B1")
        b2 = env.manager.create_baseline(project.id, "B2")
        assert [b.version for b in env.manager.list_baselines(project.id)] == ["01", "02"]
        assert env.manager.latest(project.id) == b2
        assert env.manager.get(project.id, "01") == b1
        assert env.manager.latest("PROJ-099") is None
        with pytest.raises(NotFoundError):
            env.manager.get(project.id, "07")

    def test_compare(self, env: _Env):
        project, req, uc = _project_with_two(env)
        env.manager.create_baseline(project.id, "B1")

        env.store.update(req.id, {"text": "revised"})
        risk = env.store.create("risk", title="Outage")
        env.store.add_to_project(project.id, risk.id)
        env.store.remove_from_project(project.id, uc.id)
        env.commit("changes")
        env.manager.create_baseline(project.id, "B2")

        diff = env.manager.compare(project.id, "01", "02")
        assert diff.added == [risk.id]
        assert diff.removed == [uc.id]
        assert diff.changed == [req.id]
        assert diff.unchanged == []
        assert not diff.is_empty

        same = env.manager.compare(project.id, "02", "02")
        assert same.is_empty
        assert same.unchanged == sorted([req.id, risk.id])

    def test_snapshot_reads_pinned_state(self, env: _Env):
        project, req, uc = _project_with_two(env)
        env.manager.create_baseline(project.id, "B1")
        env.store.update(req.id, {"title": "Login v2"})
        env.commit("retitle")

        pinned = {a.id: a for a in env.manager.snapshot(project.id, "01")}
        assert {i: a.title for i, a in pinned.items()} == {req.id: "Login", uc.id: "Sign in"}
        assert pinned[req.id].revision == "01"
        assert pinned[req.id].kind is ArtifactKind.REQUIREMENT
        assert env.store.get(req.id).title == "Login v2"
        with pytest.raises(NotFoundError):
            env.manager.snapshot(project.id, "09")


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class TestBaselineStorage:
    def test_persisted_layout_and_reload(self, env: _Env):
        project, req, _ = _project_with_two(env)
        baseline = env.manager.create_baseline(project.id, "B1")

        path = env.repo.path / "baselines" / project.id / "01.json"
        data = json.loads(path.read_text())
        assert data["projectId"] == project.id
        assert data["artifactCommits"][req.id]["commitHash"] == baseline.commit_for(req.id)
        assert data["addedArtifacts"] == baseline.added_artifacts

        reloaded = BaselineStorage(env.repo.path)
        assert reloaded.get(project.id, "01") == baseline

    def test_write_once(self, tmp_path: Path):
        storage = BaselineStorage(tmp_path)
        baseline = ProjectBaseline(id="PROJ-001-BL-01", project_id="PROJ-001", version="01", name="B1")
        assert storage.save(baseline) == "baselines/PROJ-001/01.json"
        with pytest.raises(BaselineExistsError):
            storage.save(baseline.model_copy(update={"name": "again"}))
        with pytest.raises(BaselineExistsError):
            BaselineStorage(tmp_path).save(baseline)

    def test_memory_only(self):
        storage = BaselineStorage()
        baseline = ProjectBaseline(id="P-BL-01", project_id="P", version="01", name="B1")
        assert storage.save(baseline) is None
        assert storage.list("P") == [baseline]

    def test_discard_frees_the_version(self, tmp_path: Path):
        storage = BaselineStorage(tmp_path)
        baseline = ProjectBaseline(id="PROJ-001-BL-01", project_id="PROJ-001", version="01", name="B1")
        storage.save(baseline)
        storage.discard("PROJ-001", "01")
        assert storage.list("PROJ-001") == []
        assert not (tmp_path / "baselines" / "PROJ-001" / "01.json").exists()

        storage.discard("PROJ-001", "07")
        assert storage.save(baseline) == "baselines/PROJ-001/01.json"
