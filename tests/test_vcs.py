"""Tests for the git layer.

All tests use tmp_path fixtures with real git repos (subprocess git).
Covers repo init, HEAD repair, the status matrix, commits, and history.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from tracecore.errors import RepositoryUnavailable
from tracecore.vcs.commits import commit_all, commit_paths, unstage_new
from tracecore.vcs.history import LogEntry, get_file_log, latest_commit, read_file_at_commit
from tracecore.vcs.repo import GitError, RepoManager


# ---------------------------------------------------------------------------
# Helper: configure git user for tmp repos
# ---------------------------------------------------------------------------


def _configure_git_user(path: Path) -> None:
    """Set git user.name, user.email, and disable GPG signing in a temp repo."""
    subprocess.run(["git", "config", "user.email", "test@tracecore.dev"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.name", "Tracecore Test"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=path, capture_output=True)


def _write(repo: RepoManager, rel: str, text: str = "{}") -> Path:
    path = repo.path / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture()
def git_repo(tmp_path: Path) -> RepoManager:
    """An initialised repo with the initial commit."""
    repo = RepoManager(tmp_path / "repo")
    repo.init_repo()
    return repo


def _rows(repo: RepoManager) -> dict[str, tuple[int, int, int]]:
    return {path: (h, w, s) for path, h, w, s in repo.status_matrix()}


# ---------------------------------------------------------------------------
# RepoManager tests
# ---------------------------------------------------------------------------


class TestRepoManager:
    def test_init_repo(self, tmp_path: Path):
        repo = RepoManager(tmp_path / "myrepo")
        result = repo.init_repo()
        assert result == (tmp_path / "myrepo").resolve()
        assert (tmp_path / "myrepo" / ".gitignore").is_file()
        assert (tmp_path / "myrepo" / ".gitattributes").is_file()
        assert repo.is_repo()
        assert repo.current_branch() == "main"
        assert repo.is_clean()

    def test_is_repo_false_before_init(self, tmp_path: Path):
        repo = RepoManager(tmp_path / "repo")
        assert not repo.is_repo()

    def test_is_repo_true_after_git_init(self, tmp_path: Path):
        repo = RepoManager(tmp_path / "repo")
        (tmp_path / "repo").mkdir()
        subprocess.run(["git", "init"], cwd=tmp_path / "repo", capture_output=True)
        assert repo.is_repo()

    def test_stage_and_commit_returns_full_hash(self, git_repo: RepoManager):
        _write(git_repo, "file.txt", "content")
        git_repo.stage("file.txt")
        sha = git_repo.commit("test commit")
        assert len(sha) == 40
        assert sha == git_repo.head_commit()
        assert git_repo.is_clean()

    def test_commit_with_author(self, git_repo: RepoManager):
        _write(git_repo, "file.txt")
        git_repo.add("file.txt")
        git_repo.commit("authored", author="Ada Lovelace <ada@example.com>")
        result = subprocess.run(
            ["git", "log", "-1", "--format=%an"],
            cwd=git_repo.path, capture_output=True, text=True,
        )
        assert result.stdout.strip() == "Ada Lovelace"

    def test_commit_nothing_raises(self, git_repo: RepoManager):
        with pytest.raises(GitError):
            git_repo.commit("empty")


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class TestEnsureReady:
    def test_initialises_missing_repo(self, tmp_path: Path):
        repo = RepoManager(tmp_path / "fresh")
        assert repo.ensure_ready() is True
        assert repo.is_repo()
        assert repo.ensure_ready() is False

    def test_repairs_missing_head_keeping_history(self, git_repo: RepoManager):
        _write(git_repo, "requirements/REQ-001.json")
        sha = commit_all(git_repo, "add req")
        (git_repo.git_dir / "HEAD").unlink()

        with pytest.raises(RepositoryUnavailable):
            git_repo.status_matrix()

        assert git_repo.ensure_ready() is True
        assert (git_repo.git_dir / "HEAD").read_text() == "ref: refs/heads/main\n"
        assert git_repo.head_commit() == sha
        assert _rows(git_repo)["requirements/REQ-001.json"] == (1, 1, 1)

    def test_status_matrix_without_repo(self, tmp_path: Path):
        (tmp_path / "plain").mkdir()
        with pytest.raises(RepositoryUnavailable):
            RepoManager(tmp_path / "plain").status_matrix()


# ---------------------------------------------------------------------------
# Status matrix
# ---------------------------------------------------------------------------


class TestStatusMatrix:
    def test_clean_tree_is_all_ones(self, git_repo: RepoManager):
        rows = git_repo.status_matrix()
        assert rows
        assert all((h, w, s) == (1, 1, 1) for _, h, w, s in rows)

    def test_untracked_file(self, git_repo: RepoManager):
        _write(git_repo, "requirements/REQ-001.json")
        assert _rows(git_repo)["requirements/REQ-001.json"] == (0, 2, 0)

    def test_added_then_modified(self, git_repo: RepoManager):
        path = _write(git_repo, "usecases/UC-001.json", '{"a": 1}')
        git_repo.stage("usecases/UC-001.json")
        assert _rows(git_repo)["usecases/UC-001.json"] == (0, 2, 2)
        path.write_text('{"a": 2}')
        assert _rows(git_repo)["usecases/UC-001.json"] == (0, 2, 3)

    def test_modified_states(self, git_repo: RepoManager):
        path = _write(git_repo, "risks/RISK-001.json", '{"v": 1}')
        commit_all(git_repo, "add risk")
        path.write_text('{"v": 2}')
        assert _rows(git_repo)["risks/RISK-001.json"] == (1, 2, 1)
        git_repo.stage("risks/RISK-001.json")
        assert _rows(git_repo)["risks/RISK-001.json"] == (1, 2, 2)
        path.write_text('{"v": 3}')
        assert _rows(git_repo)["risks/RISK-001.json"] == (1, 2, 3)

    def test_deleted_states(self, git_repo: RepoManager):
        path = _write(git_repo, "links/LINK-001.json")
        commit_all(git_repo, "add link")
        path.unlink()
        assert _rows(git_repo)["links/LINK-001.json"] == (1, 0, 1)
        git_repo.stage("links/LINK-001.json")
        assert _rows(git_repo)["links/LINK-001.json"] == (1, 0, 0)


# ---------------------------------------------------------------------------
# Commit helpers
# ---------------------------------------------------------------------------


class TestCommitHelpers:
    def test_commit_all(self, git_repo: RepoManager):
        _write(git_repo, "new_file.txt", "data")
        sha = commit_all(git_repo, "commit all changes")
        assert len(sha) == 40
        assert git_repo.is_clean()

    def test_commit_all_clean_tree(self, git_repo: RepoManager):
        assert commit_all(git_repo, "nothing") == ""

    def test_commit_paths_leaves_others_pending(self, git_repo: RepoManager):
        _write(git_repo, "requirements/REQ-001.json")
        _write(git_repo, "requirements/REQ-002.json")
        sha = commit_paths(git_repo, ["requirements/REQ-001.json"], "only one")
        assert sha
        rows = _rows(git_repo)
        assert rows["requirements/REQ-001.json"] == (1, 1, 1)
        assert rows["requirements/REQ-002.json"] == (0, 2, 0)

    def test_commit_paths_deletion(self, git_repo: RepoManager):
        path = _write(git_repo, "documents/DOC-001.json")
        commit_all(git_repo, "add doc")
        path.unlink()
        assert commit_paths(git_repo, ["documents/DOC-001.json"], "remove doc")
        assert "documents/DOC-001.json" not in _rows(git_repo)

    def test_commit_paths_nothing_to_do(self, git_repo: RepoManager):
        assert commit_paths(git_repo, [], "none") == ""
        assert commit_paths(git_repo, ["never/existed.json"], "none") == ""

    def test_unstage_new_keeps_file(self, git_repo: RepoManager):
        _write(git_repo, "baselines/PROJ-001/01.json")
        git_repo.stage("baselines/PROJ-001/01.json")
        unstage_new(git_repo, ["baselines/PROJ-001/01.json"])
        assert _rows(git_repo)["baselines/PROJ-001/01.json"] == (0, 2, 0)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class TestHistory:
    def test_file_log_newest_first(self, git_repo: RepoManager):
        path = _write(git_repo, "requirements/REQ-001.json", "1")
        first = commit_all(git_repo, "create REQ-001")
        path.write_text("2")
        second = commit_all(git_repo, "update REQ-001")
        _write(git_repo, "requirements/REQ-002.json")
        commit_all(git_repo, "create REQ-002")

        log = get_file_log(git_repo, "requirements/REQ-001.json")
        assert [e.sha for e in log] == [second, first]
        assert isinstance(log[0], LogEntry)
        assert log[0].message == "update REQ-001"
        assert latest_commit(git_repo, "requirements/REQ-001.json") == second

    def test_absolute_path(self, git_repo: RepoManager):
        path = _write(git_repo, "testcases/TC-001.json")
        sha = commit_all(git_repo, "add tc")
        assert latest_commit(git_repo, path) == sha

    def test_uncommitted_file_has_no_history(self, git_repo: RepoManager):
        _write(git_repo, "testcases/TC-001.json")
        assert get_file_log(git_repo, "testcases/TC-001.json") == []
        assert latest_commit(git_repo, "testcases/TC-001.json") is None

    def test_log_in_repo_without_commits(self, tmp_path: Path):
        path = tmp_path / "empty"
        path.mkdir()
        subprocess.run(["git", "init"], cwd=path, capture_output=True)
        _configure_git_user(path)
        assert get_file_log(RepoManager(path), "any.json") == []

    def test_read_file_at_commit(self, git_repo: RepoManager):
        path = _write(git_repo, "requirements/REQ-001.json", "old")
        first = commit_all(git_repo, "create REQ-001")
        path.write_text("new")
        commit_all(git_repo, "update REQ-001")

        assert read_file_at_commit(git_repo, "requirements/REQ-001.json", first) == "old"
        assert read_file_at_commit(git_repo, path, first) == "old"
        assert read_file_at_commit(git_repo, "requirements/REQ-002.json", first) is None
        assert read_file_at_commit(git_repo, "requirements/REQ-001.json", "0" * 40) is None
