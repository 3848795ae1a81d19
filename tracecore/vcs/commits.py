"""Commit helpers — commit the whole record tree or selected record files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from tracecore.vcs.repo import RepoManager, _run_git

logger = logging.getLogger(__name__)


def _has_staged(repo: RepoManager) -> bool:
    result = _run_git("diff", "--cached", "--quiet", cwd=repo.path, check=False)
    return result.returncode != 0


def commit_all(
    repo: RepoManager,
    message: str = "chore: update records",
    author: str | None = None,
) -> str:
    """Stage all changes and create a single commit.

    Returns the full commit hash, or an empty string if the tree is
    already clean.
    """
    _run_git("add", "-A", cwd=repo.path)

    if not _has_staged(repo):
        logger.debug("Nothing to commit")
        return ""

    sha = repo.commit(message, author=author)
    logger.info("Committed all changes (%s)", sha[:7])
    return sha


def commit_paths(
    repo: RepoManager,
    paths: Iterable[str | Path],
    message: str,
    author: str | None = None,
) -> str:
    """Stage and commit only *paths* (additions, edits, and deletions).

    Other pending changes stay pending.  Returns the full commit hash, or
    an empty string if none of *paths* had changes.
    """
    str_paths = sorted({Path(p).as_posix() for p in paths})
    if not str_paths:
        return ""

    # Drop paths git has never seen and that no longer exist (add would fail).
    existing = [p for p in str_paths if (repo.path / p).exists() or _is_tracked(repo, p)]
    if not existing:
        return ""
    repo.stage(*existing)

    if not _has_staged(repo):
        logger.debug("Nothing to commit for %d path(s)", len(existing))
        return ""

    args = ["commit", "-m", message]
    if author:
        args.append(f"--author={author}")
    _run_git(*args, "--", *existing, cwd=repo.path)
    sha = repo.head_commit()
    logger.info("Committed %d path(s) (%s)", len(existing), sha[:7])
    return sha


def unstage_new(repo: RepoManager, paths: Iterable[str | Path]) -> None:
    """Drop never-committed *paths* from the index, leaving the working tree alone."""
    str_paths = sorted({Path(p).as_posix() for p in paths})
    if str_paths:
        _run_git(
            "rm", "--cached", "--quiet", "--ignore-unmatch", "--", *str_paths,
            cwd=repo.path,
            check=False,
        )


def _is_tracked(repo: RepoManager, path: str) -> bool:
    result = _run_git("ls-files", "--error-unmatch", "--", path, cwd=repo.path, check=False)
    return result.returncode == 0
