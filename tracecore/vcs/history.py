"""History queries — per-record ``git log``.

Every record is one file, so a record's history is the log of its path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tracecore.vcs.repo import RepoManager, _run_git

logger = logging.getLogger(__name__)

# Delimiter unlikely to appear in commit messages
_SEP = "---TRACECORE_SEP---"
_FORMAT = f"%H{_SEP}%an{_SEP}%ai{_SEP}%s"


@dataclass
class LogEntry:
    """A single entry from ``git log``."""

    sha: str
    author: str
    date: str
    message: str


def _relative(repo: RepoManager, file_path: str | Path) -> Path:
    file_path = Path(file_path)
    if not file_path.is_absolute():
        return file_path
    try:
        return file_path.resolve().relative_to(repo.path)
    except ValueError:
        return file_path


def get_file_log(
    repo: RepoManager,
    file_path: str | Path,
    max_count: int | None = 20,
) -> list[LogEntry]:
    """Return the commit history for a single file, newest first.

    Parameters
    ----------
    repo:
        The repository manager.
    file_path:
        Path to the file (absolute or relative to repo root).
    max_count:
        Maximum number of entries; *None* for the full history.

    An unknown path, or a repository without commits, yields ``[]``.
    """
    args = ["log", f"--format={_FORMAT}"]
    if max_count is not None:
        args.append(f"--max-count={max_count}")
    result = _run_git(
        *args, "--", _relative(repo, file_path).as_posix(),
        cwd=repo.path,
        check=False,
    )

    if result.returncode != 0 or not result.stdout.strip():
        return []

    entries: list[LogEntry] = []
    for line in result.stdout.strip().splitlines():
        parts = line.split(_SEP)
        if len(parts) >= 4:
            entries.append(
                LogEntry(
                    sha=parts[0],
                    author=parts[1],
                    date=parts[2],
                    message=parts[3],
                )
            )
    return entries


def latest_commit(repo: RepoManager, file_path: str | Path) -> str | None:
    """Full hash of the newest commit touching *file_path*, or *None*."""
    entries = get_file_log(repo, file_path, max_count=1)
    return entries[0].sha if entries else None


def read_file_at_commit(repo: RepoManager, file_path: str | Path, sha: str) -> str | None:
    """Content of *file_path* as of commit *sha*.

    Returns *None* when the path does not exist in that commit (or the
    commit itself is unknown).
    """
    result = _run_git(
        "show", f"{sha}:{_relative(repo, file_path).as_posix()}",
        cwd=repo.path,
        check=False,
    )
    if result.returncode != 0:
        logger.debug("No %s at %s", file_path, sha[:7])
        return None
    return result.stdout
