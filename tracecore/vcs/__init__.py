"""Git-backed version control: repository access, history, and pending changes."""

from tracecore.vcs.changes import ArtifactChange, ChangeSetTracker
from tracecore.vcs.repo import GitError, RepoManager
from tracecore.vcs.status import FileState, StatusEntry

__all__ = [
    "ArtifactChange",
    "ChangeSetTracker",
    "FileState",
    "GitError",
    "RepoManager",
    "StatusEntry",
]
