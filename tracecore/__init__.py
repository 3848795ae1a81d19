"""tracecore — revision, baseline, and traceability engine for engineering artifacts."""

__version__ = "1.0.0"

from tracecore.baselines.manager import BaselineManager
from tracecore.config import Settings, configure_logging, load_config
from tracecore.core.ids import IdAllocator, allocate_id
from tracecore.core.revision import increment_revision
from tracecore.errors import (
    BaselineExistsError,
    DirtyTreeError,
    IdExhaustionError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    RepositoryUnavailable,
    TracecoreError,
    ValidationError,
)
from tracecore.models import (
    Artifact,
    ArtifactKind,
    Link,
    LinkType,
    Project,
    ProjectBaseline,
)
from tracecore.store.artifacts import ArtifactStore
from tracecore.store.trash import TrashBin, TrashState
from tracecore.traceability.graph import GapIssue, GapPolicy, TraceabilityGraph
from tracecore.vcs.changes import ArtifactChange, ChangeSetTracker
from tracecore.vcs.repo import GitError, RepoManager
from tracecore.workspace import Workspace

__all__ = [
    "Artifact",
    "ArtifactChange",
    "ArtifactKind",
    "ArtifactStore",
    "BaselineExistsError",
    "BaselineManager",
    "ChangeSetTracker",
    "DirtyTreeError",
    "GapIssue",
    "GapPolicy",
    "GitError",
    "IdAllocator",
    "IdExhaustionError",
    "InvalidTransitionError",
    "Link",
    "LinkType",
    "NotFoundError",
    "PersistenceError",
    "Project",
    "ProjectBaseline",
    "RepoManager",
    "RepositoryUnavailable",
    "Settings",
    "TraceabilityGraph",
    "TracecoreError",
    "TrashBin",
    "TrashState",
    "ValidationError",
    "Workspace",
    "allocate_id",
    "configure_logging",
    "increment_revision",
    "load_config",
]
