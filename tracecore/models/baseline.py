"""ProjectBaseline — an immutable, named snapshot of committed artifact state."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import Field

from tracecore.models.artifact import ArtifactKind, Record, now_ms


class ArtifactCommit(Record):
    """Commit that holds an artifact's state at baseline time."""

    commit_hash: str
    type: ArtifactKind


class ProjectBaseline(Record):
    """A snapshot mapping each in-scope artifact id to its latest commit.

    ``added_artifacts`` and ``removed_artifacts`` are relative to the
    preceding baseline of the same project.
    """

    id: str
    project_id: str
    version: str
    """Two-digit, per-project sequence: '01', '02', ..."""

    name: str
    description: str = ""
    timestamp: int = Field(default_factory=now_ms)
    artifact_commits: dict[str, ArtifactCommit] = Field(default_factory=dict)
    added_artifacts: list[str] = Field(default_factory=list)
    removed_artifacts: list[str] = Field(default_factory=list)

    def commit_for(self, artifact_id: str) -> str | None:
        entry = self.artifact_commits.get(artifact_id)
        return entry.commit_hash if entry else None


@dataclass
class BaselineDiff:
    """Difference between two baselines of one project."""

    from_version: str
    to_version: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    """Present in both, but pinned to a different commit."""

    unchanged: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)
