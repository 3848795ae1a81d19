"""Project — a named membership list of artifacts."""

from __future__ import annotations

from pydantic import Field

from tracecore.core.revision import INITIAL_REVISION
from tracecore.models.artifact import Record, now_ms


class Project(Record):
    """A project groups artifacts; baselines are scoped to its members.

    Artifacts are never destroyed by leaving a project, only removed from
    ``artifact_ids``.
    """

    id: str
    name: str
    description: str = ""
    artifact_ids: list[str] = Field(default_factory=list)
    date_created: int = Field(default_factory=now_ms)
    last_modified: int = Field(default_factory=now_ms)
    revision: str = INITIAL_REVISION
