"""Events published by :class:`~tracecore.store.artifacts.ArtifactStore`.

Listeners receive them synchronously, in subscription order, after the
in-memory state has been updated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from tracecore.models.artifact import Artifact, ArtifactKind
from tracecore.models.link import Link
from tracecore.models.project import Project


@dataclass(frozen=True)
class RecordSaved:
    """A record was created or replaced."""

    record: Union[Artifact, Link, Project]


@dataclass(frozen=True)
class RecordErased:
    """A record was physically removed."""

    folder: str
    record_id: str


@dataclass(frozen=True)
class ArtifactRemoved:
    """An artifact left the active set (soft delete or permanent delete).

    Consumed by the reference-cleanup pass, which strips the id from every
    reference list that holds it.
    """

    artifact_id: str
    kind: ArtifactKind
    permanent: bool = False


StoreEvent = Union[RecordSaved, RecordErased, ArtifactRemoved]
Listener = Callable[[StoreEvent], None]
