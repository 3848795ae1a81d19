"""TrashBin — lifecycle of soft-deleted artifacts.

States::

    ACTIVE --trash--> TRASHED --restore--> ACTIVE
                         |
                         +----purge----> PURGED   (terminal)

All record changes are delegated to :class:`ArtifactStore`; the bin only
enforces the allowed transitions and keeps an index of trashed ids per kind.
"""

from __future__ import annotations

import logging
from enum import Enum

from tracecore.core.ids import natural_key
from tracecore.errors import InvalidTransitionError, NotFoundError
from tracecore.models.artifact import Artifact, ArtifactKind
from tracecore.store.artifacts import ArtifactStore
from tracecore.store.events import StoreEvent

logger = logging.getLogger(__name__)


class TrashState(str, Enum):
    ACTIVE = "active"
    TRASHED = "trashed"
    PURGED = "purged"


class TrashBin:
    """Trash, restore, and purge artifacts held by *store*."""

    def __init__(self, store: ArtifactStore) -> None:
        self.store = store
        self._index: dict[ArtifactKind, list[str]] | None = None
        self._generation = 0
        self._purged: set[str] = set()
        store.subscribe(self._on_store_event)

    def state_of(self, artifact_id: str) -> TrashState:
        """Current lifecycle state.

        An id purged by this bin reports PURGED until the number is
        reused by a new artifact.
        """
        try:
            artifact = self.store.get(artifact_id)
        except NotFoundError:
            if artifact_id in self._purged:
                return TrashState.PURGED
            raise
        return TrashState.TRASHED if artifact.is_deleted else TrashState.ACTIVE

    def trash(self, artifact_id: str) -> Artifact:
        self._require(artifact_id, TrashState.ACTIVE, "trash")
        return self.store.soft_delete(artifact_id)

    def restore(self, artifact_id: str) -> Artifact:
        self._require(artifact_id, TrashState.TRASHED, "restore")
        return self.store.restore(artifact_id)

    def purge(self, artifact_id: str) -> None:
        """Permanently delete a trashed artifact.  Only trashed ids can be purged."""
        self._require(artifact_id, TrashState.TRASHED, "purge")
        self.store.permanently_delete(artifact_id)
        self._purged.add(artifact_id)
        logger.info("Purged %s from trash", artifact_id)

    def empty(self, kind: ArtifactKind | str | None = None) -> list[str]:
        """Purge every trashed artifact (of *kind*, if given).  Returns the ids."""
        purged = [a.id for a in self.list_trashed(kind)]
        for artifact_id in purged:
            self.purge(artifact_id)
        return purged

    def list_trashed(self, kind: ArtifactKind | str | None = None) -> list[Artifact]:
        """Trashed artifacts, most recently deleted first."""
        index = self._build_index()
        kinds = [ArtifactKind(kind)] if kind is not None else list(ArtifactKind)
        items = []
        for k in kinds:
            for artifact_id in index.get(k, []):
                try:
                    artifact = self.store.get(artifact_id)
                except NotFoundError:
                    continue
                if artifact.is_deleted:
                    items.append(artifact)
        return sorted(items, key=lambda a: -(a.deleted_at or 0))

    def count(self) -> int:
        return sum(len(ids) for ids in self._build_index().values())

    def _require(self, artifact_id: str, expected: TrashState, action: str) -> None:
        state = self.state_of(artifact_id)
        if state is not expected:
            raise InvalidTransitionError(
                f"Cannot {action} {artifact_id}: it is {state.value}"
            )

    def _on_store_event(self, event: StoreEvent) -> None:
        self._generation += 1
        self._index = None

    def _build_index(self) -> dict[ArtifactKind, list[str]]:
        index = self._index
        if index is None:
            generation = self._generation
            index = {}
            for artifact in self.store.all_artifacts():
                if artifact.is_deleted:
                    index.setdefault(artifact.kind, []).append(artifact.id)
            for ids in index.values():
                ids.sort(key=natural_key)
            # Only cache a scan that no store event overlapped.
            if generation == self._generation:
                self._index = index
                if generation != self._generation:
                    self._index = None
        return index
