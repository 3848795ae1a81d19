"""Registry of cross-artifact reference lists and the cleanup pass.

A reference list is a field such as ``Requirement.use_case_ids`` that holds
ids of other artifacts.  When an artifact is removed, every record holding
its id in a registered field drops the id and gets a revision bump.  Adding
a new cross-reference only means registering the field here.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from tracecore.core.revision import increment_revision
from tracecore.models.artifact import KIND_SPECS, Artifact, ArtifactKind

logger = logging.getLogger(__name__)


class ReferenceRegistry:
    """Maps each artifact kind to its reference-list fields and their target kind."""

    def __init__(self) -> None:
        self._fields: dict[ArtifactKind, dict[str, ArtifactKind]] = {}

    @classmethod
    def default(cls) -> ReferenceRegistry:
        """Registry pre-populated from the kind metadata."""
        registry = cls()
        for kind, spec in KIND_SPECS.items():
            for field_name, target in spec.references.items():
                registry.register(kind, field_name, target)
        return registry

    def register(self, kind: ArtifactKind, field_name: str, target: ArtifactKind) -> None:
        if field_name not in kind.spec.model.model_fields:
            raise ValueError(f"{kind.spec.model.__name__} has no field '{field_name}'")
        self._fields.setdefault(kind, {})[field_name] = target

    def fields_for(self, kind: ArtifactKind) -> dict[str, ArtifactKind]:
        return dict(self._fields.get(kind, {}))

    def fields_targeting(self, target: ArtifactKind) -> list[tuple[ArtifactKind, str]]:
        """Every ``(kind, field)`` whose list may hold ids of *target*."""
        return [
            (kind, name)
            for kind, fields in self._fields.items()
            for name, field_target in fields.items()
            if field_target is target
        ]

    def references_of(self, artifact: Artifact) -> dict[str, list[str]]:
        """The non-empty reference lists held by *artifact*."""
        out: dict[str, list[str]] = {}
        for name in self._fields.get(artifact.kind, {}):
            values = list(getattr(artifact, name) or [])
            if values:
                out[name] = values
        return out

    def dereference(
        self,
        removed_id: str,
        removed_kind: ArtifactKind,
        candidates: Iterable[Artifact],
        now: int,
    ) -> list[Artifact]:
        """Return updated copies of *candidates* that referenced *removed_id*.

        Each returned record has the id stripped from its reference lists,
        its revision incremented once, and ``last_modified`` set to *now*.
        Records that did not reference the id are not returned.
        """
        targeting = self.fields_targeting(removed_kind)
        updated: list[Artifact] = []
        for artifact in candidates:
            changes: dict[str, Any] = {}
            for kind, name in targeting:
                if artifact.kind is not kind:
                    continue
                values = list(getattr(artifact, name) or [])
                if removed_id in values:
                    changes[name] = [v for v in values if v != removed_id]
            if not changes:
                continue
            changes["revision"] = increment_revision(artifact.revision)
            changes["last_modified"] = now
            updated.append(artifact.model_copy(update=changes))
            logger.debug(
                "Dereferenced %s from %s (rev %s)",
                removed_id, artifact.id, changes["revision"],
            )
        return updated
