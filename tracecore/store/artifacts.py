"""ArtifactStore — the authoritative in-memory collection of one project.

The store is the only component that mutates artifact, link, and project
records.  Every mutation builds a new immutable record and swaps it in, so
concurrent readers see either the old or the new record, never a mix.

Usage::

    store = ArtifactStore()
    req = store.create("requirement", title="Login", text="Users can log in")
    req = store.update(req.id, {"text": "Users can log in with SSO"})
    store.soft_delete(req.id)
    store.restore(req.id)
    store.permanently_delete(req.id)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tracecore.config import LINKS_DIR
from tracecore.core.ids import IdAllocator, natural_key
from tracecore.core.revision import INITIAL_REVISION, increment_revision
from tracecore.errors import InvalidTransitionError, NotFoundError, ValidationError
from tracecore.models.artifact import Artifact, ArtifactKind, kind_of_id, now_ms
from tracecore.models.link import Link, LinkType
from tracecore.models.project import Project
from tracecore.store.events import (
    ArtifactRemoved,
    Listener,
    RecordErased,
    RecordSaved,
    StoreEvent,
)
from tracecore.store.references import ReferenceRegistry

logger = logging.getLogger(__name__)

LINK_PREFIX = "LINK"
PROJECT_PREFIX = "PROJ"

# Bookkeeping fields owned by the store; callers may never set them.
_MANAGED_FIELDS = frozenset(
    {"id", "revision", "date_created", "last_modified", "is_deleted", "deleted_at"}
)


def _normalise(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase or snake_case keys onto *model*'s field names."""
    by_alias = {to_camel(name): name for name in model.model_fields}
    out: dict[str, Any] = {}
    for key, value in data.items():
        name = key if key in model.model_fields else by_alias.get(key)
        if name is None:
            raise ValidationError(f"{model.__name__} has no field '{key}'")
        out[name] = value
    return out


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ArtifactStore:
    """Revision-consistent collection of artifacts, links, and projects.

    Parameters
    ----------
    ids:
        The project's id allocator.  One allocator serves every prefix.
    references:
        Registry of reference-list fields used by the cleanup pass.
    clock:
        Returns "now" in epoch milliseconds.  Injected for tests.
    """

    def __init__(
        self,
        ids: IdAllocator | None = None,
        *,
        references: ReferenceRegistry | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.ids = ids or IdAllocator()
        self.references = references or ReferenceRegistry.default()
        self._clock = clock or now_ms
        self._records: dict[ArtifactKind, dict[str, Artifact]] = {k: {} for k in ArtifactKind}
        self._links: dict[str, Link] = {}
        self._projects: dict[str, Project] = {}
        self._listeners: list[Listener] = []
        self.subscribe(self._dereference_removed)

    # -- Events ---------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """Register *listener* for every :mod:`~tracecore.store.events` event."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _publish(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _dereference_removed(self, event: StoreEvent) -> None:
        if not isinstance(event, ArtifactRemoved):
            return
        kinds = {kind for kind, _ in self.references.fields_targeting(event.kind)}
        candidates = [a for kind in kinds for a in tuple(self._records[kind].values())]
        for updated in self.references.dereference(
            event.artifact_id, event.kind, candidates, self._clock(),
        ):
            self._save(updated)

    def _save(self, record: Artifact | Link | Project) -> None:
        if isinstance(record, Artifact):
            self._records[record.kind][record.id] = record
        elif isinstance(record, Link):
            self._links[record.id] = record
        else:
            self._projects[record.id] = record
        self._publish(RecordSaved(record))

    # -- Loading --------------------------------------------------------------

    def load(
        self,
        artifacts: Iterable[Artifact] = (),
        links: Iterable[Link] = (),
        projects: Iterable[Project] = (),
    ) -> None:
        """Insert persisted records as-is and reserve their id numbers.

        No events are published and no revisions change.
        """
        for artifact in artifacts:
            self._records[artifact.kind][artifact.id] = artifact
            self.ids.reserve(artifact.id)
        for link in links:
            self._links[link.id] = link
            self.ids.reserve(link.id)
        for project in projects:
            self._projects[project.id] = project
            self.ids.reserve(project.id)

    # -- Queries --------------------------------------------------------------

    def get(self, artifact_id: str) -> Artifact:
        """Return the artifact with *artifact_id*, trashed or not."""
        artifact = self._lookup(artifact_id)
        if artifact is None:
            raise NotFoundError(artifact_id)
        return artifact

    def exists(self, artifact_id: str) -> bool:
        return self._lookup(artifact_id) is not None

    def _lookup(self, artifact_id: str) -> Artifact | None:
        kind = kind_of_id(artifact_id)
        return self._records[kind].get(artifact_id) if kind is not None else None

    def kind_of(self, artifact_id: str) -> ArtifactKind:
        return self.get(artifact_id).kind

    def all_artifacts(self) -> list[Artifact]:
        """Every artifact, trashed ones included."""
        return self.list(include_deleted=True)

    def list(
        self,
        kind: ArtifactKind | str | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[Artifact]:
        """Artifacts in natural id order, optionally restricted to one kind."""
        kinds = [ArtifactKind(kind)] if kind is not None else list(ArtifactKind)
        items = [
            a
            for k in kinds
            for a in tuple(self._records[k].values())
            if include_deleted or not a.is_deleted
        ]
        return sorted(items, key=lambda a: natural_key(a.id))

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.all_artifacts())

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    # -- Artifact lifecycle ---------------------------------------------------

    def create(
        self,
        kind: ArtifactKind | str,
        payload: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> Artifact:
        """Create an artifact with a fresh id and revision ``"01"``.

        Raises
        ------
        ValidationError
            If a required field is missing or blank, a store-managed field
            is supplied, or the payload does not fit the artifact model.
        """
        kind = ArtifactKind(kind)
        spec = kind.spec
        data = _normalise(spec.model, {**(payload or {}), **fields})

        managed = sorted(_MANAGED_FIELDS & data.keys())
        if managed:
            raise ValidationError(f"Fields managed by the store cannot be set: {managed}")
        missing = [name for name in spec.required if _is_blank(data.get(name))]
        if missing:
            raise ValidationError(f"{spec.label} is missing required field(s): {missing}")

        now = self._clock()
        new_id = self.ids.allocate(spec.prefix)
        try:
            artifact = spec.model(
                id=new_id,
                revision=INITIAL_REVISION,
                date_created=now,
                last_modified=now,
                **data,
            )
        except PydanticValidationError as exc:
            self.ids.release(new_id)
            raise ValidationError(str(exc)) from exc

        self._save(artifact)
        logger.info("Created %s %s", spec.label, new_id)
        return artifact

    def update(self, artifact_id: str, patch: Mapping[str, Any]) -> Artifact:
        """Merge *patch* into an artifact and bump its revision.

        Links that reference the artifact are left untouched.
        """
        current = self.get(artifact_id)
        spec = current.kind.spec
        data = _normalise(spec.model, patch)

        managed = sorted(_MANAGED_FIELDS & data.keys())
        if managed:
            raise ValidationError(f"Fields managed by the store cannot be patched: {managed}")
        blanked = [n for n in spec.required if n in data and _is_blank(data[n])]
        if blanked:
            raise ValidationError(f"Required field(s) cannot be blank: {blanked}")

        merged = {
            **current.model_dump(),
            **data,
            "revision": increment_revision(current.revision),
            "last_modified": self._clock(),
        }
        try:
            updated = spec.model.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc

        self._save(updated)
        logger.info("Updated %s (rev %s)", artifact_id, updated.revision)
        return updated

    def soft_delete(self, artifact_id: str) -> Artifact:
        """Hide an artifact without erasing it.

        Every other artifact listing this id in a reference field drops it
        and gets its own revision bump.  The id number stays reserved.
        """
        current = self.get(artifact_id)
        if current.is_deleted:
            raise InvalidTransitionError(f"{artifact_id} is already in the trash")

        now = self._clock()
        trashed = current.model_copy(update={
            "is_deleted": True,
            "deleted_at": now,
            "revision": increment_revision(current.revision),
            "last_modified": now,
        })
        self._save(trashed)
        self._publish(ArtifactRemoved(artifact_id, current.kind, permanent=False))
        logger.info("Trashed %s (rev %s)", artifact_id, trashed.revision)
        return trashed

    def restore(self, artifact_id: str) -> Artifact:
        """Bring a trashed artifact back.

        Reference-list entries removed when it was trashed are not put back.
        """
        current = self.get(artifact_id)
        if not current.is_deleted:
            raise InvalidTransitionError(f"{artifact_id} is not in the trash")

        restored = current.model_copy(update={
            "is_deleted": False,
            "deleted_at": None,
            "revision": increment_revision(current.revision),
            "last_modified": self._clock(),
        })
        self._save(restored)
        logger.info("Restored %s (rev %s)", artifact_id, restored.revision)
        return restored

    def permanently_delete(self, artifact_id: str) -> None:
        """Erase an artifact, free its id number, and drop its links.

        Also removes it from every project's membership.  Irreversible.
        """
        current = self.get(artifact_id)
        kind = current.kind

        del self._records[kind][artifact_id]
        self.ids.release(artifact_id)

        for link in [l for l in tuple(self._links.values()) if l.touches(artifact_id)]:
            self._erase_link(link)

        now = self._clock()
        for project in tuple(self._projects.values()):
            if artifact_id in project.artifact_ids:
                self._save(project.model_copy(update={
                    "artifact_ids": [i for i in project.artifact_ids if i != artifact_id],
                    "revision": increment_revision(project.revision),
                    "last_modified": now,
                }))

        self._publish(RecordErased(kind.folder, artifact_id))
        self._publish(ArtifactRemoved(artifact_id, kind, permanent=True))
        logger.info("Permanently deleted %s", artifact_id)

    # -- Links ----------------------------------------------------------------

    def get_link(self, link_id: str) -> Link:
        try:
            return self._links[link_id]
        except KeyError:
            raise NotFoundError(link_id, "link") from None

    def links(self, project_id: str | None = None) -> list[Link]:
        """All links (global plus project-specific when *project_id* is given)."""
        items = [l for l in tuple(self._links.values()) if l.applies_to(project_id)]
        return sorted(items, key=lambda l: natural_key(l.id))

    def links_for(self, artifact_id: str) -> list[Link]:
        """Links with *artifact_id* at either end."""
        return [l for l in self.links() if l.touches(artifact_id)]

    def create_link(
        self,
        source_id: str,
        target_id: str,
        link_type: LinkType | str,
        project_ids: Iterable[str] = (),
    ) -> Link:
        """Link two existing (possibly trashed) artifacts."""
        link_type = LinkType(link_type)
        for endpoint in (source_id, target_id):
            if not self.exists(endpoint):
                raise ValidationError(f"Cannot link to unknown artifact '{endpoint}'")
        if source_id == target_id:
            raise ValidationError("An artifact cannot link to itself")
        for existing in tuple(self._links.values()):
            if (existing.source_id, existing.target_id, existing.type) == (
                source_id, target_id, link_type,
            ):
                raise ValidationError(
                    f"{source_id} already {link_type.value} {target_id} ({existing.id})"
                )

        now = self._clock()
        link = Link(
            id=self.ids.allocate(LINK_PREFIX),
            source_id=source_id,
            target_id=target_id,
            type=link_type,
            project_ids=list(project_ids),
            date_created=now,
            last_modified=now,
        )
        self._save(link)
        logger.info("Linked %s -[%s]-> %s (%s)", source_id, link_type.value, target_id, link.id)
        return link

    def update_link(self, link_id: str, patch: Mapping[str, Any]) -> Link:
        """Change a link's type or project scope; bumps its revision."""
        current = self.get_link(link_id)
        data = _normalise(Link, patch)
        not_allowed = sorted(set(data) - {"type", "project_ids"})
        if not_allowed:
            raise ValidationError(f"Link fields cannot be patched: {not_allowed}")
        merged = {
            **current.model_dump(),
            **data,
            "revision": increment_revision(current.revision),
            "last_modified": self._clock(),
        }
        try:
            updated = Link.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        self._save(updated)
        return updated

    def remove_link(self, link_id: str) -> None:
        self._erase_link(self.get_link(link_id))

    def _erase_link(self, link: Link) -> None:
        del self._links[link.id]
        self.ids.release(link.id)
        self._publish(RecordErased(LINKS_DIR, link.id))
        logger.info("Removed link %s (%s -> %s)", link.id, link.source_id, link.target_id)

    # -- Projects -------------------------------------------------------------

    def get_project(self, project_id: str) -> Project:
        try:
            return self._projects[project_id]
        except KeyError:
            raise NotFoundError(project_id, "project") from None

    def projects(self) -> list[Project]:
        return sorted(tuple(self._projects.values()), key=lambda p: natural_key(p.id))

    def create_project(
        self,
        name: str,
        description: str = "",
        artifact_ids: Iterable[str] = (),
    ) -> Project:
        if _is_blank(name):
            raise ValidationError("Project name is required")
        members = list(dict.fromkeys(artifact_ids))
        unknown = [i for i in members if not self.exists(i)]
        if unknown:
            raise ValidationError(f"Unknown artifact(s): {unknown}")

        now = self._clock()
        project = Project(
            id=self.ids.allocate(PROJECT_PREFIX),
            name=name,
            description=description,
            artifact_ids=members,
            date_created=now,
            last_modified=now,
        )
        self._save(project)
        logger.info("Created project %s (%s)", project.id, name)
        return project

    def add_to_project(self, project_id: str, artifact_id: str) -> Project:
        """Add an artifact to a project's membership (no-op if already in)."""
        project = self.get_project(project_id)
        if not self.exists(artifact_id):
            raise NotFoundError(artifact_id)
        if artifact_id in project.artifact_ids:
            return project
        return self._touch_project(project, [*project.artifact_ids, artifact_id])

    def remove_from_project(self, project_id: str, artifact_id: str) -> Project:
        """Drop an artifact from a project; the artifact itself is untouched."""
        project = self.get_project(project_id)
        if artifact_id not in project.artifact_ids:
            raise NotFoundError(artifact_id, f"member of {project_id}")
        return self._touch_project(
            project, [i for i in project.artifact_ids if i != artifact_id],
        )

    def members(self, project_id: str, *, include_deleted: bool = False) -> list[Artifact]:
        """Artifacts belonging to a project, in natural id order."""
        project = self.get_project(project_id)
        items = [a for a in map(self._lookup, project.artifact_ids) if a is not None]
        if not include_deleted:
            items = [a for a in items if not a.is_deleted]
        return sorted(items, key=lambda a: natural_key(a.id))

    def _touch_project(self, project: Project, artifact_ids: list[str]) -> Project:
        updated = project.model_copy(update={
            "artifact_ids": artifact_ids,
            "revision": increment_revision(project.revision),
            "last_modified": self._clock(),
        })
        self._save(updated)
        return updated


__all__ = ["ArtifactStore", "LINK_PREFIX", "PROJECT_PREFIX"]
