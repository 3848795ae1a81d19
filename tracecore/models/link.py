"""Traceability links — standalone records stored in ``links/``."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from tracecore.core.revision import INITIAL_REVISION
from tracecore.models.artifact import Record, now_ms


class LinkType(str, Enum):
    """Relationship carried by a link, read from the source's perspective."""

    PARENT = "parent"
    CHILD = "child"
    DEPENDS_ON = "depends_on"
    DEPENDENCY_OF = "dependency_of"
    RELATED_TO = "related_to"
    SATISFIES = "satisfies"
    SATISFIED_BY = "satisfied_by"
    VERIFIES = "verifies"
    VERIFIED_BY = "verified_by"
    IMPLEMENTS = "implements"
    IMPLEMENTED_BY = "implemented_by"
    REFERENCES = "references"
    REFERENCED_BY = "referenced_by"

    @property
    def inverse(self) -> LinkType:
        """The type as seen from the target (``verifies`` -> ``verified_by``)."""
        return _INVERSE[self]

    @property
    def is_symmetric(self) -> bool:
        return _INVERSE[self] is self

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


_PAIRS = [
    (LinkType.PARENT, LinkType.CHILD),
    (LinkType.DEPENDS_ON, LinkType.DEPENDENCY_OF),
    (LinkType.SATISFIES, LinkType.SATISFIED_BY),
    (LinkType.VERIFIES, LinkType.VERIFIED_BY),
    (LinkType.IMPLEMENTS, LinkType.IMPLEMENTED_BY),
    (LinkType.REFERENCES, LinkType.REFERENCED_BY),
]

_INVERSE: dict[LinkType, LinkType] = {LinkType.RELATED_TO: LinkType.RELATED_TO}
for _a, _b in _PAIRS:
    _INVERSE[_a] = _b
    _INVERSE[_b] = _a


class Link(Record):
    """A directed link between two artifacts.

    Both endpoints must exist when the link is created (they may be
    soft-deleted).  A link whose endpoint has since disappeared is an
    orphan link.
    """

    id: str
    source_id: str
    target_id: str
    type: LinkType
    project_ids: list[str] = Field(default_factory=list)
    """Empty means the link applies to every project."""

    date_created: int = Field(default_factory=now_ms)
    last_modified: int = Field(default_factory=now_ms)
    revision: str = INITIAL_REVISION

    def touches(self, artifact_id: str) -> bool:
        return artifact_id in (self.source_id, self.target_id)

    def other_end(self, artifact_id: str) -> str:
        return self.target_id if artifact_id == self.source_id else self.source_id

    def applies_to(self, project_id: str | None) -> bool:
        return project_id is None or not self.project_ids or project_id in self.project_ids
