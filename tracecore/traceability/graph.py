"""TraceabilityGraph — link adjacency and coverage-gap analysis.

The graph is a read-only snapshot built from artifacts and links; it does
not care whether they are committed.  Each artifact gets at most one gap,
the first that applies of:

1. ``orphan_link``  a link touching it points at an artifact that no longer exists
2. ``unlinked``     it takes part in no link at all
3. ``no_outgoing``  its kind is expected to originate links and it originates none
4. ``no_incoming``  its kind is expected to be targeted and nothing targets it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from tracecore.core.ids import natural_key
from tracecore.errors import NotFoundError
from tracecore.models.artifact import Artifact, ArtifactKind
from tracecore.models.link import Link
from tracecore.traceability.impact import ImpactChain, ImpactDirection, impact_chain
from tracecore.traceability.matrix import KIND_ORDER, TraceabilityMatrix, build_matrix, display_key

if TYPE_CHECKING:
    from tracecore.store.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


class GapIssue(str, Enum):
    ORPHAN_LINK = "orphan_link"
    UNLINKED = "unlinked"
    NO_OUTGOING = "no_outgoing"
    NO_INCOMING = "no_incoming"

    @property
    def label(self) -> str:
        return _ISSUE_LABELS[self]


_ISSUE_LABELS = {
    GapIssue.ORPHAN_LINK: "Orphan link",
    GapIssue.UNLINKED: "No links",
    GapIssue.NO_OUTGOING: "No outgoing links",
    GapIssue.NO_INCOMING: "No incoming links",
}


@dataclass(frozen=True)
class GapPolicy:
    """Which kinds are expected to originate and to receive links."""

    expects_outgoing: frozenset[ArtifactKind] = frozenset(ArtifactKind)
    expects_incoming: frozenset[ArtifactKind] = frozenset(ArtifactKind)


@dataclass(frozen=True)
class Gap:
    artifact_id: str | None
    """*None* when the gap belongs to a link with no surviving endpoint in the graph."""

    issue: GapIssue
    link_ids: tuple[str, ...] = ()
    details: str = ""


@dataclass
class CoverageStats:
    total: int = 0
    linked: int = 0

    @property
    def gaps(self) -> int:
        return self.total - self.linked

    @property
    def ratio(self) -> float:
        return self.linked / self.total if self.total else 1.0


@dataclass
class _Adjacency:
    outgoing: list[Link] = field(default_factory=list)
    incoming: list[Link] = field(default_factory=list)
    orphans: list[Link] = field(default_factory=list)


class TraceabilityGraph:
    """Snapshot of artifacts and links for gap, coverage, and impact queries.

    Parameters
    ----------
    artifacts:
        Candidate nodes.  Soft-deleted ones are dropped unless
        *include_deleted* is set.
    links:
        Links to analyse.
    known_ids:
        Every id that still exists anywhere (defaults to the node ids).  A
        link endpoint outside this set makes the link an orphan; an
        endpoint that exists but is not a node (trashed, another project)
        is ignored.
    policy:
        Link expectations per kind.
    """

    def __init__(
        self,
        artifacts: Iterable[Artifact],
        links: Iterable[Link],
        *,
        known_ids: Iterable[str] | None = None,
        policy: GapPolicy | None = None,
        include_deleted: bool = False,
    ) -> None:
        nodes = [a for a in artifacts if include_deleted or not a.is_deleted]
        self.artifacts: dict[str, Artifact] = {
            a.id: a for a in sorted(nodes, key=display_key)
        }
        self.links: list[Link] = sorted(links, key=lambda l: natural_key(l.id))
        self.known_ids = set(known_ids) if known_ids is not None else set(self.artifacts)
        self.known_ids.update(self.artifacts)
        self.policy = policy or GapPolicy()

        self._adjacency: dict[str, _Adjacency] = {i: _Adjacency() for i in self.artifacts}
        self._dangling: list[Link] = []
        for link in self.links:
            self._index(link)

    @classmethod
    def from_store(
        cls,
        store: ArtifactStore,
        project_id: str | None = None,
        *,
        policy: GapPolicy | None = None,
        include_deleted: bool = False,
    ) -> TraceabilityGraph:
        """Graph over a whole store, or over one project's members and links."""
        if project_id is None:
            artifacts = store.list(include_deleted=include_deleted)
        else:
            artifacts = store.members(project_id, include_deleted=include_deleted)
        return cls(
            artifacts,
            store.links(project_id),
            known_ids=[a.id for a in store.all_artifacts()],
            policy=policy,
            include_deleted=include_deleted,
        )

    def _index(self, link: Link) -> None:
        missing = [e for e in (link.source_id, link.target_id) if e not in self.known_ids]
        if missing:
            attached = False
            for end in (link.source_id, link.target_id):
                if end in self._adjacency:
                    self._adjacency[end].orphans.append(link)
                    attached = True
            if not attached:
                self._dangling.append(link)
            return
        if link.source_id in self._adjacency and link.target_id in self._adjacency:
            self._adjacency[link.source_id].outgoing.append(link)
            self._adjacency[link.target_id].incoming.append(link)

    # -- Queries --------------------------------------------------------------

    def _adjacency_of(self, artifact_id: str) -> _Adjacency:
        try:
            return self._adjacency[artifact_id]
        except KeyError:
            raise NotFoundError(artifact_id) from None

    def has_outgoing(self, artifact_id: str) -> bool:
        return bool(self._adjacency_of(artifact_id).outgoing)

    def has_incoming(self, artifact_id: str) -> bool:
        return bool(self._adjacency_of(artifact_id).incoming)

    def is_linked(self, artifact_id: str) -> bool:
        return self.has_outgoing(artifact_id) or self.has_incoming(artifact_id)

    def neighbours(self, artifact_id: str) -> list[str]:
        """Artifacts linked to *artifact_id* in either direction."""
        adj = self._adjacency_of(artifact_id)
        ids = {l.target_id for l in adj.outgoing} | {l.source_id for l in adj.incoming}
        return sorted(ids, key=natural_key)

    def connected_links(self) -> list[Link]:
        """Links with both endpoints in the graph."""
        return [
            l for l in self.links
            if l.source_id in self.artifacts and l.target_id in self.artifacts
        ]

    def gap_for(self, artifact_id: str) -> Gap | None:
        adj = self._adjacency_of(artifact_id)
        artifact = self.artifacts[artifact_id]
        if adj.orphans:
            missing = sorted(
                {l.other_end(artifact_id) for l in adj.orphans} - self.known_ids,
                key=natural_key,
            )
            return Gap(
                artifact_id,
                GapIssue.ORPHAN_LINK,
                tuple(l.id for l in adj.orphans),
                "-> " + ", ".join(missing),
            )
        if not adj.outgoing and not adj.incoming:
            return Gap(artifact_id, GapIssue.UNLINKED)
        if not adj.outgoing and artifact.kind in self.policy.expects_outgoing:
            return Gap(artifact_id, GapIssue.NO_OUTGOING)
        if not adj.incoming and artifact.kind in self.policy.expects_incoming:
            return Gap(artifact_id, GapIssue.NO_INCOMING)
        return None

    def gaps(self) -> list[Gap]:
        """Every gap: artifacts in display order, then dangling links."""
        gaps = [g for g in map(self.gap_for, self.artifacts) if g is not None]
        for link in self._dangling:
            gaps.append(Gap(
                None,
                GapIssue.ORPHAN_LINK,
                (link.id,),
                f"{link.source_id} -> {link.target_id}",
            ))
        logger.debug("%d gap(s) over %d artifact(s)", len(gaps), len(self.artifacts))
        return gaps

    def coverage(self) -> dict[ArtifactKind, CoverageStats]:
        """Per kind: how many artifacts take part in at least one link."""
        stats = {kind: CoverageStats() for kind in KIND_ORDER}
        for artifact_id, artifact in self.artifacts.items():
            entry = stats[artifact.kind]
            entry.total += 1
            if self.is_linked(artifact_id):
                entry.linked += 1
        return stats

    def matrix(self, max_size: int | None = None) -> TraceabilityMatrix:
        return build_matrix(self, max_size)

    def impact(
        self,
        artifact_id: str,
        direction: ImpactDirection | str = ImpactDirection.BOTH,
        max_depth: int = 0,
    ) -> ImpactChain:
        return impact_chain(artifact_id, self.connected_links(), direction, max_depth)
