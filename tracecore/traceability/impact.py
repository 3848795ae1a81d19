"""Impact analysis — what is affected, transitively, if an artifact changes.

Breadth-first walk over links: *downstream* follows links from source to
target, *upstream* from target back to source.  Each artifact is reported
once, at the shortest distance it was reached.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from tracecore.models.artifact import kind_of_id
from tracecore.models.link import Link, LinkType


class ImpactDirection(str, Enum):
    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"
    BOTH = "both"


@dataclass(frozen=True)
class ImpactNode:
    artifact_id: str
    level: int
    """Distance from the source artifact (1 = directly linked)."""

    direction: ImpactDirection
    link_type: LinkType
    parent_id: str
    """The artifact this one was reached from."""


@dataclass
class ImpactChain:
    source_id: str
    nodes: list[ImpactNode] = field(default_factory=list)

    @property
    def affected_ids(self) -> list[str]:
        return [n.artifact_id for n in self.nodes]

    def at_level(self, level: int) -> list[ImpactNode]:
        return [n for n in self.nodes if n.level == level]

    def by_kind(self) -> dict[str, list[ImpactNode]]:
        """Nodes grouped by artifact kind value (``"unknown"`` for foreign ids)."""
        groups: dict[str, list[ImpactNode]] = {}
        for node in self.nodes:
            groups.setdefault(_kind_name(node.artifact_id), []).append(node)
        return groups


@dataclass(frozen=True)
class ImpactSummary:
    total: int
    upstream: int
    downstream: int
    by_kind: dict[str, int]
    max_depth: int


def _kind_name(artifact_id: str) -> str:
    kind = kind_of_id(artifact_id)
    return kind.value if kind is not None else "unknown"


def impact_chain(
    source_id: str,
    links: Iterable[Link],
    direction: ImpactDirection | str = ImpactDirection.BOTH,
    max_depth: int = 0,
) -> ImpactChain:
    """Walk *links* outward from *source_id*.

    Parameters
    ----------
    direction:
        Which way to traverse.  ``BOTH`` starts in both directions but a
        branch never switches direction once started.
    max_depth:
        Stop after this many hops; ``0`` means unlimited.
    """
    direction = ImpactDirection(direction)
    outgoing: dict[str, list[Link]] = {}
    incoming: dict[str, list[Link]] = {}
    for link in links:
        outgoing.setdefault(link.source_id, []).append(link)
        incoming.setdefault(link.target_id, []).append(link)

    def neighbours(artifact_id: str, way: ImpactDirection) -> list[tuple[str, LinkType]]:
        if way is ImpactDirection.DOWNSTREAM:
            return [(l.target_id, l.type) for l in outgoing.get(artifact_id, [])]
        return [(l.source_id, l.type) for l in incoming.get(artifact_id, [])]

    visited = {source_id}
    queue: deque[tuple[str, int, ImpactDirection, LinkType, str]] = deque()
    for way in (ImpactDirection.DOWNSTREAM, ImpactDirection.UPSTREAM):
        if direction in (way, ImpactDirection.BOTH):
            for other, link_type in neighbours(source_id, way):
                queue.append((other, 1, way, link_type, source_id))

    chain = ImpactChain(source_id)
    while queue:
        artifact_id, level, way, link_type, parent_id = queue.popleft()
        if artifact_id in visited:
            continue
        if max_depth > 0 and level > max_depth:
            continue
        visited.add(artifact_id)
        chain.nodes.append(ImpactNode(artifact_id, level, way, link_type, parent_id))
        for other, next_type in neighbours(artifact_id, way):
            if other not in visited:
                queue.append((other, level + 1, way, next_type, artifact_id))
    return chain


def summarize(chain: ImpactChain) -> ImpactSummary:
    upstream = sum(1 for n in chain.nodes if n.direction is ImpactDirection.UPSTREAM)
    return ImpactSummary(
        total=len(chain.nodes),
        upstream=upstream,
        downstream=len(chain.nodes) - upstream,
        by_kind=dict(Counter(_kind_name(n.artifact_id) for n in chain.nodes)),
        max_depth=max((n.level for n in chain.nodes), default=0),
    )
