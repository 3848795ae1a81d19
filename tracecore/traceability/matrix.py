"""Traceability matrix — who links to whom, for display.

Cells are O(n^2), so the matrix shows at most ``max_size`` artifacts,
chosen by kind precedence and then numeric-aware id order.  The same
inputs always produce the same matrix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tracecore.config import DEFAULT_MATRIX_SIZE
from tracecore.core.ids import natural_key
from tracecore.models.artifact import Artifact, ArtifactKind
from tracecore.models.link import LinkType

if TYPE_CHECKING:
    from tracecore.traceability.graph import TraceabilityGraph

KIND_ORDER: tuple[ArtifactKind, ...] = (
    ArtifactKind.USE_CASE,
    ArtifactKind.REQUIREMENT,
    ArtifactKind.TEST_CASE,
    ArtifactKind.INFORMATION,
    ArtifactKind.RISK,
    ArtifactKind.DOCUMENT,
)


def display_key(artifact: Artifact) -> tuple:
    """Kind precedence, then numeric-aware id."""
    return (KIND_ORDER.index(artifact.kind), natural_key(artifact.id))


@dataclass
class TraceabilityMatrix:
    ids: list[str]
    """Row and column headers, in display order."""

    total: int
    """Artifacts available before truncation."""

    cells: dict[tuple[str, str], list[LinkType]] = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.total > len(self.ids)

    def cell(self, row_id: str, col_id: str) -> list[LinkType]:
        """Link types between two artifacts, read from *row_id*'s side."""
        return self.cells.get((row_id, col_id), [])

    def rows(self) -> list[list[list[LinkType]]]:
        return [[self.cell(r, c) for c in self.ids] for r in self.ids]


def build_matrix(graph: TraceabilityGraph, max_size: int | None = None) -> TraceabilityMatrix:
    """Lay out *graph* as a square matrix of at most *max_size* artifacts.

    A link ``A -verifies-> B`` fills ``(A, B)`` with ``verifies`` and
    ``(B, A)`` with ``verified_by``.
    """
    limit = DEFAULT_MATRIX_SIZE if max_size is None else max_size
    ordered = sorted(graph.artifacts.values(), key=display_key)
    shown = [a.id for a in ordered[: max(limit, 0)]]
    matrix = TraceabilityMatrix(ids=shown, total=len(ordered))

    visible = set(shown)
    for link in graph.connected_links():
        if link.source_id in visible and link.target_id in visible:
            matrix.cells.setdefault((link.source_id, link.target_id), []).append(link.type)
            matrix.cells.setdefault((link.target_id, link.source_id), []).append(
                link.type.inverse
            )
    return matrix
