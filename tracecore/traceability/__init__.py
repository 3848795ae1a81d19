"""Traceability: link adjacency, coverage gaps, matrix layout, and impact analysis."""

from tracecore.traceability.graph import (
    CoverageStats,
    Gap,
    GapIssue,
    GapPolicy,
    TraceabilityGraph,
)
from tracecore.traceability.impact import (
    ImpactChain,
    ImpactDirection,
    ImpactNode,
    ImpactSummary,
    impact_chain,
    summarize,
)
from tracecore.traceability.matrix import KIND_ORDER, TraceabilityMatrix, build_matrix

__all__ = [
    "KIND_ORDER",
    "CoverageStats",
    "Gap",
    "GapIssue",
    "GapPolicy",
    "ImpactChain",
    "ImpactDirection",
    "ImpactNode",
    "ImpactSummary",
    "TraceabilityGraph",
    "TraceabilityMatrix",
    "build_matrix",
    "impact_chain",
    "summarize",
]
