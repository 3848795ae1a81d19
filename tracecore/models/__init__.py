"""Pydantic records: artifacts, links, projects, and baselines."""

from tracecore.models.artifact import (
    KIND_SPECS,
    AnyArtifact,
    Artifact,
    ArtifactKind,
    Document,
    Information,
    KindSpec,
    Requirement,
    Risk,
    TestCase,
    UseCase,
    kind_for_folder,
    kind_for_prefix,
    kind_of_id,
    now_ms,
)
from tracecore.models.baseline import ArtifactCommit, BaselineDiff, ProjectBaseline
from tracecore.models.link import Link, LinkType
from tracecore.models.project import Project

__all__ = [
    "KIND_SPECS",
    "AnyArtifact",
    "Artifact",
    "ArtifactCommit",
    "ArtifactKind",
    "BaselineDiff",
    "Document",
    "Information",
    "KindSpec",
    "Link",
    "LinkType",
    "Project",
    "ProjectBaseline",
    "Requirement",
    "Risk",
    "TestCase",
    "UseCase",
    "kind_for_folder",
    "kind_for_prefix",
    "kind_of_id",
    "now_ms",
]
