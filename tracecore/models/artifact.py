"""Artifact records — the versioned engineering objects of a project.

Each variant is one file per record in its own folder
(``requirements/REQ-001.json`` and so on).  Serialized field names are
camelCase (``dateCreated``, ``isDeleted``); Python attributes are snake_case.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tracecore.core.revision import INITIAL_REVISION


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class ArtifactKind(str, Enum):
    """The six artifact variants.  Values are the change-set type names."""

    REQUIREMENT = "requirement"
    USE_CASE = "usecase"
    TEST_CASE = "testcase"
    INFORMATION = "information"
    RISK = "risk"
    DOCUMENT = "document"

    @property
    def spec(self) -> KindSpec:
        return KIND_SPECS[self]

    @property
    def prefix(self) -> str:
        return self.spec.prefix

    @property
    def folder(self) -> str:
        return self.spec.folder

    @property
    def label(self) -> str:
        return self.spec.label


class Record(BaseModel):
    """Common configuration for every persisted record.

    Records are immutable; the store replaces them wholesale on mutation.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2, exclude_none=True)


class Artifact(Record):
    """Fields shared by every artifact variant."""

    kind: ClassVar[ArtifactKind]

    id: str
    title: str
    status: str = "draft"
    priority: str = "medium"
    revision: str = INITIAL_REVISION
    date_created: int = Field(default_factory=now_ms)
    last_modified: int = Field(default_factory=now_ms)
    is_deleted: bool = False
    deleted_at: Optional[int] = None
    """Epoch ms of the soft delete; set only while ``is_deleted``."""


class Requirement(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.REQUIREMENT

    status: str = "draft"
    """Status: 'draft', 'approved', 'implemented', 'verified'."""

    description: str = ""
    text: str = ""
    rationale: str = ""
    use_case_ids: list[str] = Field(default_factory=list)
    parent_ids: list[str] = Field(default_factory=list)
    author: Optional[str] = None
    verification_method: Optional[str] = None
    comments: Optional[str] = None


class UseCase(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.USE_CASE

    description: str = ""
    actor: str = ""
    preconditions: str = ""
    postconditions: str = ""
    main_flow: str = ""
    alternative_flows: Optional[str] = None


class TestCase(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.TEST_CASE
    __test__: ClassVar[bool] = False

    status: str = "draft"
    """Status: 'draft', 'approved', 'passed', 'failed', 'blocked'."""

    description: str = ""
    requirement_ids: list[str] = Field(default_factory=list)
    author: Optional[str] = None
    last_run: Optional[int] = None


class Information(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.INFORMATION

    text: str = ""
    info_type: str = "note"
    """One of 'note', 'meeting', 'decision', 'other'."""


class Risk(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.RISK

    status: str = "identified"
    description: str = ""
    category: str = "technical"
    probability: str = "medium"
    impact: str = "medium"
    mitigation: str = ""
    contingency: str = ""
    owner: Optional[str] = None


class Document(Artifact):
    kind: ClassVar[ArtifactKind] = ArtifactKind.DOCUMENT

    description: str = ""
    content: str = ""


AnyArtifact = Union[Requirement, UseCase, TestCase, Information, Risk, Document]


@dataclass(frozen=True)
class KindSpec:
    """Static metadata for one artifact kind."""

    prefix: str
    folder: str
    label: str
    model: type[Artifact]
    required: tuple[str, ...] = ("title",)
    references: dict[str, ArtifactKind] = field(default_factory=dict)
    """Reference-list fields holding ids of other artifacts, by target kind."""


KIND_SPECS: dict[ArtifactKind, KindSpec] = {
    ArtifactKind.REQUIREMENT: KindSpec(
        "REQ", "requirements", "Requirement", Requirement,
        required=("title", "text"),
        references={
            "use_case_ids": ArtifactKind.USE_CASE,
            "parent_ids": ArtifactKind.REQUIREMENT,
        },
    ),
    ArtifactKind.USE_CASE: KindSpec("UC", "usecases", "Use Case", UseCase),
    ArtifactKind.TEST_CASE: KindSpec(
        "TC", "testcases", "Test Case", TestCase,
        references={"requirement_ids": ArtifactKind.REQUIREMENT},
    ),
    ArtifactKind.INFORMATION: KindSpec("INFO", "information", "Information", Information),
    ArtifactKind.RISK: KindSpec("RISK", "risks", "Risk", Risk),
    ArtifactKind.DOCUMENT: KindSpec("DOC", "documents", "Document", Document),
}

_BY_PREFIX = {spec.prefix: kind for kind, spec in KIND_SPECS.items()}
_BY_FOLDER = {spec.folder: kind for kind, spec in KIND_SPECS.items()}
_PREFIX_RE = re.compile(r"^([A-Z][A-Z0-9]*)-\d+$")


def kind_for_prefix(prefix: str) -> ArtifactKind | None:
    return _BY_PREFIX.get(prefix)


def kind_for_folder(folder: str) -> ArtifactKind | None:
    return _BY_FOLDER.get(folder)


def kind_of_id(artifact_id: str) -> ArtifactKind | None:
    """Infer the kind from an id's prefix (``UC-004`` -> USE_CASE)."""
    match = _PREFIX_RE.match(artifact_id or "")
    if match is None:
        return None
    return _BY_PREFIX.get(match.group(1))
