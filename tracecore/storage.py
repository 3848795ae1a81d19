"""RecordStorage — one JSON file per record in the working tree.

Layout is ``{folder}/{id}.json`` (``requirements/REQ-001.json``,
``links/LINK-004.json``, ``projects/PROJ-001.json``).  Serialization uses
the records' camelCase aliases.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tracecore.config import LINKS_DIR, PROJECTS_DIR, RECORD_SUFFIX
from tracecore.errors import ValidationError
from tracecore.models.artifact import KIND_SPECS, Artifact, Record
from tracecore.models.link import Link
from tracecore.models.project import Project

logger = logging.getLogger(__name__)


def record_path(folder: str, record_id: str) -> str:
    """Repository-relative POSIX path of a record file."""
    return f"{folder}/{record_id}{RECORD_SUFFIX}"


def folder_of(record: Record) -> str:
    if isinstance(record, Artifact):
        return record.kind.folder
    if isinstance(record, Link):
        return LINKS_DIR
    if isinstance(record, Project):
        return PROJECTS_DIR
    raise TypeError(f"Not a stored record: {type(record).__name__}")


class RecordStorage:
    """Read and write record files below *root*."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def write(self, record: Artifact | Link | Project) -> str:
        """Write *record* and return its relative path.

        The file is replaced atomically so readers never see half a record.
        """
        rel = record_path(folder_of(record), record.id)
        target = self.root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_text(record.to_json() + "\n", encoding="utf-8")
        os.replace(tmp, target)
        return rel

    def erase(self, folder: str, record_id: str) -> str:
        """Delete a record file if present and return its relative path."""
        rel = record_path(folder, record_id)
        (self.root / rel).unlink(missing_ok=True)
        return rel

    def load_all(self) -> tuple[list[Artifact], list[Link], list[Project]]:
        """Read every artifact, link, and project file under *root*.

        Raises
        ------
        ValidationError
            If a file does not parse as its folder's record type.
        """
        artifacts: list[Artifact] = []
        for spec in KIND_SPECS.values():
            artifacts.extend(self._load_folder(spec.folder, spec.model))
        links = self._load_folder(LINKS_DIR, Link)
        projects = self._load_folder(PROJECTS_DIR, Project)
        logger.info(
            "Loaded %d artifact(s), %d link(s), %d project(s) from %s",
            len(artifacts), len(links), len(projects), self.root,
        )
        return artifacts, links, projects

    def _load_folder(self, folder: str, model: type) -> list:
        directory = self.root / folder
        if not directory.is_dir():
            return []
        records = []
        for path in sorted(directory.glob(f"*{RECORD_SUFFIX}")):
            try:
                records.append(model.model_validate_json(path.read_text(encoding="utf-8")))
            except ValueError as exc:
                raise ValidationError(f"Corrupt record file {path}: {exc}") from exc
        return records
