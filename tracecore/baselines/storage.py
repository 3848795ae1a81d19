"""Append-only persistence of project baselines.

Layout: ``baselines/{project_id}/{version}.json`` under the workspace root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tracecore.config import BASELINES_DIR, RECORD_SUFFIX
from tracecore.errors import BaselineExistsError, ValidationError
from tracecore.models.baseline import ProjectBaseline

logger = logging.getLogger(__name__)


class BaselineStorage:
    """Write-once JSON files, one per ``(project_id, version)``.

    With ``root=None`` baselines are kept in memory only.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root is not None else None
        self._cache: dict[str, dict[str, ProjectBaseline]] = {}

    def relative_path(self, project_id: str, version: str) -> str:
        return f"{BASELINES_DIR}/{project_id}/{version}{RECORD_SUFFIX}"

    def save(self, baseline: ProjectBaseline) -> str | None:
        """Persist *baseline*.  Returns the relative path written, if any.

        Raises
        ------
        BaselineExistsError
            If this project already has a baseline with the same version.
        """
        project = self._load_project(baseline.project_id)
        if baseline.version in project:
            raise BaselineExistsError(
                f"Baseline {baseline.version} of {baseline.project_id} already exists"
            )

        rel = None
        if self.root is not None:
            rel = self.relative_path(baseline.project_id, baseline.version)
            target = self.root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("x", encoding="utf-8") as fh:
                fh.write(baseline.to_json() + "\n")
        project[baseline.version] = baseline
        logger.debug("Stored baseline %s", baseline.id)
        return rel

    def discard(self, project_id: str, version: str) -> None:
        """Forget a baseline that never made it into history.

        Only for rolling back a failed commit; stored baselines are
        otherwise never rewritten.
        """
        self._load_project(project_id).pop(version, None)
        if self.root is not None:
            (self.root / self.relative_path(project_id, version)).unlink(missing_ok=True)
        logger.debug("Discarded baseline %s@%s", project_id, version)

    def list(self, project_id: str) -> list[ProjectBaseline]:
        """Baselines of *project_id*, oldest first."""
        items = self._load_project(project_id).values()
        return sorted(items, key=lambda b: (b.timestamp, int(b.version)))

    def get(self, project_id: str, version: str) -> ProjectBaseline | None:
        return self._load_project(project_id).get(version)

    def _load_project(self, project_id: str) -> dict[str, ProjectBaseline]:
        if project_id in self._cache:
            return self._cache[project_id]
        loaded: dict[str, ProjectBaseline] = {}
        folder = self.root / BASELINES_DIR / project_id if self.root is not None else None
        if folder is not None and folder.is_dir():
            for path in sorted(folder.glob(f"*{RECORD_SUFFIX}")):
                try:
                    baseline = ProjectBaseline.model_validate_json(
                        path.read_text(encoding="utf-8")
                    )
                except ValueError as exc:
                    raise ValidationError(f"Corrupt baseline file {path}: {exc}") from exc
                loaded[baseline.version] = baseline
        self._cache[project_id] = loaded
        return loaded
