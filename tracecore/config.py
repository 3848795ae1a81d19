"""Global configuration: folder layout, constants, and layered settings.

Settings are merged from defaults -> ``.tracecore/config.json`` ->
``TRACECORE_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Folder -> change type, for every record folder the change tracker reports on.
TRACKED_FOLDERS: dict[str, str] = {
    "requirements": "requirement",
    "usecases": "usecase",
    "testcases": "testcase",
    "information": "information",
    "risks": "risk",
    "documents": "document",
    "links": "link",
    "projects": "project",
    "users": "user",
    "counters": "counter",
    "custom-attributes": "custom-attribute",
    "saved-filters": "saved-filter",
}

LINKS_DIR = "links"
PROJECTS_DIR = "projects"
BASELINES_DIR = "baselines"
CONFIG_DIR = ".tracecore"

RECORD_SUFFIX = ".json"

DEFAULT_BRANCH = "main"
DEFAULT_AUTHOR_NAME = "Tracecore User"
DEFAULT_AUTHOR_EMAIL = "user@tracecore.local"

# Traceability matrix is O(n^2) in cells; show at most this many artifacts.
DEFAULT_MATRIX_SIZE = 20

_ENV_KEYS: dict[str, str] = {
    "TRACECORE_LOG_LEVEL": "log_level",
    "TRACECORE_AUTHOR_NAME": "author_name",
    "TRACECORE_AUTHOR_EMAIL": "author_email",
    "TRACECORE_MATRIX_SIZE": "matrix_max_size",
    "TRACECORE_AUTO_REPAIR": "auto_repair",
}


class Settings(BaseModel):
    """Resolved configuration for one workspace."""

    log_level: str = "INFO"
    author_name: str = DEFAULT_AUTHOR_NAME
    author_email: str = DEFAULT_AUTHOR_EMAIL
    matrix_max_size: int = DEFAULT_MATRIX_SIZE
    auto_repair: bool = True
    """Re-create a missing HEAD pointer when opening the repository."""


def load_config(project_root: str | Path | None = None) -> Settings:
    """Load merged settings for *project_root*.

    Unreadable or malformed config files are logged and skipped.
    """
    data: dict[str, Any] = {}

    if project_root is not None:
        config_json = Path(project_root) / CONFIG_DIR / "config.json"
        if config_json.is_file():
            try:
                loaded = json.loads(config_json.read_text(encoding="utf-8"))
                data.update({k: v for k, v in loaded.items() if k in Settings.model_fields})
            except (json.JSONDecodeError, OSError, AttributeError):
                logger.warning("Could not read %s", config_json, exc_info=True)

    for env_key, field in _ENV_KEYS.items():
        value = os.environ.get(env_key)
        if value is not None:
            data[field] = value

    return Settings.model_validate(data)


def configure_logging(level: str | int = "INFO") -> None:
    """Apply *level* to the ``tracecore`` logger hierarchy."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.getLogger("tracecore").setLevel(level)
