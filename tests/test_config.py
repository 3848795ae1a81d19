"""Tests for layered settings and logging configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from tracecore.config import (
    DEFAULT_AUTHOR_NAME,
    DEFAULT_MATRIX_SIZE,
    Settings,
    configure_logging,
    load_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in (
        "TRACECORE_LOG_LEVEL",
        "TRACECORE_AUTHOR_NAME",
        "TRACECORE_AUTHOR_EMAIL",
        "TRACECORE_MATRIX_SIZE",
        "TRACECORE_AUTO_REPAIR",
    ):
        monkeypatch.delenv(key, raising=False)


def _write_config(root: Path, data) -> None:
    config_dir = root / ".tracecore"
    config_dir.mkdir(parents=True, exist_ok=True)
    text = data if isinstance(data, str) else json.dumps(data)
    (config_dir / "config.json").write_text(text)


class TestLoadConfig:
    def test_defaults(self, tmp_path: Path):
        settings = load_config(tmp_path)
        assert settings == Settings()
        assert settings.author_name == DEFAULT_AUTHOR_NAME
        assert settings.matrix_max_size == DEFAULT_MATRIX_SIZE
        assert settings.auto_repair is True

    def test_project_file(self, tmp_path: Path):
        _write_config(tmp_path, {"author_name": "Grace", "matrix_max_size": 50, "theme": "dark"})
        settings = load_config(tmp_path)
        assert settings.author_name == "Grace"
        assert settings.matrix_max_size == 50

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        _write_config(tmp_path, {"log_level": "WARNING", "matrix_max_size": 50})
        monkeypatch.setenv("TRACECORE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TRACECORE_MATRIX_SIZE", "8")
        monkeypatch.setenv("TRACECORE_AUTO_REPAIR", "false")
        settings = load_config(tmp_path)
        assert settings.log_level == "DEBUG"
        assert settings.matrix_max_size == 8
        assert settings.auto_repair is False

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_malformed_file_is_skipped(self, tmp_path: Path, content, caplog):
        _write_config(tmp_path, content)
        with caplog.at_level(logging.WARNING, logger="tracecore.config"):
            assert load_config(tmp_path) == Settings()
        assert "Could not read" in caplog.text

    def test_without_root(self, monkeypatch):
        monkeypatch.setenv("TRACECORE_AUTHOR_EMAIL", "ci@example.com")
        assert load_config().author_email == "ci@example.com"


class TestConfigureLogging:
    def test_sets_package_level(self):
        logger = logging.getLogger("tracecore")
        previous = logger.level
        try:
            configure_logging("debug")
            assert logger.level == logging.DEBUG
            configure_logging(logging.ERROR)
            assert logger.level == logging.ERROR
            configure_logging("nonsense")
            assert logger.level == logging.INFO
        finally:
            logger.setLevel(previous)
