"""
Shared fixtures for registry mirror tests.

Every file the mirror writes (config, registry.conf, status file) lives
under tmp_path so tests never touch the working directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path: Path):
    """Factory writing config.yml into tmp_path and returning its path."""

    def _write(src: dict | None = None, dest: dict | None = None, raw: str | None = None) -> Path:
        path = tmp_path / "config.yml"
        if raw is not None:
            path.write_text(raw, encoding="utf-8")
        else:
            data = {
                "src": src if src is not None else {"host": "src.example"},
                "dest": dest if dest is not None else {"host": "dest.example"},
            }
            path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mirror_env(tmp_path: Path):
    """Environment mapping pointing every mirror path into tmp_path."""

    def _env(config_path: Path, **extra: str) -> dict:
        env = {
            "CONFIG": str(config_path),
            "REGISTRIES_CONF": str(tmp_path / "registry.conf"),
            "MIRROR_STATUS_FILE": str(tmp_path / "state" / "mirror_status.json"),
        }
        env.update(extra)
        return env

    return _env
