"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides settings rooted in a temporary directory and a fake Remotion CLI.
"""

import sys
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from render_service.api.main import create_app
from render_service.config.settings import Settings
from tests.utils.helpers import write_fake_renderer


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A Remotion project root containing an entry point."""
    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "index.ts").write_text("export {};\n", encoding="utf-8")
    return project


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return (tmp_path / "output").resolve()


@pytest.fixture
def make_settings(tmp_path: Path, project_dir: Path, output_dir: Path) -> Callable[..., Settings]:
    """Build test settings whose render command runs the given script."""

    def _make(script: Path, **overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "environment": "testing",
            "log_level": "DEBUG",
            "output_dir": output_dir,
            "log_dir": tmp_path / "logs",
            "remotion_project_dir": project_dir,
            "remotion_entry_point": Path("src/index.ts"),
            "render_command": [sys.executable, str(script)],
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def renderer_factory(tmp_path: Path, make_settings: Callable[..., Settings]):
    """
    Create a fake renderer and matching settings.

    Returns a callable taking renderer behaviour keyword arguments (see
    ``write_fake_renderer``) plus ``settings_overrides`` and returning
    ``(settings, script)``.
    """

    def _factory(settings_overrides: dict[str, Any] | None = None, **behaviour: Any):
        script = write_fake_renderer(tmp_path / "bin", **behaviour)
        return make_settings(script, **(settings_overrides or {})), script

    return _factory


@pytest.fixture
def client_factory(renderer_factory):
    """Create a TestClient for an app wired to a fake renderer."""
    clients: list[TestClient] = []

    def _factory(settings_overrides: dict[str, Any] | None = None, **behaviour: Any):
        settings, script = renderer_factory(settings_overrides, **behaviour)
        client = TestClient(create_app(settings))
        client.__enter__()
        clients.append(client)
        return client, settings, script

    yield _factory

    for client in clients:
        client.__exit__(None, None, None)
