"""
Unit Tests for Settings
=======================

Environment parsing and validation of application settings.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from render_service.config.logging import get_logging_config
from render_service.config.settings import Settings


@pytest.fixture
def base(tmp_path: Path) -> dict:
    return {
        "environment": "testing",
        "output_dir": tmp_path / "output",
        "log_dir": tmp_path / "logs",
    }


class TestSettings:
    """Test settings parsing and validation."""

    def test_defaults(self, base):
        settings = Settings(**base)

        assert settings.port == 3001
        assert settings.render_command == ["npx", "remotion", "render"]
        assert settings.stderr_failure_markers == ["error"]
        assert settings.render_timeout is None
        assert settings.max_concurrent_renders is None
        assert settings.output_media_type == "video/mp4"

    def test_output_dir_is_created_and_absolute(self, base, tmp_path):
        settings = Settings(**base)

        assert settings.output_dir.is_absolute()
        assert settings.output_dir.is_dir()
        assert settings.output_dir == (tmp_path / "output").resolve()

    def test_render_command_from_shell_string(self, base, monkeypatch):
        monkeypatch.setenv("REMOTION_RENDER_RENDER_COMMAND", "bunx remotion render --log=verbose")
        settings = Settings(**base)
        assert settings.render_command == ["bunx", "remotion", "render", "--log=verbose"]

    def test_render_command_from_json(self, base, monkeypatch):
        monkeypatch.setenv("REMOTION_RENDER_RENDER_COMMAND", '["/opt/my remotion/cli", "render"]')
        settings = Settings(**base)
        assert settings.render_command == ["/opt/my remotion/cli", "render"]

    def test_empty_render_command_is_rejected(self, base):
        with pytest.raises(ValidationError):
            Settings(**base, render_command=[])

    def test_failure_markers_from_comma_string(self, base, monkeypatch):
        monkeypatch.setenv("REMOTION_RENDER_STDERR_FAILURE_MARKERS", "Error, FATAL")
        settings = Settings(**base)
        assert settings.stderr_failure_markers == ["error", "fatal"]

    def test_invalid_environment(self, base):
        with pytest.raises(ValidationError):
            Settings(**{**base, "environment": "staging"})

    def test_log_level_is_upper_cased(self, base):
        assert Settings(**base, log_level="debug").log_level == "DEBUG"

    def test_output_extension_strips_dot(self, base):
        assert Settings(**base, output_extension=".webm").output_extension == "webm"

    def test_output_extension_rejects_paths(self, base):
        with pytest.raises(ValidationError):
            Settings(**base, output_extension="../mp4")

    def test_entry_point_relative_to_project(self, base, tmp_path):
        settings = Settings(
            **base,
            remotion_project_dir=tmp_path / "frontend",
            remotion_entry_point=Path("src/remotion/index.js"),
        )
        assert settings.entry_point_path == (tmp_path / "frontend").resolve() / "src/remotion/index.js"

    def test_absolute_entry_point(self, base, tmp_path):
        entry = tmp_path / "elsewhere" / "index.ts"
        settings = Settings(**base, remotion_entry_point=entry)
        assert settings.entry_point_path == entry


class TestLoggingConfig:
    """Test logging configuration per environment."""

    def test_testing_logs_to_console_only(self, base):
        config = get_logging_config(Settings(**base))
        assert config["loggers"][""]["handlers"] == ["console"]
        assert "file" not in config["handlers"]

    def test_production_uses_json_and_files(self, base, tmp_path):
        settings = Settings(**{**base, "environment": "production"})
        config = get_logging_config(settings)

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["handlers"]["file"]["filename"] == str(settings.log_dir / "app.log")
        assert config["loggers"][""]["handlers"] == ["console", "file", "error_file"]
