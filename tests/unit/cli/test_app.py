"""Typer app のテスト。

NOTE: Typer の CliRunner は stderr 分離パラメータを公開しないため、
stderr 出力は result.output（stdout + stderr 混合出力）で検証する。
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from hugsy.cli._app import app
from hugsy.models.exit_code import ExitCode
from hugsy.models.settings import SETTINGS_SCHEMA_URL

PATCH_VERSION = "hugsy.cli._app.importlib.metadata.version"

runner = CliRunner()


def _write_config(root: Path, data: object, name: str = ".hugsyrc.json") -> Path:
    path = root / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestAppHelp:
    """--help / --version の動作を検証する。"""

    def test_help_shows_subcommands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("compile", "commands", "validate"):
            assert command in result.output

    def test_version(self) -> None:
        with patch(PATCH_VERSION, return_value="1.2.3"):
            result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "1.2.3" in result.output


class TestCompileCommand:
    """compile サブコマンドを検証する。"""

    def test_discovers_document(self, project: Path) -> None:
        _write_config(project, {"permissions": {"allow": ["Read"]}, "env": {"A": "1"}})
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.SUCCESS
        document = json.loads(result.output)
        assert document["$schema"] == SETTINGS_SCHEMA_URL
        assert document["permissions"]["allow"] == ["Read"]
        assert document["env"] == {"A": "1"}

    def test_discovers_document_in_parent(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_config(project, {"model": "opus"})
        nested = project / "src"
        nested.mkdir()
        monkeypatch.chdir(nested)
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.SUCCESS
        assert json.loads(result.output)["model"] == "opus"

    def test_explicit_yaml_path(self, project: Path) -> None:
        path = project / "team.yaml"
        path.write_text("extends: '@hugsy/minimal'\n", encoding="utf-8")
        result = runner.invoke(app, ["compile", str(path)])
        assert result.exit_code == ExitCode.SUCCESS
        assert "Bash(rm -rf /*)" in json.loads(result.output)["permissions"]["deny"]

    def test_no_document_found(self, project: Path) -> None:
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert "No configuration file found" in result.output
        assert ".hugsyrc.json" in result.output

    def test_missing_explicit_path(self, project: Path) -> None:
        result = runner.invoke(app, ["compile", "missing.json"])
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert "Configuration file not found" in result.output

    def test_syntax_error(self, project: Path) -> None:
        (project / ".hugsyrc.json").write_text("{", encoding="utf-8")
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert "Cannot read configuration" in result.output

    def test_non_object_root(self, project: Path) -> None:
        _write_config(project, ["Read"])
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.COMPILATION_ERROR
        assert "Configuration must be an object" in result.output

    def test_cycle_reported(self, project: Path) -> None:
        _write_config(project, {"extends": "./a"}, name=".hugsyrc.json")
        _write_config(project, {"extends": "./b"}, name="a.json")
        _write_config(project, {"extends": "./a"}, name="b.json")
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.COMPILATION_ERROR
        assert "Circular dependency detected!" in result.output
        assert "1. ./a -> ./b" in result.output

    def test_strict_flag(self, project: Path) -> None:
        _write_config(project, {"env": {"PORT": 8080}})
        result = runner.invoke(app, ["compile", "--strict"])
        assert result.exit_code == ExitCode.COMPILATION_ERROR
        assert "Invalid env value for 'PORT'" in result.output

    def test_strict_from_pyproject(self, project: Path) -> None:
        (project / "pyproject.toml").write_text(
            "[tool.hugsy]\nstrict = true\n", encoding="utf-8"
        )
        _write_config(project, {"permissions": {"allow": ["read"]}})
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.COMPILATION_ERROR
        result = runner.invoke(app, ["compile", "--no-strict"])
        assert result.exit_code == ExitCode.SUCCESS

    def test_invalid_options(self, project: Path) -> None:
        (project / "pyproject.toml").write_text(
            "[tool.hugsy]\nstrict = 'always'\n", encoding="utf-8"
        )
        _write_config(project, {})
        result = runner.invoke(app, ["compile"])
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert "Invalid hugsy options" in result.output


class TestCommandsCommand:
    """commands サブコマンドを検証する。"""

    def test_lists_commands(self, project: Path) -> None:
        commands_dir = project / ".claude" / "commands"
        commands_dir.mkdir(parents=True)
        (commands_dir / "deploy.md").write_text(
            "---\ndescription: Deploy the app\ncategory: ops\n---\nDeploy it.",
            encoding="utf-8",
        )
        _write_config(
            project,
            {"commands": {"files": ".claude/commands/*.md", "commands": {"hi": "Hi"}}},
        )
        result = runner.invoke(app, ["commands"])
        assert result.exit_code == ExitCode.SUCCESS
        lines = result.output.splitlines()
        assert lines[0].startswith("NAME")
        assert any(
            line.startswith("/deploy") and "ops" in line and "Deploy the app" in line
            for line in lines
        )
        assert any(line.startswith("/hi") for line in lines)

    def test_no_commands(self, project: Path) -> None:
        _write_config(project, {})
        result = runner.invoke(app, ["commands"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "No slash commands defined." in result.output


class TestValidateCommand:
    """validate サブコマンドを検証する。"""

    def test_valid_settings(self, project: Path) -> None:
        path = _write_config(
            project,
            {"$schema": SETTINGS_SCHEMA_URL, "permissions": {"allow": ["Read"]}},
            name="settings.json",
        )
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == ExitCode.SUCCESS
        assert "valid" in result.output

    def test_invalid_settings(self, project: Path) -> None:
        path = _write_config(
            project, {"permissions": {"allow": ["read"]}}, name="settings.json"
        )
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == ExitCode.INVALID_SETTINGS
        assert "Missing $schema field" in result.output
        assert "Invalid permission format in allow: read" in result.output

    def test_unreadable_settings(self, project: Path) -> None:
        result = runner.invoke(app, ["validate", str(project / "missing.json")])
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert "Cannot read settings" in result.output
