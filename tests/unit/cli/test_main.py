"""Unit tests for the Conductor CLI."""

from pathlib import Path
import re

import pytest
from typer.testing import CliRunner
import yaml

from conductor import __version__
from conductor.cli.main import app

runner = CliRunner()


def _clean(output: str) -> str:
    """Strip ANSI codes Rich may add."""
    return re.sub(r"\x1b\[[0-9;]*m", "", output)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ~ at a temporary directory and clear CONDUCTOR_* overrides."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("CONDUCTOR_STRATEGY", raising=False)
    monkeypatch.delenv("CONDUCTOR_LOG_LEVEL", raising=False)
    return tmp_path


class TestMainApp:
    """Tests for the top-level application."""

    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "Conductor" in result.output

    @pytest.mark.parametrize("flag", ["--version", "-V"])
    def test_version(self, flag: str) -> None:
        result = runner.invoke(app, [flag])

        assert result.exit_code == 0
        assert __version__ in _clean(result.output)

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])

        assert result.exit_code == 2
        assert "Conductor" in result.output

    @pytest.mark.parametrize("group", ["config", "templates", "agents", "run"])
    def test_command_groups_registered(self, group: str) -> None:
        assert runner.invoke(app, [group, "--help"]).exit_code == 0


class TestTemplatesCommand:
    def test_list(self) -> None:
        result = runner.invoke(app, ["templates", "list"])

        assert result.exit_code == 0
        for template_id in ("feature-development", "bug-fix", "research"):
            assert template_id in result.output

    def test_list_by_type(self) -> None:
        result = runner.invoke(app, ["templates", "list", "--type", "research"])

        assert result.exit_code == 0
        assert "research" in result.output
        assert "bug-fix" not in result.output

    def test_show(self) -> None:
        result = runner.invoke(app, ["templates", "show", "bug-fix"])

        assert result.exit_code == 0
        assert "Reproduce Issue" in result.output

    def test_show_unknown(self) -> None:
        result = runner.invoke(app, ["templates", "show", "nope"])

        assert result.exit_code == 1
        assert "Unknown template" in result.output


class TestAgentsCommand:
    def test_defaults(self) -> None:
        result = runner.invoke(app, ["agents", "defaults"])

        assert result.exit_code == 0
        for agent_id in ("claude-3-opus", "gpt-4-turbo", "gemini-pro"):
            assert agent_id in result.output


class TestConfigCommand:
    """Tests for config init/show/validate."""

    def test_init_then_validate(self, tmp_path: Path) -> None:
        config_dir = tmp_path / "cfg"

        init = runner.invoke(app, ["config", "init", "--dir", str(config_dir)])
        validate = runner.invoke(app, ["config", "validate", "--dir", str(config_dir)])

        assert init.exit_code == 0
        assert (config_dir / "config.yaml").exists()
        assert validate.exit_code == 0

    def test_init_refuses_overwrite_without_force(self, tmp_path: Path) -> None:
        config_dir = str(tmp_path / "cfg")
        runner.invoke(app, ["config", "init", "--dir", config_dir])

        again = runner.invoke(app, ["config", "init", "--dir", config_dir])
        forced = runner.invoke(app, ["config", "init", "--dir", config_dir, "--force"])

        assert again.exit_code == 1
        assert forced.exit_code == 0

    def test_show_section_with_env_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_dir = str(tmp_path / "cfg")
        runner.invoke(app, ["config", "init", "--dir", config_dir])
        monkeypatch.setenv("CONDUCTOR_STRATEGY", "least_loaded")

        result = runner.invoke(app, ["config", "show", "orchestrator", "--dir", config_dir])

        assert result.exit_code == 0
        assert "orchestrator.strategy" in result.output
        assert "least_loaded" in result.output
        assert "persistence" not in result.output

    def test_show_unknown_section(self, tmp_path: Path) -> None:
        config_dir = str(tmp_path / "cfg")
        runner.invoke(app, ["config", "init", "--dir", config_dir])

        result = runner.invoke(app, ["config", "show", "economics", "--dir", config_dir])

        assert result.exit_code == 1

    def test_validate_reports_errors(self, tmp_path: Path) -> None:
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text(
            yaml.dump({"orchestrator": {"max_task_retries": 0}})
        )

        result = runner.invoke(app, ["config", "validate", "--dir", str(config_dir)])

        assert result.exit_code == 1
        assert "max_task_retries" in result.output

    def test_show_without_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", "show", "--dir", str(tmp_path / "none")])

        assert result.exit_code == 1


class TestRunCommand:
    """Tests for run template."""

    def test_runs_template_to_completion(self, isolated_home: Path) -> None:
        result = runner.invoke(app, ["run", "template", "bug-fix", "--no-persist"])

        assert result.exit_code == 0, result.output
        assert "completed" in result.output
        assert not (isolated_home / ".conductor" / "data").exists()

    def test_persisted_run_writes_database(self, isolated_home: Path) -> None:
        result = runner.invoke(app, ["run", "template", "research", "--persist"])

        assert result.exit_code == 0, result.output
        assert (isolated_home / ".conductor" / "data" / "conductor.db").exists()

    def test_unknown_template(self) -> None:
        result = runner.invoke(app, ["run", "template", "nope", "--no-persist"])

        assert result.exit_code == 1
        assert "nope" in result.output
