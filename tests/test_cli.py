"""Tests for the vaultsync command line."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from vaultsync.cli import main

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    return tmp_path / "home"


def invoke(runner: CliRunner, home: Path, *args: str):
    return runner.invoke(main, ["--home", str(home), *args])


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    path = tmp_path / "vault"
    path.mkdir()
    for args in (
        ["init"],
        ["symbolic-ref", "HEAD", "refs/heads/main"],
        ["config", "user.name", "Test User"],
        ["config", "user.email", "test@example.com"],
        ["config", "commit.gpgsign", "false"],
    ):
        subprocess.run(["git", *args], cwd=path, check=True, capture_output=True)
    (path / "note.md").write_text("hello\n")
    subprocess.run(["git", "add", "-A"], cwd=path, check=True, capture_output=True)
    subprocess.run(["git", "commit", "-m", "initial"], cwd=path, check=True, capture_output=True)
    return path


class TestHelp:
    def test_commands_listed(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for name in ("pull", "push", "changes", "status", "watch", "config"):
            assert name in result.output

    def test_push_help(self, runner):
        result = runner.invoke(main, ["push", "--help"])
        assert result.exit_code == 0
        assert "--message" in result.output


class TestConfigCommands:
    """config init / show / set."""

    def test_init_writes_config(self, runner, home, tmp_path):
        vault = tmp_path / "notes"
        result = invoke(runner, home, "config", "init", "--vault", str(vault))
        assert result.exit_code == 0

        data = yaml.safe_load((home / "config.yaml").read_text())
        assert data["vault_path"] == str(vault.resolve())

    def test_init_refuses_overwrite(self, runner, home):
        invoke(runner, home, "config", "init")
        result = invoke(runner, home, "config", "init")
        assert result.exit_code == 1
        assert "already exists" in result.output

        assert invoke(runner, home, "config", "init", "--force").exit_code == 0

    def test_set_then_show(self, runner, home):
        assert invoke(runner, home, "config", "set", "auto_backup_interval", "5").exit_code == 0
        assert invoke(runner, home, "config", "set", "standalone.author_name", "Ada").exit_code == 0

        result = invoke(runner, home, "config", "show")
        assert result.exit_code == 0
        assert "auto_backup_interval: 5" in result.output
        assert "author_name: Ada" in result.output

    def test_set_unknown_key(self, runner, home):
        result = invoke(runner, home, "config", "set", "colour", "blue")
        assert result.exit_code == 1
        assert "Unknown setting" in result.output
        assert not (home / "config.yaml").exists()


class TestSyncCommands:
    """Commands that drive the coordinator."""

    def test_changes_outside_repo(self, runner, home, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        result = invoke(runner, home, "changes", "--vault", str(plain))
        assert result.exit_code == 1

    def test_status_outside_repo(self, runner, home, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        result = invoke(runner, home, "status", "--vault", str(plain))
        assert result.exit_code == 0
        assert "Valid git repository not found" in result.output

    @needs_git
    def test_changes_lists_files(self, runner, home, repo):
        (repo / "draft.md").write_text("draft\n")
        result = invoke(runner, home, "changes", "--vault", str(repo))
        assert result.exit_code == 0
        assert "draft.md" in result.output

    @needs_git
    def test_push_without_upstream(self, runner, home, repo):
        (repo / "draft.md").write_text("draft\n")
        result = invoke(runner, home, "push", "--vault", str(repo), "-m", "manual backup")

        assert result.exit_code == 0
        assert "Committed 1 files" in result.output
        assert "No upstream branch is set" in result.output
        log = subprocess.run(
            ["git", "log", "-1", "--format=%s"], cwd=repo, check=True, capture_output=True, text=True
        )
        assert log.stdout.strip() == "manual backup"

    @needs_git
    def test_pull_without_upstream_fails_softly(self, runner, home, repo):
        result = invoke(runner, home, "pull", "--vault", str(repo))
        assert result.exit_code == 0
        assert "git pull failed" in result.output
