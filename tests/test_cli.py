"""
Tests for the registry-mirror command line.

Catalog and skopeo calls are mocked at the driver/CLI module level.
"""

import json
from unittest import mock

import pytest
from click.testing import CliRunner

from registry_mirror.errors import CatalogHTTPError, SyncInvocationError
from registry_mirror.main import cli
from registry_mirror.mirror.state import CycleReport, save_report


@pytest.fixture
def runner():
    return CliRunner()


class TestRun:

    @mock.patch("registry_mirror.mirror.driver.run_sync", return_value="")
    @mock.patch("registry_mirror.mirror.driver.fetch_catalog", return_value=["a/b/img1", "img2"])
    def test_once(self, mock_fetch, mock_run, runner, config_file, mirror_env):
        env = mirror_env(config_file())

        result = runner.invoke(cli, ["run", "--once"], env=env)

        assert result.exit_code == 0, result.output
        assert mock_run.call_count == 2
        assert "2 synced, 0 failed of 2 repositories" in result.output

    @mock.patch("registry_mirror.mirror.driver.run_sync")
    @mock.patch("registry_mirror.mirror.driver.fetch_catalog", return_value=["bad", "good"])
    def test_once_with_failed_repository(self, mock_fetch, mock_run, runner, config_file, mirror_env):
        """Repository failures are not fatal."""
        mock_run.side_effect = [SyncInvocationError(["skopeo"], "exit status 1"), ""]

        result = runner.invoke(cli, ["run", "--once"], env=mirror_env(config_file()))

        assert result.exit_code == 0, result.output
        assert "1 synced, 1 failed" in result.output

    @mock.patch("registry_mirror.mirror.driver.run_sync")
    @mock.patch("registry_mirror.mirror.driver.fetch_catalog")
    def test_catalog_failure_exits_non_zero(self, mock_fetch, mock_run, runner, config_file, mirror_env):
        mock_fetch.side_effect = CatalogHTTPError("https://src.example/v2/_catalog", 500)

        result = runner.invoke(cli, ["run", "--once"], env=mirror_env(config_file()))

        assert result.exit_code == 1
        assert "Unable to get source repo list" in result.output
        mock_run.assert_not_called()

    @mock.patch("registry_mirror.mirror.driver.run_sync")
    @mock.patch("registry_mirror.mirror.driver.fetch_catalog")
    @mock.patch("registry_mirror.mirror.driver.time.sleep")
    def test_loop_exits_on_catalog_failure(
        self, mock_sleep, mock_fetch, mock_run, runner, config_file, mirror_env
    ):
        """Default policy: the daemon terminates on a catalog error."""
        mock_fetch.side_effect = [["a"], CatalogHTTPError("https://src.example/v2/_catalog", 500)]
        mock_run.return_value = ""

        result = runner.invoke(cli, ["run"], env=mirror_env(config_file(), INTERVAL="5"))

        assert result.exit_code == 1
        mock_sleep.assert_called_once_with(5)

    def test_invalid_interval(self, runner, config_file, mirror_env):
        result = runner.invoke(cli, ["run"], env=mirror_env(config_file(), INTERVAL="abc"))

        assert result.exit_code == 1
        assert "Invalid interval" in result.output

    def test_missing_config(self, runner, mirror_env, tmp_path):
        result = runner.invoke(cli, ["run", "--once"], env=mirror_env(tmp_path / "missing.yml"))

        assert result.exit_code == 1
        assert "Unable to start" in result.output


class TestCatalogCommand:

    @mock.patch("registry_mirror.cli.mirror.fetch_catalog", return_value=["a/b", "c"])
    def test_lists_repositories(self, mock_fetch, runner, config_file, mirror_env):
        result = runner.invoke(cli, ["catalog"], env=mirror_env(config_file()))

        assert result.exit_code == 0
        assert result.output.splitlines() == ["a/b", "c"]


class TestShowCommand:

    def test_base_args_masked(self, runner, config_file, mirror_env):
        path = config_file(src={"host": "s", "user": "u", "pass": "secret"}, dest={"host": "d"})

        result = runner.invoke(cli, ["show-command"], env=mirror_env(path))

        assert result.exit_code == 0
        assert "--src-creds u:***" in result.output
        assert "secret" not in result.output

    def test_repository_command(self, runner, config_file, mirror_env):
        result = runner.invoke(cli, ["show-command", "team/app/api"], env=mirror_env(config_file()))

        assert result.exit_code == 0
        assert result.output.strip().endswith("src.example/team/app/api dest.example/team/app")


class TestCheckConfig:

    def test_valid(self, runner, config_file, mirror_env):
        path = config_file(src={"host": "s", "ssl": False}, dest={"host": "d"})

        result = runner.invoke(cli, ["check-config"], env=mirror_env(path))

        assert result.exit_code == 0
        assert "Config OK" in result.output
        assert "Insecure hosts:    s" in result.output

    def test_invalid(self, runner, config_file, mirror_env):
        result = runner.invoke(cli, ["check-config"], env=mirror_env(config_file(raw="- just a list\n")))

        assert result.exit_code == 1


class TestStatus:

    def test_no_report(self, runner, mirror_env, tmp_path):
        result = runner.invoke(cli, ["status"], env=mirror_env(tmp_path / "config.yml"))

        assert result.exit_code == 0
        assert "No sync cycle recorded yet" in result.output

    def test_mistyped_report(self, runner, mirror_env, tmp_path):
        """A status file with wrong field types reads as no report."""
        path = tmp_path / "state" / "mirror_status.json"
        path.parent.mkdir()
        path.write_text('{"cycle_id": "C-1", "failed": 5}')

        result = runner.invoke(cli, ["status"], env=mirror_env(tmp_path / "config.yml"))

        assert result.exit_code == 0
        assert "No sync cycle recorded yet" in result.output

    def test_json(self, runner, mirror_env, tmp_path):
        report = CycleReport(cycle_id="C-1", repositories=["a"], synced=["a"])
        save_report(report, tmp_path / "state" / "mirror_status.json")

        result = runner.invoke(cli, ["status", "--json"], env=mirror_env(tmp_path / "config.yml"))

        assert result.exit_code == 0
        assert json.loads(result.output)["cycle_id"] == "C-1"

    def test_human_shows_failures(self, runner, mirror_env, tmp_path):
        report = CycleReport(repositories=["a", "b"], synced=["a"], failed={"b": "exit status 1"})
        save_report(report, tmp_path / "state" / "mirror_status.json")

        result = runner.invoke(cli, ["status"], env=mirror_env(tmp_path / "config.yml"))

        assert "Synced:    1/2" in result.output
        assert "b: exit status 1" in result.output
