"""CLI tests against the simulated backend."""

import pytest
from click.testing import CliRunner

from wavelens.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "wavelens.toml"
    path.write_text(
        "[scan]\n"
        "duration = 0.05\n"
        "progress_interval = 0.01\n"
        "\n"
        "[capture]\n"
        "poll_interval = 0.02\n"
        "page_size = 5\n"
        "\n"
        "[simulation]\n"
        "seed = 7\n"
        "packets_per_poll = 4\n"
    )
    return str(path)


class TestCli:

    def test_interfaces(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "--simulate", "interfaces"], obj={})
        assert result.exit_code == 0, result.output
        assert "eth0" in result.output
        assert "wlan0mon" in result.output

    def test_scan(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "--simulate", "scan"], obj={})
        assert result.exit_code == 0, result.output
        assert "Channel Analysis" in result.output
        assert "Scan complete" in result.output

    def test_scan_select_unknown_network(self, runner, config_file):
        result = runner.invoke(
            cli,
            ["--config", config_file, "--simulate", "scan", "--select", "00:00:00:00:00:00"],
            obj={},
        )
        assert result.exit_code == 0, result.output
        assert "was not seen" in result.output

    def test_capture(self, runner, config_file):
        result = runner.invoke(
            cli,
            ["--config", config_file, "--simulate", "capture",
             "--interface", "eth0", "--duration", "0.1"],
            obj={},
        )
        assert result.exit_code == 0, result.output
        assert "Capture Session" in result.output
        assert "Packets - page 1/" in result.output

    def test_capture_on_missing_interface_fails(self, runner, config_file):
        result = runner.invoke(
            cli,
            ["--config", config_file, "--simulate", "capture",
             "--interface", "nope0", "--duration", "0"],
            obj={},
        )
        assert result.exit_code == 1
        assert "Failed to start capture on nope0" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        missing = str(tmp_path / "absent.toml")
        result = runner.invoke(cli, ["--config", missing, "interfaces"], obj={})
        assert result.exit_code == 1
