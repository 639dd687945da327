"""Tests for headerguard CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from headerguard.cli import EXIT_DENIED, _parse_header, main

CONFIG = """\
requestHeaders:
  - name: User-Agent
    value: MJ12bot
whitelistRequestHeaders:
  - name: Cf-Ipcountry
    value: VN
allowedIPs:
  - "1.1.1.1/32, 2.2.2.2/32"
  - not-an-ip
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "headerblock.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return str(path)


class TestCLIBasics:
    """Basic CLI tests."""

    def test_main_with_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Block requests by header name and value" in result.output
        assert "validate" in result.output
        assert "check" in result.output
        assert "serve" in result.output

    def test_version_command(self):
        runner = CliRunner()
        result = runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "Version:" in result.output
        assert "Python:" in result.output


class TestValidateCommand:
    """Tests for validate command."""

    def test_valid_config(self, config_file):
        runner = CliRunner()
        result = runner.invoke(main, ["validate", config_file])

        assert result.exit_code == 0
        assert "Config OK" in result.output
        assert "1.1.1.1/32" in result.output
        assert "2.2.2.2/32" in result.output

    def test_invalid_regex(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("requestHeaders:\n  - value: '(MJ12bot'\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Failed to load config" in result.output

    def test_missing_file(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["validate", str(tmp_path / "missing.yaml")])
        assert result.exit_code != 0

    def test_config_file_from_env(self, config_file):
        """Test HEADERGUARD_CONFIG_FILE is used when no argument is given."""
        runner = CliRunner()
        result = runner.invoke(main, ["validate"], env={"HEADERGUARD_CONFIG_FILE": config_file})

        assert result.exit_code == 0
        assert "Config OK" in result.output

    def test_no_config_file(self):
        runner = CliRunner()
        result = runner.invoke(main, ["validate"], env={"HEADERGUARD_CONFIG_FILE": None})

        assert result.exit_code == 1
        assert "No config file given" in result.output


class TestCheckCommand:
    """Tests for check command."""

    def test_forward(self, config_file):
        runner = CliRunner()
        result = runner.invoke(
            main, ["check", config_file, "-H", "User-Agent: Mozilla/5.0", "--remote", "5.5.5.5:4000"]
        )

        assert result.exit_code == 0
        assert "FORWARD" in result.output

    def test_deny(self, config_file):
        runner = CliRunner()
        result = runner.invoke(
            main, ["check", config_file, "-H", "User-Agent: MJ12bot", "--remote", "5.5.5.5:4000"]
        )

        assert result.exit_code == EXIT_DENIED
        assert "DENY" in result.output
        assert "User-Agent" in result.output

    def test_ip_bypass(self, config_file):
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "check",
                config_file,
                "-H",
                "User-Agent: MJ12bot",
                "-H",
                "X-Forwarded-For: 2.2.2.2, 10.0.0.1",
                "--remote",
                "127.0.0.1:5000",
            ],
        )
        assert result.exit_code == 0

    def test_json_output(self, config_file):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["check", config_file, "-H", "user-agent: MJ12bot", "--remote", "5.5.5.5:4000", "--json"],
        )

        assert result.exit_code == EXIT_DENIED
        data = json.loads(result.output.strip())
        assert data == {
            "decision": "deny",
            "reason": "Blocked header User-Agent",
            "header": "User-Agent",
            "client_ip": "5.5.5.5",
        }

    def test_bad_header_argument(self, config_file):
        runner = CliRunner()
        result = runner.invoke(main, ["check", config_file, "-H", "no-colon"])
        assert result.exit_code == 2

    def test_parse_header(self):
        assert _parse_header("User-Agent: MJ12bot") == ("User-Agent", "MJ12bot")
        assert _parse_header("X-Empty:") == ("X-Empty", "")


class TestServeCommand:
    """Tests for serve command."""

    def test_serve_builds_proxy(self, config_file):
        """Test serve passes CLI options and settings to the proxy."""
        runner = CliRunner()
        with patch("headerguard.server.proxy.FilterProxy") as mock_proxy, patch(
            "headerguard.cli.asyncio.run"
        ) as mock_run:
            mock_run.side_effect = lambda coro: coro.close()
            result = runner.invoke(
                main,
                ["serve", config_file, "--upstream", "http://backend:80", "--bind", "127.0.0.1:9000"],
            )

        assert result.exit_code == 0, result.output
        kwargs = mock_proxy.call_args.kwargs
        assert kwargs["upstream"] == "http://backend:80"
        assert kwargs["bind"] == "127.0.0.1:9000"
        assert kwargs["request_timeout"] == 60.0
        mock_run.assert_called_once()
        assert "Proxy stopped" in result.output

    def test_serve_invalid_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("requestHeaders:\n  - name: '['\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["serve", str(path)])
        assert result.exit_code == 1
