"""Tests for CLI commands."""

import json

import pytest
from click.testing import CliRunner

from logcanon.cli import cli

VALID_REQUEST = {
    "putIntegrationSettings": {
        "awsAccountId": "123456789012",
        "integrationLabel": "Production CloudTrail",
        "integrationType": "aws-s3",
        "userId": "cb7663c7-80ed-420b-a287-ed7dc50a0bf7",
        "s3Bucket": "audit-logs",
        "logTypes": ["AWS.CloudTrail"],
    }
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("LOGCANON_CONFIG", "LOGCANON_LOG_LEVEL", "LOGCANON_LOG_TYPES", "LOGCANON_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


class TestCLI:
    """Tests for main CLI."""

    def test_cli_help(self, runner):
        """Test CLI help output."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "canonical events" in result.output

    def test_cli_with_version_option(self, runner):
        """Test --version option."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "logcanon" in result.output.lower()

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "log-types"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestParseCommand:
    """Tests for parse command."""

    def test_parse_to_file(self, runner, tmp_path, nginx_log):
        """Test events are written as JSON lines."""
        input_file = tmp_path / "access.log"
        input_file.write_text(nginx_log + "\n" + "garbage\n")
        output_file = tmp_path / "events.jsonl"

        result = runner.invoke(
            cli, ["parse", "--log-type", "Nginx.Access", str(input_file), "--output", str(output_file)]
        )

        assert result.exit_code == 0
        assert "2 lines read" in result.output
        assert "1 events emitted" in result.output
        assert "1 lines dropped" in result.output

        lines = output_file.read_text().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["p_log_type"] == "Nginx.Access"
        assert event["p_event_time"] == "2020-10-10T20:55:36Z"
        assert event["p_any_ip_addresses"] == ["203.0.113.7"]

    def test_parse_stdin(self, runner, rfc5424_log):
        result = runner.invoke(cli, ["parse", "-t", "Fluentd.Syslog5424"], input=rfc5424_log + "\n")

        assert result.exit_code == 0
        assert '"p_log_type": "Fluentd.Syslog5424"' in result.output

    def test_unknown_log_type(self, runner, tmp_path):
        """Test an unknown log type is a usage error."""
        input_file = tmp_path / "input.log"
        input_file.write_text("{}\n")

        result = runner.invoke(cli, ["parse", "-t", "Unknown.Type", str(input_file)])

        assert result.exit_code == 2
        assert "Unknown.Type" in result.output

    def test_log_type_not_enabled(self, runner, tmp_path, nginx_log):
        """Test the configured allow-list limits parsing."""
        config_file = tmp_path / "logcanon.yaml"
        config_file.write_text("log_types:\n  - AWS.CloudTrail\n")
        input_file = tmp_path / "access.log"
        input_file.write_text(nginx_log + "\n")

        result = runner.invoke(
            cli, ["--config", str(config_file), "parse", "-t", "Nginx.Access", str(input_file)]
        )

        assert result.exit_code == 2


class TestLogTypesCommand:

    def test_lists_builtin_types(self, runner):
        result = runner.invoke(cli, ["log-types"])

        assert result.exit_code == 0
        assert "Supported Log Types" in result.output
        for log_type in ("AWS.CloudTrail", "AWS.GuardDuty", "Fluentd.Syslog5424", "Nginx.Access"):
            assert log_type in result.output


class TestCheckSourceCommand:
    """Tests for check-source command."""

    def test_valid_request(self, runner, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps(VALID_REQUEST))

        result = runner.invoke(cli, ["check-source", str(request_file)])

        assert result.exit_code == 0
        assert "Integration request is valid" in result.output

    def test_invalid_request(self, runner, tmp_path):
        """Test each field error is printed verbatim."""
        request = json.loads(json.dumps(VALID_REQUEST))
        request["putIntegrationSettings"]["integrationLabel"] = " "
        request["putIntegrationSettings"]["awsAccountId"] = "1234"
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps(request))

        result = runner.invoke(cli, ["check-source", str(request_file)])

        assert result.exit_code == 1
        assert (
            "Key: 'PutIntegrationInput.PutIntegrationSettings.AWSAccountID' "
            "Error:Field validation for 'AWSAccountID' failed on the 'len' tag"
        ) in result.output
        assert "failed on the 'integrationLabel' tag" in result.output

    def test_malformed_request(self, runner, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text("{not json")

        result = runner.invoke(cli, ["check-source", str(request_file)])

        assert result.exit_code == 1
        assert "Malformed integration request" in result.output
