"""
Tests for the check-config command.
"""

import pytest
from typer.testing import CliRunner

from sciuro.cli.main import app

runner = CliRunner()


@pytest.fixture
def alertmanager_env(monkeypatch):
    monkeypatch.setenv("SCIURO_ALERTMANAGER_URL", "http://alertmanager:9093")
    monkeypatch.setenv("SCIURO_ALERT_RECEIVER", "sciuro")


def test_check_config_ok(alertmanager_env, monkeypatch):
    monkeypatch.setenv("SCIURO_NODE_FILTERS", 'instance=~"{{ ShortName }}(:[0-9]+)?"')

    result = runner.invoke(app, ["check-config"])

    assert result.exit_code == 0
    assert "Configuration OK" in result.output
    assert "alertmanager http://alertmanager:9093 (receiver sciuro)" in result.output


def test_check_config_rejects_bad_template(alertmanager_env, monkeypatch):
    monkeypatch.setenv("SCIURO_NODE_FILTERS", 'instance="{{ ShortName"')

    result = runner.invoke(app, ["check-config"])

    assert result.exit_code == 1
    assert "invalid node filter template" in result.output


def test_check_config_rejects_missing_matcher(alertmanager_env, monkeypatch):
    monkeypatch.delenv("SCIURO_NODE_FILTERS", raising=False)
    monkeypatch.delenv("SCIURO_NODE_EXPRESSION", raising=False)

    result = runner.invoke(app, ["check-config"])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
