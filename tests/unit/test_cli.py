"""Tests for the ``notion-site`` command line."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from notionsite.cli import cli
from notionsite.config import DEFAULT_CONFIG_FILENAME, TOKEN_ENV_VAR
from notionsite.errors import NotionSiteAuthError
from notionsite.models import GenerationResult, PageOutcome, PageStatus


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setenv(TOKEN_ENV_VAR, "placeholder")
    monkeypatch.delenv(TOKEN_ENV_VAR)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_config(directory) -> str:
    path = directory / DEFAULT_CONFIG_FILENAME
    path.write_text(yaml.safe_dump({"notion": {"databaseId": "db-1"}}), encoding="utf-8")
    return str(path)


class TestInit:
    def test_writes_starter_files(self, runner, tmp_path):
        result = runner.invoke(cli, ["init", "--path", str(tmp_path / "blog")])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "blog" / DEFAULT_CONFIG_FILENAME).exists()
        assert (tmp_path / "blog" / ".env").exists()
        assert "Configuration:" in result.output


class TestRun:
    def test_missing_config_reports_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--config", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 1
        assert "[CONFIG_ERROR]" in result.output

    def test_missing_token_reports_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--config", write_config(tmp_path)])
        assert result.exit_code == 1
        assert TOKEN_ENV_VAR in result.output

    def test_invalid_workers_rejected(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--config", write_config(tmp_path), "--workers", "0"])
        assert result.exit_code == 2

    def test_prints_tally(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "secret")
        generator = MagicMock()
        generator.__enter__.return_value = generator
        generator.run.return_value = GenerationResult(outcomes=[
            PageOutcome(page_id="a"),
            PageOutcome(page_id="b", status=PageStatus.FAILED),
        ])
        with patch("notionsite.cli.SiteGenerator", return_value=generator) as factory:
            result = runner.invoke(cli, [
                "run", "--config", write_config(tmp_path), "--workers", "4", "--extended-syntax",
            ])

        assert result.exit_code == 0, result.output
        assert "succeeded: 1  failed: 1  skipped: 0" in result.output
        config = factory.call_args.args[0]
        assert config.max_workers == 4
        assert config.extended_syntax is True

    def test_api_error_reported(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "secret")
        generator = MagicMock()
        generator.__enter__.return_value = generator
        generator.run.side_effect = NotionSiteAuthError(message="token rejected")
        with patch("notionsite.cli.SiteGenerator", return_value=generator):
            result = runner.invoke(cli, ["run", "--config", write_config(tmp_path)])
        assert result.exit_code == 1
        assert "[AUTH_ERROR] token rejected" in result.output
