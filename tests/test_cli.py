"""Tests for the CLI module.

Covers:
- Help and version output
- Global options (log-level, log-json, config-file)
- run refusing to start without a token
- fetch reporting metadata, downloads and errors
- config check
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from folio import __version__
from folio.cli import cli
from folio.downloads import AcquisitionResult
from folio.errors import AssetDownloadError, NotFoundError


class TestCliHelp:
    """Tests for help and basic command availability."""

    def test_cli_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Folio - Discord reader for image galleries" in result.output
        for command in ("version", "run", "fetch", "config"):
            assert command in result.output

    def test_cli_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output
        assert "folio" in result.output

    def test_version_with_global_options(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--log-level", "DEBUG", "--no-log-json", "--config-file", "/nonexistent.yaml", "version"],
        )
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRun:
    """Tests for the run command."""

    def test_run_requires_token(
        self, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)

        result = cli_runner.invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "DISCORD_TOKEN" in result.output


def mock_pipeline(**kwargs) -> MagicMock:
    pipeline = MagicMock()
    pipeline.acquire = AsyncMock(**kwargs)
    pipeline.gallery_client.fetch_metadata = AsyncMock(**kwargs)
    return pipeline


class TestFetch:
    """Tests for the fetch command."""

    def test_fetch_metadata_only(self, cli_runner: CliRunner, gallery_record) -> None:
        pipeline = mock_pipeline(return_value=gallery_record)

        with patch("folio.downloads.AcquisitionPipeline.from_config", return_value=pipeline):
            result = cli_runner.invoke(cli, ["fetch", "123456", "--no-download"])

        assert result.exit_code == 0
        assert "Pretty Title" in result.output
        assert "Pages: 3" in result.output
        pipeline.acquire.assert_not_called()

    def test_fetch_not_found(self, cli_runner: CliRunner) -> None:
        pipeline = mock_pipeline(side_effect=NotFoundError("000000"))

        with patch("folio.downloads.AcquisitionPipeline.from_config", return_value=pipeline):
            result = cli_runner.invoke(cli, ["fetch", "000000", "--no-download"])

        assert result.exit_code == 1
        assert "code 000000 not found" in result.output

    def test_fetch_with_download(
        self, cli_runner: CliRunner, gallery_record, tmp_path: Path
    ) -> None:
        directory = tmp_path / "123456"
        pipeline = mock_pipeline(
            return_value=AcquisitionResult(
                record=gallery_record,
                directory=directory,
                downloaded=[directory / "cover.jpg", directory / "001.jpg"],
            )
        )

        with patch("folio.downloads.AcquisitionPipeline.from_config", return_value=pipeline):
            result = cli_runner.invoke(cli, ["fetch", "123456"])

        assert result.exit_code == 0
        assert f"Directory: {directory}" in result.output
        assert "Files downloaded: 2" in result.output

    def test_fetch_partial_download_fails(
        self, cli_runner: CliRunner, gallery_record, tmp_path: Path
    ) -> None:
        pipeline = mock_pipeline(
            return_value=AcquisitionResult(
                record=gallery_record,
                directory=tmp_path / "123456",
                error=AssetDownloadError("https://thumbs.test/cover.jpg", 3, "HTTP 500"),
            )
        )

        with patch("folio.downloads.AcquisitionPipeline.from_config", return_value=pipeline):
            result = cli_runner.invoke(cli, ["fetch", "123456"])

        assert result.exit_code == 1
        assert "Pretty Title" in result.output
        assert "Download incomplete" in result.output

    def test_fetch_download_metadata_failure(self, cli_runner: CliRunner) -> None:
        pipeline = mock_pipeline(return_value=AcquisitionResult(error=NotFoundError("1")))

        with patch("folio.downloads.AcquisitionPipeline.from_config", return_value=pipeline):
            result = cli_runner.invoke(cli, ["fetch", "1"])

        assert result.exit_code == 1
        assert "code 1 not found" in result.output

    @pytest.mark.parametrize("code", ["../escaped", "123456#/../../escaped", "abc"])
    def test_fetch_rejects_invalid_code(self, cli_runner: CliRunner, code: str) -> None:
        with patch("folio.downloads.AcquisitionPipeline.from_config") as from_config:
            result = cli_runner.invoke(cli, ["fetch", code])

        assert result.exit_code == 1
        assert "Please provide a valid code" in result.output
        from_config.assert_not_called()


class TestConfigCheck:
    """Tests for config check."""

    def test_config_check_valid(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump({"data_dir": str(tmp_path), "discord": {"guild_id": "42"}}))

        result = cli_runner.invoke(cli, ["config", "check", "-c", str(config_path)])

        assert result.exit_code == 0
        assert "Configuration valid" in result.output
        assert "Command guild: 42" in result.output

    def test_config_check_invalid(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump({"log_level": "LOUD"}))

        result = cli_runner.invoke(cli, ["config", "check", "-c", str(config_path)])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
