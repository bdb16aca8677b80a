"""Tests for the server-styles command line entry point."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from server_styles import cli
from server_styles.result import Err, Ok


@pytest.fixture(autouse=True)
def _quiet_logging():
    with patch("server_styles.cli.configure_logging") as configure:
        yield configure


class TestMain:
    def test_missing_version_exits_1(self) -> None:
        with patch("server_styles.cli.StylesConfig.from_env") as from_env:
            assert cli.main([]) == cli.EXIT_MISSING_VERSION
        from_env.assert_not_called()

    def test_blank_version_exits_1(self) -> None:
        assert cli.main(["  "]) == cli.EXIT_MISSING_VERSION

    def test_success_exits_0(self) -> None:
        with patch("server_styles.cli.run_pipeline", return_value=Ok(None, output_dir="styles/28.0")) as run:
            assert cli.main(["28.0"]) == cli.EXIT_OK

        version = run.call_args.args[0]
        config = run.call_args.kwargs["config"]
        assert version == "28.0"
        assert config.version == "28.0"
        assert config.instance_name == "nextcloud-server-styles-28_0"

    def test_failure_exits_2(self) -> None:
        failed = Err("asset_extraction_error", "Failed to copy")
        with patch("server_styles.cli.run_pipeline", return_value=failed):
            assert cli.main(["28.0"]) == cli.EXIT_FAILED

    def test_invalid_environment_exits_2(self, monkeypatch) -> None:
        monkeypatch.setenv("SERVER_STYLES_PORT", "not-a-port")
        with patch("server_styles.cli.run_pipeline") as run:
            assert cli.main(["28.0"]) == cli.EXIT_FAILED
        run.assert_not_called()

    def test_logging_args_are_forwarded(self, _quiet_logging) -> None:
        with patch("server_styles.cli.run_pipeline", return_value=Ok(None)):
            cli.main(["28.0", "--log-level", "DEBUG", "--log-format", "json"])

        _quiet_logging.assert_called_once_with(level="DEBUG", fmt="json")

    def test_invalid_log_format_is_rejected(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["28.0", "--log-format", "xml"])
        assert excinfo.value.code == 2
