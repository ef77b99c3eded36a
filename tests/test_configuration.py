"""Tests for settings, watch options and logging setup."""

import logging

import pytest
import structlog

from cmswatch.config import (
    ApiSettings,
    AppSettings,
    ConfigurationError,
    UploadMode,
    WatchOptions,
    WatchSettings,
    load_watch_options,
    load_watch_options_from_env
)
from cmswatch.utils.logging import get_logger, setup_logging


class TestSettings:
    """Test pydantic-settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Defaults apply when no environment variables are set."""
        for name in ["CMSWATCH_WATCH_QUEUE_CONCURRENCY", "CMSWATCH_WATCH_NOTIFY_DEBOUNCE_SECONDS"]:
            monkeypatch.delenv(name, raising=False)

        settings = WatchSettings()

        assert settings.queue_concurrency == 10
        assert settings.notify_debounce_seconds == 1.5
        assert settings.ignore_file_name == ".cmsignore"

    def test_environment_overrides(self, monkeypatch):
        """Prefixed environment variables override the defaults."""
        monkeypatch.setenv("CMSWATCH_WATCH_QUEUE_CONCURRENCY", "4")
        monkeypatch.setenv("CMSWATCH_API_BASE_URL", "https://api.example.test")

        assert WatchSettings().queue_concurrency == 4
        assert ApiSettings().base_url == "https://api.example.test"
        assert AppSettings().watch.queue_concurrency == 4

    def test_invalid_concurrency(self, monkeypatch):
        """A queue concurrency below one is rejected."""
        monkeypatch.setenv("CMSWATCH_WATCH_QUEUE_CONCURRENCY", "0")

        with pytest.raises(ValueError):
            WatchSettings()


class TestWatchOptions:
    """Test per-session option validation."""

    def test_valid_options(self, tmp_path):
        """Valid options are normalized and kept."""
        options = load_watch_options({
            "account_id": " 123 ",
            "src": str(tmp_path),
            "dest": "theme",
            "mode": "DRAFT",
            "notify": str(tmp_path / "notify.log"),
        })

        assert options.account_id == "123"
        assert options.src == str(tmp_path)
        assert options.mode == UploadMode.DRAFT
        assert options.remove is False
        assert options.disable_initial is False
        assert options.notify == str(tmp_path / "notify.log")

    def test_unknown_mode_falls_back_to_publish(self, tmp_path):
        """An unrecognized upload mode publishes."""
        options = WatchOptions(account_id="1", src=str(tmp_path), dest="d", mode="preview")
        assert options.mode == UploadMode.PUBLISH

    def test_missing_source_directory(self, tmp_path):
        """A source that is not an existing directory is rejected."""
        with pytest.raises(ConfigurationError):
            load_watch_options({"account_id": "1", "src": str(tmp_path / "missing"), "dest": "d"})

    def test_blank_destination(self, tmp_path):
        """A blank destination is rejected."""
        with pytest.raises(ConfigurationError):
            load_watch_options({"account_id": "1", "src": str(tmp_path), "dest": "  "})

    def test_working_dir(self, tmp_path):
        """The configured cwd is used as the working directory."""
        options = WatchOptions(account_id="1", src=str(tmp_path), dest="d", cwd=str(tmp_path))
        assert options.working_dir == str(tmp_path)


class TestLoadFromEnv:
    """Test building options from CMSWATCH_* variables."""

    def test_all_variables(self, tmp_path):
        """Every supported variable is read from the environment."""
        env = {
            "CMSWATCH_ACCOUNT_ID": "987",
            "CMSWATCH_SRC": str(tmp_path),
            "CMSWATCH_DEST": "remote/dir",
            "CMSWATCH_MODE": "draft",
            "CMSWATCH_REMOVE": "yes",
            "CMSWATCH_DISABLE_INITIAL": "0",
            "CMSWATCH_NOTIFY": str(tmp_path / "out.txt"),
        }

        options = load_watch_options_from_env(env)

        assert options.account_id == "987"
        assert options.dest == "remote/dir"
        assert options.mode == UploadMode.DRAFT
        assert options.remove is True
        assert options.disable_initial is False
        assert options.notify == str(tmp_path / "out.txt")

    def test_missing_required(self):
        """Missing required options raise a configuration error."""
        with pytest.raises(ConfigurationError):
            load_watch_options_from_env({})


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_with_file(self, tmp_path):
        """Repeated setup replaces handlers and writes to the log file."""
        log_file = tmp_path / "logs" / "cmswatch.log"
        root_logger = logging.getLogger()
        original_handlers = list(root_logger.handlers)
        original_level = root_logger.level

        try:
            setup_logging(log_level="DEBUG", log_format="json", log_file=str(log_file))
            setup_logging(log_level="DEBUG", log_format="json", log_file=str(log_file))

            ours = [h for h in root_logger.handlers if getattr(h, "_cmswatch", False)]
            assert len(ours) == 2

            get_logger("test_logging").info("Uploaded file a.html to dest/a.html", account_id="1")
            for handler in ours:
                handler.flush()

            assert "Uploaded file a.html to dest/a.html" in log_file.read_text()
        finally:
            for handler in list(root_logger.handlers):
                if handler not in original_handlers:
                    root_logger.removeHandler(handler)
                    handler.close()
            root_logger.setLevel(original_level)
            structlog.reset_defaults()
