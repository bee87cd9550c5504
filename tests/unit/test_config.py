"""
Tests for settings and logging configuration.
"""

import logging

import pytest
from pydantic import ValidationError
from rich.logging import RichHandler

from overseer.config import OverseerSettings, get_settings
from overseer.logging_config import configure_logging, get_logger


class TestSettings:
    """Tests for OverseerSettings."""

    def test_defaults(self, settings: OverseerSettings) -> None:
        """Defaults leave the chain unhardened."""
        assert settings.supervisor_timeout_seconds is None
        assert settings.request_timeout_fallback == "block"
        assert settings.response_timeout_fallback == "allow"
        assert settings.enforce_permissions is False
        assert settings.strict_registration is False
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """OVERSEER_ variables override defaults."""
        monkeypatch.setenv("OVERSEER_SUPERVISOR_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("OVERSEER_ENFORCE_PERMISSIONS", "true")
        monkeypatch.setenv("OVERSEER_REQUEST_TIMEOUT_FALLBACK", "allow")

        settings = get_settings()

        assert settings.supervisor_timeout_seconds == 2.5
        assert settings.enforce_permissions is True
        assert settings.request_timeout_fallback == "allow"

    def test_cached(self) -> None:
        """get_settings returns the same instance until the cache is cleared."""
        assert get_settings() is get_settings()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"supervisor_timeout_seconds": 0},
            {"request_timeout_fallback": "retry"},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        """Out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            OverseerSettings(_env_file=None, **overrides)


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("overseer")
        handlers, level = list(logger.handlers), logger.level
        yield
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)

    def test_console_handler(self) -> None:
        """A Rich console handler is installed at the requested level."""
        assert configure_logging("debug") is None
        logger = logging.getLogger("overseer")
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_repeated_calls_do_not_duplicate(self) -> None:
        """Calling twice replaces the handlers from the first call."""
        configure_logging("INFO")
        count = len(logging.getLogger("overseer").handlers)
        configure_logging("WARNING")
        assert len(logging.getLogger("overseer").handlers) == count

    def test_log_file(self, temp_dir) -> None:
        """A rotating file receives overseer records."""
        path = configure_logging("INFO", temp_dir / "logs" / "overseer.log")
        logging.getLogger("overseer.test").info("written to file")
        for handler in logging.getLogger("overseer").handlers:
            handler.flush()

        assert path is not None
        assert "written to file" in path.read_text()

    def test_get_logger_under_overseer(self, temp_dir) -> None:
        """Loggers from get_logger inherit the overseer handlers."""
        logger = get_logger("overseer.cli")
        assert logger is logging.getLogger("overseer.cli")

        path = configure_logging("INFO", temp_dir / "cli.log")
        logger.info("from the cli")
        for handler in logging.getLogger("overseer").handlers:
            handler.flush()

        assert "from the cli" in path.read_text()
