"""Tests for the structlog configurator module."""

import logging
from unittest.mock import Mock

import pytest
import structlog

from crittertaxa.config.models import LoggingConfig, ToolboxConfig
from crittertaxa.system.structlog_configurator import (
    _add_static_context,
    _configure_processors,
    configure_structlog,
    get_logger,
    resolve_log_level,
)


@pytest.fixture
def restore_logging():
    """Put the root logger and structlog back the way the test found them."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    httpx_level = logging.getLogger("httpx").level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)
    structlog.reset_defaults()


class TestAddStaticContext:
    """Test the _add_static_context processor."""

    def test_adds_static_fields_to_event_dict(self):
        """Should add static fields to all log events."""
        processor = _add_static_context({"service": "crittertaxa"})

        result = processor(Mock(spec=structlog.BoundLogger), "info", {"event": "lookup"})

        assert result == {"event": "lookup", "service": "crittertaxa"}


class TestResolveLogLevel:
    """Test level selection."""

    @pytest.mark.parametrize(
        "verbosity,expected",
        [(0, logging.ERROR), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_verbosity_overrides_config(self, verbosity, expected):
        """Should let -v flags win over the configured level."""
        config = ToolboxConfig(logging=LoggingConfig(level="error"))

        assert resolve_log_level(config, verbosity) == expected

    def test_unknown_level_falls_back_to_warning(self):
        """Should fall back to WARNING for unknown level names."""
        config = ToolboxConfig(logging=LoggingConfig(level="chatty"))

        assert resolve_log_level(config) == logging.WARNING


class TestConfigureProcessors:
    """Test processor selection."""

    def test_json_renderer(self):
        """Should end with the JSON renderer when json_logs is set."""
        config = ToolboxConfig(logging=LoggingConfig(json_logs=True))

        processors = _configure_processors(config)

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_and_caller(self):
        """Should use the console renderer and add callsite info on request."""
        config = ToolboxConfig(logging=LoggingConfig(include_caller=True))

        processors = _configure_processors(config)

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert any(
            isinstance(processor, structlog.processors.CallsiteParameterAdder)
            for processor in processors
        )


class TestConfigureStructlog:
    """Test the full configuration."""

    def test_installs_stderr_handler(self, restore_logging):
        """Should route standard logging to a single stderr handler at the chosen level."""
        configure_structlog(ToolboxConfig(), verbosity=2)

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_get_logger(self, restore_logging):
        """Should hand out structlog loggers after configuration."""
        configure_structlog(ToolboxConfig())

        logger = get_logger("crittertaxa.test")

        assert hasattr(logger, "info")
