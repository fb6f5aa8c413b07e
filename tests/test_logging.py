"""
Unit tests for logging setup.
"""
import logging

import pytest
import structlog
from pythonjsonlogger import jsonlogger

from order_service import __version__
from order_service.config import Settings
from order_service.monitoring.logging import service_context, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestLogging:
    """Test suite for logging configuration."""

    @pytest.mark.unit
    def test_service_context_stamps_identity(self, test_settings: Settings) -> None:
        add_context = service_context(test_settings)

        event = add_context(None, "info", {"event": "order_created", "env": "override"})

        assert event["service"] == "order-service-test"
        assert event["version"] == __version__
        assert event["env"] == "override"

    @pytest.mark.unit
    def test_setup_installs_single_json_handler(
        self, test_settings: Settings, restore_logging
    ) -> None:
        setup_logging(test_settings)
        setup_logging(test_settings)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, jsonlogger.JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
