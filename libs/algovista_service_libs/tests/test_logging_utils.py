"""Tests for logging_utils module processors and configuration."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

import pytest
import structlog
from structlog.contextvars import clear_contextvars, get_contextvars

from algovista_service_libs.logging_utils import (
    add_service_context,
    bind_request_context,
    configure_service_logging,
    create_service_logger,
)


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate environment, root handlers and structlog config between tests."""
    for name in ("SERVICE_NAME", "ENVIRONMENT", "LOG_FORMAT", "LOG_TO_FILE", "LOG_FILE_PATH"):
        # setenv first so the original value is restored on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    yield
    for handler in logging.getLogger().handlers:
        handler.close()
    logging.basicConfig(handlers=[logging.StreamHandler()], force=True)
    structlog.reset_defaults()
    clear_contextvars()


class TestAddServiceContext:
    def test_adds_service_name_and_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # Arrange
        monkeypatch.setenv("SERVICE_NAME", "algovista_service")
        monkeypatch.setenv("ENVIRONMENT", "production")
        event_dict: dict[str, Any] = {"event": "solve requested", "level": "info"}

        # Act
        result = add_service_context(None, "", event_dict)

        # Assert
        assert result["service.name"] == "algovista_service"
        assert result["deployment.environment"] == "production"
        assert result["event"] == "solve requested"
        assert result["level"] == "info"

    def test_defaults_when_env_is_unset(self) -> None:
        result = add_service_context(None, "", {})

        assert result["service.name"] == "unknown"
        assert result["deployment.environment"] == "development"


class TestConfigureServiceLogging:
    def test_sets_service_env_defaults(self) -> None:
        configure_service_logging("algovista_service", environment="testing")

        assert os.environ["SERVICE_NAME"] == "algovista_service"
        assert os.environ["ENVIRONMENT"] == "testing"

    def test_json_renderer_in_production(self) -> None:
        configure_service_logging("algovista_service", environment="production")

        processors = structlog.get_config()["processors"]

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_in_development(self) -> None:
        configure_service_logging("algovista_service", environment="development")

        processors = structlog.get_config()["processors"]

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_log_format_env_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_FORMAT", "json")

        configure_service_logging("algovista_service", environment="development")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_log_level_is_applied_to_root_logger(self) -> None:
        configure_service_logging("algovista_service", log_level="warning")

        assert logging.getLogger().level == logging.WARNING

    def test_stdout_only_by_default(self) -> None:
        configure_service_logging("algovista_service")

        handlers = logging.getLogger().handlers
        assert not any(isinstance(h, RotatingFileHandler) for h in handlers)


class TestFileLogging:
    def test_file_handler_created_with_explicit_path(self, tmp_path: Path) -> None:
        # Arrange
        log_file = tmp_path / "nested" / "algovista.log"

        # Act
        configure_service_logging(
            "algovista_service", log_to_file=True, log_file_path=str(log_file)
        )

        # Assert
        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == log_file
        assert log_file.parent.is_dir()

    def test_file_logging_enabled_from_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("LOG_FILE_PATH", str(log_file))
        monkeypatch.setenv("LOG_MAX_BYTES", "2048")
        monkeypatch.setenv("LOG_BACKUP_COUNT", "2")

        configure_service_logging("algovista_service")

        (handler,) = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert handler.maxBytes == 2048
        assert handler.backupCount == 2

    def test_records_are_written_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "written.log"
        configure_service_logging(
            "algovista_service", log_to_file=True, log_file_path=str(log_file)
        )

        create_service_logger("test").info("queue drained", pending=0)
        for handler in logging.getLogger().handlers:
            handler.flush()

        contents = log_file.read_text(encoding="utf-8")
        assert "queue drained" in contents


class TestServiceLogger:
    def test_binds_logger_name(self) -> None:
        logger = create_service_logger("gateway")

        bound = logger.bind()

        assert bound._context["logger_name"] == "gateway"

    def test_unnamed_logger_has_no_name_binding(self) -> None:
        logger = create_service_logger()

        assert "logger_name" not in logger.bind()._context


class TestRequestContext:
    def test_binds_correlation_id_and_extra_fields(self) -> None:
        bind_request_context("abc-123", path="/api/solve")

        assert get_contextvars() == {"correlation_id": "abc-123", "path": "/api/solve"}

    def test_replaces_previous_request_context(self) -> None:
        bind_request_context("first", method="POST")

        bind_request_context("second")

        assert get_contextvars() == {"correlation_id": "second"}
