"""
Centralized logging configuration for the ipa-history toolkit.

Provides structured loguru logging with consistent formatting across the
history aggregator, the App Store client and the CLI.
"""

import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger


class LoggingManager:
    """Manages centralized logging configuration across the toolkit."""

    def __init__(self, service_name: str = "ipa-history"):
        """
        Initialize logging manager.

        Args:
            service_name: Name of the service for logging identification
        """
        self.service_name = service_name
        self._configured = False

    @property
    def configured(self) -> bool:
        return self._configured

    def configure_logging(
        self,
        level: str = "INFO",
        enable_file_logging: bool = True,
        log_file_path: Path | None = None,
        structured_format: bool = False,
    ) -> None:
        """
        Configure logging sinks for the whole application.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            enable_file_logging: Whether to also write a rotating log file
            log_file_path: Path for log file (auto-generated if None)
            structured_format: Whether to serialize file records as JSON
        """
        if self._configured:
            return

        logger.remove()

        logger.add(
            sys.stderr,
            format=self._get_console_format(structured_format),
            level=level,
            colorize=True,
            backtrace=False,
            diagnose=False,
        )

        if enable_file_logging:
            if log_file_path is None:
                log_file_path = Path.cwd() / "logs" / f"{self.service_name}.log"

            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                str(log_file_path),
                format=self._get_file_format(structured_format),
                level=level,
                rotation="10 MB",
                retention="30 days",
                compression="gz",
                enqueue=True,
                serialize=structured_format,
            )

        logger.configure(
            extra={"service_name": self.service_name, "component": self.service_name}
        )

        self._configured = True
        logger.debug(
            "Logging configured",
            service=self.service_name,
            level=level,
            file_logging=enable_file_logging,
        )

    def reconfigure(self, level: str, enable_file_logging: bool = False) -> None:
        """Drop the current sinks and configure again at a new level."""
        self._configured = False
        self.configure_logging(level=level, enable_file_logging=enable_file_logging)

    def _get_console_format(self, structured: bool) -> str:
        """Get console logging format."""
        if structured:
            return (
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[component]}</cyan> | "
                "<level>{message}</level> | "
                "{extra}"
            )
        return (
            "<green>{time:HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<level>{message}</level>"
        )

    def _get_file_format(self, structured: bool) -> str:
        """Get file logging format."""
        if structured:
            return "{time} | {level} | {name}:{function}:{line} | {message} | {extra}"
        return (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
            "{name}:{function}:{line} | {message} | {extra}"
        )

    def get_logger(self, name: str) -> Any:
        """
        Get a logger instance bound to the given component.

        Args:
            name: Logger name (usually __name__)

        Returns:
            Bound loguru logger
        """
        return logger.bind(component=name)

    def log_source_failure(self, source: str, kind: str, message: str) -> None:
        """Log a history source that degraded to its empty result."""
        logger.warning(
            f"Source {source} unavailable: {message}",
            source=source,
            kind=kind,
        )

    def log_api_request(
        self, method: str, url: str, status_code: int, duration: float
    ) -> None:
        """Log API request information."""
        level = "WARNING" if status_code >= 400 else "DEBUG"
        logger.log(
            level,
            f"{method} {url} -> {status_code}",
            method=method,
            url=url,
            status_code=status_code,
            duration_seconds=round(duration, 3),
        )


_logging_manager: LoggingManager | None = None


def get_logging_manager() -> LoggingManager:
    """Get or create the global logging manager instance."""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager()
    return _logging_manager


def configure_logging(
    level: str | None = None,
    structured: bool = False,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure application logging with environment-driven defaults.

    Args:
        level: Logging level, defaults to $LOG_LEVEL or INFO
        structured: Enable structured JSON file logging
        enable_file_logging: Enable file logging, defaults to $ENABLE_FILE_LOGGING
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    if enable_file_logging is None:
        enable_file_logging = (
            os.getenv("ENABLE_FILE_LOGGING", "false").lower() == "true"
        )

    get_logging_manager().configure_logging(
        level=level,
        structured_format=structured,
        enable_file_logging=enable_file_logging,
    )


def get_logger(name: str) -> Any:
    """
    Get a logger instance for the given component.

    Args:
        name: Component name (usually __name__)

    Returns:
        Configured logger instance
    """
    return get_logging_manager().get_logger(name)
