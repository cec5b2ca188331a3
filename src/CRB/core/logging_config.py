"""
Centralized logging configuration for the claims RAG service.

Provides standardized logging setup with console and rotating file handlers
so that retrieval, decision and audit events share one format.

Module Input:
    - Logger name strings from calling modules
    - Log level / directory from environment (LOG_LEVEL, LOG_DIR)

Module Output:
    - Formatted log entries to console (stdout)
    - Formatted log entries to rotating file (logs/app.log) outside Lambda
    - Configured logger instances for modules
"""
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Union


def _is_lambda() -> bool:
    # Lambda sets these environment variables automatically
    return (
        'AWS_EXECUTION_ENV' in os.environ or
        'AWS_LAMBDA_FUNCTION_NAME' in os.environ
    )


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class LoggerConfig:
    """Manage logger configuration and creation."""

    # Loggers already wired with handlers
    _configured_loggers = set()

    def __init__(
        self,
        log_level: Union[int, str] = logging.INFO,
        log_dir: Union[str, Path] = "logs",
        log_file: str = "app.log",
        max_bytes: int = 10_485_760,  # 10MB
        backup_count: int = 5
    ):
        """
        Initialize logger configuration.

        Args:
            log_level: Minimum logging level, name or number (default: INFO)
            log_dir: Directory where log files are saved
            log_file: Name of the log file
            max_bytes: Maximum size of log file before rotation (10MB default)
            backup_count: Number of backup log files to keep
        """
        self.log_level = _resolve_level(log_level)
        self.log_dir = Path(log_dir)
        self.log_file = log_file
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.is_lambda = _is_lambda()

    def _create_formatter(self) -> logging.Formatter:
        """
        Create log formatter based on environment.

        Note:
            - Lambda uses simpler format (CloudWatch adds timestamps)
            - Local uses full format with timestamp
        """
        if self.is_lambda:
            return logging.Formatter(
                "%(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
            )
        # Format: "2024-01-15 10:30:45 | INFO | module:function:line | message"
        return logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def _create_console_handler(self) -> logging.StreamHandler:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(self._create_formatter())
        return console_handler

    def _create_file_handler(self) -> Optional[RotatingFileHandler]:
        """
        Create rotating file handler for local environments.

        Returns:
            RotatingFileHandler or None: File handler (None in Lambda or when
            the log directory cannot be created)
        """
        if self.is_lambda:
            return None

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Read-only filesystems still get console logging
            return None

        file_handler = RotatingFileHandler(
            self.log_dir / self.log_file,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count
        )
        file_handler.setLevel(self.log_level)
        file_handler.setFormatter(self._create_formatter())
        return file_handler

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger with standardized configuration.

        Creates a logger with console and rotating file handlers. Repeated
        calls for the same name return the same logger without adding
        duplicate handlers.

        Args:
            name: Logger name, typically __name__ from calling module

        Returns:
            logging.Logger: Configured logger instance ready for use

        Log Format:
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
            Example: "2024-01-15 10:30:45 | INFO | CRB.services.retrieval.engine:retrieve:88 | Fallback used"
        """
        if name in LoggerConfig._configured_loggers:
            return logging.getLogger(name)

        logger = logging.getLogger(name)
        logger.setLevel(self.log_level)

        # Handlers already attached elsewhere; avoid duplicate messages
        if logger.handlers:
            return logger

        logger.addHandler(self._create_console_handler())

        file_handler = self._create_file_handler()
        if file_handler is not None:
            logger.addHandler(file_handler)

        LoggerConfig._configured_loggers.add(name)
        return logger


def setup_root_logger(log_level: Union[int, str, None] = None):
    """
    Configure the root logger for libraries that use it.

    Third-party loggers (boto3, qdrant_client, uvicorn) inherit this level
    and format.

    Args:
        log_level: Minimum logging level (default: LOG_LEVEL env or INFO)
    """
    level = _resolve_level(log_level or os.environ.get("LOG_LEVEL", "INFO"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # botocore is chatty at DEBUG/INFO
    logging.getLogger("botocore").setLevel(max(level, logging.WARNING))


_default_config = LoggerConfig(
    log_level=os.environ.get("LOG_LEVEL", "INFO"),
    log_dir=os.environ.get("LOG_DIR", "logs"),
)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with default configuration.

    Example:
        from CRB.core.logging_config import get_logger

        logger = get_logger(__name__)
        logger.info("Claim validated")
    """
    return _default_config.get_logger(name)
