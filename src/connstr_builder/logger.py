"""
Centralized logging system module for connstr_builder.

Configures centralized logging with support for
file rotation and masking of connection string secrets.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import TypeAlias

LogLevel: TypeAlias = str | int

# Constants
ROOT_LOGGER_NAME: str = 'connstr'
DEFAULT_LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'
MAX_LOG_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT: int = 3
MASK: str = '***'

# Patterns for masking sensitive data: key=value fragments and URL credentials
SENSITIVE_PATTERNS: tuple[tuple[str, str], ...] = (
    (r'(password|pwd|passwd)(\s*[:=]\s*)[^;\s\'"]+', rf'\1\2{MASK}'),
    (r'(token|secret|apikey)(\s*[:=]\s*)[^;\s\'"]+', rf'\1\2{MASK}'),
    (r'(://[^:/@\s]+):[^@\s]+@', rf'\1:{MASK}@'),
)

_COMPILED_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in SENSITIVE_PATTERNS
)


def setup_logging(
    log_level: LogLevel = 'INFO',
    log_file: str | Path | None = None,
    logger_name: str = ROOT_LOGGER_NAME,
    *,
    console_output: bool = True,
    mask_sensitive: bool = True,
) -> logging.Logger:
    """
    Configure logging system with console and file support.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file (optional).
        logger_name: Logger name.
        console_output: Whether to output logs to console.
        mask_sensitive: Whether to mask passwords and other secrets.

    Returns:
        Configured Logger object.

    Example:
        >>> logger = setup_logging('DEBUG', 'connstr.log')
        >>> logger.info('server=db;password=secret')  # logged as password=***
    """
    logger = logging.getLogger(logger_name)

    # Clear existing handlers (avoid duplication)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.filters.clear()

    numeric_level = _parse_log_level(log_level)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    match (console_output, log_file):
        case (True, None):
            _add_console_handler(logger, formatter)
        case (False, str() | Path() as file):
            _add_file_handler(logger, formatter, file)
        case (True, str() | Path() as file):
            _add_console_handler(logger, formatter)
            _add_file_handler(logger, formatter, file)
        case (False, None):
            # Fallback: at least console
            _add_console_handler(logger, formatter)
            logger.warning('Logging not configured properly, using console')

    if mask_sensitive:
        sensitive_filter = SensitiveDataFilter()
        logger.addFilter(sensitive_filter)
        # Records of child loggers skip the parent's filters, handlers don't
        for handler in logger.handlers:
            handler.addFilter(sensitive_filter)

    logger.debug(
        'Logger %r configured with level %s',
        logger_name,
        logging.getLevelName(numeric_level),
    )

    return logger


def _parse_log_level(level: LogLevel) -> int:
    """
    Convert string logging level to numeric.

    Raises:
        ValueError: If level is invalid.
    """
    match level:
        case int() as numeric_level if numeric_level in {0, 10, 20, 30, 40, 50}:
            return numeric_level
        case str() as string_level:
            numeric_level = logging.getLevelNamesMapping().get(string_level.strip().upper())
            if numeric_level is None:
                raise ValueError(f'Invalid logging level: {level}')
            return numeric_level
        case _:
            raise ValueError(f'Unsupported logging level: {level!r}')


def _add_console_handler(
    logger: logging.Logger,
    formatter: logging.Formatter,
) -> None:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def _add_file_handler(
    logger: logging.Logger,
    formatter: logging.Formatter,
    log_file: str | Path,
) -> None:
    """
    Add rotating file handler to logger.

    Args:
        logger: Logger to configure.
        formatter: Formatter for handler.
        log_file: Path to log file.
    """
    file_path = Path(log_file)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=file_path,
        maxBytes=MAX_LOG_FILE_SIZE,
        backupCount=BACKUP_COUNT,
        encoding='utf-8',
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def mask_sensitive_data(text: str) -> str:
    """
    Mask passwords, tokens and URL credentials in free text.

    Example:
        >>> mask_sensitive_data('server=db;password=secret;')
        'server=db;password=***;'
        >>> mask_sensitive_data('mysql://scott:tiger@db/app')
        'mysql://scott:***@db/app'
    """
    for pattern, replacement in _COMPILED_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SensitiveDataFilter(logging.Filter):
    """Rewrite log records so that secrets never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        original_msg = record.getMessage()
        filtered_msg = mask_sensitive_data(original_msg)

        if filtered_msg != original_msg:
            record.msg = filtered_msg
            record.args = ()

        return True


def get_logger(
    name: str | None = None,
) -> logging.Logger:
    """
    Get logger by name.

    Args:
        name: Logger name. If None, returns root package logger.

    Example:
        >>> logger = get_logger('connection_string')
        >>> logger.name
        'connstr.connection_string'
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if not name.startswith(f'{ROOT_LOGGER_NAME}.'):
        name = f'{ROOT_LOGGER_NAME}.{name}'

    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger | None = None,
    message: str = 'An error occurred',
    level: int = logging.ERROR,
) -> None:
    """Log current exception with traceback."""
    if logger is None:
        logger = get_logger()

    logger.log(level, message, exc_info=True)

