"""
Тесты для модуля логирования.

Проверяет настройку логирования и маскирование паролей в сообщениях.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from connstr_builder.logger import (
    _parse_log_level,
    get_logger,
    log_exception,
    mask_sensitive_data,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Убираем обработчики, навешанные setup_logging."""
    yield
    logger = logging.getLogger('connstr')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.filters.clear()
    logger.setLevel(logging.NOTSET)


def test_setup_logging_console() -> None:
    """Тест настройки логирования в консоль."""
    logger = setup_logging(log_level='DEBUG', console_output=True, mask_sensitive=True)

    assert logger.name == 'connstr'
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_setup_logging_twice_does_not_duplicate_handlers() -> None:
    setup_logging('INFO')
    logger = setup_logging('WARNING')

    assert len(logger.handlers) == 1
    assert len(logger.filters) == 1
    assert logger.level == logging.WARNING


def test_setup_logging_file(tmp_path: Path) -> None:
    """Тест настройки логирования в файл с маскировкой пароля."""
    log_file = tmp_path / 'logs' / 'connstr.log'

    logger = setup_logging(log_level='DEBUG', log_file=log_file, console_output=False)
    get_logger('connection_string').info('Using server=db;password=S3cret;port=1')
    for handler in logger.handlers:
        handler.flush()

    assert log_file.exists(), 'Log file was not created'
    content = log_file.read_text(encoding='utf-8')
    assert 'server=db;password=***;port=1' in content
    assert 'S3cret' not in content
    assert logger.handlers


def test_child_logger_records_masked(caplog) -> None:
    """Сообщения дочерних логгеров маскируются обработчиками пакета."""
    setup_logging('DEBUG', console_output=True, mask_sensitive=True)

    with caplog.at_level(logging.DEBUG):
        get_logger('defaults').info('Defaults: %s', 'server=db;password=S3cret')

    assert 'S3cret' not in caplog.text
    assert 'password=***' in caplog.text


def test_masking_disabled(caplog) -> None:
    setup_logging('DEBUG', console_output=True, mask_sensitive=False)

    with caplog.at_level(logging.DEBUG):
        get_logger().info('password=visible')

    assert 'password=visible' in caplog.text


@pytest.mark.parametrize(
    'text,expected',
    [
        ('server=db;password=secret;', 'server=db;password=***;'),
        ('Password = secret', 'Password = ***'),
        ('DB_PASSWORD=secret', 'DB_PASSWORD=***'),
        ('pwd=secret;uid=sa', 'pwd=***;uid=sa'),
        ('token: abc123', 'token: ***'),
        ('mysql+pymysql://scott:tiger@db:3306/app', 'mysql+pymysql://scott:***@db:3306/app'),
        ('server=db;database=app', 'server=db;database=app'),
    ],
)
def test_mask_sensitive_data(text: str, expected: str) -> None:
    assert mask_sensitive_data(text) == expected


@pytest.mark.parametrize('level,expected', [('debug', 10), (' INFO ', 20), (40, 40)])
def test_parse_log_level(level: str | int, expected: int) -> None:
    assert _parse_log_level(level) == expected


@pytest.mark.parametrize('level', ['verbose', 15, None])
def test_parse_log_level_invalid(level: object) -> None:
    with pytest.raises(ValueError):
        _parse_log_level(level)  # type: ignore[arg-type]


def test_get_logger_prefix() -> None:
    assert get_logger().name == 'connstr'
    assert get_logger('config').name == 'connstr.config'
    assert get_logger('connstr.config').name == 'connstr.config'


def test_exception_logging(caplog) -> None:
    """Тест логирования исключений."""
    logger = get_logger('test')

    with caplog.at_level(logging.ERROR):
        try:
            _ = 1 / 0
        except ZeroDivisionError:
            log_exception(logger, 'Test exception')

    assert 'Test exception' in caplog.text
    assert 'ZeroDivisionError' in caplog.text
