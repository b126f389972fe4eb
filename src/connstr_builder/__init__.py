"""
Connection string builder.

Пакет для разбора, сборки и маскировки строк подключения к БД
с определением тестового окружения по настраиваемым критериям.
"""

from __future__ import annotations

from connstr_builder.connection_string import ConnectionString, parse_fragments, redact
from connstr_builder.defaults import DefaultsRegistry, registry
from connstr_builder.error_handler import (
    ConfigurationError,
    ConnectionStringError,
    MalformedFragmentError,
)
from connstr_builder.parts import ConnectionStringPart, TestModeCriterion

__version__ = '1.0.0'

__all__ = [
    'ConfigurationError',
    'ConnectionString',
    'ConnectionStringError',
    'ConnectionStringPart',
    'DefaultsRegistry',
    'MalformedFragmentError',
    'TestModeCriterion',
    'parse_fragments',
    'redact',
    'registry',
]
