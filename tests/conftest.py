"""Конфигурация pytest для тестов connstr_builder."""

import sys
from pathlib import Path

import pytest

# Добавляем src/ в sys.path, чтобы тесты работали без установки пакета
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Автоматически очищает переменные окружения перед каждым тестом."""
    import os

    # Сохраняем критичные переменные
    critical_vars = ['PATH', 'HOME', 'USER', 'PYTHONPATH']

    # Очищаем все переменные окружения, кроме критичных (DB_* в том числе)
    for key in list(os.environ.keys()):
        if key not in critical_vars:
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture(autouse=True)
def reset_registry():
    """Общий реестр значений по умолчанию не должен переживать тест."""
    from connstr_builder.defaults import registry

    registry.reset()
    yield registry
    registry.reset()
