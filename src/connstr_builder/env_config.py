"""Модуль загрузки конфигурации из .env файла с использованием Pydantic."""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Final, cast

from dotenv import load_dotenv
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from connstr_builder import defaults
from connstr_builder.connection_string import (
    DEFAULT_ENV_PREFIX,
    ConnectionString,
    parse_fragments,
    redact,
)
from connstr_builder.defaults import DefaultsRegistry
from connstr_builder.error_handler import ConfigurationError, MalformedFragmentError
from connstr_builder.logger import get_logger, log_exception, setup_logging
from connstr_builder.parts import ConnectionStringPart, TestModeCriterion, normalize_key

logger = get_logger('config')

SETTINGS_ENV_PREFIX: Final[str] = 'CONNSTR_'
CRITERIA_SEPARATOR: Final[str] = ','
CRITERION_SEPARATOR: Final[str] = ':'

VALID_LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'},
)

DEFAULT_CONFIG: Mapping[str, str | bool] = {
    'ENV_PREFIX': DEFAULT_ENV_PREFIX,
    'USE_ENVIRONMENT_VARIABLES': True,
    'TEST_MODE_CRITERIA': 'server:test,server:dev',
    'LOG_LEVEL': 'INFO',
}


def parse_criteria(value: str) -> tuple[TestModeCriterion, ...]:
    """
    Разбирает список критериев вида ``server:test,server:dev``.

    Raises:
        ValueError: Если часть строки подключения неизвестна или подстрока пуста.
    """
    criteria = []
    for item in value.split(CRITERIA_SEPARATOR):
        if not item.strip():
            continue
        name, separator, contained_value = item.partition(CRITERION_SEPARATOR)
        contained_value = contained_value.strip()
        if not separator or not contained_value:
            raise ValueError(f"Критерий '{item.strip()}' должен иметь вид <part>:<substring>")
        try:
            part = ConnectionStringPart(normalize_key(name))
        except ValueError:
            valid_parts = ', '.join(p.key for p in ConnectionStringPart)
            raise ValueError(
                f"Неизвестная часть '{name.strip()}'. Допустимые значения: {valid_parts}"
            ) from None
        criteria.append(TestModeCriterion(part, contained_value))
    return tuple(criteria)


class Settings(BaseSettings):
    """Pydantic Settings для загрузки конфигурации из .env."""

    model_config = SettingsConfigDict(
        env_prefix=SETTINGS_ENV_PREFIX,
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    env_prefix: str = Field(
        default=cast(str, DEFAULT_CONFIG['ENV_PREFIX']),
        description='Префикс переменных окружения с частями строки подключения',
    )
    use_environment_variables: bool = Field(
        default=cast(bool, DEFAULT_CONFIG['USE_ENVIRONMENT_VARIABLES']),
        description='Учитывать переменные окружения с префиксом',
    )
    default_connection_string: str | None = Field(
        None, description='Глобальные значения по умолчанию (key=value;...)'
    )
    test_mode_criteria: str = Field(
        default=cast(str, DEFAULT_CONFIG['TEST_MODE_CRITERIA']),
        description='Критерии тестового режима: part:substring через запятую',
    )

    log_level: str = Field(
        default=cast(str, DEFAULT_CONFIG['LOG_LEVEL']),
        description='Уровень логирования',
    )
    log_file: str | None = Field(None, description='Путь к файлу логов')

    @field_validator('use_environment_variables', mode='before')
    @classmethod
    def parse_empty_bool(cls, v: object, info: ValidationInfo) -> object:
        """Преобразует пустые строки и строковые bool в дефолтные значения."""
        if v == '' or v is None:
            field_name = info.field_name or ''
            return DEFAULT_CONFIG.get(field_name.upper(), v)
        if isinstance(v, str):
            lower_v = v.lower().strip()
            if lower_v in ('true', '1', 'yes', 'on'):
                return True
            if lower_v in ('false', '0', 'no', 'off'):
                return False
        return v

    @field_validator('env_prefix', 'test_mode_criteria', 'log_level', mode='before')
    @classmethod
    def parse_empty_str(cls, v: object, info: ValidationInfo) -> object:
        """Преобразует пустые строки в дефолтные значения для str полей."""
        if v == '' or v is None:
            field_name = info.field_name or ''
            return DEFAULT_CONFIG.get(field_name.upper(), '')
        return v

    @field_validator('default_connection_string', 'log_file', mode='before')
    @classmethod
    def parse_empty_optional(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('env_prefix')
    @classmethod
    def validate_env_prefix(cls, v: str) -> str:
        """Префикс без пробелов, иначе ни одна переменная не совпадёт."""
        prefix = v.strip()
        if not prefix:
            raise ValueError('ENV_PREFIX не может быть пустым')
        if any(ch.isspace() for ch in prefix):
            raise ValueError('ENV_PREFIX не может содержать пробелы')
        return prefix

    @field_validator('default_connection_string')
    @classmethod
    def validate_default_connection_string(cls, v: str | None) -> str | None:
        """Строгий разбор: некорректные фрагменты не допускаются."""
        if v is None:
            return v
        try:
            for _ in parse_fragments(v, strict=True):
                pass
        except MalformedFragmentError as e:
            # текст фрагмента не выводим: в нём может быть пароль
            raise ValueError(str(e)) from None
        return v.strip()

    @field_validator('test_mode_criteria')
    @classmethod
    def validate_test_mode_criteria(cls, v: str) -> str:
        parse_criteria(v)
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            valid_levels = ', '.join(sorted(VALID_LOG_LEVELS))
            raise ValueError(f"Недопустимый LOG_LEVEL='{v}'. Допустимые значения: {valid_levels}")
        return normalized

    def parsed_test_mode_criteria(self) -> tuple[TestModeCriterion, ...]:
        return parse_criteria(self.test_mode_criteria)

    def model_dump_masked(self) -> dict[str, object]:
        """Возвращает словарь с замаскированным паролем в default_connection_string."""
        data = self.model_dump()
        data['default_connection_string'] = redact(self.default_connection_string)
        return data


def load_config(env_file: str = '.env') -> Settings:
    """
    Загружает конфигурацию из .env файла.

    Переменные файла попадают в окружение процесса, поэтому части строки
    подключения (например ``DB_SERVER``) можно задавать там же.

    Raises:
        FileNotFoundError: Если .env файл не найден.
        ConfigurationError: Если параметры не прошли валидацию.
    """
    env_path = Path(env_file)
    if not env_path.exists():
        error_msg = f'Файл конфигурации не найден: {env_path.absolute()}'
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)
    load_dotenv(env_path)
    try:
        settings = Settings(_env_file=env_path)  # type: ignore[call-arg]
    except ValidationError as e:
        full_error_msg = _format_validation_error(e)
        raise ConfigurationError(full_error_msg, e) from e
    logger.info('Конфигурация загружена из: %s', env_path.absolute())
    return settings


def _format_validation_error(e: ValidationError) -> str:
    # input_value не выводим: там может оказаться пароль
    error_messages = []
    for error in e.errors():
        field = ' -> '.join(str(loc) for loc in error['loc'])
        error_messages.append(f' • {field}: {error["msg"]}')
    formatted_errors = '\n'.join(error_messages)
    full_error_msg = f'Ошибка валидации конфигурации:\n{formatted_errors}'
    logger.error(full_error_msg)
    return full_error_msg


def apply_settings(
    settings: Settings,
    registry: DefaultsRegistry | None = None,
) -> DefaultsRegistry:
    """
    Переносит критерии тестового режима и значения по умолчанию в реестр.

    Args:
        settings: Загруженная конфигурация.
        registry: Целевой реестр; по умолчанию общий для процесса.

    Returns:
        Обновлённый реестр.
    """
    target = registry if registry is not None else defaults.registry
    target.set_criteria(settings.parsed_test_mode_criteria())

    if settings.default_connection_string:
        parsed = ConnectionString(
            raw=settings.default_connection_string,
            use_environment_variables=False,
            registry=DefaultsRegistry(),
        )
        target.update_defaults(parsed.parts)

    logger.info(
        'Реестр настроен: %d критериев, %d значений по умолчанию',
        len(target.criteria()),
        len(target.snapshot()),
    )
    return target


def print_config_summary(
    config: Settings,
    *,
    mask_sensitive: bool = True,
    logger: logging.Logger | None = None,
) -> None:
    """Выводит сводку конфигурации с маскировкой чувствительных данных."""
    data = config.model_dump_masked() if mask_sensitive else config.model_dump()
    sections = [
        (
            'Строка подключения',
            ['env_prefix', 'use_environment_variables', 'default_connection_string'],
        ),
        ('Тестовый режим', ['test_mode_criteria']),
        ('Логирование', ['log_level', 'log_file']),
    ]
    if logger:
        logger.info('=' * 60)
        logger.info('КОНФИГУРАЦИЯ')
        logger.info('=' * 60)
        for section_name, params in sections:
            logger.info('')
            logger.info('[%s]', section_name)
            logger.info('-' * 40)
            for param in params:
                value = data.get(param)
                if value is None:
                    continue
                logger.info(' %-28s: %s', param.replace('_', ' ').title(), value)
        logger.info('')
        logger.info('=' * 60)
    else:
        _print_config_to_console(sections, data)


def _print_config_to_console(
    sections: list[tuple[str, list[str]]],
    config_data: dict[str, object],
) -> None:
    print('\n' + '=' * 60)
    print('КОНФИГУРАЦИЯ')
    print('=' * 60)
    for section_name, params in sections:
        print(f'\n[{section_name}]')
        print('-' * 40)
        for param in params:
            value = config_data.get(param)
            if value is None:
                continue
            display_name = param.replace('_', ' ').title()
            print(f' {display_name:28}: {value}')
    print('=' * 60 + '\n')


def main() -> None:
    """Демонстрация работы модуля."""
    app_logger = setup_logging()
    try:
        config = load_config()
    except (FileNotFoundError, ValueError):
        log_exception(app_logger, 'Не удалось загрузить конфигурацию')
        sys.exit(1)

    app_logger = setup_logging(config.log_level, config.log_file)
    print_config_summary(config, logger=app_logger)
    apply_settings(config)

    cs = ConnectionString.from_settings(config)
    print(f'\n✓ Строка подключения: {cs.result_safe}')
    print(f'✓ Тестовый режим: {"да" if cs.is_test_mode else "нет"}')


if __name__ == '__main__':
    main()
