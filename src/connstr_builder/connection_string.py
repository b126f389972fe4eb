"""
Convenient handling of database connection strings.

A connection string is a semicolon-delimited list of ``key=value`` fragments,
e.g. ``server=db01;port=3306;database=app;user=app;password=secret``.
``ConnectionString`` parses it into well-known parts, merges it with layered
defaults (global defaults, instance defaults, environment variables, the raw
string itself) and renders it back, optionally with the password redacted.

Values containing ``;`` cannot be represented: no escaping is defined.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from connstr_builder import defaults
from connstr_builder.defaults import DefaultsRegistry
from connstr_builder.error_handler import ConnectionStringError, MalformedFragmentError
from connstr_builder.logger import get_logger, mask_sensitive_data
from connstr_builder.parts import (
    ASSIGNMENT,
    SEPARATOR,
    ConnectionStringPart,
    PartsMap,
    append_fragment,
    lookup_part,
    normalize_key,
)

if TYPE_CHECKING:
    from connstr_builder.env_config import Settings

REDACTED_PASSWORD: Final[str] = '********'
DEFAULT_ENV_PREFIX: Final[str] = 'DB_'

logger = get_logger('connection_string')


def parse_fragments(raw: str | None, *, strict: bool = False) -> Iterator[tuple[str, str]]:
    """
    Split a raw connection string into ``(key, value)`` pairs.

    Keys are trimmed and lower-cased, values trimmed. A fragment is split on
    its first ``=`` only, so values may contain further ``=`` characters.
    Empty fragments are ignored.

    Args:
        raw: Raw connection string (``None`` yields nothing).
        strict: Raise on malformed fragments instead of skipping them.

    Raises:
        MalformedFragmentError: In strict mode, for a fragment without ``=``
            or with an empty key.

    Example:
        >>> list(parse_fragments('Server=db; Port=3306;;'))
        [('server', 'db'), ('port', '3306')]
    """
    if not raw:
        return
    for position, fragment in enumerate(raw.split(SEPARATOR)):
        if not fragment.strip():
            continue
        key, assignment, value = fragment.partition(ASSIGNMENT)
        key = key.strip().lower()
        if not assignment or not key:
            if strict:
                raise MalformedFragmentError(position)
            logger.debug('Skipping malformed fragment at position %d', position)
            continue
        yield key, value.strip()


def redact(raw: str | None) -> str | None:
    """
    Replace the password value of a raw connection string, keeping its layout.

    Example:
        >>> redact('Server=db;Password=secret;')
        'Server=db;Password=********;'
    """
    if not raw:
        return raw
    fragments = []
    for fragment in raw.split(SEPARATOR):
        key, assignment, _ = fragment.partition(ASSIGNMENT)
        if assignment and lookup_part(key) is ConnectionStringPart.PASSWORD:
            fragment = f'{key}{ASSIGNMENT}{REDACTED_PASSWORD}'
        fragments.append(fragment)
    return SEPARATOR.join(fragments)


class ConnectionString:
    """
    Connection string builder with layered defaults and a test mode heuristic.

    Parts are applied in increasing precedence: the registry's global
    defaults, ``default_parts``, environment variables starting with
    ``env_prefix`` and finally the fragments of ``raw``.

    Example:
        >>> defaults.registry.set_default(ConnectionStringPart.SERVER, 'mysqltestserver')
        >>> cs = ConnectionString({ConnectionStringPart.DATABASE: 'app'})
        >>> cs.is_test_mode
        True
        >>> cs.password = 'secret'
        >>> cs.result_safe
        'server=mysqltestserver;database=app;password=********'
    """

    def __init__(
        self,
        default_parts: Mapping[ConnectionStringPart | str, str] | None = None,
        raw: str | None = None,
        use_environment_variables: bool = True,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        *,
        strict: bool = False,
        registry: DefaultsRegistry | None = None,
    ) -> None:
        self.default_parts: dict[ConnectionStringPart | str, str] = dict(default_parts or {})
        self.use_environment_variables = use_environment_variables
        self.env_prefix = env_prefix
        self.strict = strict
        self.registry = registry if registry is not None else defaults.registry
        self._parts: PartsMap = {}
        self.init(raw)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        raw: str | None = None,
        default_parts: Mapping[ConnectionStringPart | str, str] | None = None,
        **kwargs: Any,
    ) -> ConnectionString:
        """Create a builder honoring the environment options of ``settings``."""
        return cls(
            default_parts,
            raw,
            settings.use_environment_variables,
            settings.env_prefix,
            **kwargs,
        )

    @classmethod
    def from_url(cls, url: str | URL, **kwargs: Any) -> ConnectionString:
        """
        Create a builder from an SQLAlchemy URL.

        URL components take the place of the raw string layer; query
        parameters end up in ``OTHER``.

        Raises:
            ConnectionStringError: If the URL cannot be parsed.
        """
        try:
            url_obj = make_url(url)
        except ArgumentError as e:
            masked = mask_sensitive_data(str(url))
            raise ConnectionStringError(f'Invalid URL: {masked}', e) from None

        instance = cls(**kwargs)
        components = (
            (ConnectionStringPart.SERVER, url_obj.host),
            (ConnectionStringPart.PORT, url_obj.port),
            (ConnectionStringPart.DATABASE, url_obj.database),
            (ConnectionStringPart.USER, url_obj.username),
            (ConnectionStringPart.PASSWORD, url_obj.password),
        )
        for part, value in components:
            if value is not None:
                instance.set(part, str(value))
        for key, value in url_obj.query.items():
            for item in (value,) if isinstance(value, str) else value:
                instance.set(key, item)
        return instance

    def init(self, raw: str | None = None) -> None:
        """(Re)build all parts from the layered sources and ``raw``."""
        fragments = list(parse_fragments(raw, strict=self.strict))

        self.registry.ensure_default_criteria()
        self._parts = self.registry.snapshot()

        for part, value in self.default_parts.items():
            self.set(part, value)

        if self.use_environment_variables:
            self._apply_environment()

        for key, value in fragments:
            self.set(key, value)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug('Connection string initialized: %s', self.result_safe)

    def _apply_environment(self) -> None:
        for name, value in os.environ.items():
            if not name.startswith(self.env_prefix):
                continue
            key = name.removeprefix(self.env_prefix)
            if not key.strip():
                continue
            self.set(key, value)

    def set(self, part: ConnectionStringPart | str, value: str) -> None:
        """
        Insert or overwrite a part.

        String keys are matched against the known parts ignoring case; unknown
        keys are appended to ``OTHER`` as ``key=value;`` instead of replacing it.
        """
        if isinstance(part, ConnectionStringPart):
            self._parts[part] = value
            return

        known_part = lookup_part(part)
        if known_part is not None:
            self._parts[known_part] = value
            return

        self._parts[ConnectionStringPart.OTHER] = append_fragment(
            self._parts.get(ConnectionStringPart.OTHER), part, value
        )

    def get(self, part: ConnectionStringPart | str) -> str | None:
        """
        Return the value of a part or ``None`` if absent.

        String keys are resolved ignoring case; ``'other'`` reads the ``OTHER``
        bucket, any other unknown key returns ``None``.
        """
        if not isinstance(part, ConnectionStringPart):
            known_part = lookup_part(part)
            if known_part is None:
                if normalize_key(part) != ConnectionStringPart.OTHER.value:
                    return None
                known_part = ConnectionStringPart.OTHER
            part = known_part
        return self._parts.get(part)

    @property
    def parts(self) -> PartsMap:
        """Copy of the current parts in rendering order."""
        return dict(self._parts)

    @property
    def result(self) -> str:
        """Raw connection string."""
        return self._render(redact_password=False)

    @result.setter
    def result(self, value: str | None) -> None:
        self.init(value)

    @property
    def result_safe(self) -> str:
        """Connection string with the password replaced by ``********``."""
        return self._render(redact_password=True)

    def _render(self, *, redact_password: bool) -> str:
        fragments = []
        for part, value in self._parts.items():
            if part is ConnectionStringPart.OTHER:
                # already made of key=value; fragments
                fragments.append(redact(value) if redact_password else value)
                continue
            if redact_password and part is ConnectionStringPart.PASSWORD:
                value = REDACTED_PASSWORD
            fragments.append(f'{part.key}{ASSIGNMENT}{value}')
        return SEPARATOR.join(fragments).replace(SEPARATOR * 2, SEPARATOR)

    @property
    def is_test_mode(self) -> bool:
        """Whether any test mode criterion matches, e.g. server ``mysqltestserver``."""
        return any(
            criterion.matches(self.get(criterion.part)) for criterion in self.registry.criteria()
        )

    def to_url(self, drivername: str) -> URL:
        """
        Build an SQLAlchemy URL, e.g. ``to_url('mysql+pymysql')``.

        ``OTHER`` fragments become query parameters.

        Raises:
            ConnectionStringError: If the port is not a number.
        """
        port = self.port
        try:
            port_number = int(port) if port else None
        except ValueError as e:
            raise ConnectionStringError(f'Port is not a number: {port!r}', e) from e

        return URL.create(
            drivername,
            username=self.user,
            password=self.password,
            host=self.server,
            port=port_number,
            database=self.database,
            query=dict(parse_fragments(self.other)),
        )

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.result_safe!r})'

    # Shortcuts

    @property
    def server(self) -> str | None:
        return self.get(ConnectionStringPart.SERVER)

    @server.setter
    def server(self, value: str) -> None:
        self.set(ConnectionStringPart.SERVER, value)

    @property
    def port(self) -> str | None:
        return self.get(ConnectionStringPart.PORT)

    @port.setter
    def port(self, value: str) -> None:
        self.set(ConnectionStringPart.PORT, value)

    @property
    def user(self) -> str | None:
        return self.get(ConnectionStringPart.USER)

    @user.setter
    def user(self, value: str) -> None:
        self.set(ConnectionStringPart.USER, value)

    @property
    def password(self) -> str | None:
        return self.get(ConnectionStringPart.PASSWORD)

    @password.setter
    def password(self, value: str) -> None:
        self.set(ConnectionStringPart.PASSWORD, value)

    @property
    def database(self) -> str | None:
        return self.get(ConnectionStringPart.DATABASE)

    @database.setter
    def database(self, value: str) -> None:
        self.set(ConnectionStringPart.DATABASE, value)

    @property
    def other(self) -> str | None:
        return self.get(ConnectionStringPart.OTHER)

    @other.setter
    def other(self, value: str) -> None:
        self.set(ConnectionStringPart.OTHER, value)
