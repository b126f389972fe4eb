"""
Well-known connection string parts.

Maps arbitrary keys onto the fixed set of recognized parts and defines the
criteria used to tell test environments from production ones.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, NamedTuple, TypeAlias


class ConnectionStringPart(Enum):
    """Common connection string parts."""

    SERVER = 'Server'
    PORT = 'Port'
    DATABASE = 'Database'
    USER = 'User'
    PASSWORD = 'Password'
    # Everything we don't know
    OTHER = 'Other'

    @property
    def key(self) -> str:
        """Key used when rendering the part, e.g. ``server``."""
        return self.value.lower()


PartsMap: TypeAlias = dict[ConnectionStringPart, str]

SEPARATOR: Final[str] = ';'
ASSIGNMENT: Final[str] = '='

RECOGNIZED_PARTS: Final[dict[str, ConnectionStringPart]] = {
    part.value: part for part in ConnectionStringPart if part is not ConnectionStringPart.OTHER
}


def normalize_key(raw_key: str) -> str:
    """
    Normalize a raw key: trim, lower-case, capitalize the first character.

    Example:
        >>> normalize_key('  sErVeR ')
        'Server'
    """
    key = raw_key.strip().lower()
    return key[:1].upper() + key[1:]


def lookup_part(raw_key: str) -> ConnectionStringPart | None:
    """
    Resolve a raw key to a recognized part, ignoring case and surrounding spaces.

    ``OTHER`` is never returned: a key literally named ``other`` is as
    unknown as any other key.
    """
    return RECOGNIZED_PARTS.get(normalize_key(raw_key))


def append_fragment(other: str | None, raw_key: str, value: str) -> str:
    """
    Append ``key=value;`` to an ``OTHER`` value, separating it from what is there.

    Example:
        >>> append_fragment('timeout=5', ' SslMode ', 'none')
        'timeout=5;sslmode=none;'
    """
    other = other or ''
    if other and not other.endswith(SEPARATOR):
        other += SEPARATOR
    return f'{other}{normalize_key(raw_key).lower()}{ASSIGNMENT}{value}{SEPARATOR}'


class TestModeCriterion(NamedTuple):
    """
    Condition for a connection string to be considered a test one.

    Example:
        ``TestModeCriterion(ConnectionStringPart.SERVER, 'test')`` matches
        a server named ``mysqltestserver``.
    """

    __test__ = False

    part: ConnectionStringPart
    contained_value: str

    def matches(self, value: str | None) -> bool:
        """Case-insensitive substring check; absent values never match."""
        if value is None:
            return False
        return self.contained_value.lower() in value.lower()


# localhost is deliberately absent: production server and DB may share a host
DEFAULT_TEST_MODE_CRITERIA: Final[tuple[TestModeCriterion, ...]] = (
    TestModeCriterion(ConnectionStringPart.SERVER, 'test'),
    TestModeCriterion(ConnectionStringPart.SERVER, 'dev'),
)
