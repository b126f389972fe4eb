"""
Process-wide defaults shared by all connection strings.

Holds the global default parts and the test mode criteria. Every access goes
through a lock and readers only ever receive copies, so builders created in
different threads never observe a half-updated state.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Final

from connstr_builder.logger import get_logger
from connstr_builder.parts import (
    DEFAULT_TEST_MODE_CRITERIA,
    ConnectionStringPart,
    PartsMap,
    TestModeCriterion,
    append_fragment,
    lookup_part,
)

logger = get_logger('defaults')


class DefaultsRegistry:
    """Global default parts and test mode criteria."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._parts: PartsMap = {}
        self._criteria: list[TestModeCriterion] = []

    # Default parts

    def set_default(self, part: ConnectionStringPart | str, value: str) -> None:
        """
        Set a default part.

        String keys resolve like ``ConnectionString.set``: unknown keys are
        appended to ``OTHER`` as ``key=value;``.
        """
        with self._lock:
            self._store(part, value)

    def update_defaults(self, parts: Mapping[ConnectionStringPart | str, str]) -> None:
        with self._lock:
            for part, value in parts.items():
                self._store(part, value)

    def _store(self, part: ConnectionStringPart | str, value: str) -> None:
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

    def remove_default(self, part: ConnectionStringPart | str) -> None:
        """Remove a default part; unknown string keys are ignored."""
        known_part = part if isinstance(part, ConnectionStringPart) else lookup_part(part)
        if known_part is None:
            return
        with self._lock:
            self._parts.pop(known_part, None)

    def clear_defaults(self) -> None:
        with self._lock:
            self._parts.clear()

    def snapshot(self) -> PartsMap:
        """Return an independent copy of the default parts."""
        with self._lock:
            return dict(self._parts)

    # Test mode criteria

    def add_criterion(self, part: ConnectionStringPart, contained_value: str) -> None:
        with self._lock:
            self._criteria.append(TestModeCriterion(part, contained_value))

    def set_criteria(
        self,
        criteria: Iterable[TestModeCriterion | tuple[ConnectionStringPart, str]],
    ) -> None:
        """Replace all criteria at once."""
        replacement = [TestModeCriterion(*criterion) for criterion in criteria]
        with self._lock:
            self._criteria = replacement

    def clear_criteria(self) -> None:
        with self._lock:
            self._criteria.clear()

    def criteria(self) -> tuple[TestModeCriterion, ...]:
        with self._lock:
            return tuple(self._criteria)

    def ensure_default_criteria(self) -> None:
        """Seed the sample criteria when none are configured yet."""
        with self._lock:
            if not self._criteria:
                self._criteria.extend(DEFAULT_TEST_MODE_CRITERIA)
                logger.debug('Test mode criteria seeded with %d defaults', len(self._criteria))

    def reset(self) -> None:
        with self._lock:
            self._parts.clear()
            self._criteria.clear()


registry: Final[DefaultsRegistry] = DefaultsRegistry()
