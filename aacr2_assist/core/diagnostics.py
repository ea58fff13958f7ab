"""Caller-owned advisory collector.

The rule engine reports configuration problems (unsafe or invalid rule
patterns, unknown check types) as advisories instead of raising.  Each
distinct problem is reported once per collector; the collector belongs to
the caller's session and is passed explicitly into every engine call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Diagnostics:
    """Ordered, de-duplicated list of advisory messages."""

    _seen: set[str] = field(default_factory=set)
    _warnings: list[str] = field(default_factory=list)

    def warn(self, key: str, message: str) -> bool:
        """Record *message* under *key* unless *key* was already reported.

        Returns ``True`` when the advisory is new.
        """
        if key in self._seen:
            return False
        self._seen.add(key)
        self._warnings.append(message)
        logger.warning(message)
        return True

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    def clear(self) -> None:
        self._seen.clear()
        self._warnings.clear()

    def __len__(self) -> int:
        return len(self._warnings)
