"""Compiled regex cache shared by the uei/hide matchers. Thread-safe, one compile per expression."""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, Optional, Pattern

logger = logging.getLogger("syslogd.patterns")


def _compile(expression: str) -> Optional[Pattern[str]]:
    try:
        return re.compile(expression, re.MULTILINE)
    except re.error as exc:
        logger.warning("Failed to compile regex pattern '%s': %s", expression, exc)
        return None


class _Entry:
    __slots__ = ("lock", "loaded", "pattern")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.loaded = False
        self.pattern: Optional[Pattern[str]] = None


class PatternCache:
    """Memoize ``expression -> compiled pattern``; invalid expressions are cached as None.

    The map lock only guards entry creation; compilation happens under the
    entry's own lock so a slow expression never holds up other keys.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get_pattern(self, expression: str) -> Optional[Pattern[str]]:
        entry = self._entries.get(expression)
        if entry is None:
            with self._lock:
                entry = self._entries.setdefault(expression, _Entry())
        if entry.loaded:
            return entry.pattern
        with entry.lock:
            if not entry.loaded:
                entry.pattern = _compile(expression)
                entry.loaded = True
        return entry.pattern

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, expression: object) -> bool:
        entry = self._entries.get(expression)  # type: ignore[arg-type]
        return entry is not None and entry.loaded
