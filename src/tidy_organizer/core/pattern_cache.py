"""Bounded, thread-safe cache of compiled regular expressions."""

import re
import threading
from collections import OrderedDict
from typing import Pattern, Tuple

DEFAULT_CACHE_SIZE = 1000


class RegexCache:
    """LRU cache keyed by ``(source, case_sensitive)``.

    Compilation happens outside the lock; two threads compiling the same
    source both store an equivalent pattern.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE):
        self.max_size = max_size
        self._patterns: "OrderedDict[Tuple[str, bool], Pattern[str]]" = OrderedDict()
        self._lock = threading.Lock()

    def compile(self, source: str, case_sensitive: bool = False) -> Pattern[str]:
        """Return the compiled pattern, compiling and caching it on first use.

        Raises:
            re.error: If ``source`` is not a valid regular expression.
        """
        key = (source, case_sensitive)
        with self._lock:
            cached = self._patterns.get(key)
            if cached is not None:
                self._patterns.move_to_end(key)
                return cached

        compiled = re.compile(source, 0 if case_sensitive else re.IGNORECASE)

        with self._lock:
            self._patterns[key] = compiled
            self._patterns.move_to_end(key)
            while len(self._patterns) > self.max_size:
                self._patterns.popitem(last=False)
        return compiled

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()

    def __contains__(self, key: Tuple[str, bool]) -> bool:
        with self._lock:
            return key in self._patterns

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    @property
    def size(self) -> int:
        return len(self)
