"""
Bounded memo of date-string resolutions.

Maps (date string, custom-format signature) to the resolved epoch
milliseconds, or to None when the string did not parse. Both outcomes are
remembered, so a string is handed to the date parser at most once while its
entry is live.

Eviction is first-in first-out: when full, the oldest inserted entry goes.
Lookups do not refresh an entry's position.

A parser owns its cache; several parsers may share one. All access goes
through _lock so concurrent readers see consistent state.
"""

import logging
import threading
from typing import Callable, Dict, Optional, Sequence

from mdtasks.utils.dates import parse_local_date

log = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 10000

DateParser = Callable[[str, Sequence[str]], Optional[int]]


class DateParseCache:
    """
    FIFO-bounded cache of parse_local_date results.

    Usage:
        cache = DateParseCache(max_size=500)
        ms = cache.resolve("2025-08-15", custom_formats=())
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, parser: DateParser = parse_local_date) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._lock = threading.RLock()
        self._entries: Dict[str, Optional[int]] = {}
        self._max_size = max_size
        self._parser = parser
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(date_string: str, custom_formats: Sequence[str] = ()) -> str:
        return f"{date_string}_{','.join(custom_formats)}"

    def resolve(self, date_string: str, custom_formats: Sequence[str] = ()) -> Optional[int]:
        """Return the cached resolution, parsing and storing it on first use."""
        if not date_string:
            return None

        key = self.make_key(date_string, custom_formats)
        with self._lock:
            if key in self._entries:
                self._hits += 1
                return self._entries[key]

        value = self._parser(date_string, custom_formats)

        with self._lock:
            if key not in self._entries:
                self._misses += 1
                if len(self._entries) >= self._max_size:
                    oldest = next(iter(self._entries))
                    del self._entries[oldest]
                    log.debug("Date cache full, evicted %r", oldest)
                self._entries[key] = value
            return self._entries[key]

    def clear(self) -> None:
        with self._lock:
            log.debug("Clearing date cache (%d entries)", len(self._entries))
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
            }

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
