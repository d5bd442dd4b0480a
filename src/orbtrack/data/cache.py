"""In-memory element-set cache with a freshness window."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from orbtrack.core.tle import TLE
from orbtrack.utils.constants import DEFAULT_CACHE_TTL_S

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedElementSet:
    """The latest acquired element set for one object.

    Attributes:
        norad_id: NORAD catalog number.
        name: Object name as reported upstream.
        line1: TLE line 1.
        line2: TLE line 2.
        acquired_at: When the set was stored (UTC).
    """

    norad_id: int
    name: str
    line1: str
    line2: str
    acquired_at: datetime

    def to_tle(self) -> TLE:
        return TLE.from_lines(self.line1, self.line2, name=self.name)


class ElementSetCache:
    """NORAD ID -> CachedElementSet mapping.

    Entries are immutable and replaced with a single assignment, so
    concurrent readers only ever see a complete old or new entry. There is
    no eviction; stale entries stay until overwritten.
    """

    def __init__(self, ttl_s: float = DEFAULT_CACHE_TTL_S, clock: Clock = utc_now) -> None:
        self.ttl = timedelta(seconds=ttl_s)
        self._clock = clock
        self._entries: dict[int, CachedElementSet] = {}

    def get(self, norad_id: int) -> CachedElementSet | None:
        return self._entries.get(norad_id)

    def put(self, norad_id: int, tle: TLE) -> CachedElementSet:
        """Store ``tle`` for ``norad_id`` stamped with the current time."""
        entry = CachedElementSet(
            norad_id=norad_id,
            name=tle.name,
            line1=tle.line1,
            line2=tle.line2,
            acquired_at=self._clock(),
        )
        self._entries[norad_id] = entry
        logger.debug("Cached element set for NORAD %d", norad_id)
        return entry

    def is_fresh(self, entry: CachedElementSet) -> bool:
        return self._clock() - entry.acquired_at < self.ttl

    def get_fresh(self, norad_id: int) -> CachedElementSet | None:
        """Return the entry for ``norad_id`` only if it is still fresh."""
        entry = self.get(norad_id)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, norad_id: object) -> bool:
        return norad_id in self._entries
