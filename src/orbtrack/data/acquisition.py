"""Element-set acquisition: cache, rate-limited batch fetches, fallbacks.

``fetch_one``/``fetch_batch`` never raise for upstream problems. Anything
that could not be acquired is simply absent from the result and the
caller falls back to synthetic data through :func:`first_present`.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Sequence, TypeVar

from orbtrack.core.catalog import CatalogEntry, generate_synthetic
from orbtrack.data.cache import CachedElementSet, ElementSetCache
from orbtrack.data.spacetrack import SpaceTrackClient
from orbtrack.exceptions import AuthenticationFailed, CredentialsMissing, InvalidRequest, NetworkOrTimeout
from orbtrack.utils.constants import DEFAULT_BATCH_DELAY_S, DEFAULT_BATCH_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class OmissionReason(str, Enum):
    CREDENTIALS_MISSING = "credentials_missing"
    AUTHENTICATION_FAILED = "authentication_failed"
    NETWORK_ERROR = "network_error"
    NOT_FOUND = "not_found"
    INVALID_RECORD = "invalid_record"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of acquiring one element set: either an entry or a reason."""

    norad_id: int
    entry: CachedElementSet | None = None
    reason: OmissionReason | None = None

    @property
    def acquired(self) -> bool:
        return self.entry is not None


def validate_norad_ids(norad_ids: object) -> list[int]:
    """Check that ``norad_ids`` is a list or tuple of integer NORAD IDs.

    Raises:
        InvalidRequest: For any other shape of input.
    """
    if not isinstance(norad_ids, (list, tuple)):
        raise InvalidRequest("noradIds must be an array")
    for norad_id in norad_ids:
        if isinstance(norad_id, bool) or not isinstance(norad_id, int):
            raise InvalidRequest(f"Invalid NORAD ID: {norad_id!r}")
    return list(norad_ids)


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class AcquisitionService:
    """Fetches element sets through the cache and the Space-Track client.

    Args:
        client: Shared Space-Track client (holds the session).
        cache: Shared element-set cache.
        batch_size: Fetches run concurrently per group.
        batch_delay_s: Pause between consecutive groups.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        client: SpaceTrackClient,
        cache: ElementSetCache,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_s: float = DEFAULT_BATCH_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.client = client
        self.cache = cache
        self.batch_size = batch_size
        self.batch_delay_s = batch_delay_s
        self._sleep = sleep

    def acquire(self, norad_id: int) -> FetchResult:
        """Acquire one element set, reporting why it was omitted on failure."""
        cached = self.cache.get_fresh(norad_id)
        if cached is not None:
            logger.debug("Using cached TLE for NORAD %d", norad_id)
            return FetchResult(norad_id, entry=cached)

        try:
            tle = self.client.fetch_tle(norad_id)
        except CredentialsMissing:
            return FetchResult(norad_id, reason=OmissionReason.CREDENTIALS_MISSING)
        except AuthenticationFailed as e:
            logger.warning("Authentication failed fetching NORAD %d: %s", norad_id, e)
            return FetchResult(norad_id, reason=OmissionReason.AUTHENTICATION_FAILED)
        except NetworkOrTimeout as e:
            logger.warning("Network error fetching NORAD %d: %s", norad_id, e)
            return FetchResult(norad_id, reason=OmissionReason.NETWORK_ERROR)
        except ValueError as e:
            logger.warning("Invalid element set for NORAD %d: %s", norad_id, e)
            return FetchResult(norad_id, reason=OmissionReason.INVALID_RECORD)

        if tle is None:
            logger.info("No element set on Space-Track for NORAD %d", norad_id)
            return FetchResult(norad_id, reason=OmissionReason.NOT_FOUND)

        entry = self.cache.put(norad_id, tle)
        logger.info("Fetched TLE for %s (NORAD %d)", tle.name or "unnamed object", norad_id)
        return FetchResult(norad_id, entry=entry)

    def fetch_one(self, norad_id: int) -> CachedElementSet | None:
        """Fresh cached or newly fetched element set, or None. Never raises."""
        return self.acquire(norad_id).entry

    def acquire_batch(self, norad_ids: Sequence[int]) -> list[FetchResult]:
        """Acquire many element sets in rate-limited concurrent groups.

        Groups of ``batch_size`` are processed one after another; inside a
        group every fetch runs concurrently. Between groups the service
        sleeps ``batch_delay_s``. Results line up with ``norad_ids``.

        Raises:
            InvalidRequest: If ``norad_ids`` is not a list of integers.
        """
        norad_ids = validate_norad_ids(norad_ids)
        groups = chunked(norad_ids, self.batch_size)
        logger.info("Fetching TLE data for %d satellites in %d groups", len(norad_ids), len(groups))

        results: list[FetchResult] = []
        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="tle-fetch") as pool:
            for index, group in enumerate(groups):
                # map() yields in submission order regardless of completion order
                results.extend(pool.map(self.acquire, group))
                if index < len(groups) - 1:
                    self._sleep(self.batch_delay_s)

        omitted = [r for r in results if not r.acquired]
        if omitted:
            logger.info(
                "Omitted %d/%d element sets: %s",
                len(omitted),
                len(results),
                ", ".join(f"{r.norad_id} ({r.reason.value})" for r in omitted),
            )
        return results

    def fetch_batch(self, norad_ids: Sequence[int]) -> dict[int, CachedElementSet]:
        """Map of NORAD ID to element set for every ID that was acquired.

        The mapping may be smaller than the input, or empty.

        Raises:
            InvalidRequest: If ``norad_ids`` is not a list of integers.
        """
        acquired = {r.norad_id: r.entry for r in self.acquire_batch(norad_ids) if r.entry is not None}
        logger.info("Successfully fetched %d TLE records", len(acquired))
        return acquired


def first_present(strategies: Iterable[Callable[[K], T | None]], key: K) -> T | None:
    """Try each strategy in order and return the first non-None value."""
    for strategy in strategies:
        value = strategy(key)
        if value is not None:
            return value
    return None


def resolve_catalog(
    entries: Iterable[CatalogEntry],
    acquired: dict[int, CachedElementSet],
    now: datetime | None = None,
) -> list[CatalogEntry]:
    """Attach the best available element set to every catalog entry.

    Acquired element sets win; anything else gets a synthetic set.
    """

    def from_upstream(entry: CatalogEntry) -> CatalogEntry | None:
        found = acquired.get(entry.norad_id)
        return entry.with_element_set(found.line1, found.line2) if found is not None else None

    def from_synthetic(entry: CatalogEntry) -> CatalogEntry:
        logger.debug("Using generated TLE for %s", entry.name)
        return generate_synthetic(entry, now)

    resolved = [first_present((from_upstream, from_synthetic), entry) for entry in entries]
    logger.info(
        "Resolved %d catalog entries (%d from Space-Track)",
        len(resolved),
        sum(1 for e in resolved if e.norad_id in acquired),
    )
    return resolved
