"""Query surface consumed by the presentation layer.

Build one :class:`TrackingService` at process start (usually with
:meth:`TrackingService.from_settings`) and share it between requests.
Only :class:`~orbtrack.exceptions.InvalidRequest` escapes these methods;
upstream failures degrade to cached or synthetic data.

Example::

    service = TrackingService.from_settings(Settings())
    satellites = service.get_satellites()
    high = service.get_conjunctions(risk_level="high", sort_by="tca", limit=10)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from orbtrack.config import Settings
from orbtrack.core.catalog import CANADIAN_SATELLITES, CatalogEntry, generate_synthetic, get_entry
from orbtrack.core.conjunction import ConjunctionEvent
from orbtrack.core.propagation import OrbitalState, TrajectorySample, propagate_catalog, sample_trajectory
from orbtrack.core.query import (
    TIME_WINDOWS,
    ConjunctionFilter,
    ConjunctionStats,
    GroupBy,
    compute_stats,
    filter_events,
    group_events,
    merge,
    parse_group_by,
    sort_events,
)
from orbtrack.core.risk import RiskLevel, parse_risk_level
from orbtrack.data.acquisition import AcquisitionService, first_present, resolve_catalog, validate_norad_ids
from orbtrack.data.cache import Clock, ElementSetCache, utc_now
from orbtrack.data.socrates import SocratesClient
from orbtrack.data.spacetrack import SpaceTrackClient
from orbtrack.exceptions import InvalidRequest
from orbtrack.utils.constants import (
    DEFAULT_CONJUNCTION_NORAD_IDS,
    DEFAULT_TRAJECTORY_MINUTES,
    DEFAULT_TRAJECTORY_STEPS,
)

logger = logging.getLogger(__name__)

_FILTER_FIELDS = {
    "risk_level": "risk_level",
    "riskLevel": "risk_level",
    "norad_id": "norad_id",
    "noradId": "norad_id",
    "min_probability": "min_probability",
    "minProbability": "min_probability",
    "max_range": "max_range_km",
    "maxRange": "max_range_km",
    "max_range_km": "max_range_km",
    "hours_from_now": "hours_from_now",
    "hoursFromNow": "hours_from_now",
    "start": "start",
    "start_time": "start",
    "startTime": "start",
    "end": "end",
    "end_time": "end",
    "endTime": "end",
    "search": "search",
    "time_window": "time_window",
    "timeWindow": "time_window",
}


@dataclass
class AnalysisResult:
    """Events plus optional grouping and statistics."""

    events: list[ConjunctionEvent]
    total: int
    groups: dict | None = None
    stats: ConjunctionStats | None = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "events": [e.to_dict() for e in self.events],
            "total": self.total,
        }
        if self.groups is not None:
            result["groups"] = {str(k): [e.to_dict() for e in v] for k, v in self.groups.items()}
        if self.stats is not None:
            result["stats"] = self.stats.to_dict()
        return result


def _parse_instant(value: Any, name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    raise InvalidRequest(f"{name} must be an ISO-8601 timestamp, got {value!r}")


def _parse_number(value: Any, name: str, cast: type = float) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidRequest(f"{name} must be a number, got {value!r}")
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise InvalidRequest(f"{name} must be an integer, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be a number, got {value!r}") from None


def _parse_name(value: Any, name: str) -> str | None:
    if value is not None and not isinstance(value, str):
        raise InvalidRequest(f"{name} must be a string, got {value!r}")
    return value


def build_filter(params: Mapping[str, Any]) -> ConjunctionFilter:
    """Translate request parameters (snake_case or camelCase) into a filter.

    Raises:
        InvalidRequest: On unknown keys or values of the wrong type.
    """
    if not isinstance(params, Mapping):
        raise InvalidRequest("filter must be an object")

    values: dict[str, Any] = {}
    for key, value in params.items():
        if key not in _FILTER_FIELDS:
            raise InvalidRequest(f"Unknown filter parameter: {key!r}")
        if value is None or value == "all":
            continue
        values[_FILTER_FIELDS[key]] = value

    risk_level: RiskLevel | None = None
    if "risk_level" in values:
        try:
            risk_level = parse_risk_level(values["risk_level"])
        except ValueError as e:
            raise InvalidRequest(str(e)) from e

    search = _parse_name(values.get("search"), "search")
    time_window = _parse_name(values.get("time_window"), "time_window")
    if time_window is not None and time_window not in {label for label, _, _ in TIME_WINDOWS}:
        raise InvalidRequest(f"Unknown time window: {time_window!r}")

    return ConjunctionFilter(
        risk_level=risk_level,
        norad_id=_parse_number(values.get("norad_id"), "norad_id", int),
        min_probability=_parse_number(values.get("min_probability"), "min_probability"),
        max_range_km=_parse_number(values.get("max_range_km"), "max_range"),
        hours_from_now=_parse_number(values.get("hours_from_now"), "hours_from_now"),
        start=_parse_instant(values.get("start"), "start"),
        end=_parse_instant(values.get("end"), "end"),
        search=search,
        time_window=time_window,
    )


def _check_limit(limit: Any) -> int | None:
    limit = _parse_number(limit, "limit", int)
    if limit is not None and limit < 0:
        raise InvalidRequest(f"limit must not be negative, got {limit}")
    return limit


@dataclass
class TrackingService:
    """Catalog, orbital state and conjunction queries.

    Attributes:
        acquisition: Element-set acquisition service.
        feeds: SOCRATES feed client.
        catalog: Tracked objects.
        conjunction_norad_ids: Objects whose conjunction feeds are merged.
        clock: Source of "now", injectable for tests.
    """

    acquisition: AcquisitionService
    feeds: SocratesClient
    catalog: tuple[CatalogEntry, ...] = CANADIAN_SATELLITES
    conjunction_norad_ids: list[int] = field(default_factory=lambda: list(DEFAULT_CONJUNCTION_NORAD_IDS))
    clock: Clock = utc_now

    @classmethod
    def from_settings(cls, settings: Settings) -> TrackingService:
        """Wire the default object graph from ``settings``."""
        cache = ElementSetCache(ttl_s=settings.cache_ttl_s)
        acquisition = AcquisitionService(
            client=SpaceTrackClient.from_settings(settings),
            cache=cache,
            batch_size=settings.batch_size,
            batch_delay_s=settings.batch_delay_s,
        )
        if not settings.has_credentials:
            logger.info("Space-Track credentials absent, serving synthetic element sets")
        return cls(
            acquisition=acquisition,
            feeds=SocratesClient.from_settings(settings),
            conjunction_norad_ids=list(settings.conjunction_norad_ids),
        )

    # --- Catalog & orbital state ---------------------------------------

    def get_satellites(self) -> list[CatalogEntry]:
        """Every catalog entry with its freshest available element set."""
        acquired = self.acquisition.fetch_batch([entry.norad_id for entry in self.catalog])
        return resolve_catalog(self.catalog, acquired, self.clock())

    def get_element_sets(self, norad_ids: Any) -> dict[int, CatalogEntry]:
        """Element sets for the requested IDs.

        Acquired sets are returned as-is; catalog objects that could not be
        acquired get a synthetic set; unknown objects are omitted.

        Raises:
            InvalidRequest: If ``norad_ids`` is not a list of integers. The
                cache and network are not touched in that case.
        """
        norad_ids = validate_norad_ids(norad_ids)
        acquired = self.acquisition.fetch_batch(norad_ids)
        now = self.clock()

        def from_upstream(norad_id: int) -> CatalogEntry | None:
            found = acquired.get(norad_id)
            if found is None:
                return None
            known = get_entry(norad_id, self.catalog)
            if known is not None:
                return known.with_element_set(found.line1, found.line2)
            return CatalogEntry(norad_id=norad_id, name=found.name, line1=found.line1, line2=found.line2)

        def from_catalog(norad_id: int) -> CatalogEntry | None:
            known = get_entry(norad_id, self.catalog)
            return generate_synthetic(known, now) if known is not None else None

        results: dict[int, CatalogEntry] = {}
        for norad_id in norad_ids:
            entry = first_present((from_upstream, from_catalog), norad_id)
            if entry is not None:
                results[norad_id] = entry
        return results

    def get_positions(self, instant: datetime | None = None) -> list[OrbitalState]:
        """Current geodetic position of every object that propagates."""
        instant = instant or self.clock()
        tles = []
        for entry in self.get_satellites():
            try:
                tles.append(entry.to_tle())
            except ValueError as e:
                logger.warning("Skipping %s: %s", entry.name, e)
        return propagate_catalog(tles, instant)

    def get_trajectory(
        self,
        norad_id: int,
        reference: datetime | None = None,
        duration_minutes: float = DEFAULT_TRAJECTORY_MINUTES,
        steps: int = DEFAULT_TRAJECTORY_STEPS,
    ) -> TrajectorySample:
        """Sampled path for one object.

        Raises:
            InvalidRequest: If the object has no element set available.
        """
        entry = self.get_element_sets([norad_id]).get(norad_id)
        if entry is None:
            raise InvalidRequest(f"Unknown NORAD ID: {norad_id}")
        return sample_trajectory(entry.to_tle(), reference or self.clock(), duration_minutes, steps)

    # --- Conjunctions ---------------------------------------------------

    def load_conjunctions(self) -> list[ConjunctionEvent]:
        """All events from the configured feeds, or the synthetic set."""
        now = self.clock()
        feeds = [self.feeds.fetch_events(norad_id, now=now) for norad_id in self.conjunction_norad_ids]
        return merge(feeds, now=now)

    def get_conjunctions(
        self,
        sort_by: str | None = None,
        limit: int | None = None,
        **filters: Any,
    ) -> list[ConjunctionEvent]:
        """Filtered, sorted and limited conjunction events.

        Filter keywords: ``risk_level``, ``norad_id``, ``min_probability``,
        ``max_range``, ``hours_from_now``, ``start``, ``end``, ``search``,
        ``time_window`` (camelCase spellings are accepted too).

        Raises:
            InvalidRequest: On unknown or mistyped parameters.
        """
        criteria = build_filter(filters)
        limit = _check_limit(limit)
        sort_by = _parse_name(sort_by, "sort_by")
        now = self.clock()

        events = sort_events(filter_events(self.load_conjunctions(), criteria, now=now), sort_by)
        return events[:limit] if limit is not None else events

    def analyze(self, config: Any) -> AnalysisResult:
        """Run a filter/sort/group/stats analysis.

        ``config`` keys: ``filter`` (mapping of filter parameters),
        ``sort`` / ``sort_by``, ``limit``, ``group_by`` and
        ``include_stats`` (default True). ``total`` counts the filtered
        events before the limit is applied; grouping and statistics cover
        the same filtered set.

        Raises:
            InvalidRequest: If ``config`` is not a mapping or holds invalid values.
        """
        if not isinstance(config, Mapping):
            raise InvalidRequest("analysis config must be an object")

        criteria = build_filter(config.get("filter") or {})
        limit = _check_limit(config.get("limit"))
        sort_by = _parse_name(config.get("sort_by", config.get("sort")), "sort_by")

        group_by: GroupBy | None = None
        raw_group_by = _parse_name(config.get("group_by", config.get("groupBy")), "group_by")
        if raw_group_by is not None:
            try:
                group_by = parse_group_by(raw_group_by)
            except ValueError as e:
                raise InvalidRequest(str(e)) from e

        now = self.clock()
        events = sort_events(filter_events(self.load_conjunctions(), criteria, now=now), sort_by)

        result = AnalysisResult(
            events=events[:limit] if limit is not None else events,
            total=len(events),
        )
        if group_by is not None:
            result.groups = group_events(events, group_by, now=now)
        if config.get("include_stats", config.get("includeStats", True)):
            result.stats = compute_stats(events)
        logger.debug("analyze: %d events, group_by=%s", result.total, group_by)
        return result
