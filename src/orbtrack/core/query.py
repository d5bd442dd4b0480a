"""Conjunction query engine: merge, filter, sort, group and summarize events.

Every function returns new containers; the caller's event list is never
reordered or modified.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable

from orbtrack.core.conjunction import ConjunctionEvent, synthetic_conjunctions
from orbtrack.core.risk import RiskLevel, risk_rank
from orbtrack.utils.constants import URGENT_WINDOW_HOURS

logger = logging.getLogger(__name__)

# (label, lower bound inclusive, upper bound exclusive) in hours until TCA
TIME_WINDOWS: tuple[tuple[str, float, float | None], ...] = (
    ("0-6h", 0.0, 6.0),
    ("6-24h", 6.0, 24.0),
    ("24-48h", 24.0, 48.0),
    ("48h+", 48.0, None),
)


class SortKey(str, Enum):
    PROBABILITY = "probability"
    MIN_RANGE = "min_range"
    TCA = "tca"
    RELATIVE_VELOCITY = "relative_velocity"
    RISK_LEVEL = "risk_level"


class GroupBy(str, Enum):
    RISK_LEVEL = "risk_level"
    NORAD_ID = "norad_id"
    TIME_WINDOW = "time_window"


_SORT_ALIASES = {
    "minRange": SortKey.MIN_RANGE,
    "relativeVelocity": SortKey.RELATIVE_VELOCITY,
    "riskLevel": SortKey.RISK_LEVEL,
}

_GROUP_ALIASES = {
    "riskLevel": GroupBy.RISK_LEVEL,
    "risk": GroupBy.RISK_LEVEL,
    "noradId": GroupBy.NORAD_ID,
    "satellite": GroupBy.NORAD_ID,
    "timeWindow": GroupBy.TIME_WINDOW,
    "time": GroupBy.TIME_WINDOW,
}


def _utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment


def _now(now: datetime | None) -> datetime:
    return datetime.now(timezone.utc) if now is None else _utc(now)


def time_window(hours_until: float) -> str | None:
    """Label of the TCA bucket for ``hours_until``; None for past events."""
    for label, lower, upper in TIME_WINDOWS:
        if hours_until >= lower and (upper is None or hours_until < upper):
            return label
    return None


def merge(feeds: Iterable[Iterable[ConjunctionEvent]], now: datetime | None = None) -> list[ConjunctionEvent]:
    """Concatenate parsed feeds, substituting synthetic scenarios when empty."""
    events = [event for feed in feeds for event in feed]
    if events:
        logger.info("Merged %d conjunction events", len(events))
        return events
    logger.warning("No conjunction feed data available, using synthetic scenarios")
    return synthetic_conjunctions(_now(now))


@dataclass
class ConjunctionFilter:
    """Conjunctive (AND) filter predicates; None means not applied.

    Attributes:
        risk_level: Keep only this risk level.
        norad_id: Keep events where either participant has this NORAD ID.
        min_probability: Keep events with probability >= this value.
        max_range_km: Keep events with min range <= this value.
        hours_from_now: Keep events with TCA no later than now + hours.
        start: Keep events with TCA at or after this instant.
        end: Keep events with TCA at or before this instant.
        search: Case-insensitive substring of a participant name or ID.
        time_window: Keep events in this TCA bucket (see TIME_WINDOWS).
    """

    risk_level: RiskLevel | None = None
    norad_id: int | None = None
    min_probability: float | None = None
    max_range_km: float | None = None
    hours_from_now: float | None = None
    start: datetime | None = None
    end: datetime | None = None
    search: str | None = None
    time_window: str | None = None

    def matches(self, event: ConjunctionEvent, now: datetime) -> bool:
        if self.risk_level is not None and event.risk_level != self.risk_level:
            return False
        if self.norad_id is not None and self.norad_id not in event.norad_ids:
            return False
        if self.min_probability is not None and not event.probability >= self.min_probability:
            return False
        if self.max_range_km is not None and not event.min_range_km <= self.max_range_km:
            return False
        if self.hours_from_now is not None and event.tca > now + timedelta(hours=self.hours_from_now):
            return False
        if self.start is not None and event.tca < _utc(self.start):
            return False
        if self.end is not None and event.tca > _utc(self.end):
            return False
        if self.search:
            needle = self.search.lower()
            haystack = (event.satellite1, event.satellite2, str(event.norad_id1), str(event.norad_id2))
            if not any(needle in value.lower() for value in haystack):
                return False
        if self.time_window is not None and time_window(event.hours_until(now)) != self.time_window:
            return False
        return True


def filter_events(
    events: Iterable[ConjunctionEvent],
    criteria: ConjunctionFilter | None = None,
    now: datetime | None = None,
) -> list[ConjunctionEvent]:
    """Return the events matching every predicate set in ``criteria``."""
    events = list(events)
    if criteria is None:
        return events
    now = _now(now)
    kept = [e for e in events if criteria.matches(e, now)]
    logger.debug("filter_events: kept %d/%d events", len(kept), len(events))
    return kept


def parse_sort_key(key: SortKey | str | None) -> SortKey | None:
    """Resolve a sort key name (snake_case or camelCase); None if unknown."""
    if key is None or isinstance(key, SortKey):
        return key
    if key in _SORT_ALIASES:
        return _SORT_ALIASES[key]
    try:
        return SortKey(key)
    except ValueError:
        return None


def parse_group_by(dimension: GroupBy | str) -> GroupBy:
    """Resolve a grouping dimension name.

    Raises:
        ValueError: If the dimension is not supported.
    """
    if isinstance(dimension, GroupBy):
        return dimension
    if dimension in _GROUP_ALIASES:
        return _GROUP_ALIASES[dimension]
    try:
        return GroupBy(dimension)
    except ValueError:
        raise ValueError(f"Unknown grouping dimension: {dimension!r}") from None


def sort_events(events: Iterable[ConjunctionEvent], key: SortKey | str | None = None) -> list[ConjunctionEvent]:
    """Return a new list ordered by ``key``.

    probability, relative_velocity and risk_level sort descending;
    min_range and tca ascending. Without a (known) key the order is
    probability descending, ties broken by min range ascending. The sort
    is stable, so re-sorting by the same key is a no-op.
    """
    sort_key = parse_sort_key(key)

    if sort_key is SortKey.PROBABILITY:
        return sorted(events, key=lambda e: -e.probability)
    if sort_key is SortKey.MIN_RANGE:
        return sorted(events, key=lambda e: e.min_range_km)
    if sort_key is SortKey.TCA:
        return sorted(events, key=lambda e: e.tca)
    if sort_key is SortKey.RELATIVE_VELOCITY:
        return sorted(events, key=lambda e: -e.relative_velocity_km_s)
    if sort_key is SortKey.RISK_LEVEL:
        return sorted(events, key=lambda e: -risk_rank(e.risk_level))

    if key is not None:
        logger.debug("Unknown sort key %r, using default order", key)
    return sorted(events, key=lambda e: (-e.probability, e.min_range_km))


def group_events(
    events: Iterable[ConjunctionEvent],
    by: GroupBy | str,
    now: datetime | None = None,
) -> dict:
    """Group events along one dimension.

    - ``risk_level``: fixed ``high``/``medium``/``low`` buckets.
    - ``norad_id``: each event is listed under both participants (once
      when both participants are the same object).
    - ``time_window``: ``0-6h``/``6-24h``/``24-48h``/``48h+`` buckets by
      hours until TCA; events whose TCA has passed fall in no bucket.

    Raises:
        ValueError: If ``by`` is not a supported dimension.
    """
    dimension = parse_group_by(by)

    if dimension is GroupBy.RISK_LEVEL:
        groups: dict = {level.value: [] for level in RiskLevel}
        for e in events:
            groups[e.risk_level.value].append(e)
        return groups

    if dimension is GroupBy.NORAD_ID:
        groups = {}
        for e in events:
            for norad_id in dict.fromkeys(e.norad_ids):
                groups.setdefault(norad_id, []).append(e)
        return groups

    now = _now(now)
    groups = {label: [] for label, _, _ in TIME_WINDOWS}
    for e in events:
        label = time_window(e.hours_until(now))
        if label is not None:
            groups[label].append(e)
    return groups


@dataclass
class ConjunctionStats:
    """Summary statistics over a set of events (zeros when empty)."""

    total: int = 0
    by_risk_level: dict[str, int] = field(default_factory=lambda: {level.value: 0 for level in RiskLevel})
    max_probability: float = 0.0
    min_range_km: float = 0.0
    avg_relative_velocity_km_s: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "byRiskLevel": dict(self.by_risk_level),
            "maxProbability": self.max_probability,
            "minRange": self.min_range_km,
            "avgRelativeVelocity": self.avg_relative_velocity_km_s,
        }


def compute_stats(events: Iterable[ConjunctionEvent]) -> ConjunctionStats:
    events = list(events)
    stats = ConjunctionStats()
    if not events:
        return stats

    stats.total = len(events)
    for e in events:
        stats.by_risk_level[e.risk_level.value] += 1
    stats.max_probability = max(e.probability for e in events)
    stats.min_range_km = min(e.min_range_km for e in events)
    stats.avg_relative_velocity_km_s = sum(e.relative_velocity_km_s for e in events) / len(events)
    return stats


def count_urgent(events: Iterable[ConjunctionEvent], now: datetime | None = None) -> int:
    """High-risk events with TCA at most 24 hours away (past TCAs included)."""
    now = _now(now)
    return sum(
        1
        for e in events
        if e.risk_level is RiskLevel.HIGH and e.hours_until(now) <= URGENT_WINDOW_HOURS
    )
