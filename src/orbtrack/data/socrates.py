"""CelesTrak SOCRATES conjunction feed: fetching and CSV parsing.

The feed is one header row followed by one row per event, columns::

    name1, name2, id1, id2, tca, min_range_km, probability, rel_velocity_km_s

Parsing is deliberately forgiving: short rows are dropped, unparseable
numbers become 0 and an unreadable TCA becomes "now". A bad row never
fails the feed.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import requests

from orbtrack.core.conjunction import ConjunctionEvent
from orbtrack.exceptions import MalformedFeedRow
from orbtrack.utils.constants import DEFAULT_REQUEST_TIMEOUT_S

if TYPE_CHECKING:
    from orbtrack.config import Settings

logger = logging.getLogger(__name__)

MIN_COLUMNS = 8

_TCA_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y %b %d %H:%M:%S.%f",
    "%Y %b %d %H:%M:%S",
)


def _to_float(value: str) -> float:
    try:
        number = float(value.strip())
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return int(_to_float(value))


def _to_datetime(value: str, now: datetime) -> datetime:
    value = value.strip()
    if not value:
        return now
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _TCA_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
        else:
            return now
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_row(values: list[str], event_id: str, now: datetime) -> ConjunctionEvent:
    """Build one event from a feed row.

    Raises:
        MalformedFeedRow: If the row has fewer than eight columns.
    """
    if len(values) < MIN_COLUMNS:
        raise MalformedFeedRow(f"expected {MIN_COLUMNS} columns, got {len(values)}")

    return ConjunctionEvent(
        id=event_id,
        satellite1=values[0].strip() or "Unknown",
        satellite2=values[1].strip() or "Unknown",
        norad_id1=_to_int(values[2]),
        norad_id2=_to_int(values[3]),
        tca=_to_datetime(values[4], now),
        min_range_km=_to_float(values[5]),
        probability=_to_float(values[6]),
        relative_velocity_km_s=_to_float(values[7]),
    )


def parse_socrates_csv(
    text: str,
    source_id: int | str | None = None,
    now: datetime | None = None,
) -> list[ConjunctionEvent]:
    """Parse a SOCRATES CSV feed into conjunction events.

    Args:
        text: Raw CSV text, header row first.
        source_id: Feed identifier (usually the queried NORAD ID), used to
            keep event IDs unique across feeds.
        now: Default TCA for rows without a readable one. Defaults to now.

    Returns:
        Events for every well-formed row, in feed order.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return []
    except csv.Error as e:
        logger.warning("Unreadable conjunction feed header: %s", e)
        return []

    prefix = f"socrates-{source_id}" if source_id is not None else "socrates"
    events: list[ConjunctionEvent] = []
    skipped = 0

    index = 0
    while True:
        index += 1
        try:
            values = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            # the reader drops the offending line and resumes on the next one
            logger.debug("Skipping feed row %d: %s", index, e)
            skipped += 1
            continue

        if not any(v.strip() for v in values):
            continue
        try:
            if len(values) < len(header):
                raise MalformedFeedRow(f"expected {len(header)} columns, got {len(values)}")
            events.append(parse_row(values, f"{prefix}-{index}", now))
        except MalformedFeedRow as e:
            logger.debug("Skipping feed row %d: %s", index, e)
            skipped += 1

    logger.debug("Parsed %d conjunction events (%d rows skipped)", len(events), skipped)
    return events


@dataclass
class SocratesClient:
    """Fetches per-object SOCRATES conjunction feeds.

    Attributes:
        url: SOCRATES search endpoint.
        timeout_s: Per-request timeout in seconds.
    """

    url: str = "https://celestrak.org/SOCRATES/search-results.php"
    timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    _session: requests.Session = field(default_factory=requests.Session, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> SocratesClient:
        return cls(url=settings.socrates_url, timeout_s=settings.request_timeout_s)

    def fetch_feed(self, norad_id: int) -> str | None:
        """Raw CSV feed for ``norad_id``, or None if the request failed."""
        logger.info("Fetching conjunctions for NORAD %d from CelesTrak SOCRATES", norad_id)
        try:
            response = self._session.get(
                self.url,
                params={"IDENT": norad_id},
                headers={"Accept": "text/csv"},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Error fetching conjunctions for NORAD %d: %s", norad_id, e)
            return None
        return response.text

    def fetch_events(self, norad_id: int, now: datetime | None = None) -> list[ConjunctionEvent]:
        """Fetch and parse the feed for ``norad_id``; empty on failure."""
        text = self.fetch_feed(norad_id)
        if text is None:
            return []
        try:
            events = parse_socrates_csv(text, source_id=norad_id, now=now)
        except csv.Error as e:
            logger.warning("Unparseable conjunction feed for NORAD %d: %s", norad_id, e)
            return []
        logger.info("Found %d conjunctions for NORAD %d", len(events), norad_id)
        return events
