"""Two-line element sets: parsing, and the fixed-column edits used to
re-stamp a template set with a new epoch.

SGP4 state comes from :class:`sgp4.api.Satrec`; the column handling here
covers only what the synthetic generator in :mod:`orbtrack.core.catalog`
needs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sgp4.api import Satrec, WGS72

logger = logging.getLogger(__name__)

TLE_LINE_LENGTH = 69
EPOCH_SLICE = slice(18, 32)


def _check_line(line: str, number: int) -> str:
    line = line.strip()
    if len(line) != TLE_LINE_LENGTH or not line.startswith(str(number)):
        logger.error("Invalid TLE line %d: %r", number, line)
        raise ValueError(f"Invalid TLE line {number}: {line!r}")
    return line


@dataclass(frozen=True)
class TLE:
    """One element set, as acquired upstream or generated.

    Attributes:
        name: Object name, empty when the source had no name line.
        line1: Line 1, 69 columns.
        line2: Line 2, 69 columns.
        norad_id: NORAD catalog number (line 1, columns 3-7).
        epoch: Element set epoch (UTC).
        inclination_deg: Inclination in degrees.
        eccentricity: Eccentricity.
        mean_motion_rev_per_day: Kozai mean motion in revolutions per day.
        satrec: Initialized sgp4 record.
    """

    name: str
    line1: str
    line2: str
    norad_id: int
    epoch: datetime
    inclination_deg: float
    eccentricity: float
    mean_motion_rev_per_day: float
    satrec: Satrec = field(repr=False, compare=False)

    @classmethod
    def from_lines(cls, line1: str, line2: str, name: str = "") -> TLE:
        """Build a TLE from its two data lines.

        Raises:
            ValueError: If either line is not a 69-column line of the right number.
        """
        line1 = _check_line(line1, 1)
        line2 = _check_line(line2, 2)

        satrec = Satrec.twoline2rv(line1, line2, WGS72)
        tle = cls(
            name=name.strip(),
            line1=line1,
            line2=line2,
            norad_id=int(line1[2:7]),
            epoch=parse_epoch(line1),
            inclination_deg=math.degrees(satrec.inclo),
            eccentricity=satrec.ecco,
            mean_motion_rev_per_day=satrec.no_kozai * 1440.0 / (2.0 * math.pi),
            satrec=satrec,
        )
        logger.debug("Parsed TLE for NORAD %d (epoch %s)", tle.norad_id, tle.epoch.isoformat())
        return tle

    def __str__(self) -> str:
        if not self.name:
            return f"{self.line1}\n{self.line2}"
        return f"0 {self.name}\n{self.line1}\n{self.line2}"


def parse_tle(text: str) -> list[TLE]:
    """Parse every element set in ``text``.

    Accepts bare line pairs, pairs preceded by a name line, and Space-Track
    ``3le`` output where the name line starts with ``0 ``. Lines that fit
    none of these are ignored.

    Args:
        text: Raw element-set text.

    Returns:
        The parsed TLEs in input order.

    Raises:
        ValueError: If a line 1 / line 2 pair is malformed.
    """
    tles: list[TLE] = []
    name = ""
    pending: str | None = None

    for line in (raw.strip() for raw in text.splitlines()):
        if not line:
            continue
        if line.startswith("1 "):
            pending = line
        elif line.startswith("2 "):
            if pending is not None:
                tles.append(TLE.from_lines(pending, line, name=name))
            pending, name = None, ""
        else:
            pending = None
            name = line[2:] if line.startswith("0 ") else line

    logger.debug("Parsed %d TLEs from text", len(tles))
    return tles


def parse_epoch(line1: str) -> datetime:
    """UTC epoch encoded in columns 19-32 of line 1 (two-digit years pivot at 57)."""
    epoch_field = line1[EPOCH_SLICE]
    year = int(epoch_field[:2])
    year += 2000 if year < 57 else 1900
    return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=float(epoch_field[2:]) - 1)


def format_epoch(moment: datetime) -> str:
    """Format a datetime as the 14-character TLE epoch field ``YYDDD.DDDDDDDD``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    start_of_year = datetime(moment.year, 1, 1, tzinfo=timezone.utc)
    day = (moment - start_of_year).total_seconds() / 86400.0 + 1.0
    return f"{moment.year % 100:02d}{day:012.8f}"


def checksum(line: str) -> int:
    """Modulo-10 checksum over the first 68 columns (digits count, ``-`` counts 1)."""
    total = 0
    for char in line[:68]:
        if char.isdigit():
            total += int(char)
        elif char == "-":
            total += 1
    return total % 10


def with_epoch(line1: str, moment: datetime) -> str:
    """Return ``line1`` re-stamped with a new epoch and a recomputed checksum."""
    body = line1[: EPOCH_SLICE.start] + format_epoch(moment) + line1[EPOCH_SLICE.stop : 68]
    return f"{body}{checksum(body)}"
