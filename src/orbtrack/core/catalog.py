"""Tracked-object catalog and the synthetic element-set generator.

The catalog is a fixed set of Canadian satellites. Each entry ships a
template element set so that, with zero network connectivity, every
object can still be propagated: :func:`generate_synthetic` re-stamps the
template with the current epoch.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from orbtrack.core.tle import TLE, with_epoch

logger = logging.getLogger(__name__)

ACTIVE = "active"
INACTIVE = "inactive"


@dataclass(frozen=True)
class CatalogEntry:
    """One tracked object.

    Attributes:
        norad_id: NORAD catalog number.
        name: Display name.
        line1: TLE line 1.
        line2: TLE line 2.
        status: ``"active"`` or ``"inactive"``.
        launch_date: ISO launch date, if known.
        operator: Operating organization, if known.
        purpose: Mission purpose, if known.
    """

    norad_id: int
    name: str
    line1: str
    line2: str
    status: str = ACTIVE
    launch_date: str | None = None
    operator: str | None = None
    purpose: str | None = None

    def with_element_set(self, line1: str, line2: str) -> CatalogEntry:
        """Return a copy carrying a replacement element set."""
        return dataclasses.replace(self, line1=line1, line2=line2)

    def to_tle(self) -> TLE:
        return TLE.from_lines(self.line1, self.line2, name=self.name)

    def to_dict(self) -> dict:
        return {
            "noradId": self.norad_id,
            "name": self.name,
            "line1": self.line1,
            "line2": self.line2,
            "status": self.status,
            "launchDate": self.launch_date,
            "operator": self.operator,
            "purpose": self.purpose,
        }


CANADIAN_SATELLITES: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        norad_id=39089,
        name="SAPPHIRE",
        line1="1 39089U 13009A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 39089  98.0000 180.0000 0001000  90.0000 270.0000 14.00000000000000",
        launch_date="2013-02-25",
        operator="Canadian Armed Forces",
        purpose="Space Surveillance",
    ),
    CatalogEntry(
        norad_id=32382,
        name="RADARSAT-2",
        line1="1 32382U 07061A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 32382  98.6000 180.0000 0001200  90.0000 270.0000 14.30000000000000",
        launch_date="2007-12-14",
        operator="MDA",
        purpose="Earth Observation",
    ),
    CatalogEntry(
        norad_id=46484,
        name="RADARSAT CONSTELLATION 1",
        line1="1 46484U 19034A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 46484  97.7400 180.0000 0001100  90.0000 270.0000 14.98000000000000",
        launch_date="2019-06-12",
        operator="Canadian Space Agency",
        purpose="Earth Observation",
    ),
    CatalogEntry(
        norad_id=46485,
        name="RADARSAT CONSTELLATION 2",
        line1="1 46485U 19034B   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 46485  97.7400 180.0000 0001100  90.0000 270.0000 14.98000000000000",
        launch_date="2019-06-12",
        operator="Canadian Space Agency",
        purpose="Earth Observation",
    ),
    CatalogEntry(
        norad_id=46486,
        name="RADARSAT CONSTELLATION 3",
        line1="1 46486U 19034C   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 46486  97.7400 180.0000 0001100  90.0000 270.0000 14.98000000000000",
        launch_date="2019-06-12",
        operator="Canadian Space Agency",
        purpose="Earth Observation",
    ),
    CatalogEntry(
        norad_id=27843,
        name="SCISAT-1",
        line1="1 27843U 03036A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 27843  73.9000 180.0000 0004000  90.0000 270.0000 14.77000000000000",
        launch_date="2003-08-12",
        operator="Canadian Space Agency",
        purpose="Atmospheric Research",
    ),
    CatalogEntry(
        norad_id=40895,
        name="CASSIOPE",
        line1="1 40895U 15052A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 40895  80.9500 180.0000 0015000  90.0000 270.0000 14.85000000000000",
        launch_date="2013-09-29",
        operator="Canadian Space Agency",
        purpose="Communications & Science",
    ),
    CatalogEntry(
        norad_id=25063,
        name="RADARSAT-1",
        line1="1 25063U 97077A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 25063  98.6000 180.0000 0001200  90.0000 270.0000 14.30000000000000",
        status=INACTIVE,
        launch_date="1995-11-04",
        operator="Canadian Space Agency",
        purpose="Earth Observation",
    ),
    CatalogEntry(
        norad_id=43616,
        name="M3MSAT",
        line1="1 43616U 18046A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 43616  97.5000 180.0000 0001500  90.0000 270.0000 15.10000000000000",
        launch_date="2016-06-22",
        operator="Canadian Armed Forces",
        purpose="Maritime Surveillance",
    ),
    CatalogEntry(
        norad_id=44878,
        name="TELESAT TELSTAR 19V",
        line1="1 44878U 19071A   24100.50000000  .00000000  00000-0  00000-0 0  9999",
        line2="2 44878   0.0200 180.0000 0001000  90.0000 270.0000  1.00270000000000",
        launch_date="2018-07-22",
        operator="Telesat",
        purpose="Communications",
    ),
)


def get_entry(norad_id: int, catalog: tuple[CatalogEntry, ...] = CANADIAN_SATELLITES) -> CatalogEntry | None:
    """Look up a catalog entry by NORAD ID."""
    for entry in catalog:
        if entry.norad_id == norad_id:
            return entry
    return None


def generate_synthetic(entry: CatalogEntry, now: datetime | None = None) -> CatalogEntry:
    """Derive a plausible element set for ``entry`` at the epoch ``now``.

    Only the epoch (and checksum) of the template line 1 changes; the
    orbital elements are kept. The output is a pure function of
    ``(entry, now)``.

    Args:
        entry: Catalog entry whose template element set is re-stamped.
        now: Epoch to stamp. Defaults to the current UTC time.

    Returns:
        A copy of ``entry`` with the re-stamped line 1.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    line1 = with_epoch(entry.line1, now)
    logger.debug("Generated synthetic element set for NORAD %d at %s", entry.norad_id, now.isoformat())
    return entry.with_element_set(line1, entry.line2)
