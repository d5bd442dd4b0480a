"""Conjunction events and the synthetic fallback scenario set."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from orbtrack.core.catalog import CANADIAN_SATELLITES, CatalogEntry
from orbtrack.core.risk import RiskLevel, classify

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Satellite 1",
    "Satellite 2",
    "NORAD ID 1",
    "NORAD ID 2",
    "TCA",
    "Min Range (km)",
    "Probability",
    "Relative Velocity (km/s)",
    "Risk Level",
]


@dataclass(frozen=True)
class ConjunctionEvent:
    """A predicted close approach between two tracked objects.

    The risk level is derived from ``min_range_km`` and ``probability`` on
    every access and cannot be set independently.

    Attributes:
        id: Unique event identifier.
        satellite1: Name of the first participant.
        satellite2: Name of the second participant.
        norad_id1: NORAD ID of the first participant.
        norad_id2: NORAD ID of the second participant.
        tca: Time of closest approach (UTC).
        min_range_km: Predicted minimum range in km.
        probability: Collision probability (passed through unclamped).
        relative_velocity_km_s: Relative velocity at TCA in km/s.
    """

    id: str
    satellite1: str
    satellite2: str
    norad_id1: int
    norad_id2: int
    tca: datetime
    min_range_km: float
    probability: float
    relative_velocity_km_s: float

    def __post_init__(self) -> None:
        if self.tca.tzinfo is None:
            object.__setattr__(self, "tca", self.tca.replace(tzinfo=timezone.utc))
        if self.norad_id1 == self.norad_id2:
            # Kept as-is; the source feed should be checked for these.
            logger.warning("Self-conjunction reported for NORAD %d (event %s)", self.norad_id1, self.id)

    @property
    def risk_level(self) -> RiskLevel:
        return classify(self.min_range_km, self.probability)

    @property
    def norad_ids(self) -> tuple[int, int]:
        return self.norad_id1, self.norad_id2

    def hours_until(self, now: datetime) -> float:
        return (self.tca - now).total_seconds() / 3600.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "satellite1": self.satellite1,
            "satellite2": self.satellite2,
            "noradId1": self.norad_id1,
            "noradId2": self.norad_id2,
            "tca": self.tca.isoformat(),
            "minRange": self.min_range_km,
            "probability": self.probability,
            "relativeVelocity": self.relative_velocity_km_s,
            "riskLevel": self.risk_level.value,
        }


@dataclass(frozen=True)
class _Scenario:
    primary: CatalogEntry
    secondary: CatalogEntry
    min_range_km: float
    probability: float
    relative_velocity_km_s: float
    hours_from_now: float


_SCENARIOS: tuple[_Scenario, ...] = (
    _Scenario(CANADIAN_SATELLITES[0], CANADIAN_SATELLITES[1], 2.5, 1e-5, 12.4, 12),   # SAPPHIRE / RADARSAT-2
    _Scenario(CANADIAN_SATELLITES[2], CANADIAN_SATELLITES[3], 5.8, 1e-6, 11.1, 24),   # RCM-1 / RCM-2
    _Scenario(CANADIAN_SATELLITES[1], CANADIAN_SATELLITES[6], 1.2, 1e-4, 13.7, 6),    # RADARSAT-2 / CASSIOPE
    _Scenario(CANADIAN_SATELLITES[4], CANADIAN_SATELLITES[5], 8.5, 1e-7, 10.6, 48),   # RCM-3 / SCISAT-1
    _Scenario(CANADIAN_SATELLITES[0], CANADIAN_SATELLITES[8], 0.8, 1e-3, 14.2, 3),    # SAPPHIRE / M3MSAT
)


def synthetic_conjunctions(now: datetime | None = None) -> list[ConjunctionEvent]:
    """Fixed demonstration scenarios, TCAs relative to ``now``, sorted by TCA.

    Used when no conjunction feed could be fetched, so consumers never see
    an empty data set purely because upstream was unreachable.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    events = [
        ConjunctionEvent(
            id=f"conj-{index}",
            satellite1=scenario.primary.name,
            satellite2=scenario.secondary.name,
            norad_id1=scenario.primary.norad_id,
            norad_id2=scenario.secondary.norad_id,
            tca=now + timedelta(hours=scenario.hours_from_now),
            min_range_km=scenario.min_range_km,
            probability=scenario.probability,
            relative_velocity_km_s=scenario.relative_velocity_km_s,
        )
        for index, scenario in enumerate(_SCENARIOS, start=1)
    ]
    return sorted(events, key=lambda e: e.tca)


def to_csv(events: list[ConjunctionEvent]) -> str:
    """Render events as CSV with a header row, in the given order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for e in events:
        writer.writerow(
            [
                e.satellite1,
                e.satellite2,
                e.norad_id1,
                e.norad_id2,
                e.tca.strftime("%Y-%m-%d %H:%M:%S"),
                f"{e.min_range_km:.3f}",
                f"{e.probability:.6e}",
                f"{e.relative_velocity_km_s:.3f}",
                e.risk_level.value,
            ]
        )
    return buffer.getvalue()
