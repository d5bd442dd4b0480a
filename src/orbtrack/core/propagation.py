"""Orbital propagation via SGP4, reported as geodetic positions."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import numpy as np

logger = logging.getLogger(__name__)
from numpy.typing import NDArray
from sgp4.api import jday

from orbtrack.core.tle import TLE
from orbtrack.exceptions import PropagationInvalid
from orbtrack.utils.constants import (
    DEFAULT_TRAJECTORY_MINUTES,
    DEFAULT_TRAJECTORY_STEPS,
    EARTH_FLATTENING,
    EARTH_MEAN_RADIUS_KM,
    EARTH_RADIUS_KM,
)


@dataclass
class StateVector:
    """Position and velocity in TEME frame.

    Attributes:
        position_km: [x, y, z] position in km.
        velocity_km_s: [vx, vy, vz] velocity in km/s.
        epoch: Time of this state vector.
    """

    position_km: NDArray[np.float64]  # shape (3,)
    velocity_km_s: NDArray[np.float64]  # shape (3,)
    epoch: datetime


@dataclass(frozen=True)
class OrbitalState:
    """Geodetic position and scalar speed of one object at one instant."""

    norad_id: int
    name: str
    latitude_deg: float
    longitude_deg: float
    altitude_km: float
    speed_km_s: float
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "noradId": self.norad_id,
            "name": self.name,
            "latitude": self.latitude_deg,
            "longitude": self.longitude_deg,
            "altitude": self.altitude_km,
            "velocity": self.speed_km_s,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TrajectorySample:
    """Chronological (lat, lon, alt) points for one object."""

    norad_id: int
    positions: list[tuple[float, float, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.positions)

    def to_dict(self) -> dict:
        return {
            "noradId": self.norad_id,
            "positions": [{"lat": lat, "lng": lng, "alt": alt} for lat, lng, alt in self.positions],
        }


def _julian(t: datetime) -> tuple[float, float]:
    if t.tzinfo is not None:
        t = t.astimezone(timezone.utc)
    return jday(t.year, t.month, t.day, t.hour, t.minute, t.second + t.microsecond / 1e6)


def gmst(jd: float, fr: float) -> float:
    """Greenwich Mean Sidereal Time in radians (IAU 1982 model)."""
    tut1 = (jd - 2451545.0 + fr) / 36525.0
    seconds = (
        -6.2e-6 * tut1 ** 3
        + 0.093104 * tut1 ** 2
        + (876600.0 * 3600.0 + 8640184.812866) * tut1
        + 67310.54841
    )
    angle = math.fmod(seconds * (2.0 * math.pi / 86400.0), 2.0 * math.pi)
    if angle < 0.0:
        angle += 2.0 * math.pi
    return angle


def teme_to_ecef(r_teme: NDArray[np.float64], gmst_angle: float) -> NDArray[np.float64]:
    """Rotate a TEME position about Z by GMST to get Earth-fixed coordinates."""
    cos_t = math.cos(gmst_angle)
    sin_t = math.sin(gmst_angle)
    rotation = np.array(
        [
            [cos_t, sin_t, 0.0],
            [-sin_t, cos_t, 0.0],
            [0.0, 0.0, 1.0],
        ]
    )
    return rotation @ r_teme


def ecef_to_geodetic(r_ecef: NDArray[np.float64]) -> tuple[float, float, float]:
    """Convert ECEF (km) to WGS-84 geodetic (lat deg, lon deg, alt km).

    Uses Bowring's closed-form approximation, accurate to well under a
    metre for orbital altitudes.
    """
    x, y, z = (float(c) for c in r_ecef)
    a = EARTH_RADIUS_KM
    f = EARTH_FLATTENING
    b = a * (1.0 - f)
    e2 = f * (2.0 - f)
    ep2 = (a * a - b * b) / (b * b)

    p = math.hypot(x, y)
    theta = math.atan2(z * a, p * b)
    lon = math.atan2(y, x)
    lat = math.atan2(z + ep2 * b * math.sin(theta) ** 3, p - e2 * a * math.cos(theta) ** 3)

    n = a / math.sqrt(1.0 - e2 * math.sin(lat) ** 2)
    if abs(math.cos(lat)) > 1e-10:
        alt = p / math.cos(lat) - n
    else:
        alt = abs(z) - b
    return math.degrees(lat), math.degrees(lon), alt


def state_vector(tle: TLE, t: datetime) -> StateVector:
    """Propagate to a single time, raising on any SGP4 failure.

    Raises:
        PropagationInvalid: If SGP4 reports an error code or a non-finite state.
    """
    jd, fr = _julian(t)
    error_code, pos, vel = tle.satrec.sgp4(jd, fr)

    if error_code != 0:
        raise PropagationInvalid(
            f"SGP4 propagation failed for NORAD {tle.norad_id} at {t}: error code {error_code}"
        )

    position = np.array(pos, dtype=np.float64)
    velocity = np.array(vel, dtype=np.float64)
    if not (np.all(np.isfinite(position)) and np.all(np.isfinite(velocity))):
        raise PropagationInvalid(f"SGP4 returned a non-finite state for NORAD {tle.norad_id} at {t}")

    return StateVector(position_km=position, velocity_km_s=velocity, epoch=t)


def propagate(tle: TLE, instant: datetime | None = None) -> OrbitalState | None:
    """Geodetic position and speed of ``tle`` at ``instant``.

    Args:
        tle: A parsed TLE object.
        instant: UTC datetime to propagate to. Defaults to now.

    Returns:
        The orbital state, or None when SGP4 fails or the object is below
        the surface (decayed). Callers drop None results from aggregates.
    """
    if instant is None:
        instant = datetime.now(timezone.utc)

    try:
        sv = state_vector(tle, instant)
        jd, fr = _julian(instant)
        lat, lon, alt = ecef_to_geodetic(teme_to_ecef(sv.position_km, gmst(jd, fr)))
        if alt < 0:
            raise PropagationInvalid(f"NORAD {tle.norad_id} below the surface at {instant} ({alt:.1f} km)")
    except PropagationInvalid as e:
        logger.warning("%s", e)
        return None

    return OrbitalState(
        norad_id=tle.norad_id,
        name=tle.name,
        latitude_deg=lat,
        longitude_deg=lon,
        altitude_km=alt,
        speed_km_s=float(np.linalg.norm(sv.velocity_km_s)),
        timestamp=instant,
    )


def propagate_catalog(tles: list[TLE], instant: datetime | None = None) -> list[OrbitalState]:
    """Propagate many TLEs to one instant, dropping failed propagations."""
    if instant is None:
        instant = datetime.now(timezone.utc)
    states = [state for state in (propagate(tle, instant) for tle in tles) if state is not None]
    logger.debug("Propagated %d/%d objects to %s", len(states), len(tles), instant.isoformat())
    return states


def sample_trajectory(
    tle: TLE,
    reference: datetime | None = None,
    duration_minutes: float = DEFAULT_TRAJECTORY_MINUTES,
    steps: int = DEFAULT_TRAJECTORY_STEPS,
) -> TrajectorySample:
    """Sample ``steps`` equally spaced positions over ``duration_minutes``.

    Sample ``i`` is taken at ``reference + i * duration_minutes / steps``.
    Instants that fail to propagate are skipped, so the result may hold
    fewer than ``steps`` points.
    """
    if reference is None:
        reference = datetime.now(timezone.utc)

    sample = TrajectorySample(norad_id=tle.norad_id)
    if steps <= 0:
        return sample

    step = timedelta(minutes=duration_minutes) / steps
    for i in range(steps):
        state = propagate(tle, reference + i * step)
        if state is not None:
            sample.positions.append((state.latitude_deg, state.longitude_deg, state.altitude_km))

    if len(sample) < steps:
        logger.debug("Trajectory for NORAD %d kept %d/%d samples", tle.norad_id, len(sample), steps)
    return sample


def distance_km(a: OrbitalState, b: OrbitalState) -> float:
    """Straight-line distance between two states on a spherical Earth."""

    def _cartesian(state: OrbitalState) -> NDArray[np.float64]:
        lat = math.radians(state.latitude_deg)
        lon = math.radians(state.longitude_deg)
        r = EARTH_MEAN_RADIUS_KM + state.altitude_km
        return np.array([r * math.cos(lat) * math.cos(lon), r * math.cos(lat) * math.sin(lon), r * math.sin(lat)])

    return float(np.linalg.norm(_cartesian(a) - _cartesian(b)))
