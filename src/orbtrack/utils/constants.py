from __future__ import annotations

"""Physical constants and pipeline defaults.

Distances in km, velocities in km/s, durations in seconds unless noted.
"""

# --- Earth parameters (WGS-84) ---
EARTH_RADIUS_KM: float = 6378.137
"""Equatorial radius of Earth in km."""

EARTH_MEAN_RADIUS_KM: float = 6371.0
"""Mean spherical Earth radius in km (display distances)."""

EARTH_FLATTENING: float = 1.0 / 298.257223563
"""WGS-84 flattening."""

# --- Acquisition ---
DEFAULT_CACHE_TTL_S: float = 3600.0
"""Element-set freshness window (1 hour)."""

DEFAULT_BATCH_SIZE: int = 5
"""Concurrent fetches per batch group."""

DEFAULT_BATCH_DELAY_S: float = 1.0
"""Pause between batch groups, imposed by Space-Track request limits."""

DEFAULT_REQUEST_TIMEOUT_S: float = 10.0
"""Timeout for any single upstream request."""

# --- Conjunctions ---
DEFAULT_CONJUNCTION_NORAD_IDS: tuple[int, ...] = (39089, 32382)
"""SAPPHIRE and RADARSAT-2: objects whose SOCRATES feeds are merged."""

HIGH_PROBABILITY_THRESHOLD: float = 1e-4
"""Collision probability above which an event is high risk."""

MEDIUM_PROBABILITY_THRESHOLD: float = 1e-5
"""Collision probability above which an event is at least medium risk."""

HIGH_RANGE_THRESHOLD_KM: float = 1.0
"""Miss distance below which an event is high risk."""

MEDIUM_RANGE_THRESHOLD_KM: float = 5.0
"""Miss distance below which an event is at least medium risk."""

URGENT_WINDOW_HOURS: float = 24.0
"""High-risk events closer than this to TCA count as urgent."""

# --- Trajectories ---
DEFAULT_TRAJECTORY_MINUTES: float = 100.0
"""Default trajectory duration, about one LEO revolution."""

DEFAULT_TRAJECTORY_STEPS: int = 100
"""Default number of trajectory samples."""
