"""
orbtrack: catalog tracking and conjunction risk data for Python.

Keeps orbital element sets fresh from Space-Track (with a synthetic
fallback when upstream is unavailable), propagates them to geodetic
positions, and turns CelesTrak SOCRATES feeds into classified,
queryable conjunction events.
"""

from __future__ import annotations

__version__ = "0.1.0-dev"

from orbtrack.config import Settings
from orbtrack.core.tle import TLE, parse_tle
from orbtrack.core.catalog import CANADIAN_SATELLITES, CatalogEntry, generate_synthetic
from orbtrack.core.propagation import propagate, sample_trajectory, OrbitalState, TrajectorySample
from orbtrack.core.risk import RiskLevel, classify
from orbtrack.core.conjunction import ConjunctionEvent, synthetic_conjunctions
from orbtrack.core.query import ConjunctionFilter, filter_events, sort_events, group_events, compute_stats, merge
from orbtrack.data.cache import CachedElementSet, ElementSetCache
from orbtrack.data.spacetrack import SpaceTrackClient
from orbtrack.data.acquisition import AcquisitionService, FetchResult
from orbtrack.data.socrates import SocratesClient, parse_socrates_csv
from orbtrack.api.service import TrackingService, AnalysisResult
from orbtrack.exceptions import InvalidRequest

__all__ = [
    "__version__",
    "Settings",
    "TLE",
    "parse_tle",
    "CANADIAN_SATELLITES",
    "CatalogEntry",
    "generate_synthetic",
    "propagate",
    "sample_trajectory",
    "OrbitalState",
    "TrajectorySample",
    "RiskLevel",
    "classify",
    "ConjunctionEvent",
    "synthetic_conjunctions",
    "ConjunctionFilter",
    "filter_events",
    "sort_events",
    "group_events",
    "compute_stats",
    "merge",
    "CachedElementSet",
    "ElementSetCache",
    "SpaceTrackClient",
    "AcquisitionService",
    "FetchResult",
    "SocratesClient",
    "parse_socrates_csv",
    "TrackingService",
    "AnalysisResult",
    "InvalidRequest",
]
