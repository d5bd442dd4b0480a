"""Integration test: settings -> acquisition -> catalog/propagation -> conjunction queries."""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from orbtrack import (
    AcquisitionService,
    ElementSetCache,
    InvalidRequest,
    Settings,
    SocratesClient,
    SpaceTrackClient,
    TrackingService,
)
from orbtrack.core.catalog import CANADIAN_SATELLITES

NOW = datetime(2024, 2, 14, 12, 0, 0, tzinfo=timezone.utc)

ISS_3LE_TEXT = """\
0 ISS (ZARYA)
1 25544U 98067A   24045.54896019  .00016717  00000-0  30093-3 0  9993
2 25544  51.6412 207.4925 0004948 290.5508 178.9792 15.49583488439596
"""

FEEDS = {
    39089: (
        "NAME1,NAME2,NORAD1,NORAD2,TCA,MIN_RANGE,PROBABILITY,REL_VELOCITY\n"
        "SAPPHIRE,COSMOS 2251 DEB,39089,34427,2024-02-14 14:00:00,0.4,2e-4,14.0\n"
        "SAPPHIRE,IRIDIUM 33 DEB,39089,33772,2024-02-15 20:00:00,3.1,4e-6,11.5\n"
    ),
    32382: (
        "NAME1,NAME2,NORAD1,NORAD2,TCA,MIN_RANGE,PROBABILITY,REL_VELOCITY\n"
        "RADARSAT-2,FENGYUN 1C DEB,32382,31141,2024-02-14 22:00:00,7.2,3e-7,9.8\n"
        "RADARSAT-2,SL-8 R/B,32382,\n"
    ),
}


def _make_response(status_code: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.raise_for_status = MagicMock()
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    return resp


def _socrates_get(url, params=None, headers=None, timeout=None):
    return _make_response(200, FEEDS[params["IDENT"]])


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def offline_service(sleeps) -> TrackingService:
    """No credentials and no reachable conjunction feeds."""
    acquisition = AcquisitionService(
        SpaceTrackClient(identity=None, password=None),
        ElementSetCache(clock=lambda: NOW),
        sleep=sleeps.append,
    )
    feeds = SocratesClient()
    feeds._session = MagicMock()
    feeds._session.get.side_effect = requests.ConnectionError("offline")
    return TrackingService(acquisition=acquisition, feeds=feeds, clock=lambda: NOW)


@pytest.fixture
def online_service(sleeps) -> TrackingService:
    client = SpaceTrackClient(identity="user", password="pass")
    client._session = MagicMock()
    client._session.post.return_value = _make_response(200, "")
    client._session.get.return_value = _make_response(200, ISS_3LE_TEXT)
    acquisition = AcquisitionService(client, ElementSetCache(clock=lambda: NOW), sleep=sleeps.append)

    feeds = SocratesClient()
    feeds._session = MagicMock()
    feeds._session.get.side_effect = _socrates_get
    return TrackingService(acquisition=acquisition, feeds=feeds, clock=lambda: NOW)


def test_settings_defaults():
    settings = Settings(_env_file=None, space_track_username=None, space_track_password=None)
    assert not settings.has_credentials
    assert settings.batch_size == 5
    assert settings.conjunction_norad_ids == [39089, 32382]


def test_from_settings_wiring():
    settings = Settings(
        _env_file=None,
        space_track_username="user",
        space_track_password="pass",
        batch_size=3,
        cache_ttl_s=60,
    )
    service = TrackingService.from_settings(settings)
    assert service.acquisition.batch_size == 3
    assert service.acquisition.client.has_credentials
    assert service.acquisition.cache.ttl.total_seconds() == 60
    assert service.conjunction_norad_ids == [39089, 32382]


class TestCatalogQueries:
    def test_satellites_offline_are_synthetic(self, offline_service: TrackingService, sleeps):
        satellites = offline_service.get_satellites()
        assert [s.norad_id for s in satellites] == [e.norad_id for e in CANADIAN_SATELLITES]
        assert all(s.line1[18:32] == "24045.50000000" for s in satellites)
        # ten objects in groups of five
        assert sleeps == [1.0]

    def test_element_sets_mix_upstream_and_synthetic(self, online_service: TrackingService):
        sets = online_service.get_element_sets([39089, 25544, 99999])
        # the mocked upstream answers with the ISS record for every query
        assert set(sets) == {39089, 25544, 99999}
        assert sets[25544].name == "ISS (ZARYA)"
        assert sets[39089].name == "SAPPHIRE"

    def test_element_sets_unknown_ids_omitted_offline(self, offline_service: TrackingService):
        sets = offline_service.get_element_sets([39089, 99999])
        assert list(sets) == [39089]

    @pytest.mark.parametrize("bad", ["39089", None, [39089, "x"]])
    def test_element_sets_invalid_request(self, offline_service: TrackingService, bad):
        with patch.object(offline_service.acquisition, "fetch_batch") as fetch_batch:
            with pytest.raises(InvalidRequest):
                offline_service.get_element_sets(bad)
        fetch_batch.assert_not_called()

    def test_positions_offline(self, offline_service: TrackingService):
        positions = offline_service.get_positions()
        assert len(positions) == len(CANADIAN_SATELLITES)
        for state in positions:
            assert state.timestamp == NOW
            assert state.altitude_km > 0

    def test_trajectory(self, offline_service: TrackingService):
        trajectory = offline_service.get_trajectory(39089, steps=10)
        assert trajectory.norad_id == 39089
        assert len(trajectory) == 10

    def test_trajectory_unknown_object(self, offline_service: TrackingService):
        with pytest.raises(InvalidRequest):
            offline_service.get_trajectory(99999)


class TestConjunctionQueries:
    def test_feeds_merged(self, online_service: TrackingService):
        events = online_service.load_conjunctions()
        # the short row in the second feed is dropped
        assert len(events) == 3
        assert len({e.id for e in events}) == 3

    def test_offline_falls_back_to_synthetic(self, offline_service: TrackingService):
        events = offline_service.get_conjunctions()
        assert len(events) == 5
        assert events[0].probability == 1e-3

    def test_filter_sort_limit(self, online_service: TrackingService):
        events = online_service.get_conjunctions(sort_by="tca", limit=2)
        assert [e.satellite2 for e in events] == ["COSMOS 2251 DEB", "FENGYUN 1C DEB"]

        high = online_service.get_conjunctions(riskLevel="high")
        assert [e.norad_id2 for e in high] == [34427]

        by_object = online_service.get_conjunctions(norad_id=32382, risk_level="all")
        assert [e.norad_id2 for e in by_object] == [31141]

    def test_zero_limit(self, online_service: TrackingService):
        assert online_service.get_conjunctions(limit=0) == []

    def test_integral_float_limit_accepted(self, online_service: TrackingService):
        assert len(online_service.get_conjunctions(limit=2.0)) == 2

    def test_default_conjunction_sources(self, offline_service: TrackingService):
        assert offline_service.conjunction_norad_ids == [39089, 32382]

    @pytest.mark.parametrize(
        "params",
        [
            {"risk_level": "severe"},
            {"colour": "red"},
            {"min_probability": "lots"},
            {"time_window": "next week"},
            {"start": "yesterday"},
            {"limit": -1},
            {"limit": 2.7},
            {"search": 39089},
            {"search": ["SAPPHIRE"]},
            {"time_window": ["0-6h"]},
            {"norad_id": 39089.5},
            {"sort_by": ["tca"]},
        ],
    )
    def test_invalid_parameters(self, online_service: TrackingService, params):
        with pytest.raises(InvalidRequest):
            online_service.get_conjunctions(**params)

    def test_analyze(self, online_service: TrackingService):
        result = online_service.analyze(
            {"filter": {"maxRange": 5.0}, "sort": "probability", "limit": 1, "groupBy": "risk_level"}
        )
        assert result.total == 2
        assert len(result.events) == 1
        assert result.events[0].norad_id2 == 34427
        assert {k: len(v) for k, v in result.groups.items()} == {"high": 1, "medium": 1, "low": 0}
        assert result.stats.total == 2

        data = result.to_dict()
        assert data["total"] == 2
        assert data["stats"]["byRiskLevel"] == {"high": 1, "medium": 1, "low": 0}
        assert set(data["groups"]) == {"high", "medium", "low"}

    def test_analyze_without_stats(self, online_service: TrackingService):
        result = online_service.analyze({"include_stats": False})
        assert result.stats is None
        assert result.groups is None
        assert "stats" not in result.to_dict()

    def test_analyze_group_by_object(self, online_service: TrackingService):
        result = online_service.analyze({"group_by": "norad_id"})
        assert len(result.groups[39089]) == 2
        assert len(result.groups[32382]) == 1

    @pytest.mark.parametrize(
        "config",
        [
            "risk_level=high",
            None,
            {"group_by": "operator"},
            {"group_by": ["risk"]},
            {"groupBy": {"by": "risk"}},
            {"sort": ["tca"]},
            {"sort_by": 3},
            {"limit": 2.5},
            {"filter": {"bogus": 1}},
            {"filter": ["high"]},
            {"filter": {"search": 42}},
        ],
    )
    def test_analyze_invalid(self, online_service: TrackingService, config):
        with pytest.raises(InvalidRequest):
            online_service.analyze(config)
