"""Tests for batch element-set acquisition and the fallback chain."""

from __future__ import annotations

import random
import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from orbtrack.core.catalog import CANADIAN_SATELLITES, generate_synthetic
from orbtrack.core.tle import TLE, with_epoch
from orbtrack.data.acquisition import (
    AcquisitionService,
    OmissionReason,
    chunked,
    first_present,
    resolve_catalog,
    validate_norad_ids,
)
from orbtrack.data.cache import ElementSetCache
from orbtrack.data.spacetrack import SpaceTrackClient
from orbtrack.exceptions import AuthenticationFailed, InvalidRequest, NetworkOrTimeout

NOW = datetime(2024, 2, 14, 12, 0, 0, tzinfo=timezone.utc)

TEMPLATE_LINE1 = "1 39089U 13009A   24100.50000000  .00000000  00000-0  00000-0 0  9999"
TEMPLATE_LINE2 = "2 39089  98.0000 180.0000 0001000  90.0000 270.0000 14.00000000000000"


def _tle_for(norad_id: int) -> TLE:
    line1 = f"1 {norad_id:05d}" + with_epoch(TEMPLATE_LINE1, NOW)[7:]
    line2 = f"2 {norad_id:05d}" + TEMPLATE_LINE2[7:]
    return TLE.from_lines(line1, line2, name=f"OBJECT {norad_id}")


class FakeClient:
    """Stands in for SpaceTrackClient; records calls and the peak concurrency."""

    def __init__(self, failures: dict[int, Exception] | None = None, missing: set[int] | None = None,
                 jitter_s: float = 0.0) -> None:
        self.failures = failures or {}
        self.missing = missing or set()
        self.jitter_s = jitter_s
        self.calls: list[int] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def fetch_tle(self, norad_id: int) -> TLE | None:
        with self._lock:
            self.calls.append(norad_id)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.jitter_s:
                time.sleep(random.uniform(0, self.jitter_s))
            if norad_id in self.failures:
                raise self.failures[norad_id]
            if norad_id in self.missing:
                return None
            return _tle_for(norad_id)
        finally:
            with self._lock:
                self.active -= 1


def _service(client, cache=None, batch_size=5, sleeps=None) -> AcquisitionService:
    recorded = sleeps if sleeps is not None else []
    return AcquisitionService(
        client,
        cache if cache is not None else ElementSetCache(clock=lambda: NOW),
        batch_size=batch_size,
        batch_delay_s=1.0,
        sleep=recorded.append,
    )


class TestValidation:
    def test_accepts_list_and_tuple(self):
        assert validate_norad_ids([1, 2]) == [1, 2]
        assert validate_norad_ids((3,)) == [3]
        assert validate_norad_ids([]) == []

    @pytest.mark.parametrize("bad", ["39089", 39089, None, {"ids": [1]}, [1, "2"], [1.0], [True]])
    def test_rejects_everything_else(self, bad):
        with pytest.raises(InvalidRequest):
            validate_norad_ids(bad)

    def test_invalid_batch_never_touches_client(self):
        client = FakeClient()
        with pytest.raises(InvalidRequest):
            _service(client).fetch_batch("39089,32382")
        assert client.calls == []

    def test_chunked(self):
        assert chunked(list(range(12)), 5) == [[0, 1, 2, 3, 4], [5, 6, 7, 8, 9], [10, 11]]
        assert chunked([], 5) == []

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValueError):
            AcquisitionService(FakeClient(), ElementSetCache(), batch_size=0)


class TestFetchOne:
    def test_fetch_and_cache(self):
        client = FakeClient()
        cache = ElementSetCache(clock=lambda: NOW)
        entry = _service(client, cache).fetch_one(39089)
        assert entry.norad_id == 39089
        assert cache.get(39089) is entry

    def test_fresh_cache_hit_skips_network(self):
        client = FakeClient()
        cache = ElementSetCache(clock=lambda: NOW)
        cached = cache.put(39089, _tle_for(39089))
        assert _service(client, cache).fetch_one(39089) is cached
        assert client.calls == []

    def test_stale_cache_refetched(self):
        clock = {"now": NOW}
        cache = ElementSetCache(ttl_s=3600, clock=lambda: clock["now"])
        stale = cache.put(39089, _tle_for(39089))
        clock["now"] = NOW + timedelta(hours=2)
        client = FakeClient()
        fresh = _service(client, cache).fetch_one(39089)
        assert client.calls == [39089]
        assert fresh is not stale
        assert fresh.acquired_at == clock["now"]

    def test_missing_credentials_returns_none(self):
        client = SpaceTrackClient(identity=None, password=None)
        client._session = MagicMock()
        service = _service(client)
        assert service.fetch_one(39089) is None
        assert service.acquire(39089).reason is OmissionReason.CREDENTIALS_MISSING
        client._session.post.assert_not_called()
        client._session.get.assert_not_called()

    @pytest.mark.parametrize(
        "error,reason",
        [
            (AuthenticationFailed("rejected"), OmissionReason.AUTHENTICATION_FAILED),
            (NetworkOrTimeout("timeout"), OmissionReason.NETWORK_ERROR),
            (ValueError("garbage"), OmissionReason.INVALID_RECORD),
        ],
    )
    def test_failures_become_omissions(self, error, reason):
        service = _service(FakeClient(failures={39089: error}))
        result = service.acquire(39089)
        assert not result.acquired
        assert result.reason is reason
        assert service.fetch_one(39089) is None

    def test_not_found(self):
        result = _service(FakeClient(missing={39089})).acquire(39089)
        assert result.reason is OmissionReason.NOT_FOUND

    def test_failure_does_not_touch_cache(self):
        cache = ElementSetCache(clock=lambda: NOW)
        _service(FakeClient(failures={39089: NetworkOrTimeout("x")}), cache).fetch_one(39089)
        assert 39089 not in cache


class TestFetchBatch:
    def test_groups_and_pauses(self):
        ids = list(range(10001, 10013))
        sleeps: list[float] = []
        client = FakeClient(jitter_s=0.01)
        results = _service(client, batch_size=5, sleeps=sleeps).acquire_batch(ids)

        assert [r.norad_id for r in results] == ids
        assert [r.entry.norad_id for r in results] == ids
        assert sleeps == [1.0, 1.0]
        assert client.peak <= 5
        assert sorted(client.calls) == ids

    def test_single_group_no_pause(self):
        sleeps: list[float] = []
        _service(FakeClient(), sleeps=sleeps).fetch_batch([1, 2, 3])
        assert sleeps == []

    def test_empty_batch(self):
        sleeps: list[float] = []
        assert _service(FakeClient(), sleeps=sleeps).fetch_batch([]) == {}
        assert sleeps == []

    def test_partial_failure(self):
        client = FakeClient(
            failures={2: NetworkOrTimeout("timeout"), 4: AuthenticationFailed("401")},
            missing={5},
        )
        acquired = _service(client).fetch_batch([1, 2, 3, 4, 5, 6])
        assert sorted(acquired) == [1, 3, 6]
        assert all(acquired[i].norad_id == i for i in acquired)

    def test_all_failures_empty_mapping(self):
        client = FakeClient(failures={i: NetworkOrTimeout("down") for i in (1, 2)})
        assert _service(client).fetch_batch([1, 2]) == {}

    def test_cache_hits_inside_batch(self):
        cache = ElementSetCache(clock=lambda: NOW)
        cache.put(2, _tle_for(2))
        client = FakeClient()
        acquired = _service(client, cache).fetch_batch([1, 2, 3])
        assert sorted(acquired) == [1, 2, 3]
        assert sorted(client.calls) == [1, 3]


class TestFallbacks:
    def test_first_present_order(self):
        calls = []

        def none(key):
            calls.append("none")
            return None

        def value(key):
            calls.append("value")
            return key * 2

        def never(key):
            calls.append("never")
            return 0

        assert first_present((none, value, never), 21) == 42
        assert calls == ["none", "value"]

    def test_first_present_all_absent(self):
        assert first_present([lambda k: None], 1) is None
        assert first_present([], 1) is None

    def test_first_present_keeps_falsy_values(self):
        assert first_present([lambda k: 0, lambda k: 5], None) == 0

    def test_resolve_catalog_prefers_acquired(self):
        cache = ElementSetCache(clock=lambda: NOW)
        acquired = {39089: cache.put(39089, _tle_for(39089))}

        resolved = resolve_catalog(CANADIAN_SATELLITES, acquired, NOW)

        assert [e.norad_id for e in resolved] == [e.norad_id for e in CANADIAN_SATELLITES]
        sapphire = resolved[0]
        assert sapphire.line1 == acquired[39089].line1
        assert sapphire.name == "SAPPHIRE"
        for original, entry in zip(CANADIAN_SATELLITES[1:], resolved[1:]):
            assert entry == generate_synthetic(original, NOW)

    def test_resolve_catalog_offline(self):
        resolved = resolve_catalog(CANADIAN_SATELLITES, {}, NOW)
        assert len(resolved) == len(CANADIAN_SATELLITES)
        assert all(e.line1[18:32] == "24045.50000000" for e in resolved)
