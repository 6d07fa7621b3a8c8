"""Testes do ResultStore: ingestão, reset atômico, retenção e consulta janelada."""

from __future__ import annotations

import pytest

from core.errors import ValidationError
from core.repositories.results_repository import bucket_ms_for, downsample
from core.schemas import ProbeResult, ProbeStatus

NOW = 1_700_000_000_000
IP = "10.0.0.5"


def _up(ts: int, latency: float = 20.0, ip: str = IP) -> ProbeResult:
    return ProbeResult.up(ip, ts, latency)


class TestBucketSelection:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (0.5, 5_000),
            (1, 5_000),
            (5, 15_000),
            (15, 30_000),
            (60, 60_000),
            (480, 300_000),
            (1440, 900_000),
            (4320, 3_600_000),
        ],
    )
    def test_bucket_for_window(self, minutes, expected):
        assert bucket_ms_for(minutes) == expected


class TestWindowedQuery:
    def test_empty_store_five_minutes_gives_21_unknown_points(self, store):
        points = store.query(IP, 5, now=NOW)
        assert len(points) == 21
        assert all(p.status is ProbeStatus.UNKNOWN for p in points)
        assert all(p.reachable is False and p.latency_ms is None for p in points)
        assert points[0].timestamp == NOW - 5 * 60_000
        assert points[-1].timestamp == NOW

    @pytest.mark.parametrize("minutes", [1, 5, 15, 60, 480, 1440, 4320])
    def test_point_count_and_spacing_independent_of_data(self, store, minutes):
        bucket = bucket_ms_for(minutes)
        store.ingest(_up(NOW - 1_000))
        points = store.query(IP, minutes, now=NOW)
        assert len(points) == (minutes * 60_000) // bucket + 1
        gaps = {b.timestamp - a.timestamp for a, b in zip(points, points[1:])}
        assert gaps == {bucket}

    def test_closest_result_is_snapped_to_grid(self, store):
        start = NOW - 5 * 60_000
        store.ingest(_up(start + 15_000 + 3_000, latency=33.0))
        points = store.query(IP, 5, now=NOW)
        chosen = points[1]
        assert chosen.timestamp == start + 15_000
        assert chosen.status is ProbeStatus.UP
        assert chosen.latency_ms == 33.0
        assert points[2].status is ProbeStatus.UNKNOWN

    def test_result_exactly_half_bucket_away_is_not_used(self, store):
        start = NOW - 5 * 60_000
        store.ingest(_up(start + 30_000 + 7_500))
        points = store.query(IP, 5, now=NOW)
        assert points[2].status is ProbeStatus.UNKNOWN
        assert points[3].status is ProbeStatus.UNKNOWN

    def test_results_before_window_are_excluded(self, store):
        start = NOW - 5 * 60_000
        store.ingest(_up(start - 1))
        points = store.query(IP, 5, now=NOW)
        assert points[0].status is ProbeStatus.UNKNOWN

    def test_nearest_wins_and_ties_prefer_older(self):
        start = 0
        results = [
            _up(10_000, latency=1.0),
            _up(14_000, latency=2.0),
            _up(16_000, latency=3.0),
        ]
        points = downsample(IP, results, start, 30_000, 15_000)
        # t=15000: 14000 e 16000 empatam em 1000 ms, vence o mais antigo
        assert points[1].latency_ms == 2.0
        # t=0: 10000 está fora do meio bucket (7500)
        assert points[0].status is ProbeStatus.UNKNOWN

    def test_down_results_keep_their_status(self, store):
        store.ingest(ProbeResult.down(IP, NOW))
        points = store.query(IP, 1, now=NOW)
        assert points[-1].status is ProbeStatus.DOWN
        assert points[-1].latency_ms is None

    def test_non_positive_window_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.query(IP, 0, now=NOW)

    @pytest.mark.parametrize("minutes", [float("nan"), float("inf")])
    def test_non_finite_window_is_rejected(self, store, minutes):
        with pytest.raises(ValidationError):
            store.query(IP, minutes, now=NOW)


class TestGlobalMax:
    def test_floor_is_applied_without_data(self, store):
        assert store.global_max([IP, "10.0.0.6"], 5, now=NOW) == 110

    def test_headroom_over_the_largest_latency(self, store):
        store.ingest(_up(NOW, latency=50.0))
        store.ingest(_up(NOW, latency=200.0, ip="10.0.0.6"))
        assert store.global_max([IP, "10.0.0.6"], 5, now=NOW) == 220


class TestRawHistory:
    def test_list_results_returns_last_n_in_order(self, store):
        for i in range(5):
            store.ingest(_up(NOW + i * 1_000, latency=float(i)))
        results = store.list_results(IP, limit=3)
        assert [r.latency_ms for r in results] == [2.0, 3.0, 4.0]
        assert store.latest(IP).latency_ms == 4.0

    def test_reset_history_clears_only_that_ip(self, store):
        store.ingest(_up(NOW))
        store.ingest(_up(NOW, ip="10.0.0.6"))
        assert store.reset_history(IP) == 1
        assert store.count(IP) == 0
        assert store.count("10.0.0.6") == 1
        assert store.latest(IP) is None

    def test_registered_only_drops_unknown_targets(self, store, registry):
        registry.add(IP, "known")
        written = store.ingest_many(
            [_up(NOW), _up(NOW, ip="10.0.0.99")],
            registered_only=True,
        )
        assert written == 1
        assert store.count(IP) == 1
        assert store.count("10.0.0.99") == 0

    def test_prune_removes_only_older_results(self, store):
        store.ingest(_up(NOW - 10_000))
        store.ingest(_up(NOW))
        assert store.prune(NOW - 5_000) == 1
        assert [r.timestamp for r in store.list_results(IP)] == [NOW]
