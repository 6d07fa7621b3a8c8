"""Testes do ProbeCycleController: ciclos, modos, sobreposição e agendamento."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime

import pytest

from core.errors import ConflictError, ProbeTimeout, UnexpectedError
from core.schemas import ProbeReply, ProbeResult, ProbeStatus, ScheduleMode
from core.services.probe_cycle_service import ProbeCycleController
from internalloggin.logger import ROOT_LOGGER_NAME
from tests.conftest import FakeProber


def _controller(registry, store, prober, **kwargs):
    kwargs.setdefault("normal_interval", 60)
    kwargs.setdefault("turbo_interval", 5)
    return ProbeCycleController(registry, store, prober, **kwargs)


@pytest.fixture
def two_targets(registry):
    registry.add("10.0.0.1", "alive_one")
    registry.add("10.0.0.9", "dead_one")
    return registry


class TestCycle:
    def test_history_grows_by_one_per_cycle(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        for _ in range(4):
            controller.run_now()
        assert store.count("10.0.0.1") == 4
        assert store.count("10.0.0.9") == 4

    def test_results_map_reachability(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        results = {r.ip: r for r in controller.run_now()}
        assert results["10.0.0.1"].status is ProbeStatus.UP
        assert results["10.0.0.1"].latency_ms == 12.5
        assert results["10.0.0.9"].status is ProbeStatus.DOWN
        assert results["10.0.0.9"].reachable is False
        assert results["10.0.0.9"].latency_ms is None

    def test_probe_timeout_is_recorded_as_down(self, registry, store):
        registry.add("10.0.0.3", "slow")

        def timing_out(host, timeout):
            raise ProbeTimeout("sem resposta")

        controller = _controller(registry, store, timing_out)
        [result] = controller.run_now()
        assert result.status is ProbeStatus.DOWN

    def test_one_failing_target_does_not_abort_cycle(self, registry, store):
        registry.add("10.0.0.1", "ok")
        registry.add("10.0.0.2", "broken")
        prober = FakeProber(alive={"10.0.0.1"}, failing={"10.0.0.2"})
        controller = _controller(registry, store, prober)
        results = {r.ip: r.status for r in controller.run_now()}
        assert results == {"10.0.0.1": ProbeStatus.UP, "10.0.0.2": ProbeStatus.DOWN}

    def test_empty_registry_yields_empty_cycle(self, registry, store, prober):
        controller = _controller(registry, store, prober)
        assert controller.run_now() == []
        assert controller.get_status().last_ping_time is not None

    def test_probe_timeout_setting_is_passed_to_prober(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober, probe_timeout=10)
        controller.run_now()
        assert {timeout for _, timeout in prober.calls} == {10}

    def test_registry_failure_is_reported_and_next_cycle_runs(self, registry, store, prober):
        registry.add("10.0.0.1", "ok")

        class FlakyRegistry:
            broken = True

            def list(self):
                if self.broken:
                    raise RuntimeError("registro indisponível")
                return registry.list()

        flaky = FlakyRegistry()
        controller = _controller(flaky, store, prober)
        with pytest.raises(UnexpectedError):
            controller.run_now()

        flaky.broken = False
        assert len(controller.run_now()) == 1

    def test_retention_prunes_expired_history(self, registry, store, prober):
        registry.add("10.0.0.1", "ok")
        store.ingest(ProbeResult.up("10.0.0.1", 1_000, 1.0))
        controller = _controller(registry, store, prober, retention_hours=1)
        controller.run_now()
        assert all(r.timestamp > 1_000 for r in store.list_results("10.0.0.1"))
        assert store.count("10.0.0.1") == 1


class TestOverlap:
    def test_manual_trigger_during_cycle_is_rejected(self, registry, store):
        registry.add("10.0.0.1", "held")
        gate = threading.Event()
        prober = FakeProber(alive={"10.0.0.1"}, gate=gate)
        controller = _controller(registry, store, prober)

        worker = threading.Thread(target=controller.run_now)
        worker.start()
        assert prober.entered.wait(2)
        assert controller.cycle_in_progress

        with pytest.raises(ConflictError):
            controller.run_now()

        gate.set()
        worker.join(5)
        assert store.count("10.0.0.1") == 1

    def test_mode_change_waits_for_running_cycle(self, registry, store):
        registry.add("10.0.0.1", "held")
        gate = threading.Event()
        prober = FakeProber(alive={"10.0.0.1"}, gate=gate)
        controller = _controller(registry, store, prober)

        worker = threading.Thread(target=controller.run_now)
        worker.start()
        assert prober.entered.wait(2)

        releaser = threading.Timer(0.2, gate.set)
        releaser.start()
        status = controller.set_mode(ScheduleMode.TURBO)
        worker.join(5)

        assert status.turbo_mode is True
        assert store.count("10.0.0.1") == 2
        assert prober.max_in_flight == 1

    def test_target_removed_mid_cycle_leaves_no_history(self, registry, store):
        registry.add("10.0.0.1", "leaving")
        registry.add("10.0.0.2", "staying")
        gate = threading.Event()
        prober = FakeProber(alive={"10.0.0.1", "10.0.0.2"}, gate=gate)
        controller = _controller(registry, store, prober)

        worker = threading.Thread(target=controller.run_now)
        worker.start()
        assert prober.entered.wait(2)

        registry.remove("10.0.0.1")
        gate.set()
        worker.join(5)

        assert store.count("10.0.0.1") == 0
        assert store.count("10.0.0.2") == 1
        registry.add("10.0.0.1", "back_again")
        assert store.list_results("10.0.0.1") == []


class TestStatusAndMode:
    def test_status_surface_before_any_cycle(self, registry, store, prober):
        controller = _controller(registry, store, prober)
        status = controller.get_status()
        assert status.last_ping_time is None
        assert status.next_ping_time is None
        assert status.seconds_until_next_ping == 60
        assert status.ping_interval == 60
        assert status.turbo_mode is False

    def test_seconds_until_next_uses_floor_and_clamps(self, registry, store, prober):
        controller = _controller(registry, store, prober, clock=lambda: 1_000.0)
        controller.start()
        try:
            assert controller.get_status(now=1_010.5).seconds_until_next_ping == 49
            assert controller.get_status(now=5_000.0).seconds_until_next_ping == 0
        finally:
            controller.stop()

    def test_consecutive_status_calls_do_not_increase_countdown(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        controller.start()
        try:
            first = controller.get_status()
            second = controller.get_status()
            assert second.seconds_until_next_ping <= first.seconds_until_next_ping
            assert second.mode == first.mode
            assert second.ping_interval == first.ping_interval
        finally:
            controller.stop()

    def test_turbo_switch_runs_cycle_and_updates_interval(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        status = controller.set_mode(ScheduleMode.TURBO)
        assert status.ping_interval == 5
        assert status.turbo_mode is True
        assert status.last_ping_time is not None
        assert store.count("10.0.0.1") == 1
        assert controller.get_status().ping_interval == 5

    def test_requesting_current_mode_is_noop(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        status = controller.set_turbo(False)
        assert status.turbo_mode is False
        assert store.count("10.0.0.1") == 0

    def test_switch_back_to_normal(self, two_targets, store, prober):
        controller = _controller(two_targets, store, prober)
        controller.set_turbo(True)
        status = controller.set_turbo(False)
        assert status.ping_interval == 60
        assert status.mode is ScheduleMode.NORMAL
        assert store.count("10.0.0.1") == 2


class TestScheduling:
    def test_timer_keeps_firing_at_interval(self, registry, store, prober):
        registry.add("10.0.0.1", "ok")
        controller = _controller(registry, store, prober, normal_interval=0.2)
        controller.start()
        time.sleep(0.75)
        controller.stop()
        assert store.count("10.0.0.1") >= 3

    def test_overrun_fires_next_cycle_without_overlap(self, registry, store):
        registry.add("10.0.0.1", "slow")
        prober = FakeProber(alive={"10.0.0.1"}, delay=0.15)
        controller = _controller(registry, store, prober, normal_interval=0.05)
        controller.start()
        time.sleep(0.6)
        controller.stop()
        time.sleep(0.2)
        assert store.count("10.0.0.1") >= 3
        assert prober.max_in_flight == 1

    def test_stop_prevents_further_cycles(self, registry, store, prober):
        registry.add("10.0.0.1", "ok")
        controller = _controller(registry, store, prober, normal_interval=0.1)
        controller.start()
        controller.stop()
        settled = store.count("10.0.0.1")
        time.sleep(0.35)
        assert store.count("10.0.0.1") == settled
        assert controller.is_running is False

    def test_scheduled_cycle_survives_whole_cycle_failure(self, registry, store):
        registry.add("10.0.0.1", "ok")
        calls = {"n": 0}

        def always_up(host, timeout):
            return ProbeReply(alive=True, latency_ms=1.0)

        class BrokenOnce:
            def list(self):
                calls["n"] += 1
                if calls["n"] == 2:
                    raise RuntimeError("falha transitória")
                return registry.list()

        controller = _controller(BrokenOnce(), store, always_up, normal_interval=0.1)
        controller.start()
        time.sleep(0.45)
        controller.stop()
        assert calls["n"] >= 3
        assert store.count("10.0.0.1") >= 2


class SteppingClock:
    """Relógio manual; o prober avança o tempo para simular ciclos longos."""

    def __init__(self, start: float) -> None:
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


@pytest.fixture
def pingwatch_logs(caplog):
    # O logger raiz da aplicação não propaga; o handler do caplog entra direto nele
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger=ROOT_LOGGER_NAME)
    yield caplog
    root.removeHandler(caplog.handler)


class TestDriftControl:
    def test_next_cycle_is_anchored_at_cycle_start(self, registry, store):
        registry.add("10.0.0.1", "slow")
        clock = SteppingClock(1_000.0)

        def slow_probe(host, timeout):
            clock.advance(7)
            return ProbeReply(alive=True, latency_ms=1.0)

        controller = _controller(registry, store, slow_probe, clock=clock)
        controller.start()
        try:
            status = controller.get_status()
            last = datetime.fromisoformat(status.last_ping_time.replace("Z", "+00:00"))
            nxt = datetime.fromisoformat(status.next_ping_time.replace("Z", "+00:00"))
            assert last.timestamp() == 1_000.0
            assert (nxt - last).total_seconds() == status.ping_interval == 60
            assert status.seconds_until_next_ping == 53
        finally:
            controller.stop()

    def test_overrun_is_logged_as_warning(self, registry, store, pingwatch_logs):
        registry.add("10.0.0.1", "slow")
        clock = SteppingClock(1_000.0)
        calls = {"n": 0}

        def first_probe_overruns(host, timeout):
            calls["n"] += 1
            if calls["n"] == 1:
                clock.advance(8)
            return ProbeReply(alive=True, latency_ms=1.0)

        controller = _controller(
            registry, store, first_probe_overruns, normal_interval=5, clock=clock
        )
        controller.start()
        controller.stop()

        overruns = [
            r for r in pingwatch_logs.records
            if r.levelno == logging.WARNING and "excedeu o intervalo" in r.getMessage()
        ]
        assert overruns
        assert "3.00s" in overruns[0].getMessage()
