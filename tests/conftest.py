"""Fixtures compartilhadas: banco SQLite temporário e probers falsos."""

from __future__ import annotations

import os
import random
import tempfile
import threading
import time

os.environ.setdefault("PINGWATCH_LOG_DIR", tempfile.mkdtemp(prefix="pingwatch-logs-"))

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from api.config import TestingConfig  # noqa: E402
from api.extensions import EXTENSION_KEY  # noqa: E402
from core.repositories.results_repository import ResultStore  # noqa: E402
from core.repositories.targets_repository import TargetRegistry  # noqa: E402
from core.schemas import ProbeReply  # noqa: E402


class FakeProber:
    """
    Prober determinístico.

    *alive*: IPs que respondem; *failing*: IPs que levantam exceção;
    *delay*: segundos de espera em cada probe; *gate*: Event que segura
    todos os probes até ser liberado.
    """

    def __init__(self, alive=(), latency=12.5, failing=(), delay=0.0, gate=None):
        self.alive = set(alive)
        self.failing = set(failing)
        self.latency = latency
        self.delay = delay
        self.gate = gate
        self.entered = threading.Event()
        self.calls: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, host: str, timeout: float) -> ProbeReply:
        with self._lock:
            self.calls.append((host, timeout))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.entered.set()
        try:
            if self.gate is not None:
                self.gate.wait(5)
            if self.delay:
                time.sleep(self.delay)
            if host in self.failing:
                raise RuntimeError(f"probe quebrado para {host}")
            if host in self.alive:
                return ProbeReply(alive=True, latency_ms=self.latency)
            return ProbeReply(alive=False)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "pingwatch-test.db"


@pytest.fixture
def registry(db_path):
    return TargetRegistry(db_path)


@pytest.fixture
def store(db_path):
    return ResultStore(db_path)


@pytest.fixture
def prober():
    return FakeProber(alive={"10.0.0.1", "10.0.0.2"})


@pytest.fixture
def app(db_path, prober):
    class _Config(TestingConfig):
        DATABASE_PATH = str(db_path)

    application = create_app(
        _Config,
        prober=prober,
        rng=random.Random(42),
    )
    yield application
    application.extensions[EXTENSION_KEY].controller.stop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]
