"""
core/services/probe_cycle_service.py
ProbeCycleController — agendador adaptativo dos ciclos de ping.

Fluxo de um ciclo:
    1. Lê os alvos do TargetRegistry.
    2. Dispara um probe por alvo (fan-out em ThreadPoolExecutor, timeout
       individual de 10 s).
    3. Converte cada resposta em ProbeResult (up/down). Falha de um alvo
       nunca aborta o ciclo.
    4. Grava os resultados no ResultStore na ordem dos alvos e aplica a
       retenção.

Agendamento:
    - O próximo disparo é ``início do ciclo + intervalo`` (sem drift).
      Se o ciclo durar mais que o intervalo, o próximo dispara na hora e
      o atraso é logado.
    - ``set_mode`` cancela o timer, troca o intervalo, executa um ciclo
      imediato e rearma.
    - Nunca há dois ciclos simultâneos: disparo manual concorrente é
      rejeitado (ConflictError); disparo do timer concorrente é absorvido.

Estado compartilhado (ScheduleState) só é lido/alterado sob ``_state_lock``.
Ordem de aquisição: ``_control_lock`` → ``_cycle_guard`` → ``_state_lock``.
"""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from core.constants import (
    DEFAULT_PING_INTERVAL_SECONDS,
    DEFAULT_TURBO_INTERVAL_SECONDS,
    PROBE_TIMEOUT_SECONDS,
    RESULT_RETENTION_HOURS,
)
from core.db import epoch_ms
from core.errors import ConflictError, ProbeTimeout, UnexpectedError
from core.repositories.results_repository import ResultStore
from core.repositories.targets_repository import TargetRegistry
from core.schemas import ProbeResult, ScheduleMode, ScheduleStatus, Target
from core.services.reachability_service import Prober, ping_host
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(slots=True)
class CycleOutcome:
    """Resultado de um ciclo executado (ou falho)."""

    started_at: float
    finished_at: float
    results: list[ProbeResult] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    moment = datetime.fromtimestamp(ts, timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProbeCycleController:
    """Dono único do ScheduleState; expõe apenas operações serializadas."""

    def __init__(
        self,
        registry: TargetRegistry,
        store: ResultStore,
        prober: Prober = ping_host,
        *,
        normal_interval: float = DEFAULT_PING_INTERVAL_SECONDS,
        turbo_interval: float = DEFAULT_TURBO_INTERVAL_SECONDS,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        max_workers: int = 16,
        retention_hours: Optional[float] = RESULT_RETENTION_HOURS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._store = store
        self._prober = prober
        self._intervals = {
            ScheduleMode.NORMAL: float(normal_interval),
            ScheduleMode.TURBO: float(turbo_interval),
        }
        self._probe_timeout = probe_timeout
        self._max_workers = max(1, int(max_workers))
        self._retention_ms = (
            int(retention_hours * 3600 * 1000) if retention_hours else None
        )
        self._clock = clock

        self._control_lock = threading.Lock()
        self._cycle_guard = threading.Lock()
        self._state_lock = threading.Lock()

        # ── ScheduleState ──
        self._mode = ScheduleMode.NORMAL
        self._interval = self._intervals[ScheduleMode.NORMAL]
        self._last_cycle_at: Optional[float] = None
        self._next_cycle_at: Optional[float] = None

        self._running = False
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    # ── Propriedades ─────────────────────────────────────

    @property
    def mode(self) -> ScheduleMode:
        with self._state_lock:
            return self._mode

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_guard.locked()

    def interval_for(self, mode: ScheduleMode) -> float:
        return self._intervals[ScheduleMode(mode)]

    # ── Operações públicas ───────────────────────────────

    def start(self) -> None:
        """Executa um ciclo imediato e arma o timer periódico."""
        with self._control_lock:
            with self._state_lock:
                if self._running:
                    return
                self._running = True
            logger.info(
                "Monitoramento iniciado. Intervalo: %gs (%s).",
                self._interval,
                self._mode.value,
            )
            outcome = self._execute_cycle(blocking=True)
            with self._state_lock:
                self._rearm_locked(outcome.started_at)

    def stop(self) -> None:
        """Cancela o timer; um ciclo em andamento termina normalmente."""
        with self._state_lock:
            self._running = False
            self._cancel_timer_locked()
        logger.info("Monitoramento parado, nenhum novo ciclo será agendado.")

    def run_now(self) -> list[ProbeResult]:
        """
        Disparo manual de um ciclo.

        Raises:
            ConflictError: Já existe um ciclo em execução.
            UnexpectedError: O ciclo falhou como um todo (ex: leitura do
                registro).
        """
        logger.info("Disparo manual de ciclo recebido.")
        outcome = self._execute_cycle(blocking=False)
        if outcome is None:
            raise ConflictError("A ping cycle is already in progress")
        if outcome.error is not None:
            raise UnexpectedError("Ping cycle failed")
        return outcome.results

    def set_mode(self, mode: ScheduleMode | str) -> ScheduleStatus:
        """
        Troca a cadência (normal/turbo).

        Cancela o timer pendente, ajusta o intervalo, executa um ciclo
        imediato e rearma a partir do início desse ciclo. Pedir o modo já
        vigente não altera nada.
        """
        mode = ScheduleMode(mode)
        with self._control_lock:
            with self._state_lock:
                unchanged = mode == self._mode
                if not unchanged:
                    self._cancel_timer_locked()
                    self._mode = mode
                    self._interval = self._intervals[mode]
            if not unchanged:
                logger.info(
                    "%s modo turbo. Intervalo agora %gs.",
                    "Ativando" if mode is ScheduleMode.TURBO else "Desativando",
                    self._intervals[mode],
                )
                outcome = self._execute_cycle(blocking=True)
                with self._state_lock:
                    self._rearm_locked(outcome.started_at)
        return self.get_status()

    def set_turbo(self, enabled: bool) -> ScheduleStatus:
        return self.set_mode(ScheduleMode.TURBO if enabled else ScheduleMode.NORMAL)

    def get_status(self, now: Optional[float] = None) -> ScheduleStatus:
        if now is None:
            now = self._clock()
        with self._state_lock:
            mode = self._mode
            interval = self._interval
            last_at = self._last_cycle_at
            next_at = self._next_cycle_at

        if next_at is None:
            seconds_until_next = int(interval)
        else:
            seconds_until_next = max(0, math.floor(next_at - now))

        return ScheduleStatus(
            last_ping_time=_iso(last_at),
            next_ping_time=_iso(next_at),
            seconds_until_next_ping=seconds_until_next,
            ping_interval=interval,
            turbo_mode=mode is ScheduleMode.TURBO,
            mode=mode,
        )

    # ── Timer ────────────────────────────────────────────

    def _cancel_timer_locked(self) -> None:
        # Invalida também um timer que já disparou mas ainda não checou a geração
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _rearm_locked(self, cycle_started_at: float) -> None:
        next_at = cycle_started_at + self._interval
        self._next_cycle_at = next_at
        if not self._running:
            return

        delay = next_at - self._clock()
        if delay < 0:
            logger.warning(
                "Ciclo excedeu o intervalo de %gs em %.2fs, próximo ciclo imediato.",
                self._interval,
                -delay,
            )
            delay = 0

        self._cancel_timer_locked()
        generation = self._generation
        timer = threading.Timer(delay, self._on_timer, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self, generation: int) -> None:
        with self._state_lock:
            if not self._running or generation != self._generation:
                return

        outcome = self._execute_cycle(blocking=False)

        with self._state_lock:
            if not self._running or generation != self._generation:
                return
            if outcome is None:
                # Ciclo manual em andamento: ancora no início dele
                started_at = self._last_cycle_at or self._clock()
            else:
                started_at = outcome.started_at
            self._rearm_locked(started_at)

    # ── Ciclo ────────────────────────────────────────────

    def _execute_cycle(self, *, blocking: bool) -> Optional[CycleOutcome]:
        if not self._cycle_guard.acquire(blocking=blocking):
            logger.warning("Ciclo de ping já em execução, disparo ignorado.")
            return None
        try:
            started_at = self._clock()
            with self._state_lock:
                self._last_cycle_at = started_at

            outcome = CycleOutcome(started_at=started_at, finished_at=started_at)
            try:
                outcome.results = self._sweep(started_at)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Erro inesperado durante o ciclo de ping: %s", exc)
                outcome.error = exc
            outcome.finished_at = self._clock()
            logger.debug("Ciclo concluído em %.2fs.", outcome.duration)
            return outcome
        finally:
            self._cycle_guard.release()

    def _sweep(self, started_at: float) -> list[ProbeResult]:
        targets = self._registry.list()
        if not targets:
            logger.info("Nenhum alvo cadastrado, ciclo vazio.")
            return []

        logger.info("Iniciando ciclo de ping para %d alvos.", len(targets))
        workers = min(self._max_workers, len(targets))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="probe"
        ) as pool:
            results = list(pool.map(self._probe_target, targets))

        # Fan-in concluído: grava na ordem dos alvos, um resultado por IP
        self._store.ingest_many(results, registered_only=True)
        if self._retention_ms is not None:
            self._store.prune(epoch_ms(started_at) - self._retention_ms)

        alive = sum(1 for r in results if r.reachable)
        logger.info(
            "Ciclo concluído: %d/%d alvos respondendo.", alive, len(results)
        )
        return results

    def _probe_target(self, target: Target) -> ProbeResult:
        timestamp = epoch_ms(self._clock())
        try:
            reply = self._prober(target.ip, self._probe_timeout)
        except ProbeTimeout as exc:
            logger.debug("%s (%s): %s", target.name, target.ip, exc)
            return ProbeResult.down(target.ip, timestamp)
        except Exception as exc:  # noqa: BLE001
            logger.error("Erro ao pingar %s: %s", target.ip, exc)
            return ProbeResult.down(target.ip, timestamp)

        if reply.alive:
            logger.debug(
                "Resposta de %s (%s): %s ms",
                target.name, target.ip, reply.latency_ms,
            )
            return ProbeResult.up(target.ip, timestamp, reply.latency_ms)

        logger.debug("%s (%s) inalcançável.", target.name, target.ip)
        return ProbeResult.down(target.ip, timestamp)
