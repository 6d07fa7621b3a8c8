"""
core/repositories/results_repository.py
ResultStore — histórico append-only de probes por IP, no SQLite.

Operações:
    ingest        — adiciona um ProbeResult ao log do IP
    list_results  — últimos N resultados brutos, em ordem cronológica
    latest        — resultado mais recente de um IP
    reset_history — apaga atomicamente o log de um IP
    prune         — expira resultados anteriores a um instante
    query         — série janelada/reamostrada numa grade fixa
    global_max    — escala compartilhada para várias séries
"""

from __future__ import annotations

import bisect
import math
from pathlib import Path
from typing import Iterable, Optional, Sequence

from core.constants import (
    BUCKET_FALLBACK_MS,
    BUCKET_TABLE,
    DB_PATH,
    GLOBAL_MAX_FLOOR_MS,
    GLOBAL_MAX_HEADROOM,
)
from core.db import ensure_schema, epoch_ms, transaction
from core.errors import ValidationError
from core.schemas import ProbeResult, ProbeStatus
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)


# ── Grade de amostragem ──────────────────────────────────────────────────────


def bucket_ms_for(window_minutes: float) -> int:
    """Largura do bucket (ms) para a janela informada."""
    for limit_minutes, bucket_ms in BUCKET_TABLE:
        if window_minutes <= limit_minutes:
            return bucket_ms
    return BUCKET_FALLBACK_MS


def downsample(
    ip: str,
    results: Sequence[ProbeResult],
    window_start: int,
    now: int,
    bucket_ms: int,
) -> list[ProbeResult]:
    """
    Reamostra *results* (ordenados por timestamp) na grade
    ``window_start, window_start + bucket_ms, ...`` até ``now`` inclusive.

    Para cada ponto ``t`` escolhe o resultado com menor ``|timestamp - t|``,
    desde que a distância seja estritamente menor que meio bucket. Em caso
    de empate vence o resultado mais antigo. O ponto escolhido sai com o
    timestamp normalizado para ``t``; sem candidato, sai um placeholder
    ``unknown``.
    """
    in_window = [r for r in results if r.timestamp >= window_start]
    stamps = [r.timestamp for r in in_window]
    half = bucket_ms / 2

    points: list[ProbeResult] = []
    t = window_start
    while t <= now:
        chosen = _closest(in_window, stamps, t, half)
        if chosen is None:
            points.append(ProbeResult.placeholder(ip, t))
        else:
            points.append(chosen.model_copy(update={"timestamp": t}))
        t += bucket_ms
    return points


def _closest(
    results: Sequence[ProbeResult],
    stamps: Sequence[int],
    t: int,
    half: float,
) -> Optional[ProbeResult]:
    idx = bisect.bisect_left(stamps, t)
    best: Optional[ProbeResult] = None
    best_diff = math.inf

    # Vizinho à esquerda: primeiro do grupo com o mesmo timestamp
    if idx > 0:
        left = bisect.bisect_left(stamps, stamps[idx - 1])
        diff = t - stamps[left]
        if diff < half:
            best, best_diff = results[left], diff

    if idx < len(stamps):
        diff = stamps[idx] - t
        if diff < half and diff < best_diff:
            best = results[idx]

    return best


# ── Store ────────────────────────────────────────────────────────────────────


class ResultStore:
    """
    Log append-only de ProbeResult por IP.

    A ordem por IP é a ordem de ingestão (coluna ``id``), que o controlador
    de ciclos garante ser não-decrescente em timestamp.
    """

    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = Path(db_path)
        ensure_schema(self.db_path)

    # -------- escrita --------

    def ingest(self, result: ProbeResult) -> None:
        self.ingest_many([result])

    def ingest_many(
        self,
        results: Iterable[ProbeResult],
        *,
        registered_only: bool = False,
    ) -> int:
        """
        Grava vários resultados numa única transação, na ordem recebida.

        Com *registered_only*, resultados de IPs que não estão mais em
        ``targets`` (removidos durante o ciclo) são descartados no próprio
        INSERT. Retorna quantos resultados foram gravados.
        """
        rows = [
            (
                r.ip,
                r.timestamp,
                int(r.reachable),
                r.latency_ms,
                r.status.value,
            )
            for r in results
        ]
        if not rows:
            return 0
        if registered_only:
            sql = """
                INSERT INTO probe_results (ip, timestamp, reachable, latency_ms, status)
                SELECT ?1, ?2, ?3, ?4, ?5
                WHERE EXISTS (SELECT 1 FROM targets WHERE ip = ?1)
            """
        else:
            sql = """
                INSERT INTO probe_results (ip, timestamp, reachable, latency_ms, status)
                VALUES (?, ?, ?, ?, ?)
            """
        with transaction(self.db_path) as conn:
            before = conn.total_changes
            conn.executemany(sql, rows)
            written = conn.total_changes - before
        if written < len(rows):
            logger.info(
                "%d resultados descartados: alvo removido durante o ciclo.",
                len(rows) - written,
            )
        return written

    def reset_history(self, ip: str) -> int:
        """Apaga todo o histórico do IP numa única transação."""
        with transaction(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM probe_results WHERE ip = ?",
                (ip,),
            )
            removed = cursor.rowcount
        logger.info("Histórico de %s zerado (%d resultados).", ip, removed)
        return removed

    def prune(self, before_ms: int) -> int:
        """Remove resultados com timestamp anterior a *before_ms*."""
        with transaction(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM probe_results WHERE timestamp < ?",
                (before_ms,),
            )
            removed = cursor.rowcount
        if removed:
            logger.debug("Retenção: %d resultados expirados removidos.", removed)
        return removed

    # -------- leitura --------

    def list_results(self, ip: str, limit: Optional[int] = None) -> list[ProbeResult]:
        """Últimos *limit* resultados (todos se None), do mais antigo ao mais novo."""
        sql = """
            SELECT ip, timestamp, reachable, latency_ms, status
            FROM probe_results
            WHERE ip = ?
            ORDER BY id DESC
        """
        params: tuple = (ip,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (ip, int(limit))
        with transaction(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_result(row) for row in reversed(rows)]

    def latest(self, ip: str) -> Optional[ProbeResult]:
        results = self.list_results(ip, limit=1)
        return results[0] if results else None

    def count(self, ip: str) -> int:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM probe_results WHERE ip = ?",
                (ip,),
            ).fetchone()
        return int(row[0])

    def _since(self, ip: str, since_ms: int) -> list[ProbeResult]:
        with transaction(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT ip, timestamp, reachable, latency_ms, status
                FROM probe_results
                WHERE ip = ? AND timestamp >= ?
                ORDER BY timestamp, id
                """,
                (ip, since_ms),
            ).fetchall()
        return [_row_to_result(row) for row in rows]

    # -------- consulta janelada --------

    def query(
        self,
        ip: str,
        window_minutes: float,
        now: Optional[int] = None,
    ) -> list[ProbeResult]:
        """
        Série da janela ``[now - window_minutes, now]`` alinhada à grade do
        bucket correspondente. Retorna sempre ``floor(janela / bucket) + 1``
        pontos, independente de quantos resultados existam.
        """
        if (
            window_minutes is None
            or not math.isfinite(window_minutes)
            or window_minutes <= 0
        ):
            raise ValidationError("A janela deve ser um número positivo de minutos.")
        if now is None:
            now = epoch_ms()
        window_start = now - int(window_minutes * 60000)
        bucket = bucket_ms_for(window_minutes)
        return downsample(ip, self._since(ip, window_start), window_start, now, bucket)

    def global_max(
        self,
        ips: Iterable[str],
        window_minutes: float,
        now: Optional[int] = None,
    ) -> int:
        """
        Maior latência das séries janeladas de *ips*, com piso de 100 ms e
        10% de folga, arredondada para cima.
        """
        if now is None:
            now = epoch_ms()
        peak = GLOBAL_MAX_FLOOR_MS
        for ip in ips:
            for point in self.query(ip, window_minutes, now=now):
                if point.latency_ms is not None and point.latency_ms > peak:
                    peak = point.latency_ms
        # round() absorve o erro de ponto flutuante (100 * 1.1 = 110.00000000000001)
        return math.ceil(round(peak * GLOBAL_MAX_HEADROOM, 6))


def _row_to_result(row) -> ProbeResult:
    return ProbeResult(
        ip=row["ip"],
        timestamp=row["timestamp"],
        reachable=bool(row["reachable"]),
        latency_ms=row["latency_ms"],
        status=ProbeStatus(row["status"]),
    )
