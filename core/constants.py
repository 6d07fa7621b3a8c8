"""
core/constants.py
Constantes de domínio do PingWatch.

Single source of truth para caminho do banco de dados, cadências de ping,
timeouts de probe e a tabela de buckets da consulta janelada.
"""

from __future__ import annotations

from pathlib import Path

# ── Caminho do banco de dados SQLite ─────────────────────────
DB_PATH: Path = (
    Path(__file__).resolve().parent.parent
    / "inventory"
    / "pingwatch.db"
)

# ── Cadência do ciclo de ping (segundos) ─────────────────────
DEFAULT_PING_INTERVAL_SECONDS: float = 60
DEFAULT_TURBO_INTERVAL_SECONDS: float = 5

# ── Timeouts de probe (segundos) ─────────────────────────────
PROBE_TIMEOUT_SECONDS: float = 10
DISCOVERY_PROBE_TIMEOUT_SECONDS: float = 0.1

# ── Limites de varredura ─────────────────────────────────────
DISCOVERY_MAX_ADDRESSES: int = 4096

# ── Retenção do histórico ────────────────────────────────────
RESULT_RETENTION_HOURS: float = 72

# Maior janela aceita pela consulta janelada (3 dias)
MAX_WINDOW_MINUTES: float = 3 * 24 * 60

# ── Janela → largura do bucket (ms) ──────────────────────────
# Avaliada em ordem: primeira linha cujo limite (minutos) cobre a janela.
BUCKET_TABLE: tuple[tuple[float, int], ...] = (
    (1, 5 * 1000),
    (5, 15 * 1000),
    (15, 30 * 1000),
    (60, 60 * 1000),
    (480, 5 * 60 * 1000),
    (1440, 15 * 60 * 1000),
)
BUCKET_FALLBACK_MS: int = 60 * 60 * 1000

# ── Escala compartilhada dos gráficos ────────────────────────
GLOBAL_MAX_FLOOR_MS: float = 100
GLOBAL_MAX_HEADROOM: float = 1.1
