"""
core/db.py
Utilitário de acesso ao banco de dados SQLite.

Funções compartilhadas pelo TargetRegistry e pelo ResultStore. Os dois
usam o mesmo arquivo para que a remoção de um alvo apague o histórico na
mesma transação.
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

# Aguarda o lock de escrita de outra thread em vez de falhar na hora
_BUSY_TIMEOUT_SECONDS = 30


def connect(db_path: Path) -> sqlite3.Connection:
    """Abre uma conexão com row_factory=Row, criando o diretório se preciso."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=_BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(db_path: Path) -> Iterator[sqlite3.Connection]:
    """
    Conexão de vida curta: commit ao sair sem erro, rollback em exceção,
    fechamento sempre.

    Tudo o que for executado dentro do bloco é visto pelos leitores como
    uma única alteração atômica.
    """
    conn = connect(db_path)
    try:
        with conn:
            yield conn
    finally:
        conn.close()


def ensure_schema(db_path: Path) -> None:
    """
    Cria as tabelas de alvos e resultados caso não existam.

    Segue o padrão ``CREATE TABLE IF NOT EXISTS`` (sem sistema de migração
    formal).
    """
    with transaction(db_path) as conn:
        conn.executescript(
            """
            -- Hosts monitorados (chave: ip)
            CREATE TABLE IF NOT EXISTS targets (
                ip          TEXT    PRIMARY KEY,
                name        TEXT    NOT NULL,
                created_at  INTEGER NOT NULL
            );

            -- Histórico append-only de probes
            CREATE TABLE IF NOT EXISTS probe_results (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                ip          TEXT    NOT NULL,
                timestamp   INTEGER NOT NULL,
                reachable   INTEGER NOT NULL,
                latency_ms  REAL,
                status      TEXT    NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_probe_results_ip_ts
                ON probe_results(ip, timestamp, id);
            CREATE INDEX IF NOT EXISTS idx_probe_results_ts
                ON probe_results(timestamp);
            """
        )


def epoch_ms(seconds: float | None = None) -> int:
    """Converte segundos (time.time()) para ms inteiros; None = agora."""
    if seconds is None:
        seconds = time.time()
    return int(seconds * 1000)
