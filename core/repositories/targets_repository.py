"""
core/repositories/targets_repository.py
TargetRegistry — conjunto de hosts monitorados, chaveado por IP.

A remoção de um alvo apaga o histórico de probes na mesma transação.
"""

from __future__ import annotations

import ipaddress
import sqlite3
from pathlib import Path
from typing import Optional

from core.constants import DB_PATH
from core.db import ensure_schema, epoch_ms, transaction
from core.errors import ConflictError, ValidationError
from core.schemas import Target
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)


def normalize_ip(value: Optional[str]) -> str:
    """Valida e normaliza um IPv4 em dotted-quad."""
    if not value or not str(value).strip():
        raise ValidationError("IP address is required")
    try:
        address = ipaddress.IPv4Address(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Endereço IPv4 inválido: '{value}'.") from exc
    return str(address)


class TargetRegistry:
    """CRUD mínimo de alvos sobre a tabela ``targets``."""

    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = Path(db_path)
        ensure_schema(self.db_path)

    def add(self, ip: str, name: str, created_at: Optional[int] = None) -> Target:
        """
        Cadastra um novo alvo.

        Raises:
            ValidationError: IP ausente ou inválido.
            ConflictError: Já existe alvo com este IP (registro inalterado).
        """
        target = Target(
            ip=normalize_ip(ip),
            name=name,
            created_at=created_at if created_at is not None else epoch_ms(),
        )
        try:
            with transaction(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO targets (ip, name, created_at) VALUES (?, ?, ?)",
                    (target.ip, target.name, target.created_at),
                )
        except sqlite3.IntegrityError as exc:
            logger.info("Cadastro rejeitado: IP %s já existe.", target.ip)
            raise ConflictError(
                "A target with this IP address already exists"
            ) from exc

        logger.info("Alvo cadastrado: %s (%s).", target.name, target.ip)
        return target

    def remove(self, ip: str) -> bool:
        """Remove o alvo e todo o seu histórico. True se o alvo existia."""
        with transaction(self.db_path) as conn:
            conn.execute("DELETE FROM probe_results WHERE ip = ?", (ip,))
            cursor = conn.execute("DELETE FROM targets WHERE ip = ?", (ip,))
            existed = cursor.rowcount > 0
        if existed:
            logger.info("Alvo %s removido junto com o histórico.", ip)
        return existed

    def get(self, ip: str) -> Optional[Target]:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT ip, name, created_at FROM targets WHERE ip = ?",
                (ip,),
            ).fetchone()
        return _row_to_target(row) if row else None

    def exists(self, ip: str) -> bool:
        return self.get(ip) is not None

    def list(self) -> list[Target]:
        with transaction(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT ip, name, created_at
                FROM targets
                ORDER BY created_at, ip
                """
            ).fetchall()
        return [_row_to_target(row) for row in rows]


def _row_to_target(row: sqlite3.Row) -> Target:
    return Target(ip=row["ip"], name=row["name"], created_at=row["created_at"])
