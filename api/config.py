"""
api/config.py
Classes de configuração Flask por ambiente.

A classe ativa é selecionada ao chamar create_app(config_class=...).
"""

import os

from core.constants import (
    DB_PATH,
    DEFAULT_PING_INTERVAL_SECONDS,
    DEFAULT_TURBO_INTERVAL_SECONDS,
    DISCOVERY_MAX_ADDRESSES,
    DISCOVERY_PROBE_TIMEOUT_SECONDS,
    MAX_WINDOW_MINUTES,
    PROBE_TIMEOUT_SECONDS,
    RESULT_RETENTION_HOURS,
)


class BaseConfig:
    # ── Segurança ─────────────────────────────────────
    SECRET_KEY: str = os.getenv(
        "FLASK_SECRET_KEY", "dev-secret-change-in-prod"
    )

    # ── Banco de Dados ────────────────────────────────
    DATABASE_PATH: str = os.getenv(
        "PINGWATCH_DB_PATH", str(DB_PATH)
    )

    # ── Ciclo de ping ─────────────────────────────────
    PING_INTERVAL_SECONDS: float = float(
        os.getenv(
            "PING_INTERVAL_SECONDS",
            DEFAULT_PING_INTERVAL_SECONDS,
        )
    )
    TURBO_INTERVAL_SECONDS: float = float(
        os.getenv(
            "TURBO_INTERVAL_SECONDS",
            DEFAULT_TURBO_INTERVAL_SECONDS,
        )
    )
    PROBE_TIMEOUT_SECONDS: float = float(
        os.getenv(
            "PROBE_TIMEOUT_SECONDS", PROBE_TIMEOUT_SECONDS
        )
    )
    PROBE_MAX_WORKERS: int = int(
        os.getenv("PROBE_MAX_WORKERS", 16)
    )
    RESULT_RETENTION_HOURS: float = float(
        os.getenv(
            "RESULT_RETENTION_HOURS", RESULT_RETENTION_HOURS
        )
    )
    START_MONITOR: bool = True

    # ── Discovery ─────────────────────────────────────
    DISCOVERY_PROBE_TIMEOUT_SECONDS: float = float(
        os.getenv(
            "DISCOVERY_PROBE_TIMEOUT_SECONDS",
            DISCOVERY_PROBE_TIMEOUT_SECONDS,
        )
    )
    DISCOVERY_MAX_WORKERS: int = int(
        os.getenv("DISCOVERY_MAX_WORKERS", 32)
    )
    DISCOVERY_MAX_ADDRESSES: int = int(
        os.getenv(
            "DISCOVERY_MAX_ADDRESSES", DISCOVERY_MAX_ADDRESSES
        )
    )

    # ── Histórico bruto padrão da API ─────────────────
    RESULTS_DEFAULT_LIMIT: int = 100
    RESULTS_MAX_WINDOW_MINUTES: float = float(
        os.getenv(
            "RESULTS_MAX_WINDOW_MINUTES", MAX_WINDOW_MINUTES
        )
    )


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True
    TESTING: bool = False


class ProductionConfig(BaseConfig):
    DEBUG: bool = False
    TESTING: bool = False


class TestingConfig(BaseConfig):
    TESTING: bool = True
    START_MONITOR: bool = False
    PROBE_TIMEOUT_SECONDS: float = 1
    DISCOVERY_PROBE_TIMEOUT_SECONDS: float = 0.1
