"""
api/__init__.py
App Factory do PingWatch (Flask).

Uso:
    from api import create_app
    app = create_app()
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, redirect, url_for

from api.blueprints.discovery import discovery_bp
from api.blueprints.health import health_bp
from api.blueprints.ping import ping_bp
from api.blueprints.results import results_bp
from api.blueprints.targets import targets_bp
from api.config import DevelopmentConfig
from api.extensions import EXTENSION_KEY, MonitorServices
from core.errors import MonitorError
from core.repositories.results_repository import ResultStore
from core.repositories.targets_repository import TargetRegistry
from core.services.discovery_service import DiscoveryScanner
from core.services.probe_cycle_service import ProbeCycleController
from core.services.reachability_service import Prober, ping_host
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)


def build_services(
    config: dict,
    *,
    prober: Optional[Prober] = None,
    discovery_prober: Optional[Prober] = None,
    rng: Optional[random.Random] = None,
) -> MonitorServices:
    """Monta registro, store, controlador e scanner a partir da config."""
    rng = rng or random.Random()
    db_path = Path(config["DATABASE_PATH"])
    registry = TargetRegistry(db_path)
    store = ResultStore(db_path)
    controller = ProbeCycleController(
        registry,
        store,
        prober or ping_host,
        normal_interval=config["PING_INTERVAL_SECONDS"],
        turbo_interval=config["TURBO_INTERVAL_SECONDS"],
        probe_timeout=config["PROBE_TIMEOUT_SECONDS"],
        max_workers=config["PROBE_MAX_WORKERS"],
        retention_hours=config["RESULT_RETENTION_HOURS"],
    )
    scanner = DiscoveryScanner(
        registry,
        discovery_prober or prober or ping_host,
        probe_timeout=config["DISCOVERY_PROBE_TIMEOUT_SECONDS"],
        max_workers=config["DISCOVERY_MAX_WORKERS"],
        max_addresses=config["DISCOVERY_MAX_ADDRESSES"],
        rng=rng,
    )
    return MonitorServices(
        registry=registry,
        store=store,
        controller=controller,
        scanner=scanner,
        rng=rng,
    )


def create_app(
    config_class=DevelopmentConfig,
    *,
    prober: Optional[Prober] = None,
    discovery_prober: Optional[Prober] = None,
    rng: Optional[random.Random] = None,
) -> Flask:
    """Cria e configura a instância Flask."""

    app = Flask(__name__)
    app.config.from_object(config_class)

    app.extensions[EXTENSION_KEY] = build_services(
        app.config,
        prober=prober,
        discovery_prober=discovery_prober,
        rng=rng,
    )

    # ── Blueprints ────────────────────────────────────
    app.register_blueprint(
        health_bp, url_prefix="/health"
    )
    app.register_blueprint(
        targets_bp, url_prefix="/api/targets"
    )
    app.register_blueprint(
        results_bp, url_prefix="/api/results"
    )
    app.register_blueprint(
        ping_bp, url_prefix="/api/ping"
    )
    app.register_blueprint(
        discovery_bp, url_prefix="/api/discover"
    )

    # ── Erros ─────────────────────────────────────────
    @app.errorhandler(MonitorError)
    def handle_monitor_error(exc: MonitorError):
        if exc.http_status >= 500:
            logger.error("Erro interno: %s", exc.message)
        return (
            jsonify({"error": exc.message}),
            exc.http_status,
        )

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        # Erros HTTP do próprio Flask (404 de rota, 405...) seguem intactos
        code = getattr(exc, "code", None)
        if isinstance(code, int) and code < 500:
            return (
                jsonify({"error": getattr(exc, "description", str(exc))}),
                code,
            )
        logger.exception("Erro inesperado: %s", exc)
        return (
            jsonify({"error": "Internal server error"}),
            500,
        )

    # ── Rota raiz ─────────────────────────────────────
    @app.get("/")
    def index():
        return redirect(url_for("ping.status"))

    return app
