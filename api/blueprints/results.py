"""
api/blueprints/results.py
Blueprint de histórico de resultados de probe.

Endpoints:
    GET /api/results/chart?minutes=W      — séries janeladas de todos os
                                            alvos + escala compartilhada
    GET /api/results/<ip>?limit=N         — últimos N resultados brutos
    GET /api/results/<ip>/window?minutes=W — série janelada de um alvo
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from api.extensions import get_services
from api.http_utils import dump, parse_positive_float
from core.db import epoch_ms
from core.errors import ValidationError
from core.repositories.results_repository import bucket_ms_for

results_bp = Blueprint("results", __name__)

_DEFAULT_WINDOW_MINUTES: float = 5


# ── Helpers ──────────────────────────────────────────


def _parse_limit(value: str | None, default: int) -> int:
    try:
        limit = int(value) if value else default
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


def _window_minutes() -> float:
    return parse_positive_float(
        request.args.get("minutes"),
        _DEFAULT_WINDOW_MINUTES,
        "minutes",
        maximum=current_app.config["RESULTS_MAX_WINDOW_MINUTES"],
    )


# ── Rotas ────────────────────────────────────────────


@results_bp.get("/chart")
def chart():
    """Séries de todos os alvos com um único eixo Y."""
    services = get_services()
    minutes = _window_minutes()
    now = epoch_ms()
    ips = [t.ip for t in services.registry.list()]

    series = {
        ip: [
            dump(point)
            for point in services.store.query(
                ip, minutes, now=now
            )
        ]
        for ip in ips
    }
    return jsonify(
        {
            "minutes": minutes,
            "bucketMs": bucket_ms_for(minutes),
            "globalMax": services.store.global_max(
                ips, minutes, now=now
            ),
            "series": series,
        }
    )


@results_bp.get("/<ip>")
def raw_results(ip: str):
    """Últimos *limit* resultados brutos (cronológicos)."""
    limit = _parse_limit(
        request.args.get("limit"),
        current_app.config["RESULTS_DEFAULT_LIMIT"],
    )
    results = get_services().store.list_results(
        ip, limit=limit
    )
    return jsonify([dump(r) for r in results])


@results_bp.get("/<ip>/window")
def windowed_results(ip: str):
    """Série reamostrada na grade do bucket da janela."""
    if not ip.strip():
        raise ValidationError("IP address is required")
    minutes = _window_minutes()
    points = get_services().store.query(ip, minutes)
    return jsonify(
        {
            "ip": ip,
            "minutes": minutes,
            "bucketMs": bucket_ms_for(minutes),
            "points": [dump(p) for p in points],
        }
    )
