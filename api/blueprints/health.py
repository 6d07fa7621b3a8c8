"""
api/blueprints/health.py
Blueprint de saúde da aplicação.

Endpoints:
    GET /health/ping — liveness check
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from api.extensions import get_services

health_bp = Blueprint("health", __name__)


@health_bp.get("/ping")
def ping():
    """Liveness check da aplicação."""
    services = get_services()
    return jsonify(
        {
            "status": "ok",
            "monitorRunning": services.controller.is_running,
            "discoveryActive": services.scanner.active,
        }
    )
