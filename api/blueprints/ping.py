"""
api/blueprints/ping.py
Blueprint do ciclo de ping.

Endpoints:
    POST /api/ping         — executa um ciclo agora
    GET  /api/ping/status  — estado do agendador (sincronia do timer da UI)
    POST /api/ping/turbo   — liga/desliga o modo turbo {enabled}
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from api.extensions import get_services
from api.http_utils import dump, json_body
from core.errors import ValidationError
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)

ping_bp = Blueprint("ping", __name__)


# ── Rotas ────────────────────────────────────────────


@ping_bp.post("")
def run_now():
    """Disparo manual. 409 se um ciclo já estiver rodando."""
    controller = get_services().controller
    results = controller.run_now()
    logger.info(
        "Ciclo manual concluído com %d resultados.",
        len(results),
    )
    return jsonify(
        {
            "results": [dump(r) for r in results],
            "pingStatus": dump(controller.get_status()),
        }
    )


@ping_bp.get("/status")
def status():
    """lastPingTime, nextPingTime, secondsUntilNextPing..."""
    return jsonify(
        dump(get_services().controller.get_status())
    )


@ping_bp.post("/turbo")
def turbo():
    """Alterna a cadência; o ciclo imediato roda antes da resposta."""
    enabled = json_body(request).get("enabled")
    if not isinstance(enabled, bool):
        raise ValidationError(
            "Campo 'enabled' (booleano) é obrigatório."
        )
    status = get_services().controller.set_turbo(enabled)
    return jsonify(
        {
            "success": True,
            "turboMode": status.turbo_mode,
            "pingStatus": dump(status),
        }
    )
