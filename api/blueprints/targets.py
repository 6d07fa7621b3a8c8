"""
api/blueprints/targets.py
Blueprint de gerenciamento dos alvos monitorados.

Endpoints:
    GET    /api/targets              — lista com último status
    POST   /api/targets              — cadastra alvo {ip, name?}
    DELETE /api/targets/<ip>         — remove alvo + histórico
    POST   /api/targets/<ip>/reset   — zera o histórico do alvo
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from api.extensions import get_services
from api.http_utils import dump, json_body
from core.errors import NotFoundError
from core.services.naming import generate_host_name
from internalloggin.logger import setup_logger

logger = setup_logger(__name__)

targets_bp = Blueprint("targets", __name__)


# ── Rotas ────────────────────────────────────────────


@targets_bp.get("")
def list_targets():
    """Lista alvos com o resultado mais recente de cada um."""
    services = get_services()
    payload = []
    for target in services.registry.list():
        entry = dump(target)
        latest = services.store.latest(target.ip)
        entry["status"] = (
            latest.status.value if latest else "unknown"
        )
        entry["latencyMs"] = (
            latest.latency_ms if latest else None
        )
        entry["lastSeen"] = (
            latest.timestamp if latest else None
        )
        payload.append(entry)
    return jsonify(payload)


@targets_bp.post("")
def create_target():
    """Cadastra um alvo. 201 / 400 / 409."""
    services = get_services()
    body = json_body(request)
    name = str(body.get("name") or "").strip()
    if not name:
        name = generate_host_name(services.rng)

    target = services.registry.add(
        body.get("ip"), name
    )
    return jsonify(dump(target)), 201


@targets_bp.delete("/<ip>")
def delete_target(ip: str):
    """Remove o alvo e, na mesma transação, o histórico."""
    logger.info("Removendo alvo %s.", ip)
    get_services().registry.remove(ip)
    return "", 204


@targets_bp.post("/<ip>/reset")
def reset_target(ip: str):
    """Zera o histórico de probes do alvo."""
    services = get_services()
    if not services.registry.exists(ip):
        logger.info(
            "Reset rejeitado: alvo %s não encontrado.", ip
        )
        raise NotFoundError("Target not found")
    services.store.reset_history(ip)
    return jsonify({"success": True})
