"""
api/blueprints/discovery.py
Blueprint de discovery de hosts.

Endpoints:
    POST /api/discover  — varre {networkRange} e transmite os eventos
                          (progress, host, complete, error) via SSE
"""

from __future__ import annotations

from typing import Generator

from flask import (
    Blueprint,
    Response,
    request,
    stream_with_context,
)

from api.extensions import get_services
from api.http_utils import json_body, sse_frame
from core.services.discovery_service import DiscoveryRun

discovery_bp = Blueprint("discovery", __name__)


# ── SSE Generator ────────────────────────────────────


def _sse_generator(
    run: DiscoveryRun,
) -> Generator[str, None, None]:
    """Um frame SSE por evento, até o evento terminal."""
    yield "retry: 5000\n\n"
    for event in run.events():
        yield sse_frame(event)


# ── Rotas ────────────────────────────────────────────


@discovery_bp.post("")
def discover():
    """Discovery com progresso em tempo real.

    400 faixa ausente/inválida, 409 varredura já ativa. A varredura
    segue até o fim mesmo se o cliente desconectar.
    """
    network = json_body(request).get("networkRange")
    run = get_services().scanner.start(network)

    return Response(
        stream_with_context(_sse_generator(run)),
        content_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
