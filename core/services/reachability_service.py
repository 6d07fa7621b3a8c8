"""
core/services/reachability_service.py
Teste de conectividade ICMP (ping) — a primitiva de probe.

Compartilhada pelo ProbeCycleController e pelo DiscoveryScanner.
Agnóstica à interface, usada pelo agendador e pela API web.
"""

from __future__ import annotations

import re
import subprocess
from typing import Callable

from core.errors import ProbeTimeout
from core.schemas import ProbeReply

# Assinatura de qualquer prober: (host, timeout em segundos) -> ProbeReply
Prober = Callable[[str, float], ProbeReply]

_LATENCY_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms")

# Folga além do -W do ping antes de matar o processo
_SUBPROCESS_GRACE_SECONDS = 1.0


def parse_latency(output: str) -> float | None:
    """Extrai a latência (ms) da linha ``time=12.3 ms`` do ping."""
    match = _LATENCY_RE.search(output or "")
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def ping_host(host: str, timeout: float = 1) -> ProbeReply:
    """
    Envia um único echo request para *host*.

    Retorna ``ProbeReply(alive=False)`` quando não há resposta dentro de
    *timeout*.

    Raises:
        ProbeTimeout: O processo ``ping`` não terminou nem com a folga.
    """
    if not host:
        return ProbeReply(alive=False)
    try:
        result = subprocess.run(
            [
                "ping",
                "-c",
                "1",
                "-W",
                f"{timeout:g}",
                host,
            ],
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout + _SUBPROCESS_GRACE_SECONDS,
        )
    except subprocess.TimeoutExpired as exc:
        raise ProbeTimeout(
            f"Sem resposta de {host} em {timeout:g}s."
        ) from exc
    except OSError:
        return ProbeReply(alive=False)

    if result.returncode != 0:
        return ProbeReply(alive=False)
    return ProbeReply(
        alive=True,
        latency_ms=parse_latency(result.stdout),
    )
