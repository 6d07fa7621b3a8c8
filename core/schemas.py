"""
core/schemas.py
───────────────
Define os modelos Pydantic que representam o contrato de dados do PingWatch:
alvos monitorados, resultados de probe, estado do agendador e eventos do
discovery.

Design Decisions
────────────────
1. Timestamps em milissegundos desde a época (int):
   A janela de histórico (ResultStore.query) trabalha com aritmética de
   grade em ms. Guardar o valor inteiro evita conversões repetidas e
   mantém a ordenação trivial no SQLite.

2. ProbeStatus com três valores:
   ``up`` e ``down`` são resultados reais de probe. ``unknown`` significa
   AUSÊNCIA de dado no bucket; nunca é persistido, só aparece nos pontos
   de preenchimento gerados pela consulta janelada.

3. Aliases camelCase:
   A superfície HTTP mantém os nomes consumidos pelo dashboard
   (latencyMs, lastPingTime, turboMode...). Os campos Python ficam em
   snake_case e a serialização usa ``model_dump(by_alias=True)``.

4. Modelos imutáveis onde o domínio exige:
   ProbeResult é append-only; ``frozen=True`` impede mutação acidental
   depois da ingestão.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ───────────────────────────────────────────────────────────────────

class ProbeStatus(str, Enum):
    """Estado de um ponto da série de latência."""

    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"    # bucket sem amostra (não é falha de probe)


class ScheduleMode(str, Enum):
    """Cadência do ciclo de probes."""

    NORMAL = "normal"
    TURBO = "turbo"


# ─── Alvo monitorado ─────────────────────────────────────────────────────────

class Target(BaseModel):
    """
    Host monitorado, identificado unicamente pelo IP (dotted-quad).

    ``created_at`` é o instante de cadastro em ms; o registro nunca altera
    o IP de um alvo existente.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    ip: str = Field(..., description="Endereço IPv4 do host (chave única).")
    name: str = Field(..., description="Rótulo exibido no dashboard.")
    created_at: int = Field(
        ...,
        alias="added",
        description="Instante de cadastro (ms desde a época).",
    )


# ─── Resultado de probe ──────────────────────────────────────────────────────

class ProbeResult(BaseModel):
    """
    Resultado de um único probe ICMP contra um alvo.

    Invariantes:
        - reachable=True  ⇔ status=up e latency_ms preenchido.
        - reachable=False ⇒ latency_ms=None (status down ou unknown).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ip: str
    timestamp: int = Field(..., description="Instante do probe (ms).")
    reachable: bool = False
    latency_ms: Optional[float] = Field(default=None, alias="latencyMs")
    status: ProbeStatus = ProbeStatus.UNKNOWN

    @classmethod
    def up(cls, ip: str, timestamp: int, latency_ms: Optional[float]) -> "ProbeResult":
        return cls(
            ip=ip,
            timestamp=timestamp,
            reachable=True,
            latency_ms=latency_ms,
            status=ProbeStatus.UP,
        )

    @classmethod
    def down(cls, ip: str, timestamp: int) -> "ProbeResult":
        return cls(ip=ip, timestamp=timestamp, status=ProbeStatus.DOWN)

    @classmethod
    def placeholder(cls, ip: str, timestamp: int) -> "ProbeResult":
        """Ponto de preenchimento para bucket sem amostra."""
        return cls(ip=ip, timestamp=timestamp, status=ProbeStatus.UNKNOWN)


class ProbeReply(BaseModel):
    """Resposta bruta do prober (antes de virar ProbeResult)."""

    alive: bool
    latency_ms: Optional[float] = None


# ─── Estado do agendador ─────────────────────────────────────────────────────

class ScheduleStatus(BaseModel):
    """
    Fotografia do ScheduleState exposta em GET /api/ping/status.

    ``last_ping_time``/``next_ping_time`` são ISO-8601 (UTC) ou None antes
    do primeiro ciclo.
    """

    model_config = ConfigDict(populate_by_name=True)

    last_ping_time: Optional[str] = Field(default=None, alias="lastPingTime")
    next_ping_time: Optional[str] = Field(default=None, alias="nextPingTime")
    seconds_until_next_ping: int = Field(..., alias="secondsUntilNextPing")
    ping_interval: float = Field(..., alias="pingInterval")
    turbo_mode: bool = Field(..., alias="turboMode")
    mode: ScheduleMode = ScheduleMode.NORMAL


# ─── Discovery ───────────────────────────────────────────────────────────────

class DiscoveredHost(BaseModel):
    """Host que respondeu ao probe durante uma varredura."""

    ip: str
    name: str
    alive: bool = True
    time: Optional[float] = Field(default=None, description="Latência (ms).")
    added: int = Field(..., description="Instante da descoberta (ms).")


class ProgressEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["progress"] = "progress"
    scanned: int
    total: int
    found: int
    current_ip: str = Field(..., alias="currentIp")
    percent: int


class HostEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["host"] = "host"
    host: DiscoveredHost
    added_to_targets: bool = Field(..., alias="addedToTargets")
    already_exists: bool = Field(..., alias="alreadyExists")


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    hosts: list[DiscoveredHost]


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


DiscoveryEvent = Union[ProgressEvent, HostEvent, CompleteEvent, ErrorEvent]
