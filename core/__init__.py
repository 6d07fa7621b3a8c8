"""
core/
Núcleo do PingWatch.

Contém:
- schemas.py      : Modelos Pydantic (Target, ProbeResult, ScheduleStatus, eventos).
- errors.py       : Taxonomia de erros com status HTTP.
- db.py           : Acesso SQLite compartilhado pelos repositórios.
- repositories/   : TargetRegistry e ResultStore.
- services/       : Prober ICMP, ProbeCycleController e DiscoveryScanner.
"""

from .errors import (
    ConflictError,
    MonitorError,
    NotFoundError,
    ProbeTimeout,
    UnexpectedError,
    ValidationError,
)
from .schemas import ProbeResult, ProbeStatus, ScheduleMode, ScheduleStatus, Target

__all__ = [
    "ConflictError",
    "MonitorError",
    "NotFoundError",
    "ProbeResult",
    "ProbeStatus",
    "ProbeTimeout",
    "ScheduleMode",
    "ScheduleStatus",
    "Target",
    "UnexpectedError",
    "ValidationError",
]
