"""
core/repositories/
Camada de acesso a dados (DAL) do PingWatch.

Repositórios compartilhados pelo agendador, pelo discovery e pela
camada web (api/).
"""

from core.repositories.results_repository import (
    ResultStore,
    bucket_ms_for,
    downsample,
)
from core.repositories.targets_repository import (
    TargetRegistry,
    normalize_ip,
)

__all__ = [
    # results
    "ResultStore",
    "bucket_ms_for",
    "downsample",
    # targets
    "TargetRegistry",
    "normalize_ip",
]
