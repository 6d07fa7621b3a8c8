"""
api/extensions.py
Serviços de monitoramento compartilhados pela aplicação Flask.

Instanciados uma vez no create_app() e guardados em
``app.extensions["pingwatch"]``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from flask import current_app

from core.repositories.results_repository import ResultStore
from core.repositories.targets_repository import TargetRegistry
from core.services.discovery_service import DiscoveryScanner
from core.services.probe_cycle_service import ProbeCycleController

EXTENSION_KEY = "pingwatch"


@dataclass(slots=True)
class MonitorServices:
    registry: TargetRegistry
    store: ResultStore
    controller: ProbeCycleController
    scanner: DiscoveryScanner
    # Fonte dos rótulos gerados para alvos sem nome
    rng: random.Random = field(default_factory=random.Random)


def get_services() -> MonitorServices:
    """Serviços da aplicação corrente."""
    return current_app.extensions[EXTENSION_KEY]
