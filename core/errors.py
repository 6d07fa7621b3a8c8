"""
core/errors.py
Taxonomia de erros do PingWatch.

Cada erro carrega o status HTTP correspondente; a camada web (api/)
converte qualquer ``MonitorError`` em ``{"error": mensagem}``.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Erro base do domínio de monitoramento."""

    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MonitorError):
    """Entrada ausente ou malformada (ip, faixa CIDR, janela)."""

    http_status = 400


class ConflictError(MonitorError):
    """Alvo duplicado, ciclo em andamento ou discovery já ativo."""

    http_status = 409


class NotFoundError(MonitorError):
    """Alvo inexistente."""

    http_status = 404


class UnexpectedError(MonitorError):
    """Falha interna (store, registro)."""

    http_status = 500


class ProbeTimeout(MonitorError):
    """
    Probe ICMP sem resposta dentro do timeout.

    Sempre recuperado localmente como resultado ``down``;
    nunca chega ao chamador.
    """

    http_status = 504
