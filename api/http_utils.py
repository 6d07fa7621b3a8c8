"""
api/http_utils.py
Utilitários HTTP exclusivos da camada web Flask.
"""

from __future__ import annotations

import json
import math
from typing import Any

from flask import Request
from pydantic import BaseModel

from core.errors import ValidationError


def json_body(request: Request) -> dict[str, Any]:
    """Corpo JSON como dict (vazio se ausente ou malformado)."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def dump(model: BaseModel) -> dict[str, Any]:
    """Serializa um modelo com os nomes camelCase da API."""
    return model.model_dump(mode="json", by_alias=True)


def sse_frame(event: BaseModel) -> str:
    """Um evento Server-Sent Events: ``event:`` + ``data:`` JSON."""
    payload = json.dumps(dump(event), separators=(",", ":"))
    event_type = getattr(event, "type", "message")
    return f"event: {event_type}\ndata: {payload}\n\n"


def parse_positive_float(
    value: str | None,
    default: float,
    field: str,
    maximum: float | None = None,
) -> float:
    """Lê um query param numérico positivo, finito e até *maximum*."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Parâmetro '{field}' deve ser numérico."
        ) from exc
    if not math.isfinite(number):
        raise ValidationError(
            f"Parâmetro '{field}' deve ser um número finito."
        )
    if number <= 0:
        raise ValidationError(
            f"Parâmetro '{field}' deve ser positivo."
        )
    if maximum is not None and number > maximum:
        raise ValidationError(
            f"Parâmetro '{field}' deve ser no máximo {maximum:g}."
        )
    return number
