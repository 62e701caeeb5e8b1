"""Helpers for reading JSON request bodies and query arguments."""
from typing import Any, Dict, Optional

from flask import request

from insulcrm.exceptions import ValidationError


def get_json_payload() -> Dict[str, Any]:
    """Return the request body as a dict; anything else is a validation error."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def int_arg(name: str) -> Optional[int]:
    """Optional integer query argument; non-numeric values are ignored."""
    value = request.args.get(name, '').strip()
    return int(value) if value.isdigit() else None


def bool_arg(name: str) -> bool:
    return request.args.get(name, '').strip().lower() in ('1', 'true', 'yes')
