from __future__ import annotations
"""Small request-payload validation helpers with consistent 400 semantics."""
from typing import Iterable, List
from flask import abort
from werkzeug.exceptions import BadRequest


class PayloadValidationError(BadRequest):
    """400 carrying a list of field errors; rendered under ``error.errors``."""

    def __init__(self, errors: List[dict], description: str = None):
        self.errors = errors
        super().__init__(description=description or (errors[0]['message'] if errors else 'invalid payload'))


def validate_choice(value: str, allowed: Iterable[str], field_name: str) -> str:
    """Return value when inside allowed, otherwise abort with 400."""
    if value not in allowed:
        abort(400, description=f"{field_name} invalid")
    return value


def validate_station_access(value) -> list:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        abort(400, description='station_access must be a list of station names')
    return value


__all__ = ['PayloadValidationError', 'validate_choice', 'validate_station_access']
