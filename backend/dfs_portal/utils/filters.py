from __future__ import annotations
from typing import Any, Dict
from flask import abort


def parse_bool(raw) -> bool:
    val = str(raw).strip().lower()
    if val in ('1', 'true', 'yes'):
        return True
    if val in ('0', 'false', 'no'):
        return False
    raise ValueError(raw)


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params):
    """Apply query-string filters.

    specs: { param: {'op': callable(query, value)->query, 'coerce': callable (optional), 'validate': callable (optional)} }
    Unknown or empty params are ignored; coerce/validate failures abort with 400.
    """
    for name, meta in specs.items():
        raw = params.get(name)
        if raw is None or raw == '':
            continue
        val = raw
        if 'coerce' in meta:
            try:
                val = meta['coerce'](raw)
            except (TypeError, ValueError):
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        query = meta['op'](query, val)
    return query
