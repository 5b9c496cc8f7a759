from __future__ import annotations
from typing import Optional
from flask import abort


def apply_multi_sort(query, sort_expr: Optional[str], allowed: dict, tie_breaker):
    """Order ``query`` by a comma-separated sort expression (``-field`` for descending).

    Fields must be keys of ``allowed``; ``tie_breaker`` is always appended ascending.
    """
    clauses = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token.lstrip('-')
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
