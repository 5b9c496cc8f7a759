from __future__ import annotations
"""Audit logging decorator for profile and validation write endpoints.

Usage:

@audit_log('PROFILE.CREATE', entity='UserProfile', entity_id_key='id', meta_keys=['email', 'role'])
def create_profile():
    ... return {'id': p.id, 'email': p.email, 'role': p.role}, 201

@audit_log('PROFILE.UPDATE', entity='UserProfile', entity_id_key='id',
           diff_keys=['role', 'station'], pre_fetch=lambda a, kw: _snapshot(kw['profile_id']))
def update_profile(profile_id): ...

Parameters:
  action: required audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object whose value becomes entity_id
  entity_id_arg: path parameter used for entity_id when entity_id_key is absent
  meta_keys: keys projected from the returned JSON into meta
  meta_builder: callable(data, rv, args, kwargs) -> meta dict; overrides meta_keys
  diff_keys / pre_fetch: record before/after values for the listed keys

Only successful responses (status < 400) are audited. Failures inside the
decorator are logged and never change the endpoint's response.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict
from flask import current_app

from dfs_portal.services.audit import add_audit
from dfs_portal import get_db


def _extract_payload(rv: Any):
    """Return (data, status) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            try:
                data, status = _extract_payload(rv)
                if status >= 400:
                    return rv
                if not isinstance(data, dict):
                    add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
                    get_db().commit()
                    return rv
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta = None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {k: data.get(k) for k in meta_keys if k in data}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = {}
                    for k in diff_keys:
                        if k in before_snapshot and k in data and before_snapshot.get(k) != data.get(k):
                            changes[k] = {'before': before_snapshot.get(k), 'after': data.get(k)}
                    if changes:
                        meta = dict(meta or {})
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                current_app.logger.exception('audit write failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
