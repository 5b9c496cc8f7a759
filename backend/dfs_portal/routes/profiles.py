from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, func
from dfs_portal import get_db
from dfs_portal.models.user_profile import UserProfile
from dfs_portal.constants.permissions import Feature, Action, PORTAL_ROLES
from dfs_portal.config.settings import get_settings
from dfs_portal.decorators.auth import require_feature
from dfs_portal.decorators.audit import audit_log
from dfs_portal.services.profile_guard import validate_profile, can_delete_profile
from dfs_portal.utils.filters import apply_filters, parse_bool
from dfs_portal.utils.listing import apply_pagination, make_list_response
from dfs_portal.utils.sorting import apply_multi_sort
from dfs_portal.utils.validation import PayloadValidationError, validate_station_access

profiles_bp = Blueprint('profiles', __name__)

EDITABLE_FIELDS = ('user_id', 'employee_id', 'email', 'role', 'station', 'station_access', 'phone', 'is_active')


@profiles_bp.get('')
@require_feature(Feature.EMPLOYEES, Action.VIEW)
def list_profiles():
    session = get_db()
    q = session.query(UserProfile)
    filter_specs = {
        'role': {'op': lambda qu, v: qu.filter(UserProfile.role == v)},
        'station': {'op': lambda qu, v: qu.filter(UserProfile.station == v)},
        'is_active': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(UserProfile.is_active == v)},
        'email': {'op': lambda qu, v: qu.filter(UserProfile.email.ilike(f'%{v}%'))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'email': UserProfile.email,
        'employee_id': UserProfile.employee_id,
        'role': UserProfile.role,
        'station': UserProfile.station,
        'updated_at': UserProfile.updated_at,
        'id': UserProfile.id,
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, UserProfile.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest = session.execute(select(func.max(UserProfile.updated_at))).scalar()
    return make_list_response([_profile_json(p) for p in rows], total, limit, offset, str(latest or ''))


@profiles_bp.get('/<int:profile_id>')
@require_feature(Feature.EMPLOYEES, Action.VIEW)
def get_profile(profile_id: int):
    return _profile_json(_load(profile_id))


@profiles_bp.post('')
@require_feature(Feature.EMPLOYEES, Action.MANAGE_USERS)
@audit_log('PROFILE.CREATE', entity='UserProfile', entity_id_key='id', meta_keys=['email', 'role', 'station'])
def create_profile():
    session = get_db()
    data = _read_payload(request.json or {})
    for required in ('employee_id', 'email', 'role'):
        if not data.get(required):
            abort(400, description='employee_id, email and role required')
    data.setdefault('station', UserProfile.STATION_ALL)
    data.setdefault('is_active', True)
    _guard(session, data, is_update=False)
    p = UserProfile(**data)
    session.add(p); session.commit()
    current_app.logger.info('profile %s created role=%s', p.id, p.role)
    return _profile_json(p), 201


@profiles_bp.put('/<int:profile_id>')
@require_feature(Feature.EMPLOYEES, Action.MANAGE_USERS)
@audit_log('PROFILE.UPDATE', entity='UserProfile', entity_id_key='id',
           diff_keys=['role', 'station', 'station_access', 'is_active', 'email'],
           pre_fetch=lambda a, kw: _snapshot(kw.get('profile_id')))
def update_profile(profile_id: int):
    session = get_db()
    p = _load(profile_id)
    changes = _read_payload(request.json or {})
    merged = {**_profile_json(p), **changes}
    if 'role' not in changes and merged.get('role') not in PORTAL_ROLES.valid:
        # legacy role left untouched; the validation scan reports it
        merged['role'] = None
    _guard(session, merged, is_update=True, original=_profile_json(p))
    for k, v in changes.items():
        setattr(p, k, v)
    session.commit()
    return _profile_json(p)


@profiles_bp.delete('/<int:profile_id>')
@require_feature(Feature.EMPLOYEES, Action.MANAGE_USERS)
@audit_log('PROFILE.DELETE', entity='UserProfile', entity_id_key='id', meta_keys=['email', 'role'])
def delete_profile(profile_id: int):
    session = get_db()
    p = _load(profile_id)
    existing = session.execute(select(UserProfile)).scalars().all()
    errors = can_delete_profile(p, existing, get_settings().protected_admin_email)
    if errors:
        raise PayloadValidationError([e.to_dict() for e in errors])
    body = _profile_json(p)
    session.delete(p); session.commit()
    return body


def _read_payload(data: dict) -> dict:
    out = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    if 'station_access' in out:
        out['station_access'] = validate_station_access(out['station_access'])
    if 'is_active' in out and not isinstance(out['is_active'], bool):
        abort(400, description='is_active must be boolean')
    if 'role' in out and out['role'] not in PORTAL_ROLES.valid:
        raise PayloadValidationError([{
            'field': 'role',
            'message': f"Invalid role. Must be one of: {', '.join(PORTAL_ROLES.valid)}",
            'type': 'role',
        }])
    return out


def _guard(session, data: dict, is_update: bool, original: dict = None):
    existing = session.execute(select(UserProfile)).scalars().all()
    errors = validate_profile(data, existing, is_update=is_update,
                              protected_admin_email=get_settings().protected_admin_email, original=original)
    if errors:
        raise PayloadValidationError([e.to_dict() for e in errors])


def _load(profile_id: int) -> UserProfile:
    p = get_db().execute(select(UserProfile).where(UserProfile.id == profile_id)).scalar_one_or_none()
    if not p:
        abort(404)
    return p


def _profile_json(p: UserProfile):
    return {
        'id': p.id,
        'user_id': p.user_id,
        'employee_id': p.employee_id,
        'email': p.email,
        'role': p.role,
        'station': p.station,
        'station_access': list(p.station_access or []),
        'phone': p.phone,
        'is_active': p.is_active,
    }


def _snapshot(profile_id):
    p = get_db().execute(select(UserProfile).where(UserProfile.id == profile_id)).scalar_one_or_none()
    return _profile_json(p) if p else {}
