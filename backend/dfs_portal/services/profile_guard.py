from __future__ import annotations
"""Pre-write checks for a single user profile.

Complements the snapshot scanner: these run before a create/update/delete is
applied, against the profiles already stored.
"""
from dataclasses import dataclass, asdict
from typing import Any, Iterable, List, Mapping, Optional
from dfs_portal.constants.permissions import PORTAL_ROLES, CONFLICTING_ROLES, Role

ERR_EMAIL = 'email'
ERR_ROLE = 'role'
ERR_ADMIN_PROTECTION = 'admin_protection'
ERR_GENERAL = 'general'


@dataclass(frozen=True)
class ProfileError:
    field: str
    message: str
    type: str

    def to_dict(self):
        return asdict(self)


def _get(obj: Any, name: str):
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _same_email(a, b) -> bool:
    return isinstance(a, str) and isinstance(b, str) and a.strip().lower() == b.strip().lower()


def _conflicts_with(role: str) -> List[str]:
    out = []
    for r1, r2 in CONFLICTING_ROLES:
        if role == r1:
            out.append(r2)
        elif role == r2:
            out.append(r1)
    return out


def station_role_conflicts(role: str, station: str, existing: Iterable[Any], exclude_user_id: Optional[int] = None) -> List[Any]:
    """Active profiles at ``station`` whose role conflicts with ``role``."""
    conflicting = _conflicts_with(role)
    if not conflicting:
        return []
    out = []
    for p in existing:
        if not _get(p, 'is_active') or _get(p, 'station') != station:
            continue
        if exclude_user_id is not None and _get(p, 'user_id') == exclude_user_id:
            continue
        if _get(p, 'role') in conflicting:
            out.append(p)
    return out


def validate_profile(data: Mapping[str, Any], existing: Iterable[Any], is_update: bool = False,
                     protected_admin_email: Optional[str] = None, original: Any = None) -> List[ProfileError]:
    """Validate a create/update payload against stored profiles.

    ``data`` carries the merged profile (including ``id`` on update). Profiles in
    ``existing`` with the same id are ignored for uniqueness checks. On update,
    ``original`` is the stored row so protections follow the old email too.
    """
    existing = [p for p in existing if _get(p, 'id') is None or _get(p, 'id') != data.get('id')]
    errors: List[ProfileError] = []

    email = data.get('email')
    if email:
        if any(_same_email(email, _get(p, 'email')) for p in existing):
            errors.append(ProfileError('email', 'This email address is already in use by another user', ERR_EMAIL))

    role = data.get('role')
    if role:
        if role not in PORTAL_ROLES.valid:
            errors.append(ProfileError('role', f"Invalid role. Must be one of: {', '.join(PORTAL_ROLES.valid)}", ERR_ROLE))
        elif data.get('station') and data.get('user_id') is not None:
            same_user = [p for p in existing if _get(p, 'user_id') == data['user_id']]
            for other in station_role_conflicts(role, data['station'], same_user):
                errors.append(ProfileError(
                    'role',
                    f"Role conflict: Cannot assign {role} role when user already has {_get(other, 'role')} role at {data['station']}",
                    ERR_ROLE,
                ))

    if is_update:
        errors.extend(update_protection(data, existing, original, protected_admin_email))
    return errors


def _is_active_admin(p: Any) -> bool:
    return _get(p, 'role') == Role.ADMINISTRATOR.value and bool(_get(p, 'is_active'))


def update_protection(data: Mapping[str, Any], others: List[Any], original: Any,
                       protected_admin_email: Optional[str]) -> List[ProfileError]:
    """Checks that only apply when an existing profile is rewritten.

    ``original`` is the stored row before the update; ``others`` excludes it.
    """
    errors: List[ProfileError] = []
    email, role = data.get('email'), data.get('role')
    old_email = _get(original, 'email') if original is not None else None
    protected = bool(protected_admin_email) and (
        _same_email(email, protected_admin_email) or _same_email(old_email, protected_admin_email))
    if protected:
        if _same_email(old_email, protected_admin_email) and not _same_email(email, old_email):
            errors.append(ProfileError('email', f'{protected_admin_email} email address cannot be changed', ERR_ADMIN_PROTECTION))
        if role and role != Role.ADMINISTRATOR.value:
            errors.append(ProfileError('role', f'{protected_admin_email} must maintain Administrator role for system security', ERR_ADMIN_PROTECTION))
        if data.get('is_active') is False:
            errors.append(ProfileError('is_active', f'{protected_admin_email} account cannot be deactivated', ERR_ADMIN_PROTECTION))
    if original is not None and _is_active_admin(original) and not any(_is_active_admin(p) for p in others):
        if 'role' in data and data['role'] != Role.ADMINISTRATOR.value:
            errors.append(ProfileError('role', 'Cannot demote the last active Administrator', ERR_ADMIN_PROTECTION))
        if data.get('is_active') is False:
            errors.append(ProfileError('is_active', 'Cannot deactivate the last active Administrator', ERR_ADMIN_PROTECTION))
    return errors


def can_delete_profile(profile: Any, existing: Iterable[Any], protected_admin_email: Optional[str] = None) -> List[ProfileError]:
    errors: List[ProfileError] = []
    if protected_admin_email and _same_email(_get(profile, 'email'), protected_admin_email):
        errors.append(ProfileError('delete', f'{protected_admin_email} account cannot be deleted for system security', ERR_ADMIN_PROTECTION))
    if _get(profile, 'role') == Role.ADMINISTRATOR.value and _get(profile, 'is_active'):
        others = [p for p in existing
                  if _get(p, 'id') != _get(profile, 'id')
                  and _get(p, 'role') == Role.ADMINISTRATOR.value and _get(p, 'is_active')]
        if not others:
            errors.append(ProfileError('delete', 'Cannot delete the last active Administrator', ERR_ADMIN_PROTECTION))
    return errors


__all__ = ['ProfileError', 'validate_profile', 'update_protection', 'can_delete_profile', 'station_role_conflicts']
