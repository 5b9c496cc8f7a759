from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Type, TypeVar, Union
from flask_jwt_extended import get_jwt
from dfs_portal.constants.permissions import Role, Feature, Action, ROLE_PERMISSIONS, STATION_ALL

E = TypeVar('E', bound=Enum)


def _coerce(enum_cls: Type[E], value) -> Optional[E]:
    """Map a raw string (or member) onto a closed enum; None when it is not a member."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def has_feature_access(role: Union[Role, str, None], feature: Union[Feature, str], action: Union[Action, str]) -> bool:
    """Default-deny lookup in the static role matrix. Never raises."""
    r = _coerce(Role, role)
    f = _coerce(Feature, feature)
    a = _coerce(Action, action)
    if r is None or f is None or a is None:
        return False
    return a in ROLE_PERMISSIONS[r].get(f, frozenset())


def can_access_admin_area(role) -> bool:
    return has_feature_access(role, Feature.ADMIN, Action.VIEW)


def can_access_monitoring_area(role) -> bool:
    return has_feature_access(role, Feature.MONITORING, Action.VIEW)


def can_manage_other_users(role) -> bool:
    return has_feature_access(role, Feature.ADMIN, Action.MANAGE_USERS)


def capabilities_for(role) -> Dict[str, Dict[str, bool]]:
    """Full feature -> action -> bool table for a role (all False for unknown roles)."""
    return {
        f.value: {a.value: has_feature_access(role, f, a) for a in Action}
        for f in Feature
    }


@dataclass(frozen=True)
class RoleAccess:
    role: Optional[Role]
    station: str = STATION_ALL
    capabilities: Dict[str, Dict[str, bool]] = field(default_factory=dict)

    @property
    def can_access_admin_area(self) -> bool:
        return can_access_admin_area(self.role)

    @property
    def can_access_monitoring_area(self) -> bool:
        return can_access_monitoring_area(self.role)

    @property
    def can_manage_other_users(self) -> bool:
        return can_manage_other_users(self.role)

    @property
    def is_fully_restricted(self) -> bool:
        return self.role is Role.EMPLOYEE

    def has_feature_access(self, feature, action) -> bool:
        return has_feature_access(self.role, feature, action)

    def restricted_message(self, feature: str) -> str:
        if self.role is Role.EMPLOYEE:
            return f'Employee access level does not permit {feature} operations. Contact your manager for assistance.'
        if self.role is Role.MANAGEMENT:
            return f'Management access level has limited {feature} permissions. Contact an administrator for full access.'
        if self.role is Role.ADMINISTRATOR:
            return f'Administrator access confirmed for {feature}.'
        return f'Please log in to access {feature}.'

    def to_dict(self):
        return {
            'role': self.role.value if self.role else None,
            'station': self.station,
            'can_access_admin_area': self.can_access_admin_area,
            'can_access_monitoring_area': self.can_access_monitoring_area,
            'can_manage_other_users': self.can_manage_other_users,
            'is_fully_restricted': self.is_fully_restricted,
            'capabilities': self.capabilities,
        }


def role_access(role, station: Optional[str] = None) -> RoleAccess:
    r = _coerce(Role, role)
    return RoleAccess(role=r, station=station or STATION_ALL, capabilities=capabilities_for(r))


def current_role() -> Optional[str]:
    """Role claim of the verified request JWT (None when absent)."""
    claims = get_jwt()
    return claims.get('role')


def current_station() -> str:
    claims = get_jwt()
    return claims.get('station') or STATION_ALL


def current_has_feature_access(feature, action) -> bool:
    return has_feature_access(current_role(), feature, action)
