"""Central enum-like definitions for portal roles, features and actions.
Extend cautiously; stored profiles and issued tokens carry these strings verbatim.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Tuple


class Role(str, Enum):
    ADMINISTRATOR = 'Administrator'
    MANAGEMENT = 'Management'
    EMPLOYEE = 'Employee'


class Feature(str, Enum):
    DASHBOARD = 'dashboard'
    PRODUCTS = 'products'
    EMPLOYEES = 'employees'
    SALES = 'sales'
    VENDORS = 'vendors'
    ORDERS = 'orders'
    LICENSES = 'licenses'
    SALARY = 'salary'
    INVENTORY = 'inventory'
    DELIVERY = 'delivery'
    SETTINGS = 'settings'
    ADMIN = 'admin'
    MONITORING = 'monitoring'


class Action(str, Enum):
    VIEW = 'canView'
    EDIT = 'canEdit'
    CREATE = 'canCreate'
    DELETE = 'canDelete'
    EXPORT = 'canExport'
    IMPORT = 'canImport'
    MANAGE_USERS = 'canManageUsers'
    VIEW_REPORTS = 'canViewReports'
    MANAGE_SETTINGS = 'canManageSettings'
    VIEW_LOGS = 'canViewLogs'
    ACCESS_MONITORING = 'canAccessMonitoring'


def _grant(*actions: Action) -> FrozenSet[Action]:
    return frozenset(actions)


ALL_ACTIONS = frozenset(Action)
NONE = frozenset()

# Management: operational authority, no deletes, no user management, no admin/monitoring
_MGMT_OPERATIONAL = _grant(Action.VIEW, Action.EDIT, Action.CREATE, Action.EXPORT, Action.VIEW_REPORTS)
_MGMT_WITH_IMPORT = _MGMT_OPERATIONAL | {Action.IMPORT}

ROLE_PERMISSIONS: Dict[Role, Dict[Feature, FrozenSet[Action]]] = {
    # Administrator holds every action on every feature
    Role.ADMINISTRATOR: {feature: ALL_ACTIONS for feature in Feature},
    Role.MANAGEMENT: {
        Feature.DASHBOARD: _MGMT_WITH_IMPORT | {Action.VIEW_LOGS},
        Feature.PRODUCTS: _MGMT_WITH_IMPORT,
        Feature.EMPLOYEES: _MGMT_OPERATIONAL,
        Feature.SALES: _MGMT_WITH_IMPORT,
        Feature.VENDORS: _MGMT_OPERATIONAL,
        Feature.ORDERS: _MGMT_OPERATIONAL,
        Feature.LICENSES: _MGMT_OPERATIONAL,
        Feature.SALARY: _MGMT_OPERATIONAL,
        Feature.INVENTORY: _MGMT_WITH_IMPORT,
        Feature.DELIVERY: _MGMT_OPERATIONAL,
        Feature.SETTINGS: _grant(Action.VIEW, Action.VIEW_REPORTS),
        Feature.ADMIN: NONE,
        Feature.MONITORING: NONE,
    },
    Role.EMPLOYEE: {
        Feature.DASHBOARD: _grant(Action.VIEW),
        Feature.PRODUCTS: _grant(Action.VIEW),
        Feature.EMPLOYEES: NONE,
        Feature.SALES: _grant(Action.VIEW, Action.EDIT, Action.CREATE),
        Feature.VENDORS: _grant(Action.VIEW),
        Feature.ORDERS: _grant(Action.VIEW, Action.CREATE),
        Feature.LICENSES: NONE,
        Feature.SALARY: NONE,
        Feature.INVENTORY: _grant(Action.VIEW),
        Feature.DELIVERY: _grant(Action.VIEW, Action.EDIT, Action.CREATE),
        Feature.SETTINGS: NONE,
        Feature.ADMIN: NONE,
        Feature.MONITORING: NONE,
    },
}


class RoleVocabulary(NamedTuple):
    """Role strings a validation scan accepts, plus its admin and fallback role."""
    name: str
    valid: Tuple[str, ...]
    admin: str
    fallback: str


# Stored by the profile API and checked by the resolver
PORTAL_ROLES = RoleVocabulary(
    'portal',
    tuple(r.value for r in Role),
    Role.ADMINISTRATOR.value,
    Role.EMPLOYEE.value,
)

# Lower-case convention still present in older user_profiles rows
LEGACY_ROLES = RoleVocabulary('legacy', ('admin', 'manager', 'employee'), 'admin', 'employee')

VOCABULARIES = {v.name: v for v in (PORTAL_ROLES, LEGACY_ROLES)}

# Roles that may not be held by the same user at the same station
CONFLICTING_ROLES: Tuple[Tuple[str, str], ...] = (
    (Role.ADMINISTRATOR.value, Role.EMPLOYEE.value),
    (Role.MANAGEMENT.value, Role.EMPLOYEE.value),
)

STATION_ALL = 'ALL'


def build_permission_matrix() -> Dict[str, Dict[str, list]]:
    """Plain-string view of ROLE_PERMISSIONS (role -> feature -> sorted actions)."""
    out: Dict[str, Dict[str, list]] = {}
    for role, features in ROLE_PERMISSIONS.items():
        out[role.value] = {f.value: sorted(a.value for a in actions) for f, actions in features.items()}
    return out
