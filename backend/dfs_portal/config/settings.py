from __future__ import annotations
"""Portal settings record.

Built once in create_app from environment variables (after load_dotenv) and
app.config overrides, then stored on ``app.extensions['portal_settings']``.
Read it through ``get_settings()``; it is never mutated at runtime.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Mapping, Tuple
import os
from flask import current_app
from dfs_portal.constants.permissions import VOCABULARIES, PORTAL_ROLES, RoleVocabulary, Role

EXTENSION_KEY = 'portal_settings'

DEFAULT_DASHBOARD_WIDGETS: Dict[str, Tuple[str, ...]] = {
    Role.ADMINISTRATOR.value: ('sales_chart', 'license_alerts', 'user_validation', 'audit_feed', 'system_health'),
    Role.MANAGEMENT.value: ('sales_chart', 'license_alerts', 'deliveries', 'inventory_low_stock'),
    Role.EMPLOYEE.value: ('sales_entry', 'deliveries'),
}


@dataclass(frozen=True)
class NotificationPreferences:
    email_alerts: bool = True
    sms_alerts: bool = False
    license_expiry_days: int = 30
    low_stock_threshold: int = 10


@dataclass(frozen=True)
class PortalSettings:
    protected_admin_email: str = 'admin@dfs-portal.com'
    scan_role_vocabulary: str = PORTAL_ROLES.name
    notifications: NotificationPreferences = field(default_factory=NotificationPreferences)
    dashboard_widgets: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_DASHBOARD_WIDGETS))

    @property
    def vocabulary(self) -> RoleVocabulary:
        return VOCABULARIES[self.scan_role_vocabulary]

    def widgets_for(self, role) -> Tuple[str, ...]:
        return tuple(self.dashboard_widgets.get(role, ()))

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['dashboard_widgets'] = {k: list(v) for k, v in self.dashboard_widgets.items()}
        return out


def _as_bool(raw, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')


def _as_int(raw, default: int, name: str) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be int')


def load_settings(config: Mapping[str, Any]) -> PortalSettings:
    """Resolve settings from app config first, then the environment, then defaults."""
    def pick(name):
        if name in config:
            return config[name]
        return os.getenv(name)

    vocab = pick('SCAN_ROLE_VOCABULARY') or PORTAL_ROLES.name
    if vocab not in VOCABULARIES:
        raise ValueError(f"SCAN_ROLE_VOCABULARY must be one of {sorted(VOCABULARIES)}")
    defaults = NotificationPreferences()
    notifications = NotificationPreferences(
        email_alerts=_as_bool(pick('ALERT_EMAIL_ENABLED'), defaults.email_alerts),
        sms_alerts=_as_bool(pick('ALERT_SMS_ENABLED'), defaults.sms_alerts),
        license_expiry_days=_as_int(pick('LICENSE_EXPIRY_ALERT_DAYS'), defaults.license_expiry_days, 'LICENSE_EXPIRY_ALERT_DAYS'),
        low_stock_threshold=_as_int(pick('LOW_STOCK_THRESHOLD'), defaults.low_stock_threshold, 'LOW_STOCK_THRESHOLD'),
    )
    return PortalSettings(
        protected_admin_email=pick('PROTECTED_ADMIN_EMAIL') or PortalSettings.protected_admin_email,
        scan_role_vocabulary=vocab,
        notifications=notifications,
    )


def get_settings() -> PortalSettings:
    return current_app.extensions[EXTENSION_KEY]


__all__ = ['PortalSettings', 'NotificationPreferences', 'load_settings', 'get_settings']
