"""User validation scanner over a snapshot of user profile rows.

All functions here are pure: they read the profiles handed in by the caller and
return findings or update patches. Persisting a patch is the caller's job.

Issue ids are derived from ``type`` + profile id, so scanning an unchanged
snapshot twice yields the same issue set.
"""
from __future__ import annotations
import logging
from collections import abc
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from dfs_portal.constants.permissions import LEGACY_ROLES, Role, RoleVocabulary

logger = logging.getLogger(__name__)

ROLE_CONFLICT = 'role_conflict'
DUPLICATE_EMAIL = 'duplicate_email'
INVALID_ROLE = 'invalid_role'
MISSING_DATA = 'missing_data'
ADMIN_PROTECTION = 'admin_protection'
ISSUE_TYPES = (ROLE_CONFLICT, DUPLICATE_EMAIL, INVALID_ROLE, MISSING_DATA)

SEVERITY_LOW = 'low'
SEVERITY_MEDIUM = 'medium'
SEVERITY_HIGH = 'high'
SEVERITY_CRITICAL = 'critical'
SEVERITIES = (SEVERITY_LOW, SEVERITY_MEDIUM, SEVERITY_HIGH, SEVERITY_CRITICAL)
# admin coverage only
SEVERITY_ERROR = 'error'
SEVERITY_INFO = 'info'

# type -> (severity, auto_fixable)
ISSUE_RULES = {
    DUPLICATE_EMAIL: (SEVERITY_HIGH, False),
    ROLE_CONFLICT: (SEVERITY_MEDIUM, True),
    INVALID_ROLE: (SEVERITY_CRITICAL, True),
    MISSING_DATA: (SEVERITY_HIGH, False),
}

REQUIRED_FIELDS = ('employee_id', 'email', 'role')


class NotAutoFixableError(ValueError):
    code = 'NOT_AUTO_FIXABLE'

    def __init__(self, issue: 'ValidationIssue'):
        self.issue = issue
        super().__init__(f"Issue {issue.id} ({issue.type}) is not auto-fixable")


@dataclass(frozen=True)
class ValidationIssue:
    id: str
    type: str
    severity: str
    user_id: Any
    description: str
    auto_fixable: bool
    employee_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    detected_at: Optional[str] = None
    resolved: bool = False

    def mark_resolved(self) -> 'ValidationIssue':
        return replace(self, resolved=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _field(profile: Any, name: str):
    if profile is None:
        return None
    if isinstance(profile, Mapping):
        return profile.get(name)
    return getattr(profile, name, None)


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _as_list(profiles) -> Sequence[Any]:
    if profiles is None:
        return []
    if isinstance(profiles, (list, tuple)):
        return profiles
    if isinstance(profiles, (str, bytes, Mapping)) or not isinstance(profiles, abc.Iterable):
        logger.warning('scan input is %s, expected a sequence of profiles', type(profiles).__name__)
        return []
    return list(profiles)


def _issue(issue_type: str, profile: Any, description: str, detected_at: Optional[str], **extra) -> ValidationIssue:
    severity, fixable = ISSUE_RULES[issue_type]
    user_id = _field(profile, 'id')
    return ValidationIssue(
        id=f'{issue_type}_{user_id}',
        type=issue_type,
        severity=severity,
        user_id=user_id,
        description=description,
        auto_fixable=fixable,
        employee_id=_field(profile, 'employee_id'),
        detected_at=detected_at,
        **extra,
    )


def find_duplicate_emails(profiles, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    """First profile using an email is canonical; each later reuse is one issue."""
    seen: Dict[str, Any] = {}
    issues = []
    for p in _as_list(profiles):
        email = _field(p, 'email')
        if not _present(email) or not isinstance(email, str):
            continue
        key = email.strip().lower()
        if key in seen:
            issues.append(_issue(DUPLICATE_EMAIL, p, f'Duplicate email address: {email}', detected_at,
                                 email=email, role=_field(p, 'role')))
        else:
            seen[key] = p
    return issues


def find_role_conflicts(profiles, vocabulary: RoleVocabulary = LEGACY_ROLES, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    issues = []
    for p in _as_list(profiles):
        access = _field(p, 'station_access')
        if _field(p, 'role') == vocabulary.admin and isinstance(access, (list, tuple)) and len(access) > 1:
            issues.append(_issue(ROLE_CONFLICT, p, 'Admin user should not have multiple station access restrictions',
                                 detected_at, role=_field(p, 'role')))
    return issues


def find_invalid_roles(profiles, vocabulary: RoleVocabulary = LEGACY_ROLES, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    issues = []
    for p in _as_list(profiles):
        role = _field(p, 'role')
        # missing roles are reported as missing data
        if _present(role) and role not in vocabulary.valid:
            issues.append(_issue(INVALID_ROLE, p, f"Invalid role: {role}. Must be one of: {', '.join(vocabulary.valid)}",
                                 detected_at, role=role))
    return issues


def find_missing_data(profiles, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    issues = []
    for p in _as_list(profiles):
        missing = [name for name in REQUIRED_FIELDS if not _present(_field(p, name))]
        if missing:
            issues.append(_issue(MISSING_DATA, p, f"Missing required fields: {', '.join(missing)}", detected_at))
    return issues


def scan(profiles, vocabulary: RoleVocabulary = LEGACY_ROLES, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    """Run every profile check and return the combined findings.

    ``profiles`` may hold mappings or attribute objects; ``None`` scans as empty.
    ``detected_at`` is stamped on each issue when given, otherwise left ``None``.
    """
    rows = _as_list(profiles)
    issues: List[ValidationIssue] = []
    issues.extend(find_duplicate_emails(rows, detected_at))
    issues.extend(find_role_conflicts(rows, vocabulary, detected_at))
    issues.extend(find_invalid_roles(rows, vocabulary, detected_at))
    issues.extend(find_missing_data(rows, detected_at))
    logger.debug('scanned %d profiles (%s roles): %d issues', len(rows), vocabulary.name, len(issues))
    return issues


def auto_fix(issue: ValidationIssue, vocabulary: RoleVocabulary = LEGACY_ROLES) -> Dict[str, Any]:
    """Return the partial update that resolves ``issue``.

    Raises NotAutoFixableError for duplicate emails, missing data, or any issue
    flagged as not auto-fixable.
    """
    if not issue.auto_fixable:
        raise NotAutoFixableError(issue)
    if issue.type == ROLE_CONFLICT:
        return {'station_access': []}
    if issue.type == INVALID_ROLE:
        return {'role': vocabulary.fallback}
    raise NotAutoFixableError(issue)


def check_admin_coverage(profiles, detected_at: Optional[str] = None) -> List[ValidationIssue]:
    admins = [p for p in _as_list(profiles)
              if _field(p, 'role') == Role.ADMINISTRATOR.value and _field(p, 'is_active')]
    count = len(admins)
    if count == 0:
        issue_id, severity, user_id = f'{ADMIN_PROTECTION}_none', SEVERITY_CRITICAL, None
        description = 'No active administrators found. This is a critical security issue.'
    elif count == 1:
        user_id = _field(admins[0], 'id')
        issue_id, severity = f'{ADMIN_PROTECTION}_{user_id}', SEVERITY_ERROR
        description = ('Only one administrator exists. Deactivating or removing this user '
                       'could lock you out of the system.')
    else:
        issue_id, severity, user_id = f'{ADMIN_PROTECTION}_ok', SEVERITY_INFO, None
        description = f'{count} administrators exist. System has adequate admin coverage.'
    return [ValidationIssue(
        id=issue_id,
        type=ADMIN_PROTECTION,
        severity=severity,
        user_id=user_id,
        description=description,
        auto_fixable=False,
        employee_id=_field(admins[0], 'employee_id') if count == 1 else None,
        email=_field(admins[0], 'email') if count == 1 else None,
        role=Role.ADMINISTRATOR.value if count == 1 else None,
        detected_at=detected_at,
    )]


def summarize(profiles, issues: Iterable[ValidationIssue]) -> Dict[str, int]:
    rows = _as_list(profiles)
    issues = list(issues)
    valid = [p for p in rows if all(_present(_field(p, n)) for n in REQUIRED_FIELDS) and _field(p, 'is_active')]
    return {
        'total_users': len(rows),
        'valid_users': len(valid),
        'issues_found': len(issues),
        'critical_issues': sum(1 for i in issues if i.severity == SEVERITY_CRITICAL),
        'auto_fixable_issues': sum(1 for i in issues if i.auto_fixable),
    }


def filter_issues(issues: Iterable[ValidationIssue], search: Optional[str] = None,
                  severity: Optional[str] = None, issue_type: Optional[str] = None) -> List[ValidationIssue]:
    """Issue table filtering: free-text search, severity, type; resolved issues are hidden."""
    term = (search or '').strip().lower()
    out = []
    for i in issues:
        if i.resolved:
            continue
        if severity and severity != 'All' and i.severity != severity:
            continue
        if issue_type and issue_type != 'All' and i.type != issue_type:
            continue
        if term:
            haystack = [i.description, i.employee_id or '', i.email or '']
            if not any(term in str(h).lower() for h in haystack):
                continue
        out.append(i)
    return out


__all__ = [
    'ValidationIssue', 'NotAutoFixableError', 'scan', 'auto_fix', 'check_admin_coverage',
    'summarize', 'filter_issues', 'ISSUE_TYPES', 'SEVERITIES',
]
