from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select
from werkzeug.exceptions import Conflict
from dfs_portal import get_db
from dfs_portal.models.user_profile import UserProfile
from dfs_portal.constants.permissions import Feature, Action
from dfs_portal.config.settings import get_settings
from dfs_portal.decorators.auth import require_feature
from dfs_portal.decorators.audit import audit_log
from dfs_portal.services import user_validation
from dfs_portal.services.user_validation import NotAutoFixableError, ISSUE_TYPES, SEVERITIES
from dfs_portal.services.profile_guard import update_protection
from dfs_portal.utils.validation import validate_choice

validation_bp = Blueprint('validation', __name__)


class NotAutoFixable(Conflict):
    error_code = NotAutoFixableError.code

    def __init__(self, description=None, errors=None):
        super().__init__(description=description)
        self.errors = errors


def _snapshot():
    return get_db().execute(select(UserProfile).order_by(UserProfile.id.asc())).scalars().all()


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace('+00:00', 'Z')


def _run_scan(profiles):
    return user_validation.scan(profiles, vocabulary=get_settings().vocabulary, detected_at=_now())


@validation_bp.get('/issues')
@require_feature(Feature.ADMIN, Action.VIEW)
def list_issues():
    severity = request.args.get('severity')
    issue_type = request.args.get('type')
    if severity and severity != 'All':
        validate_choice(severity, SEVERITIES, 'severity')
    if issue_type and issue_type != 'All':
        validate_choice(issue_type, ISSUE_TYPES, 'type')
    issues = _run_scan(_snapshot())
    shown = user_validation.filter_issues(issues, request.args.get('search'), severity, issue_type)
    return {'data': [i.to_dict() for i in shown], 'total': len(shown)}


@validation_bp.get('/summary')
@require_feature(Feature.ADMIN, Action.VIEW)
def summary():
    profiles = _snapshot()
    issues = _run_scan(profiles)
    stats = user_validation.summarize(profiles, issues)
    stats['last_validation'] = _now()
    stats['role_vocabulary'] = get_settings().vocabulary.name
    return stats


@validation_bp.get('/admin-coverage')
@require_feature(Feature.ADMIN, Action.VIEW)
def admin_coverage():
    issues = user_validation.check_admin_coverage(_snapshot(), detected_at=_now())
    return {'data': [i.to_dict() for i in issues]}


@validation_bp.post('/issues/<issue_id>/auto-fix')
@require_feature(Feature.ADMIN, Action.EDIT)
@audit_log('VALIDATION.AUTOFIX', entity='UserProfile', entity_id_key='user_id',
           meta_builder=lambda data, rv, a, kw: {'issue_id': kw.get('issue_id'), 'patch': data.get('patch')})
def auto_fix_issue(issue_id: str):
    session = get_db()
    profiles = _snapshot()
    issue = next((i for i in _run_scan(profiles) if i.id == issue_id), None)
    if issue is None:
        abort(404, description='issue not found')
    vocabulary = get_settings().vocabulary
    try:
        patch = user_validation.auto_fix(issue, vocabulary)
    except NotAutoFixableError as e:
        raise NotAutoFixable(description=str(e))
    profile = next(p for p in profiles if p.id == issue.user_id)
    others = [p for p in profiles if p.id != profile.id]
    blocked = update_protection({'email': profile.email, **patch}, others, profile,
                                get_settings().protected_admin_email)
    if blocked:
        raise NotAutoFixable(description=blocked[0].message, errors=[e.to_dict() for e in blocked])
    for k, v in patch.items():
        setattr(profile, k, v)
    session.commit()
    current_app.logger.info('auto-fixed %s on profile %s: %s', issue.id, profile.id, patch)
    return {'user_id': profile.id, 'patch': patch, 'issue': issue.mark_resolved().to_dict()}
