from flask import Blueprint
from dfs_portal.constants.permissions import Feature, Action
from dfs_portal.config.settings import get_settings
from dfs_portal.decorators.auth import require_feature
from dfs_portal.services.policy import current_role

settings_bp = Blueprint('settings', __name__)


@settings_bp.get('')
@require_feature(Feature.SETTINGS, Action.VIEW)
def read_settings():
    return get_settings().to_dict()


@settings_bp.get('/dashboard')
@require_feature(Feature.DASHBOARD, Action.VIEW)
def dashboard_layout():
    """Widget layout configured for the caller's role."""
    role = current_role()
    return {'role': role, 'widgets': list(get_settings().widgets_for(role))}
