from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from sqlalchemy import select
from dfs_portal import get_db
from dfs_portal.models.authz import User
from dfs_portal.models.user_profile import UserProfile
from dfs_portal.services.policy import role_access, current_role, current_station

iam_bp = Blueprint('iam', __name__)


def _active_profile(session, user_id: int):
    """First active profile linked to the account (None when the user has none)."""
    return session.execute(
        select(UserProfile)
        .where(UserProfile.user_id == user_id, UserProfile.is_active.is_(True))
        .order_by(UserProfile.id.asc())
    ).scalars().first()


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if not user.is_active:
        abort(403, description='account inactive')
    profile = _active_profile(session, user.id)
    claims = {
        'role': profile.role if profile else None,
        'station': profile.station if profile else None,
        'profile_id': profile.id if profile else None,
    }
    current_app.logger.info('login user=%s role=%s', user.id, claims['role'])
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=claims)
    return {'access_token': token}


@iam_bp.get('/auth/me')
@jwt_required()
def me():
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    access = role_access(current_role(), current_station())
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'access': access.to_dict(),
    }


@iam_bp.get('/auth/access/<feature>')
@jwt_required()
def feature_access(feature: str):
    """Per-feature capability view plus the role's denial message."""
    access = role_access(current_role(), current_station())
    caps = access.capabilities.get(feature)
    if caps is None:
        abort(404, description='unknown feature')
    allowed = any(caps.values())
    return {
        'feature': feature,
        'role': access.role.value if access.role else None,
        'permissions': caps,
        'message': None if allowed else access.restricted_message(feature),
    }
