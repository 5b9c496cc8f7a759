from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from dfs_portal.services.policy import current_has_feature_access


def require_feature(feature, action):
    """Reject the request unless the token's role grants ``action`` on ``feature``."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not current_has_feature_access(feature, action):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer
