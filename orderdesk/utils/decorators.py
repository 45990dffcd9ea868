# ------- orderdesk/utils/decorators.py -------
from functools import wraps
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..utils.api import err
from ..model.user import User, Role, ROLE_LEVEL

def _as_role(r) -> Role:
    return r if isinstance(r, Role) else Role(str(r).upper())

def _current_user(optional: bool = False):
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    user = db.session.get(User, uid) if uid else None
    if user is not None and not user.is_active:
        return None
    return user

def role_required(*roles, message: str | None = None):
    allowed = {_as_role(r) for r in roles}
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u:
                return err("Unauthorized", 401)
            if u.role_enum not in allowed:
                return err(message or "Forbidden", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def role_at_least(min_role, message: str | None = None):  # ADMIN > BRANCH_MANAGER > STAFF > CUSTOMER
    min_level = ROLE_LEVEL[_as_role(min_role)]
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u:
                return err("Unauthorized", 401)
            if ROLE_LEVEL.get(u.role_enum, 0) < min_level:
                return err(message or "Forbidden", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
