from flask import request, current_app
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from datetime import datetime, timedelta, timezone
import uuid
from . import bp, admin_bp
from ..model import User, RefreshToken, Role, Branch
from ..extensions import db
from ..utils.api import ok, err
from ..utils.decorators import _current_user, role_required


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

# --- helper: create & persist a token pair ---
def _issue_tokens(user_id: int):
    access_token = create_access_token(identity=str(user_id))
    refresh_token_str = str(uuid.uuid4())
    refresh_row = RefreshToken(
        user_id=user_id,
        token=refresh_token_str,
        expires_at=_utcnow() + timedelta(days=current_app.config.get("REFRESH_TOKEN_TTL_DAYS", 7)),
    )
    db.session.add(refresh_row)
    return access_token, refresh_token_str


@bp.post("/register")
@jwt_required(optional=True)   # public signups; an admin token may pick the role
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()

    if not email:
        return err("Email required", 400)
    if not password or len(password) < 6:
        return err("Password required, min 6 chars", 400)
    if not name:
        return err("Name required", 400)
    if User.query.filter_by(email=email).first():
        return err("Email already registered", 409)

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0
    role = Role.ADMIN if is_first_user else Role.CUSTOMER

    requested_role = (data.get("role") or Role.CUSTOMER.value).strip().upper()
    caller_id = get_jwt_identity()
    if not is_first_user and caller_id:
        caller = db.session.get(User, int(caller_id))
        if caller and caller.role_enum == Role.ADMIN and requested_role in Role.__members__:
            role = Role(requested_role)

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        phone=(data.get("phone") or "").strip() or None,
        role=role.value,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("user %s registered as %s", user.email, user.role)

    return ok("Account created successfully", {"user": user.as_dict()}, status=201)

@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return err("Email and password are required", 400)
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        return err("Invalid email or password", 401)
    if not user.is_active:
        return err("Account is disabled", 403)

    access_token, token_str = _issue_tokens(user.id)
    db.session.commit()

    return ok("You've logged in successfully", {
        "user": user.as_dict(),
        "token": access_token,
        "refresh_token": token_str,
    })

@bp.get("/me")
@jwt_required()
def me():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return err("user not found", 404)
    return ok("me", {"user": user.as_dict()})


@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    token_str = data.get("refresh_token")
    if not token_str:
        return err("refresh_token is required", 400)

    refresh_row = RefreshToken.query.filter_by(token=token_str).first()
    if not refresh_row or refresh_row.expires_at < _utcnow():
        return err("Invalid or expired refresh token", 401)

    user_id = refresh_row.user_id

    # ROTATE: refresh tokens are single-use
    db.session.delete(refresh_row)
    db.session.flush()

    new_access, new_refresh = _issue_tokens(user_id)
    db.session.commit()

    return ok("Token refreshed", {"token": new_access, "refresh_token": new_refresh})

# ---- admin: users -----------------------------------------------------------

@admin_bp.get("/users")
@role_required(Role.ADMIN)
def list_users():
    q = User.query
    role = (request.args.get("role") or "").strip().upper()
    if role:
        q = q.filter(User.role == role)
    items = [u.as_dict() for u in q.order_by(User.id.asc()).all()]
    return ok("OK", {"users": items})

@admin_bp.patch("/users/<int:user_id>")
@role_required(Role.ADMIN)
def update_user(user_id):
    body = request.get_json(silent=True) or {}
    target = db.session.get(User, user_id)
    if not target:
        return err("User not found", 404)

    if "role" in body:
        new_role = (body.get("role") or "").strip().upper()
        if new_role not in Role.__members__:
            return err("Invalid role", 400)
        # Prevent demoting the LAST admin
        if target.role_enum == Role.ADMIN and new_role != Role.ADMIN.value:
            admin_count = User.query.filter_by(role=Role.ADMIN.value).count()
            if admin_count <= 1:
                return err("Cannot demote the last admin", 400)
        target.role = new_role

    if "branch_id" in body:
        branch_id = body.get("branch_id")
        if branch_id is not None and not db.session.get(Branch, int(branch_id)):
            return err("Branch not found", 404)
        target.branch_id = branch_id

    if "is_active" in body:
        if target.id == _current_user().id and not body.get("is_active"):
            return err("You cannot disable your own account", 400)
        target.is_active = bool(body.get("is_active"))

    db.session.commit()
    return ok("User updated", {"user": target.as_dict()})
