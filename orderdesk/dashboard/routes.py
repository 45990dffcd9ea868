# orderdesk/dashboard/routes.py
from flask import request
from ..extensions import db
from ..model import Branch, Role
from ..services.dashboard_service import admin_overview, analytics, branch_overview
from ..utils.api import ok, err
from ..utils.decorators import _current_user, role_required, role_at_least
from . import bp

@bp.get("/dashboard")
@role_required(Role.ADMIN)
def dashboard():
    return ok("dashboard", admin_overview())

@bp.get("/branch-dashboard")
@role_at_least(Role.STAFF)
def branch_dashboard():
    """Staff and branch managers get their own branch; admins pick one with ?branch_id=."""
    actor = _current_user()
    branch_id = actor.branch_id
    if actor.role_enum == Role.ADMIN and request.args.get("branch_id"):
        branch_id = request.args.get("branch_id", type=int)
    if branch_id is None:
        return err("No branch assigned to your account", 400)

    branch = db.session.get(Branch, branch_id)
    if not branch:
        return err("Branch not found", 404)
    return ok("branch dashboard", branch_overview(branch))

@bp.get("/analytics")
@role_required(Role.ADMIN)
def admin_analytics():
    period = request.args.get("period", 30, type=int)
    if period is None or not (1 <= period <= 366):
        return err("period must be between 1 and 366 days", 400)
    return ok("analytics", analytics(period))
