# orderdesk/branch/routes.py
from flask import request
from sqlalchemy.exc import IntegrityError
from ..extensions import db
from ..model import Branch, Role
from ..utils.api import ok, err
from ..utils.decorators import role_required
from ..menu.routes import slugify, _parse_bool
from . import bp

_FIELDS = ("name", "address", "phone", "hours", "map_url")

def _coord(v, lo, hi, field):
    if v is None or v == "":
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be numeric")
    if not (lo <= f <= hi):
        raise ValueError(f"{field} out of range")
    return f

def _apply(b: Branch, data: dict):
    for f in _FIELDS:
        if f in data:
            setattr(b, f, (data.get(f) or "").strip() or None)
    if "slug" in data or not b.slug:
        b.slug = slugify(data.get("slug") or b.name)
    if "latitude" in data:
        b.latitude = _coord(data.get("latitude"), -90.0, 90.0, "latitude")
    if "longitude" in data:
        b.longitude = _coord(data.get("longitude"), -180.0, 180.0, "longitude")
    if "is_featured" in data:
        b.is_featured = _parse_bool(data.get("is_featured"))
    if "is_active" in data:
        b.is_active = _parse_bool(data.get("is_active"), True)

@bp.get("/branches")
def list_branches():
    rows = (Branch.query.filter_by(is_active=True)
            .order_by(Branch.is_featured.desc(), Branch.name.asc()).all())
    return ok("branches", {"items": [b.as_api() for b in rows]})

@bp.get("/admin/branches")
@role_required(Role.ADMIN)
def admin_list_branches():
    rows = Branch.query.order_by(Branch.name.asc()).all()
    return ok("branches", {"items": [b.as_api() for b in rows]})

@bp.post("/admin/branches")
@role_required(Role.ADMIN)
def admin_create_branch():
    data = request.get_json(silent=True) or {}
    if not (data.get("name") or "").strip():
        return err("name is required", 422)
    b = Branch()
    _apply(b, data)
    db.session.add(b)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("branch slug already exists", 409)
    return ok("branch created", b.as_api(), status=201)

@bp.route("/admin/branches/<int:branch_id>", methods=["PUT", "PATCH"])
@role_required(Role.ADMIN)
def admin_update_branch(branch_id: int):
    b = db.session.get(Branch, branch_id)
    if not b:
        return err("branch not found", 404)
    data = request.get_json(silent=True) or {}
    if "name" in data and not (data.get("name") or "").strip():
        return err("name cannot be empty", 422)
    _apply(b, data)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("branch slug already exists", 409)
    return ok("branch updated", b.as_api())

@bp.delete("/admin/branches/<int:branch_id>")
@role_required(Role.ADMIN)
def admin_delete_branch(branch_id: int):
    b = db.session.get(Branch, branch_id)
    if not b:
        return err("branch not found", 404)
    # keep order history intact; hide instead of delete
    b.is_active = False
    db.session.commit()
    return ok("branch deactivated", b.as_api())
