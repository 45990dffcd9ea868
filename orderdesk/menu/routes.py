# --- orderdesk/menu/routes.py ---
import re
from decimal import Decimal, InvalidOperation
from flask import request, current_app
from sqlalchemy import or_, asc, desc
from sqlalchemy.exc import IntegrityError
from ..extensions import db
from ..model import Category, MenuItem, Role
from ..utils.api import ok, err
from ..utils.decorators import role_required
from . import bp, admin_bp

# ---------- helpers ----------
def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")

def _parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}

def _parse_price(v):
    try:
        d = Decimal(str(v))
    except (InvalidOperation, TypeError):
        raise ValueError("price must be numeric")
    if d < 0:
        raise ValueError("price must be >= 0")
    return d

def _sort_items(query, sort):
    mapping = {
        "name": asc(MenuItem.name), "-name": desc(MenuItem.name),
        "price": asc(MenuItem.price), "-price": desc(MenuItem.price),
        "id": asc(MenuItem.id), "-id": desc(MenuItem.id),
    }
    return query.order_by(mapping.get((sort or "").strip(), desc(MenuItem.created_at)))

def _category_from_payload(data):
    ref = data.get("category_id", data.get("category"))
    if ref is None:
        return None
    if isinstance(ref, int) or str(ref).isdigit():
        return db.session.get(Category, int(ref))
    return Category.query.filter_by(slug=str(ref)).first()

# ---------- public ----------
@bp.get("")
def get_menu():
    """
    Query params:
      q         -> substring match on name
      category  -> category slug
      sort      -> name, -name, price, -price (default newest first)
    """
    categories = (Category.query.filter_by(is_active=True)
                  .order_by(Category.sort_order.asc()).all())

    query = MenuItem.query.filter(MenuItem.is_available.is_(True))
    q = (request.args.get("q") or "").strip()
    if q:
        query = query.filter(MenuItem.name.ilike(f"%{q}%"))
    cat_slug = (request.args.get("category") or "").strip()
    if cat_slug:
        query = query.join(Category).filter(Category.slug == cat_slug)

    items = _sort_items(query, request.args.get("sort")).all()
    return ok("menu", {
        "categories": [c.as_dict() for c in categories],
        "items": [m.as_api() for m in items],
    })

# ---------- admin: menu items ----------
@admin_bp.get("/menu")
@role_required(Role.ADMIN)
def admin_list_items():
    q = (request.args.get("q") or "").strip()
    query = MenuItem.query
    if q:
        query = query.filter(or_(MenuItem.name.ilike(f"%{q}%"), MenuItem.slug.ilike(f"%{q}%")))
    items = _sort_items(query, request.args.get("sort")).all()
    return ok("menu items", {"items": [m.as_api() for m in items]})

@admin_bp.post("/menu")
@role_required(Role.ADMIN)
def admin_create_item():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return err("name is required", 422)
    if data.get("price") is None:
        return err("price is required", 422)
    category = _category_from_payload(data)
    if not category:
        return err("category not found", 404)

    m = MenuItem(
        name=name,
        slug=slugify(data.get("slug") or name),
        description=data.get("description"),
        price=_parse_price(data.get("price")),
        image=data.get("image"),
        is_available=_parse_bool(data.get("is_available"), True),
        is_popular=_parse_bool(data.get("is_popular"), False),
        category_id=category.id,
    )
    db.session.add(m)
    db.session.commit()
    current_app.logger.info("menu item %s created", m.id)
    return ok("menu item created", m.as_api(), status=201)

@admin_bp.route("/menu/<int:item_id>", methods=["PUT", "PATCH"])
@role_required(Role.ADMIN)
def admin_update_item(item_id: int):
    m = db.session.get(MenuItem, item_id)
    if not m:
        return err("menu item not found", 404)
    data = request.get_json(silent=True) or {}

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return err("name cannot be empty", 422)
        m.name = name
    if "slug" in data:
        m.slug = slugify(data.get("slug"))
    if "description" in data:
        m.description = data.get("description")
    if "price" in data:
        m.price = _parse_price(data.get("price"))
    if "image" in data:
        m.image = data.get("image")
    if "is_available" in data:
        m.is_available = _parse_bool(data.get("is_available"))
    if "is_popular" in data:
        m.is_popular = _parse_bool(data.get("is_popular"))
    if "category_id" in data or "category" in data:
        category = _category_from_payload(data)
        if not category:
            return err("category not found", 404)
        m.category_id = category.id

    db.session.commit()
    return ok("menu item updated", m.as_api())

@admin_bp.delete("/menu/<int:item_id>")
@role_required(Role.ADMIN)
def admin_delete_item(item_id: int):
    m = db.session.get(MenuItem, item_id)
    if not m:
        return err("menu item not found", 404)
    db.session.delete(m)
    db.session.commit()
    return ok("menu item deleted")

# ---------- admin: categories ----------
@admin_bp.get("/categories")
@role_required(Role.ADMIN)
def admin_list_categories():
    cats = Category.query.order_by(Category.sort_order.asc(), Category.name.asc()).all()
    return ok("categories", {"items": [c.as_dict() for c in cats]})

@admin_bp.post("/categories")
@role_required(Role.ADMIN)
def admin_create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return err("name required", 400)
    if Category.query.filter(Category.name.ilike(name)).first():
        return err("category name already exists", 409)
    c = Category(
        name=name,
        slug=slugify(data.get("slug") or name),
        icon=data.get("icon"),
        sort_order=int(data.get("sort_order") or 0),
        is_active=_parse_bool(data.get("is_active"), True),
    )
    db.session.add(c)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("category slug already exists", 409)
    return ok("category created", c.as_dict(), status=201)

@admin_bp.route("/categories/<int:category_id>", methods=["PUT", "PATCH"])
@role_required(Role.ADMIN)
def admin_update_category(category_id: int):
    c = db.session.get(Category, category_id)
    if not c:
        return err("category not found", 404)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return err("name cannot be empty", 422)
        c.name = name
    if "slug" in data:
        c.slug = slugify(data.get("slug"))
    if "icon" in data:
        c.icon = data.get("icon")
    if "sort_order" in data:
        c.sort_order = int(data.get("sort_order") or 0)
    if "is_active" in data:
        c.is_active = _parse_bool(data.get("is_active"))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("category name or slug already exists", 409)
    return ok("category updated", c.as_dict())

@admin_bp.delete("/categories/<int:category_id>")
@role_required(Role.ADMIN)
def admin_delete_category(category_id: int):
    c = db.session.get(Category, category_id)
    if not c:
        return err("category not found", 404)
    if c.items:
        return err("category still has menu items", 409)
    db.session.delete(c)
    db.session.commit()
    return ok("category deleted")
