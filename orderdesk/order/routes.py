# orderdesk/order/routes.py
from datetime import datetime, timedelta
from flask import request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import false
from ..extensions import db
from ..model import Order, Branch, Role, ORDER_STATUSES, PAYMENT_STATUSES
from ..services.pricing import DeliveryType
from ..services.promo_service import build_engine, parse_line_items
from ..services.order_service import create_order
from ..utils.api import ok, err
from ..utils.decorators import _current_user, role_at_least
from . import bp

PAYMENT_METHODS = {"CASH", "MOBILE_MONEY", "CARD"}

def _price_request(data, user_id):
    """Returns (delivery_type, pricing, applied|None) for a checkout-shaped body."""
    delivery_type = DeliveryType.parse(data.get("delivery_type") or DeliveryType.PICKUP.value)
    items = parse_line_items(data.get("items"))
    engine = build_engine()
    code = (data.get("promo_code") or "").strip()
    if code:
        pricing, applied = engine.validate_and_price(code, items, delivery_type, user_id)
        return delivery_type, pricing, applied
    return delivery_type, engine.price(items, delivery_type), None

def _payment_method(data):
    method = (data.get("payment_method") or "CASH").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValueError(f"payment_method must be one of {', '.join(sorted(PAYMENT_METHODS))}")
    return method

def _object(data, key):
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be an object")
    return value

def _address(data, delivery_type, guest_info):
    address = _object(data, "address")
    if delivery_type != DeliveryType.DELIVERY:
        return None
    if not address or not (address.get("street") or "").strip():
        raise ValueError("a delivery address with a street is required")
    return {
        "name": address.get("name") or guest_info.get("name"),
        "phone": address.get("phone") or guest_info.get("phone"),
        "street": address.get("street"),
        "city": address.get("city") or "Accra",
        "region": address.get("region") or "Greater Accra",
        "landmark": address.get("landmark"),
    }

def _branch_id(data):
    branch_id = data.get("branch_id")
    if branch_id is None:
        return None
    b = db.session.get(Branch, int(branch_id))
    if not b or not b.is_active:
        raise ValueError("branch not found")
    return b.id

# ---- public -----------------------------------------------------------------

@bp.post("/orders/quote")
def quote():
    """Price a cart (and optional promo_code) without creating anything."""
    data = request.get_json(silent=True) or {}
    user = _current_user(optional=True)
    _, pricing, applied = _price_request(data, user.id if user else None)
    payload = {"pricing": pricing.as_api()}
    if applied:
        payload.update(applied.as_api())
    return ok("quote", payload)

@bp.post("/orders")
def checkout():
    """
    Body:
      items: [{menu_item_id, quantity, notes?}]
      delivery_type: PICKUP | DELIVERY
      payment_method: CASH | MOBILE_MONEY | CARD
      promo_code?, address?, notes?, branch_id?
      guest_info: {name, phone, email?}   (required without a token)
    """
    data = request.get_json(silent=True) or {}
    user = _current_user(optional=True)
    guest_info = _object(data, "guest_info")

    if not user and not (guest_info.get("name") and guest_info.get("phone")):
        return err("Please provide contact information", 401)

    delivery_type, pricing, applied = _price_request(data, user.id if user else None)
    order = create_order(
        pricing, delivery_type,
        applied=applied,
        user_id=user.id if user else None,
        guest_info=guest_info,
        branch_id=_branch_id(data),
        address=_address(data, delivery_type, guest_info),
        payment_method=_payment_method(data),
        notes=data.get("notes"),
    )
    resp = ok("order created", {"order": order.as_api()}, status=201)
    resp.headers["X-Order-Id"] = str(order.id)
    return resp

@bp.get("/orders/mine")
@jwt_required()
def my_orders():
    user = _current_user()
    if not user:
        return err("Unauthorized", 401)
    rows = (Order.query.filter(Order.user_id == user.id)
            .order_by(Order.created_at.desc()).all())
    return ok("orders", {"items": [o.as_api() for o in rows]})

# ---- admin ------------------------------------------------------------------

def _scope_to_branch(q, actor):
    # staff and branch managers only see their own branch; without one they see nothing
    if actor.role_enum in (Role.STAFF, Role.BRANCH_MANAGER):
        if actor.branch_id is None:
            return q.filter(false())
        q = q.filter(Order.branch_id == actor.branch_id)
    return q

@bp.get("/admin/orders")
@role_at_least(Role.STAFF)
def admin_list_orders():
    """
    Query params:
      - page, per_page
      - status=PENDING|CONFIRMED|...
      - delivery_type=PICKUP|DELIVERY
      - order_number=ORD-...
      - branch_id (admins only)
      - start=YYYY-MM-DD
      - end=YYYY-MM-DD (inclusive)
    """
    actor = _current_user()
    q = _scope_to_branch(Order.query, actor)

    status = request.args.get("status")
    delivery_type = request.args.get("delivery_type")
    number = request.args.get("order_number")
    branch_id = request.args.get("branch_id", type=int)
    start = request.args.get("start")
    end = request.args.get("end")

    if status: q = q.filter(Order.status == status.upper())
    if delivery_type: q = q.filter(Order.delivery_type == delivery_type.upper())
    if number: q = q.filter(Order.order_number == number)
    if branch_id and actor.role_enum == Role.ADMIN: q = q.filter(Order.branch_id == branch_id)

    if start:
        q = q.filter(Order.created_at >= datetime.fromisoformat(start))
    if end:
        # make end inclusive for the whole day
        q = q.filter(Order.created_at < datetime.fromisoformat(end) + timedelta(days=1))

    page = max(request.args.get("page", 1, type=int), 1)
    per = min(max(request.args.get("per_page", 20, type=int), 1), 100)

    paged = q.order_by(Order.created_at.desc()).paginate(page=page, per_page=per, error_out=False)
    return ok("orders", {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api() for o in paged.items],
    })

@bp.patch("/admin/orders/<int:order_id>")
@role_at_least(Role.STAFF)
def admin_update_order(order_id: int):
    actor = _current_user()
    o = _scope_to_branch(Order.query.filter(Order.id == order_id), actor).first()
    if not o:
        return err("order not found", 404)

    data = request.get_json(silent=True) or {}
    if "status" in data:
        status = (data.get("status") or "").upper()
        if status not in ORDER_STATUSES:
            return err("invalid status", 422)
        o.status = status
    if "payment_status" in data:
        pstatus = (data.get("payment_status") or "").upper()
        if pstatus not in PAYMENT_STATUSES:
            return err("invalid payment_status", 422)
        o.payment_status = pstatus
    if "estimated_time" in data:
        o.estimated_time = int(data.get("estimated_time") or 0)

    db.session.commit()
    current_app.logger.info("order %s updated by user %s: status=%s", o.order_number, actor.id, o.status)
    return ok("order updated", o.as_api())

@bp.post("/admin/orders/create")
@role_at_least(Role.STAFF)
def admin_create_order():
    """Phone/walk-in orders entered by staff. They start CONFIRMED."""
    actor = _current_user()
    data = request.get_json(silent=True) or {}
    guest_info = _object(data, "guest_info")
    if not guest_info.get("name") or not guest_info.get("phone"):
        return err("Customer name and phone are required", 400)

    branch_id = _branch_id(data)
    if actor.role_enum != Role.ADMIN:
        if actor.branch_id is None:
            return err("No branch assigned to your account", 403)
        branch_id = actor.branch_id

    delivery_type, pricing, applied = _price_request(data, None)
    notes = data.get("notes")
    order = create_order(
        pricing, delivery_type,
        applied=applied,
        guest_info=guest_info,
        branch_id=branch_id,
        address=_address(data, delivery_type, guest_info),
        payment_method=_payment_method(data),
        notes=f"[Backend Order] {notes}" if notes else "[Backend Order]",
        status="CONFIRMED",
    )
    return ok("order created", {"order": order.as_api()}, status=201)
