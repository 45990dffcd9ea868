# orderdesk/promo/routes.py
from __future__ import annotations
from decimal import Decimal, InvalidOperation
from flask import request, current_app
from sqlalchemy import func
from ..extensions import db
from ..model import PromoCode, PromoCodeUsage, Role
from ..services.pricing import DeliveryType
from ..services.promo_service import (
    build_engine, parse_line_items, create_promo_from_payload, update_promo_from_payload,
)
from ..utils.api import ok, err
from ..utils.decorators import _current_user, role_required
from . import bp

@bp.post("/promo-codes/validate")
def validate_promo_code():
    """
    Body: { "code": "SAVE10", "items": [...], "delivery_type": "DELIVERY" }
      or: { "code": "SAVE10", "subtotal": 120.0 }
    Token is optional; when present the per-user limit is enforced.
    """
    data = request.get_json(silent=True) or {}
    code = (data.get("code") or "").strip()
    if not code:
        return err("Promo code is required", 400)

    user = _current_user(optional=True)
    engine = build_engine()

    if data.get("items"):
        delivery_type = DeliveryType.parse(data.get("delivery_type") or DeliveryType.PICKUP.value)
        pricing, applied = engine.validate_and_price(
            code, parse_line_items(data.get("items")), delivery_type, user.id if user else None)
        return ok(applied.message, {"valid": True, **applied.as_api(), "pricing": pricing.as_api()})

    try:
        subtotal = Decimal(str(data.get("subtotal")))
    except (InvalidOperation, TypeError):
        return err("items or a numeric subtotal is required", 400)
    if not subtotal.is_finite() or subtotal < 0:
        return err("subtotal must be a finite amount >= 0", 400)
    applied = engine.check_code(code, subtotal, user.id if user else None)
    return ok(applied.message, {"valid": True, **applied.as_api()})

# ---- admin ------------------------------------------------------------------

@bp.get("/admin/promo-codes")
@role_required(Role.ADMIN)
def list_promo_codes():
    q = PromoCode.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(PromoCode.is_active == (active.lower() == "true"))

    counts = dict(
        db.session.query(PromoCodeUsage.promo_code_id, func.count(PromoCodeUsage.id))
        .group_by(PromoCodeUsage.promo_code_id).all()
    )
    items = q.order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).all()
    payload = [{**p.as_api(), "usages": counts.get(p.id, 0)} for p in items]
    current_app.logger.debug("list_promo_codes count=%d", len(payload))
    return ok("ok", {"items": payload})

@bp.post("/admin/promo-codes")
@role_required(Role.ADMIN)
def create_promo_code():
    data = request.get_json(silent=True) or {}
    p = create_promo_from_payload(data)
    return ok("Promo code created", p.as_api(), status=201)

@bp.route("/admin/promo-codes/<int:promo_id>", methods=["PUT", "PATCH"])
@role_required(Role.ADMIN)
def update_promo_code(promo_id: int):
    p = db.session.get(PromoCode, promo_id)
    if not p:
        return err("Promo code not found", 404)
    data = request.get_json(silent=True) or {}
    update_promo_from_payload(p, data)
    return ok("Promo code updated", p.as_api())

@bp.delete("/admin/promo-codes/<int:promo_id>")
@role_required(Role.ADMIN)
def delete_promo_code(promo_id: int):
    p = db.session.get(PromoCode, promo_id)
    if not p:
        return err("Promo code not found", 404)
    db.session.delete(p)
    db.session.commit()
    return ok("Promo code deleted")
