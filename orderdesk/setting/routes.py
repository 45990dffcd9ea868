# orderdesk/setting/routes.py
from decimal import Decimal, InvalidOperation
from flask import request, current_app
from ..extensions import db
from ..model import Setting, Role
from ..services.promo_service import delivery_settings
from ..utils.api import ok, err
from ..utils.decorators import role_required
from . import bp

NUMERIC_KEYS = {"delivery_fee", "free_delivery_threshold", "min_order_amount", "tax_rate"}
TEXT_KEYS = {"currency", "onlineOrdersEnabled"}

DEFAULTS = {
    "delivery_fee": "10",
    "min_order_amount": "50",
    "free_delivery_threshold": "100",
    "currency": "GH₵",
    "tax_rate": "0",
}

@bp.get("/settings/online-orders")
def online_orders():
    # only enabled when explicitly set to "true"
    return ok("online orders", {"enabled": Setting.get_value("onlineOrdersEnabled") == "true"})

@bp.get("/settings/delivery")
def public_delivery_settings():
    s = delivery_settings()
    return ok("delivery settings", {
        "delivery_fee": float(s.base_fee),
        "free_delivery_threshold": float(s.free_threshold),
        "currency": s.currency,
    })

@bp.get("/admin/settings")
@role_required(Role.ADMIN)
def admin_get_settings():
    rows = Setting.query.order_by(Setting.key.asc()).all()
    return ok("settings", {"items": {r.key: r.value for r in rows}})

@bp.put("/admin/settings")
@role_required(Role.ADMIN)
def admin_put_settings():
    """Body: {"delivery_fee": 12, "free_delivery_threshold": 150, ...}"""
    data = request.get_json(silent=True) or {}
    unknown = sorted(set(data) - NUMERIC_KEYS - TEXT_KEYS)
    if unknown:
        return err(f"unknown setting(s): {', '.join(unknown)}", 422)

    for key, value in data.items():
        if key in NUMERIC_KEYS:
            try:
                d = Decimal(str(value))
            except (InvalidOperation, TypeError):
                return err(f"{key} must be numeric", 422)
            if d < 0:
                return err(f"{key} must be >= 0", 422)
            value = str(d)
        elif key == "onlineOrdersEnabled":
            value = "true" if str(value).strip().lower() in {"1", "true", "yes", "on"} else "false"
        Setting.put(key, value)

    db.session.commit()
    current_app.logger.info("settings updated: %s", ", ".join(sorted(data)))
    rows = Setting.query.order_by(Setting.key.asc()).all()
    return ok("settings updated", {"items": {r.key: r.value for r in rows}})
