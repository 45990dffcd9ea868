# orderdesk/services/promo_service.py
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from flask import current_app
from sqlalchemy import func
from ..extensions import db
from ..model import MenuItem, PromoCode, PromoCodeUsage, Setting
from .pricing import (
    CatalogItem, DeliverySettings, DiscountType, LineItem, PricingEngine, normalize_code,
)

# ---- engine collaborators ---------------------------------------------------

def catalog_lookup(ids):
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    rows = MenuItem.query.filter(MenuItem.id.in_(ids)).all()
    return {
        m.id: CatalogItem(id=m.id, name=m.name, price=Decimal(str(m.price or 0)), is_available=bool(m.is_available))
        for m in rows
    }

def _setting_decimal(key, default) -> Decimal:
    raw = Setting.get_value(key, default)
    try:
        return Decimal(str(raw))
    except (InvalidOperation, TypeError):
        current_app.logger.warning("setting %s has non-numeric value %r, using %s", key, raw, default)
        return Decimal(str(default))

def delivery_settings() -> DeliverySettings:
    cfg = current_app.config
    return DeliverySettings(
        base_fee=_setting_decimal("delivery_fee", cfg.get("DEFAULT_DELIVERY_FEE", "10")),
        free_threshold=_setting_decimal("free_delivery_threshold", cfg.get("DEFAULT_FREE_DELIVERY_THRESHOLD", "100")),
        currency=Setting.get_value("currency", cfg.get("CURRENCY_SYMBOL", "GH₵")),
    )

def promo_lookup(code: str):
    promo = PromoCode.query.filter(func.upper(PromoCode.code) == normalize_code(code)).first()
    return promo.to_rule() if promo else None

def usage_count(promo_id: int, user_id: int) -> int:
    return (db.session.query(func.count(PromoCodeUsage.id))
            .filter(PromoCodeUsage.promo_code_id == promo_id, PromoCodeUsage.user_id == user_id)
            .scalar()) or 0

def build_engine(clock=None) -> PricingEngine:
    return PricingEngine(
        catalog_lookup=catalog_lookup,
        settings_provider=delivery_settings,
        promo_lookup=promo_lookup,
        usage_lookup=usage_count,
        clock=clock,
    )

# ---- payload parsing --------------------------------------------------------

def _whole_number(v) -> int:
    # 1.9 and True are not quantities; "2" and 2.0 are
    if isinstance(v, bool):
        raise ValueError("quantity must be a whole number")
    try:
        d = Decimal(str(v).strip())
    except (InvalidOperation, TypeError):
        raise ValueError("quantity must be a whole number")
    if not d.is_finite() or d != d.to_integral_value():
        raise ValueError("quantity must be a whole number")
    return int(d)

def parse_line_items(raw_items) -> list:
    """
    Accepts [{"menu_item_id"|"id": int, "quantity": int, "notes"?: str, "price"?: any}].
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValueError("items must be a list")
    out = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValueError("each item must be an object")
        item_id = raw.get("menu_item_id", raw.get("id"))
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            raise ValueError("menu_item_id must be an integer")
        qty = _whole_number(raw.get("quantity", 1))
        out.append(LineItem(item_id=item_id, quantity=qty, notes=raw.get("notes"), price=raw.get("price")))
    return out

def _parse_iso8601(s):
    if not s: return None
    s = str(s).strip()
    if s.endswith("Z"): s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)  # store naive UTC
    return dt

def _opt_decimal(v, field):
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        d = Decimal(str(v))
    except InvalidOperation:
        raise ValueError(f"{field} must be numeric")
    if not d.is_finite():
        raise ValueError(f"{field} must be numeric")
    if d < 0:
        raise ValueError(f"{field} must be >= 0")
    return d

def _opt_int(v, field):
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        n = int(v)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if n < 0:
        raise ValueError(f"{field} must be >= 0")
    return n

def _opt_date(data, field):
    raw = data.get(field)
    dt = _parse_iso8601(raw)
    if raw and not dt:
        raise ValueError(f"Invalid datetime format for {field}")
    return dt

def _apply_payload(p: PromoCode, data: dict, partial: bool):
    if not partial or "discount_type" in data:
        dtype = str(data.get("discount_type") or "").strip().upper()
        if dtype not in {t.value for t in DiscountType}:
            raise ValueError("discount_type must be PERCENTAGE, FIXED or FREE_DELIVERY")
        p.discount_type = dtype

    if not partial or "discount_value" in data:
        if data.get("discount_value") is None:
            raise ValueError("discount_value is required")
        p.discount_value = _opt_decimal(data.get("discount_value"), "discount_value") or Decimal("0")

    # the value is checked against the final type, whichever of the two changed
    if not partial or "discount_type" in data or "discount_value" in data:
        value = Decimal(str(p.discount_value or 0))
        if p.discount_type != DiscountType.FREE_DELIVERY.value and value <= 0:
            raise ValueError("discount_value must be > 0")
        if p.discount_type == DiscountType.PERCENTAGE.value and value > 100:
            raise ValueError("percentage discount must be <= 100")

    for field in ("min_order_amount", "max_discount"):
        if not partial or field in data:
            setattr(p, field, _opt_decimal(data.get(field), field))
    for field in ("usage_limit", "per_user_limit"):
        if not partial or field in data:
            setattr(p, field, _opt_int(data.get(field), field))
    for field in ("start_date", "end_date"):
        if not partial or field in data:
            setattr(p, field, _opt_date(data, field))

    if p.start_date and p.end_date and p.end_date < p.start_date:
        raise ValueError("end_date must be after start_date")
    if "description" in data:
        p.description = (data.get("description") or "").strip() or None
    if "is_active" in data:
        p.is_active = bool(data.get("is_active"))

def create_promo_from_payload(data: dict) -> PromoCode:
    code = normalize_code(data.get("code"))
    if not code:
        raise ValueError("code is required")
    if PromoCode.query.filter(func.upper(PromoCode.code) == code).first():
        raise ValueError("Promo code already exists")

    p = PromoCode(code=code, is_active=bool(data.get("is_active", True)), usage_count=0)
    _apply_payload(p, data, partial=False)
    db.session.add(p)
    db.session.commit()
    current_app.logger.info("promo code %s created (%s %s)", p.code, p.discount_type, p.discount_value)
    return p

def update_promo_from_payload(p: PromoCode, data: dict) -> PromoCode:
    if "code" in data:
        code = normalize_code(data.get("code"))
        if not code:
            raise ValueError("code cannot be empty")
        clash = PromoCode.query.filter(func.upper(PromoCode.code) == code, PromoCode.id != p.id).first()
        if clash:
            raise ValueError("Promo code already exists")
        p.code = code
    try:
        _apply_payload(p, data, partial=True)
    except ValueError:
        db.session.rollback()
        raise
    db.session.commit()
    current_app.logger.info("promo code %s updated", p.code)
    return p
