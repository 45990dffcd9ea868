# orderdesk/services/order_service.py
import logging
import secrets
from datetime import datetime, timezone
from sqlalchemy import or_
from ..extensions import db
from ..model import Order, OrderItem, PromoCode, PromoCodeUsage
from .pricing import DeliveryType, UsageLimitReached

log = logging.getLogger(__name__)

def _gen_order_number():
    # timestamp plus a short random suffix; unique column backs it up
    now = datetime.now(timezone.utc)
    return "ORD-" + now.strftime("%Y%m%d-%H%M%S") + "-" + secrets.token_hex(2).upper()

def claim_promo_usage(promo_id: int) -> bool:
    """
    Increment the global usage counter only while it is under the limit.
    Returns False when another checkout took the last use first.
    """
    updated = (
        db.session.query(PromoCode)
        .filter(PromoCode.id == promo_id)
        .filter(or_(PromoCode.usage_limit.is_(None),
                    PromoCode.usage_limit == 0,
                    PromoCode.usage_count < PromoCode.usage_limit))
        .update({PromoCode.usage_count: PromoCode.usage_count + 1}, synchronize_session=False)
    )
    return updated == 1

def create_order(pricing, delivery_type: DeliveryType, *, applied=None, user_id=None, guest_info=None,
                 branch_id=None, address=None, payment_method=None, notes=None,
                 status="PENDING", estimated_time=30) -> Order:
    """
    Persist an already priced order. `pricing` is a PricingResult and
    `applied` the AppliedDiscount when a promo code was validated.
    Commits on success, rolls back and re-raises on any failure.
    """
    guest_info = guest_info or {}
    try:
        order = Order(
            order_number=_gen_order_number(),
            status=status,
            user_id=user_id,
            branch_id=branch_id,
            guest_name=None if user_id else guest_info.get("name"),
            guest_phone=None if user_id else guest_info.get("phone"),
            guest_email=None if user_id else guest_info.get("email"),
            address_json=address if delivery_type == DeliveryType.DELIVERY else None,
            delivery_type=delivery_type.value,
            payment_method=payment_method,
            payment_status="PENDING",
            notes=notes,
            estimated_time=estimated_time,
            subtotal=pricing.subtotal,
            delivery_fee=pricing.delivery_fee,
            discount=pricing.discount,
            total=pricing.total,
            promo_code_id=applied.promo.id if applied else None,
        )
        db.session.add(order)
        db.session.flush()

        for line in pricing.lines:
            db.session.add(OrderItem(
                order_id=order.id,
                menu_item_id=line.item_id,
                name=line.name,
                price=line.unit_price,
                quantity=line.quantity,
                notes=line.notes,
                line_total=line.line_total,
            ))

        if applied:
            if not claim_promo_usage(applied.promo.id):
                raise UsageLimitReached()
            db.session.add(PromoCodeUsage(
                promo_code_id=applied.promo.id,
                user_id=user_id,
                order_id=order.id,
                discount=pricing.discount,
            ))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log.info("order %s created: total=%s promo=%s", order.order_number, order.total,
             applied.promo.code if applied else None)
    return order
