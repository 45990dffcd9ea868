from datetime import datetime, timezone
from ..extensions import db

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PREPARING", "READY", "OUT_FOR_DELIVERY", "DELIVERED", "CANCELLED")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")

def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), unique=True, index=True)  # e.g., "ORD-20251022-0001"
    status = db.Column(db.String(20), default="PENDING", index=True)

    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branch.id"), nullable=True, index=True)

    # Guest snapshot (null when the customer is logged in)
    guest_name = db.Column(db.String(120))
    guest_phone = db.Column(db.String(50))
    guest_email = db.Column(db.String(120))
    address_json = db.Column(db.JSON)

    delivery_type = db.Column(db.String(16), nullable=False, default="PICKUP")
    payment_method = db.Column(db.String(32))
    payment_status = db.Column(db.String(16), default="PENDING")
    notes = db.Column(db.Text)
    estimated_time = db.Column(db.Integer, default=30)  # minutes

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2))
    delivery_fee = db.Column(db.Numeric(12, 2))
    discount = db.Column(db.Numeric(12, 2))
    total = db.Column(db.Numeric(12, 2))
    promo_code_id = db.Column(db.Integer, db.ForeignKey("promo_code.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="joined"
    )
    promo_code = db.relationship("PromoCode", lazy="joined")

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "user_id": self.user_id,
            "branch_id": self.branch_id,
            "guest": {
                "name": self.guest_name,
                "phone": self.guest_phone,
                "email": self.guest_email,
            } if self.user_id is None else None,
            "address": self.address_json,
            "delivery_type": self.delivery_type,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "estimated_time": self.estimated_time,
            "money": {
                "subtotal": float(self.subtotal or 0),
                "delivery_fee": float(self.delivery_fee or 0),
                "discount": float(self.discount or 0),
                "total": float(self.total or 0),
            },
            "promo_code": self.promo_code.code if self.promo_code else None,
            "items": [i.as_api() for i in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    menu_item_id = db.Column(db.Integer, index=True)   # not a FK; items may be deleted later
    name = db.Column(db.String(255))
    price = db.Column(db.Numeric(12, 2))
    quantity = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(500))
    line_total = db.Column(db.Numeric(12, 2))

    def as_api(self):
        return {
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "price": float(self.price or 0),
            "quantity": self.quantity,
            "notes": self.notes,
            "line_total": float(self.line_total or 0),
        }
