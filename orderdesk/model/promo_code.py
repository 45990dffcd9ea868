# --- orderdesk/model/promo_code.py ---

from decimal import Decimal
from ..extensions import db
from sqlalchemy.sql import func
from ..services.pricing import DiscountType, PromoRule

class PromoCode(db.Model):
    __tablename__ = "promo_code"

    id = db.Column(db.Integer, primary_key=True)
    # stored upper-case; lookups normalize the same way
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255))

    # PERCENTAGE | FIXED | FREE_DELIVERY
    discount_type = db.Column(db.String(16), nullable=False, default=DiscountType.PERCENTAGE.value)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Optional constraints
    min_order_amount = db.Column(db.Numeric(12, 2), nullable=True)
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)   # cap for PERCENTAGE
    usage_limit = db.Column(db.Integer, nullable=True)           # global cap
    per_user_limit = db.Column(db.Integer, nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, default=True, index=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    usages = db.relationship("PromoCodeUsage", back_populates="promo_code",
                             cascade="all, delete-orphan", lazy="select")

    def to_rule(self) -> PromoRule:
        return PromoRule(
            id=self.id,
            code=self.code,
            discount_type=DiscountType(self.discount_type),
            discount_value=Decimal(str(self.discount_value or 0)),
            min_order_amount=Decimal(str(self.min_order_amount)) if self.min_order_amount is not None else None,
            max_discount=Decimal(str(self.max_discount)) if self.max_discount is not None else None,
            usage_limit=self.usage_limit,
            per_user_limit=self.per_user_limit,
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=bool(self.is_active),
            usage_count=int(self.usage_count or 0),
            description=self.description,
        )

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value or 0),
            "min_order_amount": float(self.min_order_amount) if self.min_order_amount is not None else None,
            "max_discount": float(self.max_discount) if self.max_discount is not None else None,
            "usage_limit": self.usage_limit,
            "per_user_limit": self.per_user_limit,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": self.is_active,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

class PromoCodeUsage(db.Model):
    __tablename__ = "promo_code_usage"
    id = db.Column(db.Integer, primary_key=True)
    promo_code_id = db.Column(db.Integer, db.ForeignKey("promo_code.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), index=True, nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=True)
    discount = db.Column(db.Numeric(12, 2))
    created_at = db.Column(db.DateTime, server_default=func.now())

    promo_code = db.relationship("PromoCode", back_populates="usages")
