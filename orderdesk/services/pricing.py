# orderdesk/services/pricing.py
"""
Order pricing and promo-code evaluation.

Everything in this module is pure: catalog rows, delivery settings, promo
records and usage counts come in through the arguments (or the lookups handed
to PricingEngine). Nothing here touches the database or the request.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional

from ..utils.money import D, ZERO, Money, format_money, round_money

log = logging.getLogger(__name__)


class DeliveryType(str, enum.Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"

    @classmethod
    def parse(cls, value) -> "DeliveryType":
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            raise ValueError("delivery_type must be 'PICKUP' or 'DELIVERY'")


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"
    FREE_DELIVERY = "FREE_DELIVERY"


# ---- errors -----------------------------------------------------------------

class PricingError(Exception):
    """Base for every pricing/validation outcome shown to the customer."""
    kind = "PricingError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {"error": self.kind}


class EmptyOrder(PricingError):
    kind = "EmptyOrder"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidQuantity(PricingError):
    kind = "InvalidQuantity"


class ItemUnavailable(PricingError):
    kind = "ItemUnavailable"
    status_code = 409

    def __init__(self, item_id, message: str | None = None):
        super().__init__(message or "Some items are no longer available")
        self.item_id = item_id

    def as_dict(self):
        return {"error": self.kind, "item_id": self.item_id}


class CodeNotFound(PricingError):
    kind = "CodeNotFound"

    def __init__(self, message: str = "Invalid promo code"):
        super().__init__(message)


class CodeInactive(PricingError):
    kind = "CodeInactive"

    def __init__(self, message: str = "This promo code is no longer active"):
        super().__init__(message)


class NotYetActive(PricingError):
    kind = "NotYetActive"

    def __init__(self, message: str = "This promo code is not yet active"):
        super().__init__(message)


class Expired(PricingError):
    kind = "Expired"

    def __init__(self, message: str = "This promo code has expired"):
        super().__init__(message)


class UsageLimitReached(PricingError):
    kind = "UsageLimitReached"

    def __init__(self, message: str = "This promo code has reached its usage limit"):
        super().__init__(message)


class BelowMinimum(PricingError):
    kind = "BelowMinimum"

    def __init__(self, minimum: Money, currency: str = ""):
        super().__init__(f"Minimum order of {format_money(minimum, currency)} required for this code")
        self.minimum = round_money(minimum)

    def as_dict(self):
        return {"error": self.kind, "min_order_amount": float(self.minimum)}


class PerUserLimitReached(PricingError):
    kind = "PerUserLimitReached"

    def __init__(self, message: str = "You have already used this promo code the maximum number of times"):
        super().__init__(message)


# ---- value types ------------------------------------------------------------

@dataclass
class LineItem:
    item_id: int
    quantity: int
    notes: Optional[str] = None
    # whatever the client sent; never used for money
    price: Optional[Decimal] = None


@dataclass
class CatalogItem:
    id: int
    name: str
    price: Money
    is_available: bool = True


@dataclass
class DeliverySettings:
    base_fee: Money = Decimal("10")
    free_threshold: Money = Decimal("100")
    currency: str = "GH₵"


@dataclass
class PromoRule:
    id: int
    code: str
    discount_type: DiscountType
    discount_value: Money
    min_order_amount: Optional[Money] = None
    max_discount: Optional[Money] = None
    usage_limit: Optional[int] = None
    per_user_limit: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    usage_count: int = 0
    description: Optional[str] = None


@dataclass
class PricedLine:
    item_id: int
    name: str
    unit_price: Money
    quantity: int
    notes: Optional[str]
    line_total: Money

    def as_api(self):
        return {
            "menu_item_id": self.item_id,
            "name": self.name,
            "price": float(self.unit_price),
            "quantity": self.quantity,
            "notes": self.notes,
            "line_total": float(self.line_total),
        }


@dataclass
class PricingResult:
    subtotal: Money
    delivery_fee: Money
    discount: Money
    total: Money
    free_delivery_applied: bool = False
    lines: list = field(default_factory=list)

    def as_api(self):
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "discount": float(self.discount),
            "total": float(self.total),
            "free_delivery_applied": self.free_delivery_applied,
            "items": [l.as_api() for l in self.lines],
        }


@dataclass
class AppliedDiscount:
    promo: PromoRule
    amount: Money
    message: str

    def as_api(self):
        p = self.promo
        return {
            "promo_code": {
                "id": p.id,
                "code": p.code,
                "discount_type": p.discount_type.value,
                "discount_value": float(p.discount_value),
                "description": p.description,
            },
            "discount": float(self.amount),
            "message": self.message,
        }


CatalogLookup = Callable[[list], Mapping[int, CatalogItem]]
PromoLookup = Callable[[str], Optional[PromoRule]]
UsageLookup = Callable[[int, int], int]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_code(code) -> str:
    return (code or "").strip().upper()


# ---- operations -------------------------------------------------------------

def price_lines(line_items: Iterable[LineItem], catalog_lookup: CatalogLookup) -> list:
    """
    Resolve every line against the catalog and return PricedLine rows.
    The client price on a LineItem is ignored.
    """
    items = list(line_items or [])
    if not items:
        raise EmptyOrder()

    for it in items:
        if int(it.quantity or 0) < 1:
            raise InvalidQuantity(f"quantity for item {it.item_id} must be >= 1")

    catalog = catalog_lookup([it.item_id for it in items])
    lines = []
    for it in items:
        entry = catalog.get(it.item_id)
        if entry is None or not entry.is_available:
            raise ItemUnavailable(it.item_id)
        unit = D(entry.price)
        qty = int(it.quantity)
        lines.append(PricedLine(
            item_id=entry.id,
            name=entry.name,
            unit_price=round_money(unit),
            quantity=qty,
            notes=it.notes,
            line_total=round_money(unit * qty),
        ))
    return lines


def compute_subtotal(line_items: Iterable[LineItem], catalog_lookup: CatalogLookup) -> Money:
    lines = price_lines(line_items, catalog_lookup)
    return round_money(sum((l.line_total for l in lines), ZERO))


def compute_delivery_fee(delivery_type: DeliveryType, subtotal: Money, settings: DeliverySettings) -> Money:
    if delivery_type != DeliveryType.DELIVERY:
        return ZERO
    if D(subtotal) >= D(settings.free_threshold):
        return ZERO
    return round_money(settings.base_fee)


def validate_promo_code(
    code: str,
    subtotal: Money,
    user_id: Optional[int],
    now: datetime,
    promo_lookup: PromoLookup,
    usage_lookup: UsageLookup,
    currency: str = "",
) -> PromoRule:
    """
    Run the promo checks in customer-facing priority order and return the
    rule when every check passes. The first failing check raises.
    """
    promo = promo_lookup(normalize_code(code)) if normalize_code(code) else None
    if promo is None:
        raise CodeNotFound()
    if not promo.is_active:
        raise CodeInactive()
    if promo.start_date and now < promo.start_date:
        raise NotYetActive()
    if promo.end_date and now > promo.end_date:
        raise Expired()
    if promo.usage_limit and promo.usage_count >= promo.usage_limit:
        raise UsageLimitReached()
    if promo.min_order_amount and D(subtotal) < D(promo.min_order_amount):
        raise BelowMinimum(D(promo.min_order_amount), currency)
    if promo.per_user_limit and user_id is not None:
        used = usage_lookup(promo.id, user_id)
        if used >= promo.per_user_limit:
            raise PerUserLimitReached()
    return promo


def compute_discount(promo: PromoRule, subtotal: Money) -> Money:
    value = D(promo.discount_value)
    if promo.discount_type == DiscountType.PERCENTAGE:
        discount = D(subtotal) * value / Decimal("100")
        if promo.max_discount and discount > D(promo.max_discount):
            discount = D(promo.max_discount)
    elif promo.discount_type == DiscountType.FIXED:
        # not clamped to the subtotal; compute_total floors the result
        discount = value
    else:
        discount = ZERO
    return max(ZERO, round_money(discount))


def compute_total(subtotal: Money, delivery_fee: Money, discount: Money) -> Money:
    return max(ZERO, round_money(D(subtotal) + D(delivery_fee) - D(discount)))


def discount_message(promo: PromoRule, amount: Money, currency: str = "") -> str:
    if promo.discount_type == DiscountType.FREE_DELIVERY:
        return "Free delivery applied!"
    return f"Discount of {format_money(amount, currency)} applied!"


# ---- facade -----------------------------------------------------------------

class PricingEngine:
    """
    Binds the pure operations to their collaborators.

    catalog_lookup(ids) -> {id: CatalogItem}
    settings_provider() -> DeliverySettings
    promo_lookup(CODE) -> PromoRule | None
    usage_lookup(promo_id, user_id) -> int
    clock() -> naive UTC datetime
    """

    def __init__(self, catalog_lookup: CatalogLookup, settings_provider: Callable[[], DeliverySettings],
                 promo_lookup: PromoLookup = None, usage_lookup: UsageLookup = None,
                 clock: Callable[[], datetime] = None):
        self.catalog_lookup = catalog_lookup
        self.settings_provider = settings_provider
        self.promo_lookup = promo_lookup or (lambda code: None)
        self.usage_lookup = usage_lookup or (lambda promo_id, user_id: 0)
        self.clock = clock or utcnow

    def price(self, line_items, delivery_type: DeliveryType) -> PricingResult:
        settings = self.settings_provider()
        lines = price_lines(line_items, self.catalog_lookup)
        subtotal = round_money(sum((l.line_total for l in lines), ZERO))
        fee = compute_delivery_fee(delivery_type, subtotal, settings)
        return PricingResult(
            subtotal=subtotal,
            delivery_fee=fee,
            discount=ZERO,
            total=compute_total(subtotal, fee, ZERO),
            lines=lines,
        )

    def check_code(self, code: str, subtotal: Money, user_id=None) -> AppliedDiscount:
        """Validate a code against a known subtotal, without any line items."""
        settings = self.settings_provider()
        promo = validate_promo_code(code, subtotal, user_id, self.clock(),
                                    self.promo_lookup, self.usage_lookup, settings.currency)
        amount = compute_discount(promo, subtotal)
        return AppliedDiscount(promo=promo, amount=amount,
                               message=discount_message(promo, amount, settings.currency))

    def validate_and_price(self, code: str, line_items, delivery_type: DeliveryType, user_id=None):
        result = self.price(line_items, delivery_type)
        applied = self.check_code(code, result.subtotal, user_id)

        if applied.promo.discount_type == DiscountType.FREE_DELIVERY:
            result.free_delivery_applied = True
            result.delivery_fee = ZERO
        result.discount = applied.amount
        result.total = compute_total(result.subtotal, result.delivery_fee, result.discount)

        log.debug("promo %s applied: discount=%s total=%s", applied.promo.code, result.discount, result.total)
        return result, applied
