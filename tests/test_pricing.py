from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from orderdesk.services.pricing import (
    BelowMinimum, CatalogItem, CodeInactive, CodeNotFound, DeliverySettings, DeliveryType,
    DiscountType, EmptyOrder, Expired, InvalidQuantity, ItemUnavailable, LineItem, NotYetActive,
    PerUserLimitReached, PricingEngine, PromoRule, UsageLimitReached, compute_delivery_fee,
    compute_discount, compute_subtotal, compute_total, validate_promo_code,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)
SETTINGS = DeliverySettings(base_fee=Decimal("10"), free_threshold=Decimal("100"), currency="GH₵")

CATALOG = {
    "A": CatalogItem(id="A", name="Jollof", price=Decimal("20")),
    "B": CatalogItem(id="B", name="Sobolo", price=Decimal("15")),
    "X": CatalogItem(id="X", name="Sold out", price=Decimal("5"), is_available=False),
}


def catalog_lookup(ids):
    return {i: CATALOG[i] for i in ids if i in CATALOG}


def promo(**kw):
    base = dict(id=1, code="SAVE", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10"))
    base.update(kw)
    return PromoRule(**base)


def store(*rules):
    by_code = {r.code: r for r in rules}
    return lambda code: by_code.get(code)


def no_usage(promo_id, user_id):
    return 0


def engine(*rules, usage=no_usage):
    return PricingEngine(catalog_lookup, lambda: SETTINGS, store(*rules), usage, clock=lambda: NOW)


# ---- subtotal ---------------------------------------------------------------

def test_subtotal_uses_catalog_price_not_client_price():
    items = [LineItem("A", 2, price=Decimal("0.01")), LineItem("B", 1, price=Decimal("1"))]
    assert compute_subtotal(items, catalog_lookup) == Decimal("55.00")


def test_subtotal_empty_order():
    with pytest.raises(EmptyOrder):
        compute_subtotal([], catalog_lookup)


@pytest.mark.parametrize("item_id", ["X", "missing"])
def test_subtotal_unavailable_or_unknown_item(item_id):
    with pytest.raises(ItemUnavailable) as exc:
        compute_subtotal([LineItem("A", 1), LineItem(item_id, 1)], catalog_lookup)
    assert exc.value.item_id == item_id
    assert exc.value.kind == "ItemUnavailable"


def test_subtotal_rejects_zero_quantity():
    with pytest.raises(InvalidQuantity):
        compute_subtotal([LineItem("A", 0)], catalog_lookup)


# ---- delivery fee -----------------------------------------------------------

@pytest.mark.parametrize("subtotal,expected", [
    (Decimal("99.99"), Decimal("10")),
    (Decimal("100"), Decimal("0")),
    (Decimal("250"), Decimal("0")),
    (Decimal("0"), Decimal("10")),
])
def test_delivery_fee_threshold(subtotal, expected):
    assert compute_delivery_fee(DeliveryType.DELIVERY, subtotal, SETTINGS) == expected


def test_pickup_is_always_free():
    assert compute_delivery_fee(DeliveryType.PICKUP, Decimal("5"), SETTINGS) == Decimal("0")


# ---- totals -----------------------------------------------------------------

@pytest.mark.parametrize("discount", ["0", "10", "65", "1000"])
def test_total_never_negative(discount):
    assert compute_total(Decimal("55"), Decimal("10"), Decimal(discount)) >= 0


def test_fixed_discount_larger_than_order_clamps_total_only():
    rule = promo(discount_type=DiscountType.FIXED, discount_value=Decimal("200"))
    discount = compute_discount(rule, Decimal("50"))
    assert discount == Decimal("200")
    assert compute_total(Decimal("50"), Decimal("10"), discount) == Decimal("0")


def test_percentage_discount_is_capped():
    rule = promo(discount_value=Decimal("50"), max_discount=Decimal("20"))
    assert compute_discount(rule, Decimal("100")) == Decimal("20")


def test_percentage_discount_uncapped():
    assert compute_discount(promo(discount_value=Decimal("15")), Decimal("80")) == Decimal("12.00")


def test_free_delivery_discount_is_zero():
    rule = promo(discount_type=DiscountType.FREE_DELIVERY, discount_value=Decimal("0"))
    assert compute_discount(rule, Decimal("80")) == Decimal("0")


# ---- validation order -------------------------------------------------------

def validate(rule, subtotal="100", user_id=None, usage=no_usage, code=None):
    return validate_promo_code(code or rule.code, Decimal(subtotal), user_id, NOW, store(rule), usage, "GH₵")


def test_unknown_code():
    with pytest.raises(CodeNotFound):
        validate(promo(), code="NOPE")


def test_lookup_is_case_insensitive():
    assert validate(promo(), code="  save ").code == "SAVE"


def test_inactive_code():
    with pytest.raises(CodeInactive):
        validate(promo(is_active=False, end_date=NOW - timedelta(days=1)))


def test_not_yet_active():
    with pytest.raises(NotYetActive):
        validate(promo(start_date=NOW + timedelta(hours=1)))


def test_expired_reported_before_below_minimum():
    rule = promo(end_date=NOW - timedelta(days=1), min_order_amount=Decimal("500"))
    with pytest.raises(Expired):
        validate(rule, subtotal="10")


def test_usage_limit_reached():
    with pytest.raises(UsageLimitReached):
        validate(promo(usage_limit=5, usage_count=5))


def test_below_minimum_message_has_two_decimals():
    with pytest.raises(BelowMinimum) as exc:
        validate(promo(min_order_amount=Decimal("50")), subtotal="49.99")
    assert "50.00" in exc.value.message
    assert exc.value.as_dict()["min_order_amount"] == 50.0


def test_per_user_limit():
    used = {(1, 7): 2}
    usage = lambda promo_id, user_id: used.get((promo_id, user_id), 0)
    rule = promo(per_user_limit=2)
    with pytest.raises(PerUserLimitReached):
        validate(rule, user_id=7, usage=usage)
    assert validate(rule, user_id=8, usage=usage) is rule


def test_per_user_limit_skipped_for_guests():
    def usage(promo_id, user_id):
        raise AssertionError("guests have no usage history")
    assert validate(promo(per_user_limit=1), user_id=None, usage=usage).code == "SAVE"


# ---- engine facade ----------------------------------------------------------

def test_price_scenario():
    result = engine().price([LineItem("A", 2), LineItem("B", 1)], DeliveryType.DELIVERY)
    assert (result.subtotal, result.delivery_fee, result.discount, result.total) == (
        Decimal("55.00"), Decimal("10.00"), Decimal("0.00"), Decimal("65.00"))
    assert [l.line_total for l in result.lines] == [Decimal("40.00"), Decimal("15.00")]


def test_validate_and_price_free_delivery_zeroes_fee():
    rule = promo(code="FREEDEL", discount_type=DiscountType.FREE_DELIVERY, discount_value=Decimal("0"))
    result, applied = engine(rule).validate_and_price("freedel", [LineItem("A", 1)], DeliveryType.DELIVERY)
    assert result.free_delivery_applied is True
    assert result.delivery_fee == Decimal("0")
    assert result.discount == Decimal("0")
    assert result.total == Decimal("20.00")
    assert applied.message == "Free delivery applied!"


def test_validate_and_price_percentage():
    rule = promo(code="TEN", discount_value=Decimal("10"))
    result, applied = engine(rule).validate_and_price("TEN", [LineItem("A", 2), LineItem("B", 1)],
                                                      DeliveryType.DELIVERY)
    assert result.discount == Decimal("5.50")
    assert result.total == Decimal("59.50")
    assert result.free_delivery_applied is False
    assert applied.message == "Discount of GH₵5.50 applied!"


def test_validate_and_price_checks_minimum_against_catalog_subtotal():
    rule = promo(code="BIG", min_order_amount=Decimal("60"))
    with pytest.raises(BelowMinimum):
        engine(rule).validate_and_price("BIG", [LineItem("A", 2, price=Decimal("100"))], DeliveryType.PICKUP)
