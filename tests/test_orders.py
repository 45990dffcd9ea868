import pytest

from orderdesk.extensions import db
from orderdesk.model import Order, OrderItem, PromoCode, PromoCodeUsage, Role
from orderdesk.services.order_service import create_order
from orderdesk.services.pricing import DeliveryType, LineItem, UsageLimitReached
from orderdesk.services.promo_service import build_engine

GUEST = {"name": "Kofi", "phone": "0240000000"}


def _items(menu):
    return [{"menu_item_id": menu["A"], "quantity": 2}, {"menu_item_id": menu["B"], "quantity": 1}]


def _promo(client, admin_headers, **payload):
    body = {"code": "ONCE", "discount_type": "FIXED", "discount_value": 5, "per_user_limit": 1}
    body.update(payload)
    resp = client.post("/api/admin/promo-codes", json=body, headers=admin_headers)
    assert resp.status_code == 201, resp.get_json()


def test_quote_delivery(client, menu):
    resp = client.post("/api/orders/quote", json={"items": _items(menu), "delivery_type": "DELIVERY"})
    pricing = resp.get_json()["data"]["pricing"]
    assert (pricing["subtotal"], pricing["delivery_fee"], pricing["total"]) == (55.0, 10.0, 65.0)


def test_guest_checkout_pickup(client, menu):
    resp = client.post("/api/orders", json={
        "items": [{"menu_item_id": menu["A"], "quantity": 1, "price": 0.5, "notes": "no pepper"}],
        "delivery_type": "PICKUP",
        "guest_info": GUEST,
    })
    assert resp.status_code == 201
    order = resp.get_json()["data"]["order"]
    assert order["money"]["total"] == 20.0
    assert order["items"][0]["notes"] == "no pepper"
    assert order["guest"]["name"] == "Kofi"
    assert resp.headers["X-Order-Id"] == str(order["id"])


def test_checkout_requires_contact(client, menu):
    resp = client.post("/api/orders", json={"items": _items(menu), "delivery_type": "PICKUP"})
    assert resp.status_code == 401


def test_checkout_empty_cart(client, menu):
    resp = client.post("/api/orders", json={"items": [], "guest_info": GUEST})
    assert resp.status_code == 400
    assert resp.get_json()["data"]["error"] == "EmptyOrder"


def test_checkout_unavailable_item(client, menu):
    resp = client.post("/api/orders", json={
        "items": [{"menu_item_id": menu["C"], "quantity": 1}], "guest_info": GUEST})
    assert resp.status_code == 409
    assert resp.get_json()["data"]["error"] == "ItemUnavailable"
    assert Order.query.count() == 0


def test_delivery_needs_address(client, menu):
    resp = client.post("/api/orders", json={
        "items": _items(menu), "delivery_type": "DELIVERY", "guest_info": GUEST})
    assert resp.status_code == 422


def test_promo_usage_recorded_and_per_user_limit(client, admin_headers, customer_headers, menu):
    _promo(client, admin_headers)
    body = {"items": _items(menu), "delivery_type": "PICKUP", "promo_code": "once"}

    resp = client.post("/api/orders", json=body, headers=customer_headers)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["order"]["money"]["total"] == 50.0
    assert PromoCode.query.one().usage_count == 1
    assert PromoCodeUsage.query.count() == 1

    resp = client.post("/api/orders", json=body, headers=customer_headers)
    assert resp.get_json()["data"]["error"] == "PerUserLimitReached"

    # a guest has no usage history and may still use it
    resp = client.post("/api/orders", json={**body, "guest_info": GUEST})
    assert resp.status_code == 201


def test_global_usage_limit(client, admin_headers, menu):
    _promo(client, admin_headers, usage_limit=1, per_user_limit=None)
    body = {"items": _items(menu), "promo_code": "ONCE", "guest_info": GUEST}
    assert client.post("/api/orders", json=body).status_code == 201
    resp = client.post("/api/orders", json=body)
    assert resp.get_json()["data"]["error"] == "UsageLimitReached"
    assert Order.query.count() == 1


def test_free_delivery_code(client, admin_headers, menu):
    _promo(client, admin_headers, code="SHIPFREE", discount_type="FREE_DELIVERY", discount_value=0,
           per_user_limit=None)
    resp = client.post("/api/orders", json={
        "items": _items(menu), "delivery_type": "DELIVERY", "promo_code": "shipfree",
        "guest_info": GUEST, "address": {"street": "12 Oxford St"},
    })
    money = resp.get_json()["data"]["order"]["money"]
    assert money == {"subtotal": 55.0, "delivery_fee": 0.0, "discount": 0.0, "total": 55.0}


def test_fixed_discount_over_total_is_zero(client, admin_headers, menu):
    _promo(client, admin_headers, code="BIG", discount_value=200, per_user_limit=None)
    resp = client.post("/api/orders", json={
        "items": [{"menu_item_id": menu["B"], "quantity": 1}], "promo_code": "BIG", "guest_info": GUEST})
    assert resp.get_json()["data"]["order"]["money"]["total"] == 0.0


def test_my_orders(client, customer_headers, menu):
    client.post("/api/orders", json={"items": _items(menu)}, headers=customer_headers)
    client.post("/api/orders", json={"items": _items(menu), "guest_info": GUEST})
    resp = client.get("/api/orders/mine", headers=customer_headers)
    assert len(resp.get_json()["data"]["items"]) == 1


def test_staff_sees_only_their_branch(client, make_user, login, admin_headers, menu, branch):
    make_user("staff@example.com", Role.STAFF, branch_id=branch)
    staff = login("staff@example.com")

    resp = client.post("/api/admin/orders/create", json={
        "items": _items(menu), "guest_info": GUEST, "notes": "phone order"}, headers=staff)
    assert resp.status_code == 201
    order = resp.get_json()["data"]["order"]
    assert order["status"] == "CONFIRMED"
    assert order["notes"] == "[Backend Order] phone order"
    assert order["branch_id"] == branch

    client.post("/api/orders", json={"items": _items(menu), "guest_info": GUEST})

    assert client.get("/api/admin/orders", headers=staff).get_json()["data"]["total"] == 1
    assert client.get("/api/admin/orders", headers=admin_headers).get_json()["data"]["total"] == 2

    resp = client.patch(f"/api/admin/orders/{order['id']}", json={"status": "preparing"}, headers=staff)
    assert resp.get_json()["data"]["status"] == "PREPARING"


def test_customer_cannot_list_admin_orders(client, customer_headers):
    assert client.get("/api/admin/orders", headers=customer_headers).status_code == 403


@pytest.mark.parametrize("quantity", [1.9, True, "two", "NaN"])
def test_quote_rejects_non_whole_quantity(client, menu, quantity):
    resp = client.post("/api/orders/quote", json={"items": [{"menu_item_id": menu["A"], "quantity": quantity}]})
    assert resp.status_code == 422


def test_quote_accepts_whole_float_and_string_quantity(client, menu):
    items = [{"menu_item_id": menu["A"], "quantity": 2.0}, {"menu_item_id": menu["B"], "quantity": "1"}]
    resp = client.post("/api/orders/quote", json={"items": items})
    assert resp.get_json()["data"]["pricing"]["subtotal"] == 55.0


@pytest.mark.parametrize("body", [
    {"delivery_type": "DELIVERY", "guest_info": GUEST, "address": "12 Oxford St"},
    {"delivery_type": "PICKUP", "guest_info": "Kofi 0240000000"},
])
def test_checkout_rejects_non_object_contact_fields(client, menu, body):
    resp = client.post("/api/orders", json={"items": _items(menu), **body})
    assert resp.status_code == 422
    assert Order.query.count() == 0


def test_backend_order_rejects_non_object_guest_info(client, admin_headers, menu):
    resp = client.post("/api/admin/orders/create", json={"items": _items(menu), "guest_info": ["Kofi"]},
                       headers=admin_headers)
    assert resp.status_code == 422


def test_code_used_up_after_validation_rolls_back(client, admin_headers, menu):
    _promo(client, admin_headers, usage_limit=1, per_user_limit=None)
    pricing, applied = build_engine().validate_and_price(
        "ONCE", [LineItem(menu["A"], 1)], DeliveryType.PICKUP)

    # a competing checkout takes the last use before this one commits
    PromoCode.query.update({PromoCode.usage_count: 1})
    db.session.commit()

    with pytest.raises(UsageLimitReached):
        create_order(pricing, DeliveryType.PICKUP, applied=applied, guest_info=GUEST)

    assert Order.query.count() == 0
    assert OrderItem.query.count() == 0
    assert PromoCodeUsage.query.count() == 0
    assert PromoCode.query.one().usage_count == 1


def test_staff_without_branch_sees_no_orders(client, make_user, login, menu):
    make_user("floater@example.com", Role.STAFF)
    staff = login("floater@example.com")
    client.post("/api/orders", json={"items": _items(menu), "guest_info": GUEST})
    order_id = Order.query.one().id

    assert client.get("/api/admin/orders", headers=staff).get_json()["data"]["total"] == 0
    resp = client.patch(f"/api/admin/orders/{order_id}", json={"status": "CANCELLED"}, headers=staff)
    assert resp.status_code == 404

    resp = client.post("/api/admin/orders/create", json={"items": _items(menu), "guest_info": GUEST},
                       headers=staff)
    assert resp.status_code == 403
    assert Order.query.count() == 1
