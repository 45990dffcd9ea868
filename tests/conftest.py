import pytest
from decimal import Decimal
from werkzeug.security import generate_password_hash

from orderdesk import create_app
from orderdesk.config import TestingConfig
from orderdesk.extensions import db
from orderdesk.model import Branch, Category, MenuItem, Role, Setting, User


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def menu(app):
    mains = Category(name="Mains", slug="mains", sort_order=1)
    drinks = Category(name="Drinks", slug="drinks", sort_order=2)
    db.session.add_all([mains, drinks])
    db.session.flush()
    items = {
        "A": MenuItem(name="Jollof Rice", slug="jollof-rice", price=Decimal("20.00"), category_id=mains.id),
        "B": MenuItem(name="Sobolo", slug="sobolo", price=Decimal("15.00"), category_id=drinks.id),
        "C": MenuItem(name="Banku", slug="banku", price=Decimal("30.00"), category_id=mains.id,
                      is_available=False),
    }
    db.session.add_all(items.values())
    Setting.put("delivery_fee", "10")
    Setting.put("free_delivery_threshold", "100")
    Setting.put("currency", "GH₵")
    db.session.commit()
    return {k: v.id for k, v in items.items()}


@pytest.fixture
def branch(app):
    b = Branch(name="Osu", slug="osu")
    db.session.add(b)
    db.session.commit()
    return b.id


def _make_user(email, role=Role.CUSTOMER, branch_id=None):
    u = User(email=email, name=email.split("@")[0], password_hash=generate_password_hash("secret123"),
             role=role.value, branch_id=branch_id)
    db.session.add(u)
    db.session.commit()
    return u


def _login(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['data']['token']}"}


@pytest.fixture
def make_user(app):
    return _make_user


@pytest.fixture
def login(client):
    return lambda email: _login(client, email)


@pytest.fixture
def admin_headers(app, client):
    _make_user("admin@example.com", Role.ADMIN)
    return _login(client, "admin@example.com")


@pytest.fixture
def customer_headers(app, client):
    _make_user("ama@example.com", Role.CUSTOMER)
    return _login(client, "ama@example.com")
