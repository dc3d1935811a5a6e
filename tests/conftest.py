import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_BCRYPT_ROUNDS"] = "4"
os.environ["RESEND_API_KEY"] = ""
os.environ["APP_ENV"] = "test"

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_token, hash_secret
from counters import counter_store
from database import create_document, ensure_indexes, get_db
from main import app
from schemas import Account, Product

ADMIN_PASSWORD = "Str0ng!Pa$$word"


@pytest.fixture
def db():
    database = mongomock.MongoClient()["shop_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    counter_store.clear()
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    account = Account(
        account_id="USR-ADMIN-1",
        name="Root",
        phone="0700000001",
        address="Head office",
        role="admin",
        password_hash=hash_secret(ADMIN_PASSWORD),
    )
    return create_document(db, "account", account)


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_token(admin)}"}


@pytest.fixture
def customer(client):
    res = client.post(
        "/api/users/login-or-register",
        json={"name": "Alex", "phone": "0711234567", "address": "12 Lane", "email": "alex@example.com"},
    )
    assert res.status_code == 200
    return res.json()


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {customer['token']}"}


@pytest.fixture
def make_product(db):
    def _make(product_id="P1", stock=10, price=250.0, discount_price=None, category="spices", name=None):
        product = Product(
            product_id=product_id,
            name=name or f"Product {product_id}",
            price=price,
            discount_price=discount_price,
            stock=stock,
            category=category,
            images=[f"https://img.example.com/{product_id}.jpg"],
        )
        create_document(db, "product", product)
        return product

    return _make


@pytest.fixture
def checkout():
    def _checkout(*lines, **overrides):
        body = {
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
            "name": "Alex",
            "phone": "0711234567",
            "address": "12 Lane",
            "delivery_option": "pickup",
            "whatsapp_number": "0711234567",
            "preferred_time": "10:00",
            "preferred_day": "Monday",
        }
        body.update(overrides)
        return body

    return _checkout
