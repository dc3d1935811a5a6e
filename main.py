import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import accounts
import catalog
import content
import orders
import reviews
from auth import Identity, get_current_user, require_admin
from counters import admin_lockout, login_rate_limit
from database import db as default_db, ensure_indexes, get_db
from errors import http_exception_handler, request_validation_handler, unhandled_exception_handler
from schemas import (
    About,
    AccountCreateRequest,
    AdminCreateRequest,
    AdminLoginRequest,
    AdminPasswordRequest,
    CheckoutPayload,
    Contact,
    LoginOrRegisterRequest,
    LoginRequest,
    PaymentPayload,
    ProductPayload,
    ProductUpdate,
    ProfileUpdateRequest,
    QuotePayload,
    ReviewPayload,
    StatusUpdate,
    VotePayload,
)
from settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(default_db)
    except PyMongoError as exc:
        logger.warning("Unable to ensure indexes: %s", exc)
    yield


app = FastAPI(title="Shop API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/")
def root():
    return {"status": "ok", "service": "shop-backend"}


@app.get("/schema")
def schema_overview():
    return {
        "collections": ["account", "product", "order", "review", "about", "contact"],
    }


# Account Endpoints
@app.post("/api/users/login-or-register", dependencies=[Depends(login_rate_limit)])
def login_or_register(payload: LoginOrRegisterRequest, db: Database = Depends(get_db)):
    return accounts.login_or_register(
        db, payload.name, payload.phone, payload.address, payload.last_name, payload.email
    )


@app.post("/api/users", status_code=201, dependencies=[Depends(login_rate_limit)])
def create_account(payload: AccountCreateRequest, db: Database = Depends(get_db)):
    return accounts.create_account(
        db, payload.name, payload.phone, payload.address, payload.last_name, payload.email
    )


@app.post("/api/users/login", dependencies=[Depends(login_rate_limit)])
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return accounts.login(db, payload.name, payload.phone)


@app.post("/api/users/check-account", dependencies=[Depends(login_rate_limit)])
def check_account(payload: LoginRequest, db: Database = Depends(get_db)):
    return accounts.check_account(db, payload.name, payload.phone)


@app.get("/api/users/me")
def me(user: Identity = Depends(get_current_user)):
    return {"success": True, "user": user.model_dump()}


@app.put("/api/users/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    user: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return accounts.update_profile(db, user, payload.name, payload.address, payload.last_name, payload.email)


# Admin Account Endpoints
@app.post("/api/admin/login")
def admin_login(payload: AdminLoginRequest, db: Database = Depends(get_db)):
    return accounts.admin_login(db, admin_lockout, payload.phone, payload.password)


@app.get("/api/admin/admins")
def list_admins(admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return accounts.list_accounts(db, "admin")


@app.get("/api/admin/customers")
def list_customers(admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return accounts.list_accounts(db, "customer")


@app.put("/api/admin/password")
def update_admin_password(
    payload: AdminPasswordRequest,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return accounts.update_admin_password(db, admin, payload.current_password, payload.new_password)


@app.post("/api/admin/create", status_code=201)
def create_admin(
    payload: AdminCreateRequest,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return accounts.create_admin(
        db, admin, payload.name, payload.phone, payload.address, payload.password, payload.last_name
    )


@app.delete("/api/admin/{account_id}")
def delete_admin(account_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return accounts.delete_admin(db, admin, account_id)


# Product Endpoints
@app.get("/api/products/categories")
def list_categories(db: Database = Depends(get_db)):
    return catalog.list_categories(db)


@app.get("/api/products/category/{category}")
def products_by_category(category: str, db: Database = Depends(get_db)):
    return catalog.products_by_category(db, category)


@app.get("/api/products/category/{category}/{product_id}")
def product_in_category(category: str, product_id: str, db: Database = Depends(get_db)):
    return catalog.product_in_category(db, category, product_id)


@app.get("/api/products")
def list_products(category: Optional[str] = None, q: Optional[str] = None, db: Database = Depends(get_db)):
    return catalog.list_products(db, category, q)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return catalog.get_product(db, product_id)


@app.post("/api/products", status_code=201)
def create_product(payload: ProductPayload, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return catalog.create_product(db, payload)


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return catalog.update_product(db, product_id, payload)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return catalog.delete_product(db, product_id)


# Orders
@app.post("/api/orders/quote")
def quote(payload: QuotePayload, db: Database = Depends(get_db)):
    return orders.quote(db, payload.items)


@app.get("/api/orders/payment/{order_id}")
def payment_view(order_id: str, db: Database = Depends(get_db)):
    return orders.payment_view(db, order_id)


@app.get("/api/orders/my-orders")
def my_orders(user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return orders.my_orders(db, user)


@app.post("/api/orders", status_code=201)
def create_order(payload: CheckoutPayload, user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return orders.create_order(db, user, payload)


@app.get("/api/orders/product-stats")
def product_order_stats(admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return orders.product_order_stats(db)


@app.get("/api/orders")
def list_orders(status: Optional[str] = None, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return orders.list_orders(db, status)


@app.put("/api/orders/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return orders.update_status(db, order_id, payload.status)


@app.put("/api/orders/{order_id}/accept")
def accept_order(order_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return orders.accept_order(db, order_id)


@app.put("/api/orders/{order_id}/payment")
def record_payment(
    order_id: str,
    payload: PaymentPayload,
    user: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return orders.record_payment(db, user, order_id, payload.payment_id)


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return orders.delete_order(db, order_id)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return orders.get_order(db, user, order_id)


# Reviews
@app.get("/api/reviews/product/{product_id}")
def product_reviews(product_id: str, sort_by: str = "recent", db: Database = Depends(get_db)):
    return reviews.product_reviews(db, product_id, sort_by)


@app.post("/api/reviews", status_code=201)
def create_review(payload: ReviewPayload, user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return reviews.create_review(db, user, payload)


@app.get("/api/reviews/can-review/{product_id}")
def can_review(product_id: str, user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return reviews.can_review(db, user, product_id)


@app.post("/api/reviews/{review_id}/vote")
def vote_review(
    review_id: str,
    payload: VotePayload,
    user: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return reviews.vote_review(db, user, review_id, payload.is_helpful)


@app.get("/api/reviews/my-reviews")
def my_reviews(user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return reviews.my_reviews(db, user)


@app.get("/api/reviews")
def list_reviews(status: str = "active", admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return reviews.list_reviews(db, status)


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return reviews.delete_review(db, review_id)


@app.put("/api/reviews/{review_id}/admin-like")
def toggle_admin_like(review_id: str, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return reviews.toggle_admin_like(db, review_id)


# Static content
@app.get("/api/about")
def get_about(db: Database = Depends(get_db)):
    return content.get_page(db, "about")


@app.put("/api/about")
def update_about(payload: About, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return content.update_page(db, "about", payload)


@app.post("/api/about/initialize", status_code=201)
def initialize_about(admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return content.initialize_page(db, "about")


@app.get("/api/contact")
def get_contact(db: Database = Depends(get_db)):
    return content.get_page(db, "contact")


@app.put("/api/contact")
def update_contact(payload: Contact, admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return content.update_page(db, "contact", payload)


@app.post("/api/contact/initialize", status_code=201)
def initialize_contact(admin: Identity = Depends(require_admin), db: Database = Depends(get_db)):
    return content.initialize_page(db, "contact")


# Simple health
@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    status = {
        "backend": "running",
        "database": "not-configured",
    }
    try:
        db.list_collection_names()
        status["database"] = "connected"
    except PyMongoError:
        status["database"] = "error"
    return status


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
