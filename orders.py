"""
Order lifecycle.

Status moves through pending -> accepted -> preparing -> shipped -> delivered,
with cancelled available to admins at any point. Each product keeps a running
``total_ordered``: units sitting in orders that have not been delivered yet.
Creating an order adds to it (and takes the units out of ``stock``); moving an
order into ``delivered`` removes them again, moving it back out re-adds them,
and deleting an undelivered order undoes the creation entirely.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import Identity
from catalog import selling_price
from database import clean, create_document, get_documents, now_utc
from emailer import send_status_email
from errors import ConflictError, NotFoundError, ValidationError
from ids import order_ids
from schemas import ORDER_STATUSES, CartLine, CheckoutPayload, Order, OrderItem

logger = logging.getLogger(__name__)

Notifier = Callable[[dict, str], Any]


def _load_products(db: Database, lines: List[CartLine]) -> Dict[str, dict]:
    """Fetch every product a cart references, failing before anything is written."""
    products = {}
    for line in lines:
        if line.product_id in products:
            continue
        product = db["product"].find_one({"product_id": line.product_id})
        if product is None:
            raise NotFoundError(f"Product with id {line.product_id} not found")
        products[line.product_id] = product
    return products


def _adjust_ordered(db: Database, items: List[dict], sign: int, restock: bool = False) -> None:
    for item in items:
        inc = {"total_ordered": sign * item["quantity"]}
        if restock:
            inc["stock"] = item["quantity"]
        db["product"].update_one({"product_id": item["product_id"]}, {"$inc": inc})


def quote(db: Database, lines: List[CartLine]) -> Dict[str, Any]:
    products = _load_products(db, lines)
    items = []
    total = 0.0
    label_total = 0.0
    for line in lines:
        product = products[line.product_id]
        price = selling_price(product)
        label_price = float(product["price"])
        total += price * line.quantity
        label_total += label_price * line.quantity
        items.append({
            "product_id": line.product_id,
            "name": product["name"],
            "price": price,
            "label_price": label_price,
            "discount": round(label_price - price, 2),
            "quantity": line.quantity,
            "image": (product.get("images") or [None])[0],
        })
    return {"success": True, "items": items, "total": round(total, 2), "label_total": round(label_total, 2)}


def create_order(
    db: Database,
    user: Identity,
    payload: CheckoutPayload,
    new_id: Callable[[], str] = order_ids,
) -> Dict[str, Any]:
    if payload.delivery_option == "delivery" and not (payload.nearest_town or "").strip():
        raise ValidationError("nearest_town is required for delivery orders")

    products = _load_products(db, payload.items)
    items = []
    for line in payload.items:
        product = products[line.product_id]
        items.append(OrderItem(
            product_id=line.product_id,
            name=product["name"],
            price=selling_price(product),
            quantity=line.quantity,
            image=(product.get("images") or [None])[0],
        ))

    order = Order(
        order_id=new_id(),
        account_id=user.account_id,
        items=items,
        total=round(sum(item.price * item.quantity for item in items), 2),
        **payload.model_dump(exclude={"items"}),
    )
    try:
        doc = create_document(db, "order", order)
    except DuplicateKeyError:
        logger.warning("Duplicate order id %s, generating a new one", order.order_id)
        order.order_id = new_id()
        try:
            doc = create_document(db, "order", order)
        except DuplicateKeyError:
            raise ConflictError("Duplicate order error. Please try again.")

    for item in doc["items"]:
        db["product"].update_one(
            {"product_id": item["product_id"]},
            {"$inc": {"stock": -item["quantity"], "total_ordered": item["quantity"]}},
        )

    logger.info("Order %s created by %s with %d line(s)", order.order_id, user.account_id, len(items))
    return {
        "success": True,
        "message": "Order created successfully",
        "order_id": order.order_id,
        "order": clean(doc),
    }


def update_status(
    db: Database,
    order_id: str,
    status: str,
    notify: Notifier = send_status_email,
) -> Dict[str, Any]:
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid status. Must be one of: " + ", ".join(ORDER_STATUSES))

    current = db["order"].find_one({"order_id": order_id})
    if not current:
        raise NotFoundError("Order not found")
    previous = current["status"]

    updated = db["order"].find_one_and_update(
        {"order_id": order_id},
        {"$set": {"status": status, "updated_at": now_utc()}},
        return_document=True,
    )

    if status == "delivered" and previous != "delivered":
        _adjust_ordered(db, current["items"], -1)
    elif previous == "delivered" and status != "delivered":
        _adjust_ordered(db, current["items"], 1)

    if previous != status:
        logger.info("Order %s moved from %s to %s", order_id, previous, status)
        notify(updated, status)

    return {"success": True, "message": "Order status updated successfully", "order": clean(updated)}


def accept_order(db: Database, order_id: str, notify: Notifier = send_status_email) -> Dict[str, Any]:
    current = db["order"].find_one({"order_id": order_id})
    if not current:
        raise NotFoundError("Order not found")
    if current["status"] != "pending":
        raise ValidationError(f"Only pending orders can be accepted (current status: {current['status']})")
    result = update_status(db, order_id, "accepted", notify)
    result["message"] = "Order accepted successfully"
    return result


def delete_order(db: Database, order_id: str) -> Dict[str, Any]:
    order = db["order"].find_one({"order_id": order_id})
    if not order:
        raise NotFoundError("Order not found")
    if order["status"] != "delivered":
        _adjust_ordered(db, order["items"], -1, restock=True)
    db["order"].delete_one({"order_id": order_id})
    logger.info("Order %s deleted (status was %s)", order_id, order["status"])
    return {"success": True, "message": "Order deleted successfully"}


def list_orders(db: Database, status: Optional[str] = None) -> Dict[str, Any]:
    filt = {}
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid status. Must be one of: " + ", ".join(ORDER_STATUSES))
        filt["status"] = status
    orders = get_documents(db, "order", filt, sort=[("created_at", -1)])
    return {"success": True, "count": len(orders), "orders": orders}


def my_orders(db: Database, user: Identity) -> Dict[str, Any]:
    orders = get_documents(db, "order", {"account_id": user.account_id}, sort=[("created_at", -1)])
    return {"success": True, "message": "Orders retrieved successfully", "count": len(orders), "orders": orders}


def get_order(db: Database, user: Identity, order_id: str) -> Dict[str, Any]:
    filt = {"order_id": order_id}
    if not user.is_admin:
        filt["account_id"] = user.account_id
    order = db["order"].find_one(filt)
    if not order:
        raise NotFoundError("Order not found or access denied")
    return {"success": True, "message": "Order retrieved successfully", "order": clean(order)}


def payment_view(db: Database, order_id: str) -> Dict[str, Any]:
    order = db["order"].find_one({"order_id": order_id})
    if not order:
        raise NotFoundError("Order not found")
    fields = ("order_id", "name", "items", "total", "status", "delivery_option", "payment_id", "created_at")
    return {"success": True, "order": {key: order.get(key) for key in fields}}


def record_payment(db: Database, user: Identity, order_id: str, payment_id: str) -> Dict[str, Any]:
    order = db["order"].find_one({"order_id": order_id, "account_id": user.account_id})
    if not order:
        raise NotFoundError("Order not found or access denied")
    if order.get("payment_id"):
        raise ConflictError("Order has already been paid")
    if order["status"] != "accepted":
        raise ValidationError("Payment is only possible once the order has been accepted")
    stamp = now_utc()
    updated = db["order"].find_one_and_update(
        {"order_id": order_id},
        {"$set": {"payment_id": payment_id, "paid_at": stamp, "updated_at": stamp}},
        return_document=True,
    )
    logger.info("Payment recorded for order %s", order_id)
    return {"success": True, "message": "Payment recorded successfully", "order": clean(updated)}


def product_order_stats(db: Database) -> Dict[str, Any]:
    rows = list(db["order"].aggregate([
        {"$unwind": "$items"},
        {"$group": {
            "_id": "$items.product_id",
            "total_quantity_ordered": {"$sum": "$items.quantity"},
            "product_name": {"$first": "$items.name"},
            "product_image": {"$first": "$items.image"},
        }},
        {"$sort": {"total_quantity_ordered": -1}},
    ]))
    if not rows:
        products = get_documents(db, "product", sort=[("name", 1)])
        return {
            "success": True,
            "message": "No orders found. Showing all products with 0 orders.",
            "products": [
                {
                    "product_id": p["product_id"],
                    "product_name": p["name"],
                    "product_image": (p.get("images") or [None])[0],
                    "total_quantity_ordered": 0,
                }
                for p in products
            ],
        }
    return {
        "success": True,
        "message": "Product order statistics retrieved successfully",
        "products": [
            {
                "product_id": row["_id"],
                "product_name": row["product_name"],
                "product_image": row["product_image"],
                "total_quantity_ordered": row["total_quantity_ordered"],
            }
            for row in rows
        ],
    }
