import logging
from typing import Any, Callable, Dict, List

from pymongo.database import Database

from auth import Identity
from database import clean, create_document, get_documents, now_utc
from errors import NotFoundError, ValidationError
from ids import review_ids
from schemas import Review, ReviewPayload

logger = logging.getLogger(__name__)

SORTS = {
    "recent": [("created_at", -1)],
    "helpful": [("helpful_count", -1), ("created_at", -1)],
    "rating-high": [("rating", -1), ("created_at", -1)],
    "rating-low": [("rating", 1), ("created_at", -1)],
}

# fields never shown on the public product listing
PUBLIC_HIDDEN = ("account_id", "customer_phone", "helpful_votes")


def create_review(
    db: Database,
    user: Identity,
    payload: ReviewPayload,
    new_id: Callable[[], str] = review_ids,
) -> Dict[str, Any]:
    comment = payload.comment.strip()
    if not payload.product_id or not payload.order_id or not comment:
        raise ValidationError("Product ID, Order ID, rating, and comment are required")
    if not 1 <= payload.rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")

    order = db["order"].find_one({"order_id": payload.order_id, "account_id": user.account_id})
    if not order:
        raise NotFoundError("Order not found or does not belong to you")
    if order["status"] != "delivered":
        raise ValidationError("You can only review products from delivered orders")
    if not any(item["product_id"] == payload.product_id for item in order["items"]):
        raise ValidationError("Product not found in this order")

    existing = db["review"].find_one({
        "account_id": user.account_id,
        "product_id": payload.product_id,
        "order_id": payload.order_id,
        "status": "active",
    })
    if existing:
        raise ValidationError("You have already reviewed this product for this order")

    account = db["account"].find_one({"account_id": user.account_id})
    if not account:
        raise NotFoundError("User not found")

    review = Review(
        review_id=new_id(),
        account_id=user.account_id,
        customer_name=f"{account['name']} {account.get('last_name') or ''}".strip(),
        product_id=payload.product_id,
        order_id=payload.order_id,
        rating=payload.rating,
        comment=comment,
        images=payload.images,
    )
    doc = create_document(db, "review", review)
    logger.info("Review %s created for product %s", review.review_id, review.product_id)
    return {"success": True, "message": "Review created successfully", "review": clean(doc)}


def review_statistics(reviews: List[dict]) -> Dict[str, Any]:
    total = len(reviews)
    average = sum(r["rating"] for r in reviews) / total if total else 0
    return {
        "total_reviews": total,
        "average_rating": round(average, 1),
        "rating_distribution": {str(n): sum(1 for r in reviews if r["rating"] == n) for n in range(5, 0, -1)},
    }


def product_reviews(db: Database, product_id: str, sort_by: str = "recent") -> Dict[str, Any]:
    if not db["product"].find_one({"product_id": product_id}):
        raise NotFoundError("Product not found")
    reviews = get_documents(
        db, "review", {"product_id": product_id, "status": "active"}, sort=SORTS.get(sort_by, SORTS["recent"])
    )
    reviews = [clean(review, *PUBLIC_HIDDEN) for review in reviews]
    return {"success": True, "statistics": review_statistics(reviews), "reviews": reviews}


def can_review(db: Database, user: Identity, product_id: str) -> Dict[str, Any]:
    delivered = get_documents(
        db, "order", {"account_id": user.account_id, "status": "delivered", "items.product_id": product_id}
    )
    if not delivered:
        return {
            "success": True,
            "can_review": False,
            "reviewable_orders": [],
            "message": "You can only review products from delivered orders",
        }
    reviewed = {
        r["order_id"]
        for r in db["review"].find({"account_id": user.account_id, "product_id": product_id, "status": "active"})
    }
    reviewable = [
        {"order_id": o["order_id"], "order_date": o.get("created_at")} for o in delivered if o["order_id"] not in reviewed
    ]
    return {
        "success": True,
        "can_review": bool(reviewable),
        "reviewable_orders": reviewable,
        "message": "You can review this product"
        if reviewable
        else "You have already reviewed this product for all your orders",
    }


def vote_review(db: Database, user: Identity, review_id: str, is_helpful: bool) -> Dict[str, Any]:
    review = db["review"].find_one({"review_id": review_id, "status": "active"})
    if not review:
        raise NotFoundError("Review not found")

    votes = review.get("helpful_votes", [])
    count = review.get("helpful_count", 0)
    previous = next((v for v in votes if v["account_id"] == user.account_id), None)
    if previous is None:
        votes.append({"account_id": user.account_id, "is_helpful": is_helpful})
        count += 1 if is_helpful else -1
    elif previous["is_helpful"] != is_helpful:
        # flipping a vote removes the old one and applies the new one
        previous["is_helpful"] = is_helpful
        count += 2 if is_helpful else -2

    db["review"].update_one(
        {"review_id": review_id},
        {"$set": {"helpful_votes": votes, "helpful_count": count, "updated_at": now_utc()}},
    )
    return {"success": True, "message": "Vote recorded successfully", "helpful_count": count}


def delete_review(db: Database, review_id: str) -> Dict[str, Any]:
    res = db["review"].update_one(
        {"review_id": review_id},
        {"$set": {"status": "deleted", "updated_at": now_utc()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("Review not found")
    return {"success": True, "message": "Review deleted successfully"}


def toggle_admin_like(db: Database, review_id: str) -> Dict[str, Any]:
    review = db["review"].find_one({"review_id": review_id, "status": "active"})
    if not review:
        raise NotFoundError("Review not found")
    liked = not review.get("admin_liked", False)
    db["review"].update_one({"review_id": review_id}, {"$set": {"admin_liked": liked, "updated_at": now_utc()}})
    return {"success": True, "message": f"Review {'liked' if liked else 'unliked'} successfully", "admin_liked": liked}


def _with_product(db: Database, reviews: List[dict]) -> List[dict]:
    for review in reviews:
        product = db["product"].find_one({"product_id": review["product_id"]})
        review["product_name"] = product["name"] if product else "Unknown Product"
        review["product_image"] = (product.get("images") or [None])[0] if product else None
    return reviews


def list_reviews(db: Database, status: str = "active") -> Dict[str, Any]:
    if status not in ("active", "deleted"):
        raise ValidationError("Status must be active or deleted")
    reviews = _with_product(db, get_documents(db, "review", {"status": status}, sort=[("created_at", -1)]))
    return {"success": True, "total": len(reviews), "reviews": reviews}


def my_reviews(db: Database, user: Identity) -> Dict[str, Any]:
    reviews = get_documents(db, "review", {"account_id": user.account_id, "status": "active"}, sort=[("created_at", -1)])
    reviews = _with_product(db, reviews)
    return {"success": True, "total": len(reviews), "reviews": reviews}
