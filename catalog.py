import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import clean, create_document, get_documents, now_utc
from errors import ConflictError, NotFoundError, ValidationError, first_error_message
from ids import product_ids
from schemas import CATEGORIES, Product, ProductPayload, ProductUpdate

logger = logging.getLogger(__name__)


def selling_price(product: dict) -> float:
    discounted = product.get("discount_price")
    return float(discounted if discounted is not None else product["price"])


def normalize_category(category: str) -> str:
    value = (category or "").strip().lower()
    if value not in CATEGORIES:
        raise ValidationError("Invalid category. Valid categories are: " + ", ".join(CATEGORIES))
    return value


def create_product(db: Database, payload: ProductPayload, new_id: Callable[[], str] = product_ids) -> Dict[str, Any]:
    data = payload.model_dump()
    data["product_id"] = data.get("product_id") or new_id()
    data["category"] = normalize_category(data["category"])
    product = Product(**data)
    try:
        create_document(db, "product", product)
    except DuplicateKeyError:
        raise ConflictError(f"Product {product.product_id} already exists")
    logger.info("Created product %s", product.product_id)
    return {"success": True, "message": "Product created", "product_id": product.product_id}


def list_products(db: Database, category: Optional[str] = None, q: Optional[str] = None) -> list:
    filt: Dict[str, Any] = {}
    if category:
        filt["category"] = normalize_category(category)
    if q:
        filt["$or"] = [
            {"name": {"$regex": q, "$options": "i"}},
            {"description": {"$regex": q, "$options": "i"}},
        ]
    return get_documents(db, "product", filt, sort=[("name", 1)])


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    doc = db["product"].find_one({"product_id": product_id})
    if not doc:
        raise NotFoundError("Product not found")
    return clean(doc)


def update_product(db: Database, product_id: str, payload: ProductUpdate) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No product fields to update")
    if "category" in changes:
        changes["category"] = normalize_category(changes["category"])

    existing = db["product"].find_one({"product_id": product_id})
    if not existing:
        raise NotFoundError("Product not found")

    # the merged document must still be a valid product, explicit nulls included
    current = {k: v for k, v in existing.items() if k in Product.model_fields}
    try:
        product = Product(**{**current, **changes})
    except PydanticValidationError as exc:
        raise ValidationError(first_error_message(exc.errors()))

    values = {k: v for k, v in product.model_dump().items() if k in changes}
    values["updated_at"] = now_utc()
    doc = db["product"].find_one_and_update({"product_id": product_id}, {"$set": values}, return_document=True)
    if not doc:
        raise NotFoundError("Product not found")
    return {"success": True, "message": "Product updated", "product": clean(doc)}


def delete_product(db: Database, product_id: str) -> Dict[str, Any]:
    res = db["product"].delete_one({"product_id": product_id})
    if res.deleted_count == 0:
        raise NotFoundError("Product not found")
    logger.info("Deleted product %s", product_id)
    return {"success": True, "message": "Product deleted"}


def products_by_category(db: Database, category: str) -> Dict[str, Any]:
    value = normalize_category(category)
    products = get_documents(db, "product", {"category": value}, sort=[("name", 1)])
    if not products:
        return {"success": True, "message": f"No products found in category: {category}", "products": []}
    return {"success": True, "category": value, "count": len(products), "products": products}


def product_in_category(db: Database, category: str, product_id: str) -> Dict[str, Any]:
    value = normalize_category(category)
    doc = db["product"].find_one({"product_id": product_id, "category": value})
    if not doc:
        raise NotFoundError(f"Product with ID {product_id} not found in category {category}")
    return {"success": True, "category": value, "product": clean(doc)}


def list_categories(db: Database) -> Dict[str, Any]:
    rows = db["product"].aggregate([
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ])
    categories = [{"category": row["_id"], "count": row["count"]} for row in rows]
    return {"success": True, "message": "Available categories", "categories": categories}
