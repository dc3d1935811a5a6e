from typing import Any, Dict

from pydantic import BaseModel
from pymongo.database import Database

from database import clean, create_document, now_utc
from errors import ConflictError
from schemas import About, Contact

DEFAULT_ABOUT = About(
    company_overview={
        "title": "Welcome to Udari Online Shop",
        "description": (
            "We are a leading spice retailer providing high-quality authentic spices to homes across Sri Lanka. "
            "Our commitment to quality and customer satisfaction sets us apart."
        ),
        "images": [],
    },
    story={
        "title": "Our Story",
        "description": (
            "Founded with a passion for authentic flavors, Udari Online Shop began as a small family business "
            "with a mission to bring the finest spices directly to your kitchen."
        ),
    },
    team_members=[],
)

DEFAULT_CONTACT = Contact(
    shop_name="Udari Online Shop",
    address="369/1/1, Kendaliyadda paluwa, Ganemulla.",
    phone_numbers=[
        {"type": "mobile", "number": "+94 77 123 456"},
        {"type": "landline", "number": "+94 33 123 456"},
    ],
    email="info@udarishop.lk",
)

PAGES: Dict[str, BaseModel] = {"about": DEFAULT_ABOUT, "contact": DEFAULT_CONTACT}
LABELS = {"about": "About", "contact": "Contact"}


def get_page(db: Database, page: str) -> Dict[str, Any]:
    doc = db[page].find_one()
    body = clean(doc) if doc else PAGES[page].model_dump()
    return {"success": True, page: body}


def update_page(db: Database, page: str, data: BaseModel) -> Dict[str, Any]:
    values = {**data.model_dump(), "last_updated": now_utc()}
    doc = db[page].find_one_and_update({}, {"$set": values}, upsert=True, return_document=True)
    return {"success": True, "message": f"{LABELS[page]} information updated successfully", page: clean(doc)}


def initialize_page(db: Database, page: str) -> Dict[str, Any]:
    if db[page].find_one():
        raise ConflictError(f"{LABELS[page]} information already exists")
    doc = create_document(db, page, PAGES[page])
    return {"success": True, "message": f"{LABELS[page]} information initialized successfully", page: clean(doc)}
