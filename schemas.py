"""
Database Schemas for the Shop backend

Each Pydantic model correlates to a MongoDB collection. The collection name is the lowercase of the class name.
- Account -> "account"
- Product -> "product"
- Order -> "order"
- Review -> "review"
- About -> "about"
- Contact -> "contact"

Request models used by the HTTP surface live at the bottom of this module.
"""

from datetime import datetime
from pydantic import BaseModel, Field, EmailStr, StrictBool
from typing import Optional, List, Literal

ORDER_STATUSES = ("pending", "accepted", "preparing", "shipped", "delivered", "cancelled")
CATEGORIES = ("sweets", "savory", "beverages", "spices", "curries")

OrderStatus = Literal["pending", "accepted", "preparing", "shipped", "delivered", "cancelled"]
Role = Literal["customer", "admin"]


class Account(BaseModel):
    account_id: str = Field(..., description="Generated account identifier")
    name: str = Field(..., description="First name, used as the login name")
    last_name: str = Field("", description="Last name")
    phone: str = Field(..., description="10 digit phone number, unique")
    address: str = Field("", description="Home address")
    email: Optional[EmailStr] = Field(None, description="Optional email address")
    role: Role = Field("customer", description="customer or admin")
    password_hash: str = Field(..., description="BCrypt hash of the phone number (customers) or password (admins)")


class BulkOffer(BaseModel):
    pieces: int = Field(..., ge=1)
    offer_price: float = Field(..., ge=0)


class Product(BaseModel):
    product_id: str = Field(..., description="Catalog identifier")
    name: str = Field(..., description="Product name")
    description: str = Field("", description="Product description")
    price: float = Field(..., ge=0, description="Label price per piece")
    discount_price: Optional[float] = Field(None, ge=0, description="Selling price when discounted")
    stock: int = Field(0, description="Units available")
    total_ordered: int = Field(0, description="Units in orders that are not yet delivered")
    category: Literal["sweets", "savory", "beverages", "spices", "curries"] = Field(
        ..., description="Product category"
    )
    availability: Literal["available", "not available"] = "available"
    images: List[str] = Field(default_factory=list, description="Image URLs")
    bulk_offers: List[BulkOffer] = Field(default_factory=list)


class OrderItem(BaseModel):
    product_id: str
    name: str
    price: float = Field(..., description="Unit price frozen at order time")
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None


class Order(BaseModel):
    order_id: str
    account_id: str = Field(..., description="Account placing the order")
    items: List[OrderItem]
    total: float
    name: str
    phone: str
    address: str
    delivery_option: Literal["pickup", "delivery"] = "pickup"
    whatsapp_number: str
    preferred_time: str
    preferred_day: str
    nearest_town: Optional[str] = None
    email: Optional[EmailStr] = None
    notes: str = ""
    status: OrderStatus = "pending"
    payment_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class HelpfulVote(BaseModel):
    account_id: str
    is_helpful: StrictBool


class Review(BaseModel):
    review_id: str
    account_id: str
    customer_name: str
    product_id: str
    order_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str
    images: List[str] = Field(default_factory=list)
    helpful_count: int = 0
    helpful_votes: List[HelpfulVote] = Field(default_factory=list)
    is_verified_purchase: bool = True
    admin_liked: bool = False
    status: Literal["active", "deleted"] = "active"


class Section(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class CompanyOverview(Section):
    images: List[str] = Field(default_factory=list)


class TeamMember(BaseModel):
    name: str
    position: str
    bio: str
    image: Optional[str] = None
    order: int = 0


class About(BaseModel):
    company_overview: CompanyOverview
    story: Section
    team_members: List[TeamMember] = Field(default_factory=list)


class PhoneNumber(BaseModel):
    type: Literal["mobile", "landline"] = "mobile"
    number: str = Field(..., min_length=1)


class Contact(BaseModel):
    shop_name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    phone_numbers: List[PhoneNumber] = Field(..., min_length=1)
    email: str = Field(..., min_length=1)


# Lightweight request models
class LoginOrRegisterRequest(BaseModel):
    name: str
    phone: str
    last_name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None


class AccountCreateRequest(BaseModel):
    name: str
    phone: str
    address: str
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None


class LoginRequest(BaseModel):
    name: str
    phone: str


class ProfileUpdateRequest(BaseModel):
    name: str
    address: str
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None


class AdminCreateRequest(BaseModel):
    name: str
    phone: str
    address: str
    password: str
    last_name: Optional[str] = None


class AdminLoginRequest(BaseModel):
    phone: str
    password: str


class AdminPasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ProductPayload(BaseModel):
    product_id: Optional[str] = None
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    stock: int = 0
    category: str
    availability: Literal["available", "not available"] = "available"
    images: List[str] = []
    bulk_offers: List[BulkOffer] = []


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = None
    category: Optional[str] = None
    availability: Optional[Literal["available", "not available"]] = None
    images: Optional[List[str]] = None
    bulk_offers: Optional[List[BulkOffer]] = None


class CartLine(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)


class CheckoutPayload(BaseModel):
    items: List[CartLine] = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    delivery_option: Literal["pickup", "delivery"] = "pickup"
    whatsapp_number: str = Field(..., min_length=1)
    preferred_time: str = Field(..., min_length=1)
    preferred_day: str = Field(..., min_length=1)
    nearest_town: Optional[str] = None
    email: Optional[EmailStr] = None
    notes: str = ""


class QuotePayload(BaseModel):
    items: List[CartLine] = Field(..., min_length=1)


class StatusUpdate(BaseModel):
    status: str


class PaymentPayload(BaseModel):
    payment_id: str = Field(..., min_length=1)


class ReviewPayload(BaseModel):
    product_id: str
    order_id: str
    rating: int
    comment: str
    images: List[str] = []


class VotePayload(BaseModel):
    is_helpful: StrictBool
