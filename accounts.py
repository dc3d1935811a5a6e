"""
Customer and admin account flows.

Customers log in with their first name and use their phone number as the
password: the phone is stored in clear (it is contact data) and also as a
bcrypt hash that login checks against. Admin accounts are only created by
other admins and carry a real password subject to ``validate_password``.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import Identity, create_token, hash_secret, verify_secret
from counters import LoginLockout
from database import clean, create_document, get_documents, now_utc
from errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TooManyRequestsError,
    ValidationError,
)
from ids import account_ids
from schemas import Account
from settings import settings

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\d{10}$")

COMMON_PASSWORDS = {
    "password", "password123", "admin123", "12345678", "qwerty123",
    "welcome123", "admin@123", "administrator", "root", "toor",
}
SEQUENCE_RE = re.compile(
    r"abc|bcd|cde|def|efg|fgh|ghi|hij|ijk|jkl|klm|lmn|mno|nop|opq|pqr|qrs|rst|stu|tuv|uvw|vwx|wxy|xyz"
    r"|012|123|234|345|456|567|678|789",
    re.IGNORECASE,
)
SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def normalize_phone(phone: str) -> str:
    phone = (phone or "").strip()
    if not PHONE_RE.match(phone):
        raise ValidationError("Phone number must be 10 digits")
    return phone


def _required(value: Optional[str], message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(message)
    return value


def public_account(doc: dict) -> Dict[str, Any]:
    return clean(doc, "password_hash")


def _session(doc: dict, message: str, expires_hours: Optional[int] = None, **extra: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        **extra,
        "token": create_token(doc, expires_hours),
        "user": public_account(doc),
    }


def _phone_taken(db: Database, exc: DuplicateKeyError, phone: str) -> bool:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    if key_pattern:
        return "phone" in key_pattern
    return db["account"].find_one({"phone": phone}) is not None


def _insert_account(
    db: Database,
    account: Account,
    new_id: Callable[[], str],
    conflict_message: str = "User with this phone number already exists",
) -> dict:
    """Insert ``account``, retrying once with a fresh id if only the id collided."""
    try:
        return create_document(db, "account", account)
    except DuplicateKeyError as exc:
        if _phone_taken(db, exc, account.phone):
            raise ConflictError(conflict_message)
        logger.warning("Duplicate account id %s, generating a new one", account.account_id)

    account.account_id = new_id()
    try:
        return create_document(db, "account", account)
    except DuplicateKeyError as exc:
        if _phone_taken(db, exc, account.phone):
            raise ConflictError(conflict_message)
        raise ConflictError("Duplicate account error. Please try again.")


def _new_customer(
    db: Database,
    name: str,
    phone: str,
    address: Optional[str],
    last_name: Optional[str],
    email: Optional[str],
    new_id: Callable[[], str],
) -> dict:
    account = Account(
        account_id=new_id(),
        name=name,
        last_name=(last_name or "").strip(),
        phone=phone,
        address=(address or "").strip(),
        email=email or None,
        role="customer",
        password_hash=hash_secret(phone),
    )
    doc = _insert_account(db, account, new_id)
    logger.info("Created customer account %s", account.account_id)
    return doc


def login_or_register(
    db: Database,
    name: str,
    phone: str,
    address: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    new_id: Callable[[], str] = account_ids,
) -> Dict[str, Any]:
    name = _required(name, "First name and phone number are required")
    phone = normalize_phone(phone)

    existing = db["account"].find_one({"name": name})
    if existing:
        if not verify_secret(phone, existing.get("password_hash", "")):
            raise AuthenticationError("Phone number doesn't match existing account")
        return _session(existing, "Login successful", is_new_user=False)

    doc = _new_customer(db, name, phone, address, last_name, email, new_id)
    return _session(doc, "Account created and logged in successfully", is_new_user=True)


def create_account(
    db: Database,
    name: str,
    phone: str,
    address: str,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    new_id: Callable[[], str] = account_ids,
) -> Dict[str, Any]:
    name = _required(name, "First name, phone number, and home address are required")
    address = _required(address, "First name, phone number, and home address are required")
    phone = normalize_phone(phone)
    doc = _new_customer(db, name, phone, address, last_name, email, new_id)
    return _session(doc, "User created successfully")


def login(db: Database, name: str, phone: str) -> Dict[str, Any]:
    name = _required(name, "First name and phone number are required")
    phone = _required(phone, "First name and phone number are required")
    account = db["account"].find_one({"name": name})
    if not account:
        raise NotFoundError("Account not found with this first name")
    if not verify_secret(phone, account.get("password_hash", "")):
        raise AuthenticationError("Invalid phone number for this account")
    return _session(account, "Login successful")


def check_account(db: Database, name: str, phone: str) -> Dict[str, Any]:
    name = _required(name, "First name and phone number are required")
    phone = _required(phone, "First name and phone number are required")
    account = db["account"].find_one({"name": name, "phone": phone})
    if not account:
        return {"success": True, "exists": False, "message": "Account not found"}
    return {"success": True, "exists": True, "message": "Account found", "user": public_account(account)}


def update_profile(
    db: Database,
    user: Identity,
    name: str,
    address: str,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
) -> Dict[str, Any]:
    if user.role != "customer":
        raise AuthorizationError("Only customers can update their profile")
    name = _required(name, "First name is required")
    address = _required(address, "Home address is required")

    account = db["account"].find_one_and_update(
        {"account_id": user.account_id},
        {"$set": {
            "name": name,
            "last_name": (last_name or "").strip(),
            "address": address,
            "email": email or None,
            "updated_at": now_utc(),
        }},
        return_document=True,
    )
    if not account:
        raise NotFoundError("User not found")
    return _session(account, "Profile updated successfully")


def validate_password(password: str) -> List[str]:
    errors = []
    if len(password) < 12:
        errors.append("Password must be at least 12 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character")
    if password.lower() in COMMON_PASSWORDS:
        errors.append("This password is too common. Please choose a stronger password")
    if SEQUENCE_RE.search(password):
        errors.append("Password should not contain sequential characters (e.g., abc, 123)")
    if re.search(r"(.)\1{2,}", password):
        errors.append("Password should not contain repeated characters (e.g., aaa, 111)")
    return errors


def create_admin(
    db: Database,
    requester: Identity,
    name: str,
    phone: str,
    address: str,
    password: str,
    last_name: Optional[str] = None,
    new_id: Callable[[], str] = account_ids,
) -> Dict[str, Any]:
    if not requester.is_admin:
        raise AuthorizationError("Only admins can create admin accounts")
    message = "All fields are required: name, phone, address, password"
    name = _required(name, message)
    address = _required(address, message)
    _required(password, message)
    phone = normalize_phone(phone)

    errors = validate_password(password)
    if errors:
        raise ValidationError("Password does not meet security requirements", {"errors": errors})

    account = Account(
        account_id=new_id(),
        name=name,
        last_name=(last_name or "").strip(),
        phone=phone,
        address=address,
        role="admin",
        password_hash=hash_secret(password, settings.admin_bcrypt_rounds),
    )
    doc = _insert_account(db, account, new_id, "An account with this phone number already exists")

    logger.info("Admin account %s created by %s", account.account_id, requester.account_id)
    return {"success": True, "message": "Admin account created successfully", "admin": public_account(doc)}


def admin_login(db: Database, lockout: LoginLockout, phone: str, password: str) -> Dict[str, Any]:
    phone = _required(phone, "Phone number and password are required")
    _required(password, "Phone number and password are required")

    remaining = lockout.remaining_minutes(phone)
    if remaining:
        logger.warning("Admin login attempted while locked (%d minutes left)", remaining)
        raise TooManyRequestsError(
            "Account is temporarily locked due to multiple failed login attempts. "
            f"Please try again in {remaining} minutes."
        )

    account = db["account"].find_one({"phone": phone, "role": "admin"})
    if not account or not verify_secret(password, account.get("password_hash", "")):
        lockout.record_failure(phone)
        logger.warning("Failed admin login attempt for account %s", account["account_id"] if account else "<unknown>")
        raise AuthenticationError("Invalid credentials")

    lockout.clear(phone)
    logger.info("Admin %s logged in", account["account_id"])
    return _session(account, "Admin login successful", settings.admin_jwt_expire_hours)


def list_accounts(db: Database, role: str) -> Dict[str, Any]:
    accounts = get_documents(db, "account", {"role": role}, sort=[("created_at", -1)])
    for account in accounts:
        account.pop("password_hash", None)
    key = "admins" if role == "admin" else "customers"
    return {"success": True, "count": len(accounts), key: accounts}


def update_admin_password(db: Database, user: Identity, current_password: str, new_password: str) -> Dict[str, Any]:
    _required(current_password, "Current password and new password are required")
    _required(new_password, "Current password and new password are required")

    errors = validate_password(new_password)
    if errors:
        raise ValidationError("New password does not meet security requirements", {"errors": errors})

    account = db["account"].find_one({"account_id": user.account_id})
    if not account:
        raise NotFoundError("User not found")
    if not verify_secret(current_password, account.get("password_hash", "")):
        logger.warning("Failed password change for admin %s", user.account_id)
        raise AuthenticationError("Current password is incorrect")

    db["account"].update_one(
        {"account_id": user.account_id},
        {"$set": {"password_hash": hash_secret(new_password, settings.admin_bcrypt_rounds), "updated_at": now_utc()}},
    )
    logger.info("Admin %s changed their password", user.account_id)
    return {"success": True, "message": "Password updated successfully"}


def delete_admin(db: Database, requester: Identity, account_id: str) -> Dict[str, Any]:
    if requester.account_id == account_id:
        raise ValidationError("You cannot delete your own admin account")
    result = db["account"].delete_one({"account_id": account_id, "role": "admin"})
    if result.deleted_count == 0:
        raise NotFoundError("Admin account not found")
    logger.info("Admin account %s deleted by %s", account_id, requester.account_id)
    return {"success": True, "message": "Admin account deleted successfully"}
