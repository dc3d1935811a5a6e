import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header
from pydantic import BaseModel
from pymongo.database import Database

from database import get_db
from errors import AuthenticationError, AuthorizationError
from settings import settings

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """Claims carried by a session token; what handlers use for authorization."""

    account_id: str
    name: str
    last_name: str = ""
    role: str = "customer"
    phone: str = ""
    address: str = ""
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def hash_secret(secret: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(secret.encode(), salt).decode()


def verify_secret(secret: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode(), hashed.encode())
    except ValueError:
        return False


def identity_of(account_doc: dict) -> Identity:
    return Identity(
        account_id=account_doc["account_id"],
        name=account_doc["name"],
        last_name=account_doc.get("last_name") or "",
        role=account_doc.get("role", "customer"),
        phone=account_doc.get("phone", ""),
        address=account_doc.get("address") or "",
        email=account_doc.get("email"),
    )


def create_token(account_doc: dict, expires_hours: Optional[int] = None) -> str:
    identity = identity_of(account_doc)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity.account_id,
        **identity.model_dump(),
        "iat": now,
        "exp": now + timedelta(hours=expires_hours or settings.jwt_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algo)


def decode_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algo])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired", {"error": "Please log in again"})
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token", {"error": "Token is malformed or corrupted"})
    try:
        return Identity(**{k: v for k, v in payload.items() if k in Identity.model_fields})
    except ValueError:
        raise AuthenticationError("Invalid token", {"error": "Token is missing identity claims"})


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Access token required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Access token required")
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db),
) -> Identity:
    identity = decode_token(bearer_token(authorization))
    account = db["account"].find_one({"account_id": identity.account_id})
    if not account:
        raise AuthenticationError("User not found")
    # role comes from the store so a demoted account loses admin rights immediately
    identity.role = account.get("role", "customer")
    return identity


def require_admin(user: Identity = Depends(get_current_user)) -> Identity:
    if not user.is_admin:
        logger.warning("Unauthorized admin access attempt by %s", user.account_id)
        raise AuthorizationError("Access denied. Admin privileges required.")
    return user
