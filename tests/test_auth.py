import jwt
import pytest

from auth import create_token, decode_token, hash_secret, verify_secret
from errors import AuthenticationError
from settings import settings

ACCOUNT = {
    "account_id": "USR-1",
    "name": "Alex",
    "last_name": "",
    "role": "customer",
    "phone": "0711234567",
    "address": "12 Lane",
    "email": None,
}


def test_hash_and_verify():
    hashed = hash_secret("0711234567", rounds=4)
    assert verify_secret("0711234567", hashed)
    assert not verify_secret("0711234568", hashed)
    assert not verify_secret("0711234567", "")
    assert not verify_secret("0711234567", "not-a-bcrypt-hash")


def test_token_round_trip():
    identity = decode_token(create_token(ACCOUNT))
    assert identity.account_id == "USR-1"
    assert identity.name == "Alex"
    assert identity.role == "customer"
    assert not identity.is_admin


def test_token_expiry_is_set_from_settings():
    claims = jwt.decode(create_token(ACCOUNT), settings.jwt_secret, algorithms=[settings.jwt_algo])
    assert claims["exp"] - claims["iat"] == settings.jwt_expire_hours * 3600


def test_expired_token():
    with pytest.raises(AuthenticationError) as exc:
        decode_token(create_token(ACCOUNT, expires_hours=-1))
    assert exc.value.message == "Token expired"


def test_tampered_token():
    token = jwt.encode({"account_id": "USR-1", "name": "Alex"}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError) as exc:
        decode_token(token)
    assert exc.value.message == "Invalid token"


def test_missing_header(client):
    res = client.get("/api/users/me")
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Access token required"}


def test_wrong_scheme(client, customer):
    res = client.get("/api/users/me", headers={"Authorization": f"Token {customer['token']}"})
    assert res.status_code == 401


def test_malformed_token(client):
    res = client.get("/api/users/me", headers={"Authorization": "Bearer abc.def"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


def test_expired_token_over_http(client, db, customer):
    account = db["account"].find_one({"name": "Alex"})
    token = create_token(account, expires_hours=-1)
    res = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["message"] == "Token expired"


def test_token_for_deleted_account(client, db, customer, customer_headers):
    db["account"].delete_many({})
    res = client.get("/api/users/me", headers=customer_headers)
    assert res.status_code == 401
    assert res.json()["message"] == "User not found"


def test_me_returns_claims(client, customer_headers):
    res = client.get("/api/users/me", headers=customer_headers)
    assert res.status_code == 200
    assert res.json()["user"]["name"] == "Alex"


def test_customer_cannot_reach_admin_routes(client, customer_headers):
    res = client.get("/api/orders", headers=customer_headers)
    assert res.status_code == 403
    assert res.json()["message"] == "Access denied. Admin privileges required."
