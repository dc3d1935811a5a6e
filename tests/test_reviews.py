import pytest


@pytest.fixture
def order_id(client, customer_headers, make_product, checkout):
    make_product("P1", stock=10)
    res = client.post("/api/orders", headers=customer_headers, json=checkout(("P1", 1)))
    return res.json()["order_id"]


@pytest.fixture
def delivered(client, admin_headers, order_id):
    client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "delivered"})
    return order_id


@pytest.fixture
def review(client, customer_headers, delivered):
    res = client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P1", "order_id": delivered, "rating": 5, "comment": "Lovely"},
    )
    assert res.status_code == 201
    return res.json()["review"]


def _register(client, name, phone):
    token = client.post("/api/users/login-or-register", json={"name": name, "phone": phone}).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def test_review_requires_delivered_order(client, admin_headers, customer_headers, order_id):
    client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "preparing"})
    res = client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P1", "order_id": order_id, "rating": 4, "comment": "Nice"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "You can only review products from delivered orders"


def test_review_on_delivered_order(review):
    assert review["review_id"].startswith("REV-")
    assert review["customer_name"] == "Alex"
    assert review["helpful_count"] == 0
    assert review["status"] == "active"
    assert review["is_verified_purchase"] is True


def test_duplicate_review_is_rejected(client, customer_headers, review):
    res = client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P1", "order_id": review["order_id"], "rating": 3, "comment": "Again"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "You have already reviewed this product for this order"


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_out_of_range(client, customer_headers, delivered, rating):
    res = client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P1", "order_id": delivered, "rating": rating, "comment": "Hmm"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Rating must be between 1 and 5"


def test_review_for_product_not_in_order(client, customer_headers, make_product, delivered):
    make_product("P2")
    res = client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P2", "order_id": delivered, "rating": 5, "comment": "Hmm"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Product not found in this order"


def test_review_of_someone_elses_order(client, delivered):
    headers = _register(client, "Sam", "0722222222")
    res = client.post(
        "/api/reviews",
        headers=headers,
        json={"product_id": "P1", "order_id": delivered, "rating": 5, "comment": "Not mine"},
    )
    assert res.status_code == 404


def test_can_review(client, customer_headers, admin_headers, order_id):
    before = client.get("/api/reviews/can-review/P1", headers=customer_headers).json()
    assert before["can_review"] is False

    client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "delivered"})
    ready = client.get("/api/reviews/can-review/P1", headers=customer_headers).json()
    assert ready["can_review"] is True
    assert ready["reviewable_orders"][0]["order_id"] == order_id

    client.post(
        "/api/reviews",
        headers=customer_headers,
        json={"product_id": "P1", "order_id": order_id, "rating": 5, "comment": "Lovely"},
    )
    after = client.get("/api/reviews/can-review/P1", headers=customer_headers).json()
    assert after["can_review"] is False
    assert after["reviewable_orders"] == []


def test_helpfulness_votes(client, customer_headers, review):
    url = f"/api/reviews/{review['review_id']}/vote"

    assert client.post(url, headers=customer_headers, json={"is_helpful": True}).json()["helpful_count"] == 1
    assert client.post(url, headers=customer_headers, json={"is_helpful": True}).json()["helpful_count"] == 1
    assert client.post(url, headers=customer_headers, json={"is_helpful": False}).json()["helpful_count"] == -1

    other = _register(client, "Sam", "0722222222")
    assert client.post(url, headers=other, json={"is_helpful": False}).json()["helpful_count"] == -2


def test_vote_requires_boolean(client, customer_headers, review):
    res = client.post(f"/api/reviews/{review['review_id']}/vote", headers=customer_headers, json={"is_helpful": "yes"})
    assert res.status_code == 400


def test_vote_on_unknown_review(client, customer_headers):
    res = client.post("/api/reviews/REV-X/vote", headers=customer_headers, json={"is_helpful": True})
    assert res.status_code == 404


def test_product_reviews_and_statistics(client, db, admin_headers, customer_headers, review, checkout):
    other = _register(client, "Sam", "0722222222")
    order_id = client.post("/api/orders", headers=other, json=checkout(("P1", 1), name="Sam")).json()["order_id"]
    client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "delivered"})
    client.post(
        "/api/reviews",
        headers=other,
        json={"product_id": "P1", "order_id": order_id, "rating": 2, "comment": "Too salty"},
    )

    body = client.get("/api/reviews/product/P1?sort_by=rating-low").json()
    assert [r["rating"] for r in body["reviews"]] == [2, 5]
    assert body["statistics"] == {
        "total_reviews": 2,
        "average_rating": 3.5,
        "rating_distribution": {"5": 1, "4": 0, "3": 0, "2": 1, "1": 0},
    }


def test_reviews_for_unknown_product(client):
    assert client.get("/api/reviews/product/NOPE").status_code == 404


def test_admin_delete_is_soft(client, db, admin_headers, review):
    res = client.delete(f"/api/reviews/{review['review_id']}", headers=admin_headers)
    assert res.status_code == 200
    assert db["review"].find_one({"review_id": review["review_id"]})["status"] == "deleted"

    public = client.get("/api/reviews/product/P1").json()
    assert public["statistics"]["total_reviews"] == 0

    deleted = client.get("/api/reviews?status=deleted", headers=admin_headers).json()
    assert deleted["total"] == 1
    assert deleted["reviews"][0]["product_name"] == "Product P1"


def test_admin_like_toggles(client, admin_headers, review):
    url = f"/api/reviews/{review['review_id']}/admin-like"
    assert client.put(url, headers=admin_headers).json()["admin_liked"] is True
    assert client.put(url, headers=admin_headers).json()["admin_liked"] is False


def test_admin_review_listing_requires_admin(client, customer_headers):
    assert client.get("/api/reviews", headers=customer_headers).status_code == 403


def test_my_reviews(client, customer_headers, review):
    body = client.get("/api/reviews/my-reviews", headers=customer_headers).json()
    assert body["total"] == 1
    assert body["reviews"][0]["review_id"] == review["review_id"]
    assert body["reviews"][0]["product_image"] == "https://img.example.com/P1.jpg"


def test_public_listing_hides_reviewer_identity(client, db, customer_headers, review):
    client.post(f"/api/reviews/{review['review_id']}/vote", headers=customer_headers, json={"is_helpful": True})

    listed = client.get("/api/reviews/product/P1").json()["reviews"][0]
    assert listed["customer_name"] == "Alex"
    assert listed["helpful_count"] == 1
    for field in ("customer_phone", "helpful_votes", "account_id"):
        assert field not in listed
    assert "customer_phone" not in db["review"].find_one({"review_id": review["review_id"]})
