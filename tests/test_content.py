ABOUT = {
    "company_overview": {"title": "Who we are", "description": "A family spice shop", "images": []},
    "story": {"title": "Our Story", "description": "Started in a village kitchen"},
    "team_members": [{"name": "Udari", "position": "Founder", "bio": "Cooks a lot", "order": 1}],
}

CONTACT = {
    "shop_name": "Spice Corner",
    "address": "1 Main Street",
    "phone_numbers": [{"type": "mobile", "number": "+94 77 000 000"}],
    "email": "hello@example.com",
}


def test_about_defaults_when_empty(client, db):
    body = client.get("/api/about").json()
    assert body["success"] is True
    assert body["about"]["story"]["title"] == "Our Story"
    assert db["about"].count_documents({}) == 0


def test_update_about_upserts_single_document(client, db, admin_headers):
    res = client.put("/api/about", headers=admin_headers, json=ABOUT)
    assert res.status_code == 200
    client.put("/api/about", headers=admin_headers, json=ABOUT)
    assert db["about"].count_documents({}) == 1

    body = client.get("/api/about").json()
    assert body["about"]["company_overview"]["title"] == "Who we are"
    assert body["about"]["team_members"][0]["name"] == "Udari"


def test_update_about_requires_admin(client, customer_headers):
    assert client.put("/api/about", headers=customer_headers, json=ABOUT).status_code == 403


def test_update_about_rejects_blank_story(client, admin_headers):
    body = {**ABOUT, "story": {"title": "", "description": "x"}}
    assert client.put("/api/about", headers=admin_headers, json=body).status_code == 400


def test_initialize_about_once(client, admin_headers):
    first = client.post("/api/about/initialize", headers=admin_headers)
    assert first.status_code == 201
    second = client.post("/api/about/initialize", headers=admin_headers)
    assert second.status_code == 409
    assert second.json()["message"] == "About information already exists"


def test_contact_round_trip(client, admin_headers):
    assert client.get("/api/contact").json()["contact"]["shop_name"] == "Udari Online Shop"

    res = client.put("/api/contact", headers=admin_headers, json=CONTACT)
    assert res.status_code == 200
    assert client.get("/api/contact").json()["contact"]["shop_name"] == "Spice Corner"


def test_contact_needs_a_phone_number(client, admin_headers):
    res = client.put("/api/contact", headers=admin_headers, json={**CONTACT, "phone_numbers": []})
    assert res.status_code == 400


def test_initialize_contact(client, admin_headers):
    assert client.post("/api/contact/initialize", headers=admin_headers).status_code == 201
    assert client.post("/api/contact/initialize", headers=admin_headers).status_code == 409
