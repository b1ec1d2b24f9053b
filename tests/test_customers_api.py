"""Tests for the customer endpoints."""

from sqlalchemy.exc import OperationalError

from app.custmgr.db import session_scope
from app.custmgr.modules.customers import service
from app.custmgr.modules.customers.models import Transaction
from conftest import make_address, make_customer


def _find_customer_id(client, search):
    r = client.get("/api/customers", query_string={"search": search})
    assert r.status_code == 200
    assert r.json["total"] == 1
    return r.json["data"][0]["id"]


def test_create_and_get_customer(client):
    cid = make_customer(client, city="Pune", email="jane@example.com", account_type="Retail")
    r = client.get(f"/api/customers/{cid}")
    assert r.status_code == 200
    body = r.json
    assert body["first_name"] == "Jane"
    assert body["email"] == "jane@example.com"
    assert body["city"] == "Pune"
    assert body["addresses"] == []
    assert body["transactions"] == []
    assert body["address_count"] == 0
    assert body["onlyOneAddress"] is False
    assert body["created_at"] and body["updated_at"]


def test_create_trims_and_nulls_blank_optionals(client):
    cid = make_customer(client, first_name="  Jane ", phone=" 5551234567", email="  ", city="")
    body = client.get(f"/api/customers/{cid}").json
    assert body["first_name"] == "Jane"
    assert body["phone"] == "5551234567"
    assert body["email"] is None
    assert body["city"] is None


def test_create_validation_names_offending_fields(client):
    r = client.post("/api/customers", json={"first_name": "Jane", "last_name": " ", "phone": "555123456"})
    assert r.status_code == 400
    assert r.json == {"error": "validation_failed", "fields": ["last_name", "phone"]}

    r = client.post("/api/customers", json={"first_name": "Jane", "last_name": "Doe", "phone": "55512345678"})
    assert r.status_code == 400
    assert r.json["fields"] == ["phone"]


def test_create_with_non_json_body_is_validation_error(client):
    r = client.post("/api/customers", data="not json", content_type="text/plain")
    assert r.status_code == 400
    assert r.json["fields"] == ["first_name", "last_name", "phone"]


def test_duplicate_email_conflicts(client):
    make_customer(client, email="dup@example.com")
    r = client.post(
        "/api/customers",
        json={"first_name": "Other", "last_name": "Person", "phone": "5550000000", "email": "dup@example.com"},
    )
    assert r.status_code == 409
    assert r.json == {"error": "email_exists"}


def test_customers_without_email_never_conflict(client):
    first = make_customer(client, first_name="Jane", last_name="Doe", phone="5551234567")
    second = make_customer(client, first_name="Jane", last_name="Doe", phone="5551234568")
    assert first != second
    assert client.get("/api/customers").json["total"] == 2


def test_create_with_inline_address_makes_it_primary(client):
    r = client.post(
        "/api/customers",
        json={
            "first_name": "Asha",
            "last_name": "Rao",
            "phone": "9000000001",
            "address": {"line1": "7 Lake View", "city": "Mysuru"},
        },
    )
    assert r.status_code == 201
    cid = r.json["id"]
    assert r.json["address_id"]

    body = client.get(f"/api/customers/{cid}").json
    assert len(body["addresses"]) == 1
    addr = body["addresses"][0]
    assert addr["id"] == r.json["address_id"]
    assert addr["is_primary"] is True
    assert addr["country"] == "India"
    assert body["onlyOneAddress"] is True


def test_inline_address_without_line1_is_ignored(client):
    r = client.post(
        "/api/customers",
        json={"first_name": "Asha", "last_name": "Rao", "phone": "9000000001", "address": {"city": "Mysuru"}},
    )
    assert r.status_code == 201
    assert r.json == {"id": r.json["id"]}
    assert client.get(f"/api/customers/{r.json['id']}").json["addresses"] == []


def test_inline_address_failure_keeps_customer(client, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("INSERT INTO addresses", {}, Exception("disk full"))

    monkeypatch.setattr(service, "_new_address", _boom)
    r = client.post(
        "/api/customers",
        json={"first_name": "Asha", "last_name": "Rao", "phone": "9000000001", "address": {"line1": "7 Lake View"}},
    )
    assert r.status_code == 201
    assert r.json["address_error"] == "address_create_failed"
    assert "address_id" not in r.json

    body = client.get(f"/api/customers/{r.json['id']}").json
    assert body["first_name"] == "Asha"
    assert body["addresses"] == []


def test_get_missing_customer(client):
    r = client.get("/api/customers/does-not-exist")
    assert r.status_code == 404
    assert r.json == {"error": "not_found"}


def test_update_customer_partial(client):
    cid = make_customer(client, city="Pune")
    before = client.get(f"/api/customers/{cid}").json

    r = client.put(f"/api/customers/{cid}", json={"city": "Mumbai", "account_type": "Wholesale"})
    assert r.status_code == 200
    assert r.json == {"updated": True}

    after = client.get(f"/api/customers/{cid}").json
    assert after["city"] == "Mumbai"
    assert after["account_type"] == "Wholesale"
    assert after["first_name"] == before["first_name"]
    assert after["updated_at"] >= before["updated_at"]


def test_update_customer_errors(client):
    cid = make_customer(client)

    r = client.put(f"/api/customers/{cid}", json={"phone": "12"})
    assert r.status_code == 400
    assert r.json == {"error": "validation_failed", "fields": ["phone"]}

    r = client.put(f"/api/customers/{cid}", json={"unknown": "x"})
    assert r.status_code == 400
    assert r.json == {"error": "no_fields"}

    r = client.put("/api/customers/missing", json={"city": "Goa"})
    assert r.status_code == 404
    assert r.json == {"error": "not_found"}


def test_update_email_to_taken_one_conflicts(client):
    make_customer(client, email="a@example.com")
    cid = make_customer(client, phone="5550000001", email="b@example.com")

    r = client.put(f"/api/customers/{cid}", json={"email": "a@example.com"})
    assert r.status_code == 409
    assert r.json == {"error": "email_exists"}

    # keeping your own email is fine
    r = client.put(f"/api/customers/{cid}", json={"email": "b@example.com"})
    assert r.status_code == 200


def test_delete_customer_cascades_addresses(client, app):
    cid = make_customer(client)
    aid = make_address(client, cid)
    make_address(client, cid, line1="2 Second Street")

    r = client.delete(f"/api/customers/{cid}")
    assert r.status_code == 200
    assert r.json == {"deleted": True}

    assert client.get(f"/api/customers/{cid}").status_code == 404
    r = client.put(f"/api/addresses/{aid}", json={"line1": "gone"})
    assert r.status_code == 404


def test_delete_missing_customer(client):
    r = client.delete("/api/customers/missing")
    assert r.status_code == 404
    assert r.json == {"error": "not_found"}


def test_delete_blocked_by_transactions(client, app):
    cid = make_customer(client)
    make_address(client, cid)
    with session_scope(app) as s:
        s.add(Transaction(customer_id=cid, detail="Order #1", amount=10.0))
        s.add(Transaction(customer_id=cid, detail="Order #2", amount=20.0))

    r = client.delete(f"/api/customers/{cid}")
    assert r.status_code == 400
    assert r.json == {"error": "linked_transactions", "count": 2}

    body = client.get(f"/api/customers/{cid}").json
    assert len(body["addresses"]) == 1
    assert len(body["transactions"]) == 2


def test_seeded_ravi_cannot_be_deleted(seeded_client):
    ravi_id = _find_customer_id(seeded_client, "Ravi")

    r = seeded_client.delete(f"/api/customers/{ravi_id}")
    assert r.status_code == 400
    assert r.json == {"error": "linked_transactions", "count": 1}

    body = seeded_client.get(f"/api/customers/{ravi_id}").json
    assert body["first_name"] == "Ravi"
    assert body["transactions"][0]["amount"] == 1500.0
    assert body["transactions"][0]["detail"] == "Order #1001"
    assert body["addresses"][0]["is_primary"] is True


def test_seeded_alice_can_be_deleted(seeded_client):
    alice_id = _find_customer_id(seeded_client, "Alice")
    r = seeded_client.delete(f"/api/customers/{alice_id}")
    assert r.status_code == 200
    assert seeded_client.get("/api/customers").json["total"] == 1


def test_store_failure_is_opaque_500(client, monkeypatch):
    from app.custmgr.modules.customers import api

    def _boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(api, "list_customers", _boom)
    r = client.get("/api/customers")
    assert r.status_code == 500
    assert r.json == {"error": "db_error"}


def test_non_ascii_digit_phone_and_pincode_rejected(client):
    r = client.post(
        "/api/customers",
        json={"first_name": "Jane", "last_name": "Doe", "phone": "٥" * 10, "pincode": "١" * 6},
    )
    assert r.status_code == 400
    assert r.json == {"error": "validation_failed", "fields": ["phone", "pincode"]}
    assert client.get("/api/customers").json["total"] == 0
