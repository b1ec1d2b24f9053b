import pytest

from app.custmgr import create_app


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SEED_ON_START", "0")
    monkeypatch.delenv("MAX_PAGE_SIZE", raising=False)
    monkeypatch.delenv("DEFAULT_COUNTRY", raising=False)
    return create_app()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def seeded_client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'seeded.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SEED_ON_START", "1")
    monkeypatch.delenv("DEFAULT_COUNTRY", raising=False)
    return create_app().test_client()


def make_customer(client, **overrides):
    """POST a valid customer and return its id."""
    payload = {"first_name": "Jane", "last_name": "Doe", "phone": "5551234567"}
    payload.update(overrides)
    r = client.post("/api/customers", json=payload)
    assert r.status_code == 201, r.json
    return r.json["id"]


def make_address(client, customer_id, **overrides):
    payload = {"line1": "1 Test Street"}
    payload.update(overrides)
    r = client.post(f"/api/customers/{customer_id}/addresses", json=payload)
    assert r.status_code == 201, r.json
    return r.json["id"]
