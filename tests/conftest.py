import os

# Must be set before the app modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PRINTSHOP_SECRET_KEY"] = "test-secret-key-for-the-printshop-suite-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from printshop_core.app import models
from printshop_core.app.db import Base, engine, SessionLocal
from printshop_core.app.deps import get_password_hash
from printshop_core.app.main import app

PASSWORD = "secret123"


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users(db_session):
    created = {}
    for role in models.Role:
        user = models.User(
            username=role.value,
            password_hash=get_password_hash(PASSWORD),
            full_name=f"{role.value.title()} User",
            role=role.value,
            is_active=True,
        )
        db_session.add(user)
        created[role.value] = user
    db_session.commit()
    for user in created.values():
        db_session.refresh(user)
    return created


@pytest.fixture
def client(db_session, tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    return TestClient(app)


def login(client, username, password=PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


def auth_headers(client, username, password=PASSWORD):
    response = login(client, username, password)
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, users):
    return auth_headers(client, "admin")


@pytest.fixture
def supervisor_headers(client, users):
    return auth_headers(client, "supervisor")


@pytest.fixture
def employee_headers(client, users):
    return auth_headers(client, "employee")


@pytest.fixture
def make_material(client, admin_headers):
    def _make(name="A4 Paper", quantity=100, min_quantity=10, price=5.5, type="paper", headers=None):
        response = client.post(
            "/api/materials",
            json={"name": name, "type": type, "quantity": quantity, "min_quantity": min_quantity, "price": price},
            headers=headers or admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_book(client, admin_headers):
    def _make(isbn="9780306406157", total=100, ready=0, printing=0, **extra):
        payload = {
            "title": extra.pop("title", "Arabic Grammar"),
            "author": extra.pop("author", "Sibawayh"),
            "isbn": isbn,
            "total_quantity": total,
            "ready_quantity": ready,
            "printing_quantity": printing,
        }
        payload.update(extra)
        return client.post("/api/books", json=payload, headers=admin_headers)
    return _make
