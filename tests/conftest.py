import os
import uuid

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

import config
import database

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def mock_db(monkeypatch):
    db = AsyncMongoMockClient()[f"vetconnect_test_{uuid.uuid4().hex}"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture(autouse=True)
def admin_emails(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_EMAILS", {ADMIN_EMAIL})


@pytest.fixture
def make_client():
    from main import app

    clients = []

    def factory() -> TestClient:
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def register(make_client):
    """Signs up a new account in its own client and optionally completes the profile."""
    def factory(email, role=None, **profile):
        client = make_client()
        response = client.post("/auth/signup", data={"email": email, "password": PASSWORD})
        assert response.status_code == 201, response.text
        if role is None:
            return client, None
        response = client.post("/profile/setup", json={"role": role, **profile})
        assert response.status_code == 201, response.text
        return client, response.json()
    return factory
