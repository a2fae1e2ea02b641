"""
Fixtures of the API tests: a client on the application and an
authenticated user stored in the in-memory database.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from api.auth.service import AuthenticationService
from api.config import get_settings
from api.main import app
from inbox_actions.storage.user_repository import UserRepository


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def user(database):
    return asyncio.run(UserRepository.create_user("alice@example.com", name="Alice", email_provider="GMAIL"))


@pytest.fixture
def other_user(database):
    return asyncio.run(UserRepository.create_user("bob@example.com", name="Bob"))


@pytest.fixture
def auth_headers(user):
    token = AuthenticationService().create_access_token(user["id"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cron_secret(monkeypatch):
    """Configure CRON_SECRET for the duration of one test."""
    monkeypatch.setenv("CRON_SECRET", "cron-test-secret")
    get_settings.cache_clear()
    yield "cron-test-secret"
    monkeypatch.delenv("CRON_SECRET", raising=False)
    get_settings.cache_clear()
