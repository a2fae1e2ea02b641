"""
Unit tests for JWT handling and request authentication.
"""

from datetime import timedelta

import pytest
from jose import jwt

from api.auth.service import AuthenticationService


class TestAuthenticationService:
    """Token creation and decoding."""

    def test_token_carries_user_id(self):
        service = AuthenticationService()
        token = service.create_access_token("user-42")

        payload = jwt.decode(token, service.secret_key, algorithms=[service.algorithm])
        assert payload["sub"] == "user-42"
        assert service.decode_user_id(token) == "user-42"

    def test_expired_token(self):
        service = AuthenticationService()
        token = service.create_access_token("user-42", expires_delta=timedelta(minutes=-1))
        assert service.decode_user_id(token) is None

    def test_foreign_signature(self):
        service = AuthenticationService()
        token = jwt.encode({"sub": "user-42"}, "x" * 40, algorithm="HS256")
        assert service.decode_user_id(token) is None

    def test_missing_subject(self):
        service = AuthenticationService()
        token = jwt.encode({"scope": "all"}, service.secret_key, algorithm=service.algorithm)
        assert service.decode_user_id(token) is None


class TestCurrentUser:
    """Bearer authentication on the protected endpoints."""

    def test_missing_token(self, client, database):
        response = client.get("/actions")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client, database):
        response = client.get("/actions", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_unknown_user(self, client, database):
        token = AuthenticationService().create_access_token("ghost")
        response = client.get("/actions", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "HTTP_401"

    def test_valid_token(self, client, auth_headers):
        assert client.get("/actions", headers=auth_headers).status_code == 200


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
