"""
Unit tests for the /actions endpoints.

Requests go through the real application and the in-memory database.
"""

import pytest

from api.auth.service import AuthenticationService
from api.services.action_service import MANUAL_SOURCE

EMAIL = {
    "from": "paul@example.com",
    "subject": "Devis",
    "body": "Bonjour,\n\nPeux-tu m'envoyer le devis avant vendredi ?\n\nMerci",
    "received_at": "2024-01-15T10:00:00+00:00",
}


def create_manual(client, headers, title="Appeler le comptable", action_type="CALL", **extra):
    response = client.post("/actions/manual", json={"title": title, "type": action_type, **extra}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestExtractEndpoint:
    """Dry-run of the extraction engine."""

    def test_extract(self, client, auth_headers):
        response = client.post("/actions/extract", json=EMAIL, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        action = data["actions"][0]
        assert action["type"] == "SEND"
        assert action["title"] == "Envoyer le devis"
        assert action["source_sentence"] == "Peux-tu m'envoyer le devis avant vendredi"
        assert action["due_date"].startswith("2024-01-19T18:00:00")

    def test_nothing_stored(self, client, auth_headers):
        client.post("/actions/extract", json=EMAIL, headers=auth_headers)
        assert client.get("/actions", headers=auth_headers).json()["total"] == 0

    def test_no_action(self, client, auth_headers):
        response = client.post("/actions/extract", json={"body": "Merci pour ton retour."}, headers=auth_headers)
        assert response.json() == {"actions": [], "count": 0}


class TestCreateActions:

    def test_manual_action(self, client, auth_headers, user):
        action = create_manual(client, auth_headers)

        assert action["title"] == "Appeler le comptable"
        assert action["type"] == "CALL"
        assert action["status"] == "TODO"
        assert action["source_sentence"] == MANUAL_SOURCE
        assert action["email_from"] == user["email"]

    def test_manual_action_note(self, client, auth_headers):
        action = create_manual(client, auth_headers, note="Vu en réunion")
        assert action["source_sentence"] == "Vu en réunion"

    def test_blank_title_rejected(self, client, auth_headers):
        response = client.post("/actions/manual", json={"title": "   ", "type": "CALL"}, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unknown_type_rejected(self, client, auth_headers):
        response = client.post("/actions/manual", json={"title": "Ranger", "type": "CLEAN"}, headers=auth_headers)
        assert response.status_code == 422

    def test_action_from_email(self, client, auth_headers):
        response = client.post("/actions", json={
            "title": "Payer la facture",
            "type": "PAY",
            "source_sentence": "Merci de régler la facture",
            "email_from": "compta@example.com",
            "email_received_at": "2024-01-15T10:00:00Z",
            "message_id": "m1",
        }, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["message_id"] == "m1"


class TestListAndStatus:

    def test_list_with_filters(self, client, auth_headers):
        first = create_manual(client, auth_headers)
        create_manual(client, auth_headers, title="Valider le planning", action_type="VALIDATE")

        done = client.post(f"/actions/{first['id']}/done", headers=auth_headers)
        assert done.status_code == 200
        assert done.json()["status"] == "DONE"

        data = client.get("/actions", headers=auth_headers).json()
        assert data["total"] == 2
        assert data["counts"] == {"TODO": 1, "DONE": 1, "IGNORED": 0}
        assert data["actions"][0]["status"] == "TODO"

        filtered = client.get("/actions", params={"status": "DONE"}, headers=auth_headers).json()
        assert [a["id"] for a in filtered["actions"]] == [first["id"]]

        by_type = client.get("/actions", params={"type": "VALIDATE"}, headers=auth_headers).json()
        assert [a["title"] for a in by_type["actions"]] == ["Valider le planning"]

    def test_invalid_filter(self, client, auth_headers):
        response = client.get("/actions", params={"status": "LATER"}, headers=auth_headers)
        assert response.status_code == 422

    def test_ignore(self, client, auth_headers):
        action = create_manual(client, auth_headers)
        response = client.post(f"/actions/{action['id']}/ignore", headers=auth_headers)
        assert response.json()["status"] == "IGNORED"

    def test_delete(self, client, auth_headers):
        action = create_manual(client, auth_headers)

        assert client.delete(f"/actions/{action['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/actions/{action['id']}", headers=auth_headers).status_code == 404


class TestOwnership:

    @pytest.fixture
    def other_headers(self, other_user):
        return {"Authorization": f"Bearer {AuthenticationService().create_access_token(other_user['id'])}"}

    def test_unknown_action(self, client, auth_headers):
        response = client.get("/actions/does-not-exist", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "ACTION_NOT_FOUND"

    @pytest.mark.parametrize("method,suffix", [
        ("get", ""),
        ("post", "/done"),
        ("post", "/ignore"),
        ("delete", ""),
    ])
    def test_foreign_action(self, client, auth_headers, other_headers, method, suffix):
        action = create_manual(client, auth_headers)

        response = getattr(client, method)(f"/actions/{action['id']}{suffix}", headers=other_headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACTION_FORBIDDEN"

    def test_lists_are_separate(self, client, auth_headers, other_headers):
        create_manual(client, auth_headers)
        assert client.get("/actions", headers=other_headers).json()["total"] == 0
