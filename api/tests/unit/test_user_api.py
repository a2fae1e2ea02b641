"""
Unit tests for the /user and /email endpoints.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from inbox_actions.email_processing.models import EmailProvider
from inbox_actions.exceptions import ProviderAuthError, ProviderError
from inbox_actions.integrations.base import ConnectionStatus

SYNC_RESULT = {"emails_synced": 3, "emails_analyzed": 3, "actions_extracted": 2, "email_errors": 0}


class TestPreferences:

    def test_get(self, client, auth_headers):
        response = client.get("/user/preferences", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "sync_enabled": True,
            "email_notifications": True,
            "email_provider": "GMAIL",
            "last_sync": None,
        }

    def test_partial_update(self, client, auth_headers):
        response = client.put("/user/preferences", json={"email_notifications": False}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email_notifications"] is False
        assert response.json()["sync_enabled"] is True
        assert client.get("/user/preferences", headers=auth_headers).json()["email_notifications"] is False

    def test_requires_authentication(self, client, database):
        assert client.put("/user/preferences", json={"sync_enabled": False}).status_code == 401


class TestManualSync:

    @patch("api.routes.email.schedule_digest")
    @patch("api.routes.email.sync_user", new_callable=AsyncMock)
    def test_sync(self, mock_sync, mock_schedule, client, auth_headers, user):
        mock_sync.return_value = SYNC_RESULT

        response = client.post("/email/sync", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "error": None, **SYNC_RESULT}
        assert mock_sync.await_args.args[0]["id"] == user["id"]
        mock_schedule.assert_called_once_with(user["id"])

    @patch("api.routes.email.schedule_digest")
    @patch("api.routes.email.sync_user", new_callable=AsyncMock)
    def test_nothing_new(self, mock_sync, mock_schedule, client, auth_headers):
        mock_sync.return_value = {"emails_synced": 0, "emails_analyzed": 0, "actions_extracted": 0, "email_errors": 0}

        client.post("/email/sync", headers=auth_headers)
        mock_schedule.assert_not_called()

    @patch("api.routes.email.sync_user", new_callable=AsyncMock)
    def test_service_unavailable(self, mock_sync, client, auth_headers):
        mock_sync.side_effect = RuntimeError("Email service unavailable")

        response = client.post("/email/sync", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error"] == "Email service unavailable"

    @patch("api.routes.email.sync_user", new_callable=AsyncMock)
    def test_reconnect_required(self, mock_sync, client, auth_headers):
        mock_sync.side_effect = ProviderAuthError("GMAIL", "Token has been revoked")

        response = client.post("/email/sync", headers=auth_headers)

        assert response.status_code == 401
        assert response.json()["error_code"] == "PROVIDER_AUTH_ERROR"

    @patch("api.routes.email.sync_user", new_callable=AsyncMock)
    def test_provider_failure(self, mock_sync, client, auth_headers):
        mock_sync.side_effect = ProviderError("IMAP", "Connection refused")

        response = client.post("/email/sync", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["details"] == {"provider": "IMAP"}


class TestMailboxStatus:

    @patch("api.routes.email.create_email_provider", new_callable=AsyncMock)
    def test_connected(self, mock_create, client, auth_headers):
        last_sync = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)
        provider = MagicMock()
        provider.get_status = AsyncMock(return_value=ConnectionStatus(
            provider=EmailProvider.GMAIL, is_connected=True, last_sync=last_sync,
        ))
        mock_create.return_value = provider

        data = client.get("/email/status", headers=auth_headers).json()

        assert data["provider"] == "GMAIL"
        assert data["is_connected"] is True
        assert data["last_sync"].startswith("2024-01-15T08:00:00")
        assert data["pending_emails"] == 0

    @patch("api.routes.email.create_email_provider", new_callable=AsyncMock)
    def test_not_configured(self, mock_create, client, auth_headers):
        mock_create.return_value = None

        data = client.get("/email/status", headers=auth_headers).json()

        assert data["provider"] == "GMAIL"
        assert data["is_connected"] is False
