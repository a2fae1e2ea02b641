"""
Unit tests for provider selection.
"""

from unittest.mock import AsyncMock, patch

import pytest

from inbox_actions.integrations.factory import create_email_provider


@pytest.mark.asyncio
class TestCreateEmailProvider:

    @patch("inbox_actions.integrations.factory.create_gmail_provider", new_callable=AsyncMock)
    async def test_gmail(self, mock_create):
        provider = await create_email_provider({"id": "user-1", "email_provider": "GMAIL"})

        mock_create.assert_awaited_once_with("user-1")
        assert provider is mock_create.return_value

    @patch("inbox_actions.integrations.factory.create_imap_provider", new_callable=AsyncMock)
    async def test_imap(self, mock_create):
        provider = await create_email_provider({"id": "user-1", "email_provider": "IMAP"})

        mock_create.assert_awaited_once_with("user-1")
        assert provider is mock_create.return_value

    @pytest.mark.parametrize("value", [None, "", "YAHOO", "MICROSOFT_GRAPH"])
    async def test_unavailable(self, value):
        assert await create_email_provider({"id": "user-1", "email_provider": value}) is None
