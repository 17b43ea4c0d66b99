"""Tests for email and SMS notification transports."""

import pytest
from unittest.mock import AsyncMock, MagicMock

import httpx

from careflow.infra.notifications import (
    DeliveryResult,
    EmailTransport,
    SmsTransport,
    html_to_text,
    is_valid_email,
    normalize_phone,
    truncate_sms,
)


def make_response(status_code: int, payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestDeliveryResult:
    """Test DeliveryResult dataclass."""

    def test_sent_to_dict(self):
        """Test successful result conversion."""
        d = DeliveryResult.sent("msg-1").to_dict()

        assert d == {"success": True, "message_id": "msg-1"}

    def test_skipped_to_dict(self):
        """Test skipped result keeps the reason and no error."""
        d = DeliveryResult.skipped("No phone number").to_dict()

        assert d == {"success": False, "reason": "No phone number"}

    def test_failed_to_dict(self):
        """Test failed result keeps the error."""
        d = DeliveryResult.failed("boom").to_dict()

        assert d == {"success": False, "error": "boom"}


class TestHelpers:
    """Test formatting and validation helpers."""

    def test_normalize_national_number(self):
        """Test national numbers get the default country code."""
        assert normalize_phone("0412 345 678") == "+61412345678"

    def test_normalize_strips_formatting(self):
        """Test spaces, dashes and parentheses are removed."""
        assert normalize_phone("+61 (412) 345-678") == "+61412345678"

    def test_normalize_international_prefix(self):
        """Test 00 prefix becomes +."""
        assert normalize_phone("0061412345678") == "+61412345678"

    def test_normalize_custom_country_code(self):
        """Test a different default country code."""
        assert normalize_phone("021 555 1234", "+64") == "+64215551234"

    def test_is_valid_email(self):
        """Test email validation."""
        assert is_valid_email("sam@example.com")
        assert not is_valid_email("sam@example")
        assert not is_valid_email("")
        assert not is_valid_email(None)

    def test_truncate_sms(self):
        """Test long SMS bodies are cut to 1600 characters."""
        truncated = truncate_sms("x" * 2000)

        assert len(truncated) == 1600
        assert truncated.endswith("...")

    def test_truncate_sms_short_message_unchanged(self):
        """Test short messages are untouched."""
        assert truncate_sms("hello") == "hello"

    def test_html_to_text(self):
        """Test HTML is flattened to readable text."""
        text = html_to_text("<p>Hello <strong>Sam</strong>,</p><p>Art &amp; Craft</p>")

        assert "Hello Sam ," in text or "Hello Sam," in text
        assert "Art & Craft" in text
        assert "<" not in text


class TestEmailTransport:
    """Test EmailTransport."""

    @pytest.fixture
    def transport(self):
        """Create configured transport."""
        return EmailTransport(
            api_key="re_test",
            from_address="CareFlow <reminders@careflow.app>",
            reply_to="support@careflow.app",
        )

    @pytest.fixture
    def mock_httpx_client(self):
        """Create mock httpx client."""
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_send_email_success(self, transport, mock_httpx_client):
        """Test successful send returns the Resend id."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(200, {"id": "email-123"})
        )
        transport._client = mock_httpx_client

        result = await transport.send_email(
            "sam@example.com", "Reminder", "<p>Hello Sam</p>"
        )

        assert result.success is True
        assert result.message_id == "email-123"

        call = mock_httpx_client.post.call_args
        assert call.args[0] == "/emails"
        payload = call.kwargs["json"]
        assert payload["to"] == ["sam@example.com"]
        assert payload["subject"] == "Reminder"
        assert payload["text"] == "Hello Sam"
        assert payload["reply_to"] == "support@careflow.app"
        assert call.kwargs["headers"]["Authorization"] == "Bearer re_test"

    @pytest.mark.asyncio
    async def test_send_email_uses_given_text(self, transport, mock_httpx_client):
        """Test explicit plain text is passed through."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(200, {"id": "email-123"})
        )
        transport._client = mock_httpx_client

        await transport.send_email("sam@example.com", "Reminder", "<p>x</p>", "plain")

        assert mock_httpx_client.post.call_args.kwargs["json"]["text"] == "plain"

    @pytest.mark.asyncio
    async def test_send_email_provider_error(self, transport, mock_httpx_client):
        """Test provider error becomes a failure result."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(
                422, {"name": "validation_error", "message": "Invalid `from` field"}
            )
        )
        transport._client = mock_httpx_client

        result = await transport.send_email("sam@example.com", "Reminder", "<p>x</p>")

        assert result.success is False
        assert "Invalid `from` field" in result.error

    @pytest.mark.asyncio
    async def test_send_email_connection_error(self, transport, mock_httpx_client):
        """Test network errors do not raise."""
        mock_httpx_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        transport._client = mock_httpx_client

        result = await transport.send_email("sam@example.com", "Reminder", "<p>x</p>")

        assert result.success is False
        assert "refused" in result.error

    @pytest.mark.asyncio
    async def test_send_email_invalid_address(self, transport, mock_httpx_client):
        """Test invalid address is rejected without a request."""
        mock_httpx_client.post = AsyncMock()
        transport._client = mock_httpx_client

        result = await transport.send_email("not-an-email", "Reminder", "<p>x</p>")

        assert result.success is False
        assert result.error == "Invalid email format"
        mock_httpx_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_email_not_configured(self, mock_httpx_client):
        """Test missing API key disables sending."""
        transport = EmailTransport(api_key=None, from_address="reminders@careflow.app")
        mock_httpx_client.post = AsyncMock()
        transport._client = mock_httpx_client

        result = await transport.send_email("sam@example.com", "Reminder", "<p>x</p>")

        assert result.success is False
        assert result.error == "Email service not available"
        mock_httpx_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_close(self, transport, mock_httpx_client):
        """Test close releases the HTTP client."""
        transport._client = mock_httpx_client

        await transport.close()

        mock_httpx_client.aclose.assert_awaited_once()
        assert transport._client is None


class TestSmsTransport:
    """Test SmsTransport."""

    @pytest.fixture
    def transport(self):
        """Create configured transport with a sender number."""
        return SmsTransport(
            account_sid="AC123",
            auth_token="token",
            from_number="+61400000000",
        )

    @pytest.fixture
    def mock_httpx_client(self):
        """Create mock httpx client."""
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_send_sms_success(self, transport, mock_httpx_client):
        """Test successful send returns the Twilio SID."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(201, {"sid": "SM123"})
        )
        transport._client = mock_httpx_client

        result = await transport.send_sms("0412 345 678", "Hello")

        assert result.success is True
        assert result.message_id == "SM123"

        call = mock_httpx_client.post.call_args
        assert call.args[0] == "/2010-04-01/Accounts/AC123/Messages.json"
        assert call.kwargs["data"] == {
            "To": "+61412345678",
            "Body": "Hello",
            "From": "+61400000000",
        }

    @pytest.mark.asyncio
    async def test_send_sms_prefers_messaging_service(self, mock_httpx_client):
        """Test Messaging Service SID replaces the From number."""
        transport = SmsTransport(
            account_sid="AC123",
            auth_token="token",
            from_number="+61400000000",
            messaging_service_sid="MG999",
        )
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(201, {"sid": "SM123"})
        )
        transport._client = mock_httpx_client

        await transport.send_sms("+61412345678", "Hello")

        data = mock_httpx_client.post.call_args.kwargs["data"]
        assert data["MessagingServiceSid"] == "MG999"
        assert "From" not in data

    @pytest.mark.asyncio
    async def test_send_sms_truncates_long_body(self, transport, mock_httpx_client):
        """Test bodies over 1600 characters are truncated."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(201, {"sid": "SM123"})
        )
        transport._client = mock_httpx_client

        await transport.send_sms("+61412345678", "y" * 1700)

        body = mock_httpx_client.post.call_args.kwargs["data"]["Body"]
        assert len(body) == 1600
        assert body.endswith("...")

    @pytest.mark.asyncio
    async def test_send_sms_invalid_number(self, transport, mock_httpx_client):
        """Test invalid numbers are rejected without a request."""
        mock_httpx_client.post = AsyncMock()
        transport._client = mock_httpx_client

        result = await transport.send_sms("12345abc", "Hello")

        assert result.success is False
        assert "E.164" in result.error
        mock_httpx_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_sms_provider_error(self, transport, mock_httpx_client):
        """Test Twilio error payload becomes a failure result."""
        mock_httpx_client.post = AsyncMock(
            return_value=make_response(
                400, {"code": 21211, "message": "Invalid 'To' Phone Number"}
            )
        )
        transport._client = mock_httpx_client

        result = await transport.send_sms("+61412345678", "Hello")

        assert result.success is False
        assert "[21211] Invalid 'To' Phone Number" in result.error

    @pytest.mark.asyncio
    async def test_send_sms_timeout(self, transport, mock_httpx_client):
        """Test timeouts do not raise."""
        mock_httpx_client.post = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        transport._client = mock_httpx_client

        result = await transport.send_sms("+61412345678", "Hello")

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_send_sms_not_configured(self, mock_httpx_client):
        """Test missing credentials disable sending."""
        transport = SmsTransport(account_sid=None, auth_token=None)
        mock_httpx_client.post = AsyncMock()
        transport._client = mock_httpx_client

        result = await transport.send_sms("+61412345678", "Hello")

        assert result.success is False
        assert result.error == "SMS service not available"
        mock_httpx_client.post.assert_not_called()
