"""
Notification Transports

Thin async wrappers around the outbound providers used for reminders:
- Email via the Resend HTTP API
- SMS via the Twilio Messages API

Every send returns a DeliveryResult. Transports never raise: configuration
problems, validation failures and provider errors all come back as
DeliveryResult(success=False, ...).
"""

import html as html_module
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from careflow.config import Settings

logger = logging.getLogger(__name__)

RESEND_BASE_URL = "https://api.resend.com"
TWILIO_BASE_URL = "https://api.twilio.com"

SMS_MAX_LENGTH = 1600

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


@dataclass
class DeliveryResult:
    """Outcome of a single email or SMS send."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None  # set when the send was not attempted

    @classmethod
    def sent(cls, message_id: Optional[str]) -> "DeliveryResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def failed(cls, error: str) -> "DeliveryResult":
        return cls(success=False, error=error)

    @classmethod
    def skipped(cls, reason: str) -> "DeliveryResult":
        return cls(success=False, reason=reason)

    def to_dict(self) -> dict:
        """Convert to dictionary, omitting unset fields."""
        result: dict = {"success": self.success}
        if self.message_id is not None:
            result["message_id"] = self.message_id
        if self.error is not None:
            result["error"] = self.error
        if self.reason is not None:
            result["reason"] = self.reason
        return result


def html_to_text(content: str) -> str:
    """Plain-text alternative for an HTML email body."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", content, flags=re.DOTALL | re.I)
    text = re.sub(r"<(br|/p|/div|/h[1-6])[^>]*>", "\n", text, flags=re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"[ \t]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    return html_module.unescape("\n".join(line for line in lines if line))


def is_valid_email(address: Optional[str]) -> bool:
    return bool(address) and EMAIL_PATTERN.match(address) is not None


def normalize_phone(phone: str, default_country_code: str = "+61") -> str:
    """Strip formatting and rewrite national numbers into E.164.

    "0412 345 678" -> "+61412345678" with the default country code.
    """
    cleaned = re.sub(r"[\s\-().]", "", phone)
    if cleaned.startswith("00"):
        return "+" + cleaned[2:]
    if cleaned.startswith("0") and default_country_code:
        return default_country_code + cleaned[1:]
    return cleaned


def truncate_sms(message: str) -> str:
    if len(message) <= SMS_MAX_LENGTH:
        return message
    logger.warning(f"SMS message exceeds {SMS_MAX_LENGTH} characters ({len(message)}), truncating")
    return message[: SMS_MAX_LENGTH - 3] + "..."


def _error_message(response: httpx.Response) -> str:
    """Pull a readable error out of a provider error response."""
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        message = data.get("message") or data.get("error") or data.get("name")
        code = data.get("code")
        if message and code:
            return f"[{code}] {message}"
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


class EmailTransport:
    """
    Email sender backed by the Resend API.

    POST /emails with from/to/subject/html/text; the response id is used
    as the message id.
    """

    def __init__(
        self,
        api_key: Optional[str],
        from_address: str,
        reply_to: Optional[str] = None,
        base_url: str = RESEND_BASE_URL,
        timeout: float = 10.0,
    ):
        """Initialize transport.

        Args:
            api_key: Resend API key (None disables email)
            from_address: Sender, e.g. "CareFlow <reminders@careflow.app>"
            reply_to: Optional Reply-To address
            base_url: Resend API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.from_address = from_address
        self.reply_to = reply_to
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

        if not api_key:
            logger.warning("Resend API key not provided, email notifications will be disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> DeliveryResult:
        """Send one email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML body
            text: Plain-text body (derived from html when omitted)

        Returns:
            DeliveryResult with the Resend message id on success
        """
        if not self.is_configured:
            logger.error("Email transport not configured, cannot send email")
            return DeliveryResult.failed("Email service not available")

        if not is_valid_email(to):
            logger.error(f"Invalid email format: {to!r}")
            return DeliveryResult.failed("Invalid email format")

        payload: dict = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text or html_to_text(html),
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to

        try:
            client = await self._get_client()
            response = await client.post(
                "/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )

            if response.status_code in (200, 201):
                message_id = response.json().get("id")
                logger.info(f"Email sent successfully to {to}, ID: {message_id}")
                return DeliveryResult.sent(message_id)

            error = _error_message(response)
            logger.error(f"Failed to send email to {to}: {error}")
            return DeliveryResult.failed(f"Failed to send email: {error}")

        except httpx.HTTPError as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return DeliveryResult.failed(f"Failed to send email: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error sending email to {to}")
            return DeliveryResult.failed(f"Failed to send email: {e}")


class SmsTransport:
    """
    SMS sender backed by the Twilio Messages API.

    Uses the Messaging Service SID when configured, otherwise the
    configured sender number.
    """

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str] = None,
        messaging_service_sid: Optional[str] = None,
        default_country_code: str = "+61",
        base_url: str = TWILIO_BASE_URL,
        timeout: float = 10.0,
    ):
        """Initialize transport.

        Args:
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            from_number: Sender number (E.164)
            messaging_service_sid: Messaging Service SID (preferred over from_number)
            default_country_code: Used to rewrite national numbers
            base_url: Twilio API base URL
            timeout: Request timeout in seconds
        """
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid
        self.default_country_code = default_country_code
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

        if not self.is_configured:
            logger.warning("Twilio credentials not provided, SMS notifications will be disabled")

    @property
    def is_configured(self) -> bool:
        return bool(
            self.account_sid
            and self.auth_token
            and (self.from_number or self.messaging_service_sid)
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=(self.account_sid, self.auth_token),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_sms(self, to: str, text: str) -> DeliveryResult:
        """Send one SMS.

        Args:
            to: Recipient phone number (E.164 or national format)
            text: Message body, truncated to 1600 characters

        Returns:
            DeliveryResult with the Twilio message SID on success
        """
        if not self.is_configured:
            logger.error("SMS transport not configured, cannot send SMS")
            return DeliveryResult.failed("SMS service not available")

        phone = normalize_phone(to or "", self.default_country_code)
        if not E164_PATTERN.match(phone):
            logger.error(f"Invalid phone number format: {to!r}")
            return DeliveryResult.failed(
                "Invalid phone number format. Must be in E.164 format (e.g., +61412345678)"
            )

        data = {"To": phone, "Body": truncate_sms(text)}
        if self.messaging_service_sid:
            data["MessagingServiceSid"] = self.messaging_service_sid
        else:
            data["From"] = self.from_number

        try:
            client = await self._get_client()
            response = await client.post(
                f"/2010-04-01/Accounts/{self.account_sid}/Messages.json",
                data=data,
            )

            if response.status_code in (200, 201):
                message_sid = response.json().get("sid")
                logger.info(f"SMS sent successfully to {phone}, SID: {message_sid}")
                return DeliveryResult.sent(message_sid)

            error = _error_message(response)
            logger.error(f"Twilio API error for {phone}: {error}")
            return DeliveryResult.failed(f"Failed to send SMS: {error}")

        except httpx.HTTPError as e:
            logger.error(f"Failed to send SMS to {phone}: {e}")
            return DeliveryResult.failed(f"Failed to send SMS: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error sending SMS to {phone}")
            return DeliveryResult.failed(f"Failed to send SMS: {e}")


def build_email_transport(settings: Settings) -> EmailTransport:
    """Create the email transport from settings."""
    return EmailTransport(
        api_key=settings.resend_api_key,
        from_address=settings.email_from,
        reply_to=settings.email_reply_to,
        timeout=settings.notification_timeout_seconds,
    )


def build_sms_transport(settings: Settings) -> SmsTransport:
    """Create the SMS transport from settings."""
    return SmsTransport(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_phone_number,
        messaging_service_sid=settings.twilio_messaging_service_sid,
        default_country_code=settings.sms_default_country_code,
        timeout=settings.notification_timeout_seconds,
    )
