"""SendGrid email transport for the notification queue.

The queue consumes a single operation, ``send(to, from, subject, html,
text)``, that either returns or raises. This module implements it on the
SendGrid SDK. The SDK call is blocking and runs in the default executor;
the SDK's own HTTP timeout is the only bound on a send.

Every failure is reported as ``TransportTransientError`` so the queue
retries it until the attempt limit. Invalid recipient addresses are
reported the same way and end as ``failed`` once the budget is spent.

Usage:
    >>> transport = SendGridTransport(api_key="SG.xxx", default_from_email="noreply@example.com")
    >>> message_id = await transport.send(
    ...     to_email="buyer@example.com",
    ...     from_email=None,
    ...     subject="Your RFQ Has Been Received",
    ...     html_content="<p>...</p>",
    ...     text_content="...",
    ... )
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, Personalization

from ..errors import TransportTransientError

logger = logging.getLogger(__name__)

# Constants
DEFAULT_TIMEOUT_SECONDS = 30
SUCCESS_STATUS_CODES = (200, 201, 202)
EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass
class EmailAddress:
    """Represents an email address with optional name.

    Attributes:
        email: Email address.
        name: Optional display name.
    """

    email: str
    name: Optional[str] = None

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email


def validate_email(email: Any) -> bool:
    """Validate email address format.

    Args:
        email: Email address to validate.

    Returns:
        True if email format is valid, False otherwise.
    """
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_REGEX.match(email.strip()))


class SendGridTransport:
    """Email transport backed by the SendGrid v3 Mail Send API.

    Attributes:
        default_from: Sender used when a message carries no from address.
        timeout_seconds: HTTP timeout handed to the SDK.

    Example:
        >>> transport = SendGridTransport(api_key="SG.xxx", default_from_email="noreply@example.com")
        >>> await transport.send("buyer@example.com", None, "Hello", "<p>Hi</p>", "Hi")
    """

    def __init__(
        self,
        api_key: str,
        *,
        default_from_email: str,
        default_from_name: Optional[str] = None,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize SendGrid transport.

        Args:
            api_key: SendGrid API key.
            default_from_email: Default sender email.
            default_from_name: Default sender display name.
            timeout_seconds: Request timeout in seconds. Defaults to 30.

        Raises:
            ValueError: If API key is not provided.
        """
        if not api_key:
            raise ValueError(
                "SendGrid API key required. Set SENDGRID_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self.default_from = EmailAddress(email=default_from_email, name=default_from_name)
        self.timeout_seconds = timeout_seconds

        self._client = SendGridAPIClient(api_key=api_key)
        self._client.client.timeout = timeout_seconds
        logger.info(
            "SendGridTransport initialized (from_email=%s)",
            self.default_from.email or "not set",
        )

    def _build_mail(
        self,
        to_email: str,
        from_email: Optional[str],
        subject: str,
        html_content: Optional[str],
        text_content: Optional[str],
    ) -> Mail:
        """Build SendGrid Mail object.

        The plain-text part is added before the HTML part; SendGrid
        requires text/plain to come first when both are present.
        """
        mail = Mail()
        if from_email and from_email != self.default_from.email:
            mail.from_email = Email(from_email)
        else:
            mail.from_email = Email(self.default_from.email, self.default_from.name)

        personalization = Personalization()
        personalization.add_to(Email(to_email))
        mail.add_personalization(personalization)

        mail.subject = subject

        if text_content:
            mail.add_content(Content("text/plain", text_content))
        if html_content:
            mail.add_content(Content("text/html", html_content))

        return mail

    async def send(
        self,
        to_email: str,
        from_email: Optional[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
    ) -> Optional[str]:
        """Send a single email.

        Args:
            to_email: Recipient email address.
            from_email: Sender address, or None for the default sender.
            subject: Email subject line.
            html_content: HTML body content.
            text_content: Plain text body content.

        Returns:
            The SendGrid message ID when the API reports one.

        Raises:
            TransportTransientError: On invalid input, a non-2xx response,
                or any SDK exception.
        """
        if not validate_email(to_email):
            raise TransportTransientError(f"Invalid email address: {to_email}")

        if not html_content and not text_content:
            raise TransportTransientError("Either html_content or text_content is required")

        mail = self._build_mail(to_email, from_email, subject, html_content, text_content)

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, lambda: self._client.send(mail))
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            logger.error("Failed to send email to %s: %s", to_email, e)
            raise TransportTransientError(str(e), status_code=status_code) from e

        status_code = response.status_code
        if status_code not in SUCCESS_STATUS_CODES:
            logger.warning("SendGrid returned status code %s for %s", status_code, to_email)
            raise TransportTransientError(
                f"SendGrid returned status code {status_code}",
                status_code=status_code,
            )

        message_id = None
        if getattr(response, "headers", None) is not None:
            message_id = response.headers.get("X-Message-Id")

        logger.info("Email sent: to=%s, message_id=%s", to_email, message_id)
        return message_id


def build_transport(config: Any) -> Optional[SendGridTransport]:
    """Build the transport from configuration.

    Returns:
        A SendGridTransport, or None when SENDGRID_API_KEY is not set. The
        queue treats None as an unconfigured transport and fails every
        delivery permanently.
    """
    if not config.SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set; notifications will fail as unconfigured")
        return None

    return SendGridTransport(
        config.SENDGRID_API_KEY,
        default_from_email=config.SENDGRID_FROM_EMAIL,
        default_from_name=config.SENDGRID_FROM_NAME,
        timeout_seconds=config.SENDGRID_TIMEOUT_SECONDS,
    )
