"""
Contact Email Delivery Service

Sends one notification email per accepted contact form submission.

Gateways:
- SendGridGateway: SendGrid v3 Web API over HTTPS
- DjangoMailGateway: Django's configured EMAIL_BACKEND (SMTP, console, locmem)

Each gateway makes exactly one send attempt. Provider error detail is
logged here and returned in ``DeliveryResult.reason`` for the caller's
logs; it is never meant for the HTTP client.

SendGrid API Documentation:
https://docs.sendgrid.com/api-reference/mail-send/mail-send
"""
import logging
import smtplib
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, linebreaks

logger = logging.getLogger(__name__)


class EmailNotConfigured(Exception):
    """Raised when delivery credentials or addresses are missing."""
    pass


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    reason: str = ''
    status_code: Optional[int] = None


@dataclass(frozen=True)
class ContactEmail:
    """A rendered notification, independent of the provider."""

    from_email: str
    to_email: str
    reply_to: str
    subject: str
    text: str
    html: str


def build_contact_email(submission, from_email: str, to_email: str) -> ContactEmail:
    """
    Render the staff notification for a validated submission.

    Args:
        submission: object with ``name``, ``email``, ``message`` and ``service``
        from_email: Verified sender address
        to_email: Recipient address for contact submissions

    Returns:
        ContactEmail with plain text and HTML bodies
    """
    lines = [
        f"Name: {submission.name}",
        f"Email: {submission.email}",
    ]
    if submission.service:
        lines.append(f"Service: {submission.service}")
    text = "\n".join(lines) + f"\n\nMessage:\n{submission.message}"

    html_parts = [
        "<h2>Contact Form Submission</h2>",
        f"<p><strong>Name:</strong> {escape(submission.name)}</p>",
        f"<p><strong>Email:</strong> {escape(submission.email)}</p>",
    ]
    if submission.service:
        html_parts.append(f"<p><strong>Service:</strong> {escape(submission.service)}</p>")
    html_parts.append("<p><strong>Message:</strong></p>")
    html_parts.append(linebreaks(submission.message, autoescape=True))

    return ContactEmail(
        from_email=from_email,
        to_email=to_email,
        reply_to=submission.email,
        subject=f"Contact Form Submission from {submission.name}",
        text=text,
        html="\n".join(html_parts),
    )


class SendGridGateway:
    """
    Delivery through the SendGrid v3 mail/send endpoint.

    Any 2xx response is success (SendGrid answers 202 Accepted).
    """

    API_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, api_key=None, from_email=None, to_email=None, timeout=10):
        self.api_key = api_key
        self.from_email = from_email
        self.to_email = to_email
        self.timeout = timeout

    def _check_configured(self):
        missing = [
            name for name, value in (
                ('SENDGRID_API_KEY', self.api_key),
                ('CONTACT_EMAIL_FROM', self.from_email),
                ('CONTACT_EMAIL_TO', self.to_email),
            ) if not value
        ]
        if missing:
            logger.error(f"SendGrid configuration missing: {', '.join(missing)}")
            raise EmailNotConfigured(f"Missing settings: {', '.join(missing)}")

    def send(self, submission) -> DeliveryResult:
        """
        Send the notification for ``submission``.

        Raises:
            EmailNotConfigured: if the API key or addresses are missing
        """
        self._check_configured()
        email = build_contact_email(submission, self.from_email, self.to_email)

        payload = {
            'personalizations': [{'to': [{'email': email.to_email}]}],
            'from': {'email': email.from_email},
            'reply_to': {'email': email.reply_to},
            'subject': email.subject,
            'content': [
                {'type': 'text/plain', 'value': email.text},
                {'type': 'text/html', 'value': email.html},
            ],
        }

        logger.info(f"Sending contact email via SendGrid to {email.to_email}")

        try:
            response = requests.post(
                self.API_URL,
                json=payload,
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error("Timeout sending contact email via SendGrid")
            return DeliveryResult(ok=False, reason='timeout')
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error sending contact email via SendGrid: {e}")
            return DeliveryResult(ok=False, reason=f'network-error: {e}')

        if 200 <= response.status_code < 300:
            logger.info(f"SendGrid accepted contact email (status {response.status_code})")
            return DeliveryResult(ok=True, status_code=response.status_code)

        logger.error(
            f"SendGrid rejected contact email. "
            f"Status: {response.status_code}, Body: {response.text}"
        )
        return DeliveryResult(
            ok=False,
            reason=response.text,
            status_code=response.status_code,
        )


class DjangoMailGateway:
    """Delivery through Django's EMAIL_BACKEND."""

    def __init__(self, from_email=None, to_email=None):
        self.from_email = from_email
        self.to_email = to_email

    def send(self, submission) -> DeliveryResult:
        if not self.from_email or not self.to_email:
            logger.error("Contact email addresses are not configured")
            raise EmailNotConfigured("CONTACT_EMAIL_FROM and CONTACT_EMAIL_TO must be set")

        email = build_contact_email(submission, self.from_email, self.to_email)
        message = EmailMultiAlternatives(
            subject=email.subject,
            body=email.text,
            from_email=email.from_email,
            to=[email.to_email],
            reply_to=[email.reply_to]
        )
        message.attach_alternative(email.html, "text/html")

        try:
            message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Mail backend failed to send contact email: {e}")
            return DeliveryResult(ok=False, reason=str(e))

        return DeliveryResult(ok=True)


def build_delivery_gateway():
    """Construct the configured gateway from Django settings."""
    provider = getattr(settings, 'CONTACT_EMAIL_PROVIDER', 'sendgrid')
    from_email = getattr(settings, 'CONTACT_EMAIL_FROM', '')
    to_email = getattr(settings, 'CONTACT_EMAIL_TO', '')

    if provider == 'sendgrid':
        return SendGridGateway(
            api_key=getattr(settings, 'SENDGRID_API_KEY', ''),
            from_email=from_email,
            to_email=to_email,
            timeout=getattr(settings, 'CONTACT_EMAIL_TIMEOUT', 10),
        )
    if provider == 'django':
        return DjangoMailGateway(from_email=from_email, to_email=to_email)

    raise ImproperlyConfigured(f"Unknown CONTACT_EMAIL_PROVIDER: {provider!r}")
