"""
Contact form validation.

Checks run in a fixed order and stop at the first failure:
honeypot, name, email presence, message, email format.
"""
import re
from dataclasses import dataclass

from .outcomes import OutcomeCode

# Permissive shape check, not RFC 5322
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class SubmissionRejected(Exception):
    """Raised when a submission fails validation."""

    def __init__(self, outcome):
        self.outcome = outcome
        super().__init__(outcome.value)


@dataclass(frozen=True)
class ValidatedSubmission:
    name: str
    email: str
    message: str
    service: str = ''
    bot_token: str = ''
    next_url: str = ''


def is_valid_email(email):
    return bool(EMAIL_PATTERN.match(email or ''))


def honeypot_triggered(website, ignore_whitespace=False):
    """Any content in the hidden field marks the sender as a bot."""
    if ignore_whitespace:
        return bool(website.strip())
    return bool(website)


def validate_submission(fields, ignore_whitespace_honeypot=False):
    """
    Validate parsed submission fields.

    Args:
        fields: mapping of strings, as returned by ``extract_fields``
        ignore_whitespace_honeypot: treat whitespace-only honeypot as empty

    Returns:
        ValidatedSubmission

    Raises:
        SubmissionRejected: carrying the first failing OutcomeCode
    """
    name = fields.get('name', '')
    email = fields.get('email', '')
    message = fields.get('message', '')

    if honeypot_triggered(fields.get('website', ''), ignore_whitespace_honeypot):
        raise SubmissionRejected(OutcomeCode.SPAM_DETECTED)

    if not name:
        raise SubmissionRejected(OutcomeCode.MISSING_NAME)
    if not email:
        raise SubmissionRejected(OutcomeCode.MISSING_EMAIL)
    if not message:
        raise SubmissionRejected(OutcomeCode.MISSING_MESSAGE)

    if not is_valid_email(email):
        raise SubmissionRejected(OutcomeCode.INVALID_EMAIL_FORMAT)

    return ValidatedSubmission(
        name=name,
        email=email,
        message=message,
        service=fields.get('service', ''),
        bot_token=fields.get('bot_token', ''),
        next_url=fields.get('next_url', ''),
    )
