"""
Contact form pipeline outcomes.

Exactly one outcome is produced per request. The value is the
machine-readable error code sent to the client; the label is the short
message shown next to it.
"""
from django.db import models
from rest_framework import status


class OutcomeCode(models.TextChoices):
    METHOD_NOT_ALLOWED = 'MethodNotAllowed', 'Method not allowed.'
    SPAM_DETECTED = 'SpamDetected', 'Your message could not be sent.'
    MISSING_NAME = 'MissingName', 'Please enter your name.'
    MISSING_EMAIL = 'MissingEmail', 'Please enter your email.'
    MISSING_MESSAGE = 'MissingMessage', 'Please enter a message.'
    INVALID_EMAIL_FORMAT = 'InvalidEmailFormat', 'Please enter a valid email address.'
    BOT_CHECK_FAILED = 'BotCheckFailed', 'Bot verification failed. Please try again.'
    RATE_LIMITED = 'RateLimited', 'Too many submissions. Please try again later.'
    DELIVERY_FAILED = 'DeliveryFailed', 'Your message could not be sent. Please try again or email us directly.'
    MISCONFIGURED_SERVER = 'MisconfiguredServer', 'The contact form is temporarily unavailable. Please email us directly.'
    ACCEPTED = 'Accepted', 'Your message has been sent successfully.'

    @property
    def http_status(self):
        return HTTP_STATUS_BY_OUTCOME.get(self, status.HTTP_400_BAD_REQUEST)


HTTP_STATUS_BY_OUTCOME = {
    OutcomeCode.ACCEPTED: status.HTTP_200_OK,
    OutcomeCode.METHOD_NOT_ALLOWED: status.HTTP_405_METHOD_NOT_ALLOWED,
    OutcomeCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    OutcomeCode.DELIVERY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OutcomeCode.MISCONFIGURED_SERVER: status.HTTP_500_INTERNAL_SERVER_ERROR,
}
