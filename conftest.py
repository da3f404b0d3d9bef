"""
Shared pytest fixtures for the contact form relay.
"""
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from contact.pipeline import reset_contact_pipeline


@pytest.fixture(autouse=True)
def contact_settings(settings):
    """Deterministic relay configuration: local delivery, no bot check."""
    settings.CONTACT_EMAIL_PROVIDER = 'django'
    settings.CONTACT_EMAIL_FROM = 'noreply@example.com'
    settings.CONTACT_EMAIL_TO = 'inbox@example.com'
    settings.SENDGRID_API_KEY = ''
    settings.BOT_VERIFICATION_PROVIDER = 'recaptcha'
    settings.BOT_VERIFICATION_SECRET = ''
    settings.CONTACT_RATE_LIMIT_BACKEND = 'local'
    settings.CONTACT_RATE_LIMIT_MAX = 5
    settings.CONTACT_RATE_LIMIT_WINDOW_MINUTES = 15
    settings.CONTACT_RATE_LIMIT_IDENTIFIER = 'ip'
    settings.CONTACT_HONEYPOT_IGNORE_WHITESPACE = False
    return settings


@pytest.fixture(autouse=True)
def clear_state():
    """Clear cache and admission state before and after each test to prevent pollution."""
    cache.clear()
    reset_contact_pipeline()
    yield
    cache.clear()
    reset_contact_pipeline()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


class FakeClock:
    """Manually advanced clock for admission tests."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
