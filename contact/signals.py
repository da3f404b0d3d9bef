"""
Contact Form Relay Signals

Rebuild the pipeline when settings change at runtime (test overrides),
so the next request sees the new configuration and a fresh admission store.
"""
from django.core.signals import setting_changed
from django.dispatch import receiver

from .pipeline import reset_contact_pipeline

PIPELINE_SETTINGS = {
    'BOT_SCORE_THRESHOLD',
    'BOT_VERIFICATION_PROVIDER',
    'BOT_VERIFICATION_SECRET',
    'BOT_VERIFICATION_TIMEOUT',
    'CONTACT_EMAIL_FROM',
    'CONTACT_EMAIL_PROVIDER',
    'CONTACT_EMAIL_TIMEOUT',
    'CONTACT_EMAIL_TO',
    'CONTACT_HONEYPOT_IGNORE_WHITESPACE',
    'CONTACT_RATE_LIMIT_BACKEND',
    'CONTACT_RATE_LIMIT_IDENTIFIER',
    'CONTACT_RATE_LIMIT_MAX',
    'CONTACT_RATE_LIMIT_WINDOW_MINUTES',
    'SENDGRID_API_KEY',
}


@receiver(setting_changed)
def reset_pipeline_on_setting_change(sender, setting, **kwargs):
    if setting in PIPELINE_SETTINGS:
        reset_contact_pipeline()
