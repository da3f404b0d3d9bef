"""
Contact Form Relay Serializers

Turns an untrusted request payload (parsed JSON object or form QueryDict)
into plain, trimmed strings. Nothing here decides whether a submission is
acceptable; the ordered gates in ``validators`` do that over
``validated_data``. Missing fields become empty strings.
"""
from collections.abc import Mapping

from rest_framework import serializers

from .outcomes import OutcomeCode
from .validators import SubmissionRejected

# First non-blank alias wins
ALIASED_FIELDS = {
    'email': ('_replyto', 'email'),
    'bot_token': ('botToken', 'g-recaptcha-response', 'cf-turnstile-response'),
    'next_url': ('nextUrl', '_next'),
}

# A field that fails to parse rejects the submission at the gate it feeds
FIELD_ERROR_OUTCOMES = {
    'website': OutcomeCode.SPAM_DETECTED,
    'name': OutcomeCode.MISSING_NAME,
    'email': OutcomeCode.INVALID_EMAIL_FORMAT,
    'message': OutcomeCode.MISSING_MESSAGE,
    'service': OutcomeCode.SPAM_DETECTED,
    'bot_token': OutcomeCode.BOT_CHECK_FAILED,
    'next_url': OutcomeCode.SPAM_DETECTED,
}


def _form_text(value):
    """Scalar payload values as text; structured values read as absent."""
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    if isinstance(value, str):
        return value
    return str(value)


class ContactSubmissionSerializer(serializers.Serializer):
    """
    Public contact form payload.

    Every field is optional here so that the validators can report the
    first missing field in a fixed order.
    """

    name = serializers.CharField(required=False, allow_blank=True, default='')
    email = serializers.CharField(required=False, allow_blank=True, default='')
    message = serializers.CharField(required=False, allow_blank=True, default='')
    service = serializers.CharField(required=False, allow_blank=True, default='')

    # Honeypot field for spam prevention (kept verbatim, should be empty)
    website = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
        trim_whitespace=False,
    )

    bot_token = serializers.CharField(required=False, allow_blank=True, default='')
    next_url = serializers.CharField(required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        """Resolve field aliases before the declared fields parse the payload."""
        if not isinstance(data, Mapping):
            data = {}

        resolved = {}
        for field_name in ('name', 'message', 'service'):
            value = _form_text(data.get(field_name))
            if value is not None:
                resolved[field_name] = value

        for field_name, aliases in ALIASED_FIELDS.items():
            for alias in aliases:
                value = _form_text(data.get(alias))
                if value and value.strip():
                    resolved[field_name] = value
                    break

        # Any content at all in the honeypot is a bot signal, whatever its type
        website = data.get('website')
        if website is not None and website != '':
            resolved['website'] = website if isinstance(website, str) else str(website)

        return super().to_internal_value(resolved)


def extract_fields(payload):
    """
    Parse a raw payload into a dict of trimmed strings.

    Returns:
        dict with ``name``, ``email``, ``message``, ``service``,
        ``website``, ``bot_token`` and ``next_url``

    Raises:
        SubmissionRejected: if a field holds content that cannot be read
            as text (null characters, for instance)
    """
    serializer = ContactSubmissionSerializer(data=payload if isinstance(payload, Mapping) else {})
    if not serializer.is_valid():
        for field_name, outcome in FIELD_ERROR_OUTCOMES.items():
            if field_name in serializer.errors:
                raise SubmissionRejected(outcome)
        raise SubmissionRejected(OutcomeCode.SPAM_DETECTED)
    return dict(serializer.validated_data)
