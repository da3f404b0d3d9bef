"""
Tests for contact form payload parsing and validation.
"""
import pytest
from django.http import QueryDict

from contact.outcomes import OutcomeCode
from contact.serializers import ContactSubmissionSerializer, extract_fields
from contact.validators import (
    SubmissionRejected,
    ValidatedSubmission,
    honeypot_triggered,
    is_valid_email,
    validate_submission,
)

EMPTY_FIELDS = {
    'name': '',
    'email': '',
    'message': '',
    'service': '',
    'website': '',
    'bot_token': '',
    'next_url': '',
}


def submission_fields(**overrides):
    return dict(EMPTY_FIELDS, **overrides)


def outcome_of(fields, **kwargs):
    with pytest.raises(SubmissionRejected) as exc_info:
        validate_submission(fields, **kwargs)
    return exc_info.value.outcome


def extraction_outcome(payload):
    with pytest.raises(SubmissionRejected) as exc_info:
        extract_fields(payload)
    return exc_info.value.outcome


class TestExtractFields:

    def test_trims_text_fields(self):
        fields = extract_fields({
            'name': '  Ada ',
            'email': ' ada@example.com\n',
            'message': '\thello  ',
            'service': ' Design ',
        })

        assert fields['name'] == 'Ada'
        assert fields['email'] == 'ada@example.com'
        assert fields['message'] == 'hello'
        assert fields['service'] == 'Design'

    def test_replyto_takes_precedence_over_email(self):
        fields = extract_fields({'_replyto': 'a@example.com', 'email': 'b@example.com'})
        assert fields['email'] == 'a@example.com'

    def test_blank_replyto_falls_back_to_email(self):
        fields = extract_fields({'_replyto': '   ', 'email': 'b@example.com'})
        assert fields['email'] == 'b@example.com'

    def test_missing_fields_default_to_empty(self):
        assert extract_fields({}) == EMPTY_FIELDS

    def test_honeypot_kept_verbatim(self):
        assert extract_fields({'website': '  '})['website'] == '  '

    def test_structured_honeypot_is_not_empty(self):
        fields = extract_fields({'website': {'u': 'http://spam.test'}})

        assert fields['website'] != ''
        assert outcome_of(submission_fields(
            name='Bot', email='bot@example.com', message='m', website=fields['website']
        )) == OutcomeCode.SPAM_DETECTED

    @pytest.mark.parametrize('website', [{'u': 'http://spam.test'}, ['x'], 0, False])
    def test_any_honeypot_content_is_spam(self, website):
        fields = extract_fields({
            'name': 'Bot',
            'email': 'bot@example.com',
            'message': 'm',
            'website': website,
        })

        assert outcome_of(fields, ignore_whitespace_honeypot=True) == OutcomeCode.SPAM_DETECTED

    def test_null_honeypot_is_empty(self):
        assert extract_fields({'website': None})['website'] == ''

    def test_bot_token_aliases(self):
        assert extract_fields({'botToken': 'a'})['bot_token'] == 'a'
        assert extract_fields({'g-recaptcha-response': 'b'})['bot_token'] == 'b'
        assert extract_fields({'cf-turnstile-response': 'c'})['bot_token'] == 'c'

    def test_next_url_aliases(self):
        assert extract_fields({'nextUrl': '/a'})['next_url'] == '/a'
        assert extract_fields({'_next': '/b'})['next_url'] == '/b'

    def test_non_string_values(self):
        fields = extract_fields({'name': 42, 'message': ['x'], 'email': None})

        assert fields['name'] == '42'
        assert fields['message'] == ''
        assert fields['email'] == ''

    def test_querydict_payload(self):
        payload = QueryDict('name=Ada&email=ada%40example.com&message=hi&nextUrl=%2Fthanks')
        fields = extract_fields(payload)

        assert fields['name'] == 'Ada'
        assert fields['email'] == 'ada@example.com'
        assert fields['next_url'] == '/thanks'

    def test_non_mapping_payload(self):
        assert extract_fields(['name']) == EMPTY_FIELDS

    def test_unreadable_field_rejected_at_its_gate(self):
        assert extraction_outcome({'name': 'A\x00da'}) == OutcomeCode.MISSING_NAME
        assert extraction_outcome({'website': '\x00'}) == OutcomeCode.SPAM_DETECTED

    def test_serializer_resolves_aliases(self):
        serializer = ContactSubmissionSerializer(data={
            '_replyto': 'ada@example.com',
            'g-recaptcha-response': 'token',
        })

        assert serializer.is_valid()
        assert serializer.validated_data['email'] == 'ada@example.com'
        assert serializer.validated_data['bot_token'] == 'token'


class TestEmailShape:

    @pytest.mark.parametrize('email', [
        'a@b.c',
        'test@example.com',
        'first.last+tag@sub.example.co.uk',
    ])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize('email', [
        'not-an-email',
        'missing-at.example.com',
        'nodot@example',
        'two words@example.com',
        'a@b .c',
        '@example.com',
        'a@.',
        '',
    ])
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestHoneypot:

    def test_empty_is_clean(self):
        assert not honeypot_triggered('')

    def test_whitespace_counts_by_default(self):
        assert honeypot_triggered(' ')

    def test_whitespace_ignored_when_configured(self):
        assert not honeypot_triggered(' \t', ignore_whitespace=True)
        assert honeypot_triggered(' x ', ignore_whitespace=True)


class TestValidateSubmission:

    def test_valid_submission(self):
        result = validate_submission(submission_fields(
            name='Ada', email='ada@example.com', message='hi', service='Design'
        ))

        assert result == ValidatedSubmission(
            name='Ada', email='ada@example.com', message='hi', service='Design'
        )

    def test_honeypot_beats_everything(self):
        fields = submission_fields(website='http://spam.com')
        assert outcome_of(fields) == OutcomeCode.SPAM_DETECTED

    def test_honeypot_with_otherwise_valid_fields(self):
        fields = submission_fields(name='Bot', email='bot@example.com', message='x', website='x')
        assert outcome_of(fields) == OutcomeCode.SPAM_DETECTED

    def test_whitespace_honeypot_policy(self):
        fields = submission_fields(name='Ada', email='ada@example.com', message='hi', website=' ')

        assert outcome_of(fields) == OutcomeCode.SPAM_DETECTED
        assert validate_submission(fields, ignore_whitespace_honeypot=True).name == 'Ada'

    def test_missing_name_reported_before_missing_email(self):
        fields = submission_fields(message='hi')
        assert outcome_of(fields) == OutcomeCode.MISSING_NAME

    def test_missing_email(self):
        fields = submission_fields(name='Ada', message='hi')
        assert outcome_of(fields) == OutcomeCode.MISSING_EMAIL

    def test_missing_message(self):
        fields = submission_fields(name='Ada', email='ada@example.com')
        assert outcome_of(fields) == OutcomeCode.MISSING_MESSAGE

    def test_missing_message_reported_before_bad_email(self):
        fields = submission_fields(name='Ada', email='nope')
        assert outcome_of(fields) == OutcomeCode.MISSING_MESSAGE

    def test_invalid_email_format(self):
        fields = submission_fields(name='T', email='not-an-email', message='hi')
        assert outcome_of(fields) == OutcomeCode.INVALID_EMAIL_FORMAT
