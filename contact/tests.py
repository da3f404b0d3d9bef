"""
Endpoint Tests for the Contact Form Relay
"""
import json
import logging
from unittest.mock import Mock, patch

import pytest
from rest_framework import status

from contact.pipeline import get_contact_pipeline

SUBMIT_URL = '/api/contact'


@pytest.fixture
def valid_payload():
    return {
        'name': 'Test User',
        'email': 'test@example.com',
        'message': 'hello'
    }


def body(response):
    return json.loads(response.content)


class TestContactFormSubmission:
    """Test public contact form submission."""

    def test_submit_valid_contact_form(self, api_client, mailoutbox, valid_payload):
        """A complete submission is delivered once and acknowledged."""
        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert body(response) == {'ok': True}
        assert len(mailoutbox) == 1

        sent = mailoutbox[0]
        assert sent.to == ['inbox@example.com']
        assert sent.from_email == 'noreply@example.com'
        assert sent.reply_to == ['test@example.com']
        assert sent.subject == 'Contact Form Submission from Test User'
        assert 'hello' in sent.body

    def test_submit_form_encoded_with_replyto_alias(self, api_client, mailoutbox):
        """Plain HTML form posts using the _replyto field are accepted."""
        response = api_client.post(SUBMIT_URL, {
            'name': '  Jane  ',
            '_replyto': 'jane@example.com',
            'message': 'Quote please',
            'service': 'Consulting',
        })

        assert response.status_code == status.HTTP_200_OK
        assert mailoutbox[0].reply_to == ['jane@example.com']
        assert 'Service: Consulting' in mailoutbox[0].body
        assert mailoutbox[0].subject == 'Contact Form Submission from Jane'

    def test_next_url_is_passed_through(self, api_client, mailoutbox, valid_payload):
        valid_payload['nextUrl'] = '/thanks.html'

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert body(response) == {'ok': True, 'next': '/thanks.html'}

    def test_honeypot_spam_detection(self, api_client, mailoutbox):
        """Honeypot content is rejected before anything is sent."""
        response = api_client.post(SUBMIT_URL, {
            'name': 'Bot',
            'email': 'bot@example.com',
            'website': 'http://spam.com',
            'message': 'x'
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['ok'] is False
        assert body(response)['error'] == 'SpamDetected'
        assert len(mailoutbox) == 0

    def test_structured_honeypot_is_spam(self, api_client, mailoutbox, valid_payload):
        valid_payload['website'] = {'u': 'http://spam.com'}

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'SpamDetected'
        assert len(mailoutbox) == 0

    def test_submit_missing_name(self, api_client, mailoutbox):
        response = api_client.post(SUBMIT_URL, {
            'email': 'test@example.com',
            'message': 'hi'
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'MissingName'
        assert len(mailoutbox) == 0

    def test_submit_invalid_email(self, api_client, mailoutbox):
        response = api_client.post(SUBMIT_URL, {
            'name': 'T',
            'email': 'not-an-email',
            'message': 'hi'
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'InvalidEmailFormat'
        assert len(mailoutbox) == 0

    def test_error_body_has_short_message(self, api_client):
        response = api_client.post(SUBMIT_URL, {'name': 'T'}, format='json')

        assert body(response) == {
            'ok': False,
            'error': 'MissingEmail',
            'message': 'Please enter your email.',
        }

    def test_malformed_json_is_treated_as_empty(self, api_client, mailoutbox):
        response = api_client.post(
            SUBMIT_URL, data='{"name": ', content_type='application/json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'MissingName'

    def test_non_object_json_is_treated_as_empty(self, api_client):
        response = api_client.post(SUBMIT_URL, ['a', 'b'], format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'MissingName'


class TestMethodHandling:
    """Only POST submits; pre-flight is answered for cross-origin forms."""

    @pytest.mark.parametrize('method', ['get', 'put', 'patch', 'delete'])
    def test_other_methods_not_allowed(self, api_client, mailoutbox, method):
        response = getattr(api_client, method)(SUBMIT_URL)

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert body(response)['ok'] is False
        assert body(response)['error'] == 'MethodNotAllowed'
        assert len(mailoutbox) == 0

    def test_cors_preflight(self, api_client):
        response = api_client.options(
            SUBMIT_URL,
            HTTP_ORIGIN='https://www.example.com',
            HTTP_ACCESS_CONTROL_REQUEST_METHOD='POST',
            HTTP_ACCESS_CONTROL_REQUEST_HEADERS='content-type',
        )

        assert response.status_code == status.HTTP_200_OK
        allowed_methods = response['access-control-allow-methods']
        assert 'POST' in allowed_methods
        assert 'OPTIONS' in allowed_methods
        assert 'content-type' in response['access-control-allow-headers']


class TestRateLimiting:
    """Test rate limiting for contact form."""

    def test_sixth_submission_is_rate_limited(self, api_client, mailoutbox, valid_payload):
        """Five submissions per window are delivered; the sixth is refused unsent."""
        for i in range(5):
            valid_payload['message'] = f'Test message number {i}'
            response = api_client.post(SUBMIT_URL, valid_payload, format='json')
            assert response.status_code == status.HTTP_200_OK

        valid_payload['message'] = 'Test message number 6'
        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert body(response)['error'] == 'RateLimited'
        assert response['Retry-After'] == '900'
        assert len(mailoutbox) == 5

    def test_limit_is_per_client_address(self, api_client, mailoutbox, valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_MAX = 1

        first = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                HTTP_X_FORWARDED_FOR='203.0.113.1')
        blocked = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                  HTTP_X_FORWARDED_FOR='203.0.113.1, 10.0.0.1')
        other = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                HTTP_X_FORWARDED_FOR='198.51.100.2')

        assert first.status_code == status.HTTP_200_OK
        assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert other.status_code == status.HTTP_200_OK

    def test_limit_by_email_identifier(self, api_client, mailoutbox, valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_MAX = 1
        settings.CONTACT_RATE_LIMIT_IDENTIFIER = 'email'

        first = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                HTTP_X_FORWARDED_FOR='203.0.113.1')
        valid_payload['email'] = 'TEST@example.com'
        second = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                 HTTP_X_FORWARDED_FOR='198.51.100.2')

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    def test_rejected_submissions_do_not_consume_quota(self, api_client, mailoutbox,
                                                       valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_MAX = 1

        for _ in range(3):
            api_client.post(SUBMIT_URL, {'name': 'T'}, format='json')
        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_200_OK

    def test_shared_cache_backend(self, api_client, mailoutbox, valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_BACKEND = 'cache'
        settings.CONTACT_RATE_LIMIT_MAX = 2

        codes = [
            api_client.post(SUBMIT_URL, valid_payload, format='json').status_code
            for _ in range(3)
        ]

        assert codes == [200, 200, 429]

    def test_unreachable_store_denies(self, api_client, mailoutbox, valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_BACKEND = 'cache'
        store = get_contact_pipeline().admission.store

        with patch.object(type(store), 'cache') as mock_cache:
            mock_cache.add.side_effect = ConnectionError('redis down')
            response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert body(response)['error'] == 'MisconfiguredServer'
        assert 'redis' not in response.content.decode()
        assert len(mailoutbox) == 0


class TestBotVerification:
    """Bot-score gate through the endpoint."""

    @pytest.fixture(autouse=True)
    def enable_bot_check(self, settings):
        settings.BOT_VERIFICATION_SECRET = 'recaptcha-secret'

    @patch('formrelay.bot_verification.requests.post')
    def test_high_score_passes(self, mock_post, api_client, mailoutbox, valid_payload):
        mock_post.return_value = Mock(status_code=200, json=Mock(return_value={
            'success': True, 'score': 0.9
        }))
        valid_payload['botToken'] = 'token-123'

        response = api_client.post(SUBMIT_URL, valid_payload, format='json',
                                   REMOTE_ADDR='192.0.2.10')

        assert response.status_code == status.HTTP_200_OK
        sent = mock_post.call_args.kwargs['data']
        assert sent == {'secret': 'recaptcha-secret', 'response': 'token-123', 'remoteip': '192.0.2.10'}
        assert len(mailoutbox) == 1

    @patch('formrelay.bot_verification.requests.post')
    def test_low_score_rejected(self, mock_post, api_client, mailoutbox, valid_payload):
        mock_post.return_value = Mock(status_code=200, json=Mock(return_value={
            'success': True, 'score': 0.1
        }))
        valid_payload['g-recaptcha-response'] = 'token-123'

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body(response)['error'] == 'BotCheckFailed'
        assert len(mailoutbox) == 0

    @patch('formrelay.bot_verification.requests.post')
    def test_missing_token_rejected_without_network_call(self, mock_post, api_client,
                                                         mailoutbox, valid_payload):
        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert body(response)['error'] == 'BotCheckFailed'
        mock_post.assert_not_called()

    @patch('formrelay.bot_verification.requests.post')
    def test_bot_rejection_does_not_consume_quota(self, mock_post, api_client, mailoutbox,
                                                  valid_payload, settings):
        settings.CONTACT_RATE_LIMIT_MAX = 1
        mock_post.return_value = Mock(status_code=200, json=Mock(return_value={
            'success': False, 'error-codes': ['invalid-input-response']
        }))
        valid_payload['botToken'] = 'bad'
        api_client.post(SUBMIT_URL, valid_payload, format='json')

        mock_post.return_value = Mock(status_code=200, json=Mock(return_value={
            'success': True, 'score': 0.7
        }))
        valid_payload['botToken'] = 'good'
        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_200_OK


class TestDelivery:
    """Provider failures stay server-side."""

    @pytest.fixture
    def sendgrid(self, settings):
        settings.CONTACT_EMAIL_PROVIDER = 'sendgrid'
        settings.SENDGRID_API_KEY = 'SG.test-key'

    @patch('formrelay.email_service.requests.post')
    def test_sendgrid_accepts(self, mock_post, api_client, sendgrid, valid_payload):
        mock_post.return_value = Mock(status_code=202, text='')

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert mock_post.call_count == 1

    @patch('formrelay.email_service.requests.post')
    def test_provider_rejection_is_generic_to_client(self, mock_post, api_client, sendgrid,
                                                      valid_payload, caplog):
        detail = '{"errors":[{"message":"The provided authorization grant is invalid"}]}'
        mock_post.return_value = Mock(status_code=401, text=detail)

        with caplog.at_level(logging.ERROR):
            response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert body(response)['error'] == 'DeliveryFailed'
        assert 'authorization grant' not in response.content.decode()
        assert 'authorization grant' in caplog.text
        assert mock_post.call_count == 1

    def test_missing_credentials_is_misconfiguration(self, api_client, sendgrid,
                                                     valid_payload, settings):
        settings.SENDGRID_API_KEY = ''

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert body(response)['error'] == 'MisconfiguredServer'

    def test_unknown_provider_is_misconfiguration(self, api_client, valid_payload, settings):
        settings.CONTACT_EMAIL_PROVIDER = 'carrier-pigeon'

        response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert body(response)['error'] == 'MisconfiguredServer'

    def test_broken_setting_answers_json(self, api_client, mailoutbox, valid_payload,
                                         settings, caplog):
        settings.CONTACT_RATE_LIMIT_WINDOW_MINUTES = None

        with caplog.at_level(logging.ERROR):
            response = api_client.post(SUBMIT_URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response['Content-Type'] == 'application/json'
        assert body(response)['error'] == 'MisconfiguredServer'
        assert 'could not be built' in caplog.text
        assert len(mailoutbox) == 0
