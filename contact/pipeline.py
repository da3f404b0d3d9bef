"""
Contact Form Submission Pipeline

Runs one submission through a fixed sequence of gates and stops at the
first failure:

    method -> honeypot -> required fields -> email format
           -> bot check -> admission -> delivery

Cheap, certain rejections come before any network call. Admission comes
after the bot check so that bot traffic never consumes a sender's quota,
and before delivery so that an over-quota sender never costs a send.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from formrelay.bot_verification import build_bot_verifier
from formrelay.email_service import EmailNotConfigured, build_delivery_gateway

from .outcomes import OutcomeCode
from .rate_limiting import AdmissionStoreUnavailable, build_admission_controller
from .serializers import extract_fields
from .validators import SubmissionRejected, validate_submission

logger = logging.getLogger(__name__)

IDENTIFIER_SOURCES = ('ip', 'email')


@dataclass(frozen=True)
class PipelineResult:
    outcome: OutcomeCode
    next_url: str = ''
    retry_after: Optional[int] = None

    @property
    def ok(self):
        return self.outcome == OutcomeCode.ACCEPTED

    @property
    def status_code(self):
        return self.outcome.http_status

    def as_response_data(self):
        """Client-facing body. Never carries internal diagnostic detail."""
        if self.ok:
            data = {'ok': True}
            if self.next_url:
                data['next'] = self.next_url
            return data
        return {
            'ok': False,
            'error': self.outcome.value,
            'message': self.outcome.label,
        }


class ContactPipeline:
    """
    Composes the validation and admission gates with one delivery attempt.

    Collaborators are injected so tests can substitute fakes:
        admission: AdmissionController
        bot_verifier: object with ``verify(token, user_ip=None)``
        gateway: object with ``send(submission)``
    """

    def __init__(self, admission, bot_verifier, gateway,
                 identifier_source='ip', ignore_whitespace_honeypot=False):
        if identifier_source not in IDENTIFIER_SOURCES:
            raise ValueError(f"identifier_source must be one of {IDENTIFIER_SOURCES}")
        self.admission = admission
        self.bot_verifier = bot_verifier
        self.gateway = gateway
        self.identifier_source = identifier_source
        self.ignore_whitespace_honeypot = ignore_whitespace_honeypot

    def process(self, method, payload, client_ip=None):
        """
        Run one request through the pipeline.

        Args:
            method: HTTP method of the request
            payload: mapping of raw form fields
            client_ip: resolved client address, if known

        Returns:
            PipelineResult; this method does not raise
        """
        try:
            return self._run(method, payload, client_ip)
        except Exception:
            logger.exception("Unexpected error processing contact form submission")
            return PipelineResult(OutcomeCode.MISCONFIGURED_SERVER)

    def admission_identifier(self, submission, client_ip):
        if self.identifier_source == 'email':
            return submission.email.lower()
        return client_ip or 'unknown'

    def _run(self, method, payload, client_ip):
        if method != 'POST':
            logger.info(f"Method not allowed: {method}")
            return PipelineResult(OutcomeCode.METHOD_NOT_ALLOWED)

        try:
            fields = extract_fields(payload)
            submission = validate_submission(fields, self.ignore_whitespace_honeypot)
        except SubmissionRejected as e:
            logger.info(f"Contact form rejected: {e.outcome.value}")
            return PipelineResult(e.outcome)

        verification = self.bot_verifier.verify(submission.bot_token, user_ip=client_ip)
        if not verification.accepted:
            logger.info(f"Contact form bot check failed: {verification.reason}")
            return PipelineResult(OutcomeCode.BOT_CHECK_FAILED)

        identifier = self.admission_identifier(submission, client_ip)
        try:
            admitted = self.admission.admit(identifier)
        except AdmissionStoreUnavailable:
            # Deny everything while the shared store is down
            logger.error("Rate limit store unavailable; denying submission")
            return PipelineResult(OutcomeCode.MISCONFIGURED_SERVER)

        if not admitted:
            logger.info(f"Rate limit exceeded for {self.identifier_source} identifier")
            return PipelineResult(
                OutcomeCode.RATE_LIMITED,
                retry_after=self.admission.retry_after,
            )

        try:
            delivery = self.gateway.send(submission)
        except EmailNotConfigured as e:
            logger.error(f"Contact email delivery is not configured: {e}")
            return PipelineResult(OutcomeCode.MISCONFIGURED_SERVER)

        if not delivery.ok:
            logger.error(
                f"Contact email delivery failed "
                f"(status={delivery.status_code}): {delivery.reason}"
            )
            return PipelineResult(OutcomeCode.DELIVERY_FAILED)

        logger.info("Contact form submission delivered")
        return PipelineResult(OutcomeCode.ACCEPTED, next_url=submission.next_url)


def build_contact_pipeline():
    """Construct a pipeline wired from Django settings."""
    return ContactPipeline(
        admission=build_admission_controller(),
        bot_verifier=build_bot_verifier(),
        gateway=build_delivery_gateway(),
        identifier_source=getattr(settings, 'CONTACT_RATE_LIMIT_IDENTIFIER', 'ip'),
        ignore_whitespace_honeypot=getattr(settings, 'CONTACT_HONEYPOT_IGNORE_WHITESPACE', False),
    )


_pipeline = None
_pipeline_lock = threading.Lock()


def get_contact_pipeline():
    """
    Return the process-wide pipeline, building it on first use.

    The pipeline owns the in-memory admission state, so it must be shared
    by every request served by this process.
    """
    global _pipeline
    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                _pipeline = build_contact_pipeline()
    return _pipeline


def set_contact_pipeline(pipeline):
    """Install a specific pipeline (or None to rebuild from settings)."""
    global _pipeline
    with _pipeline_lock:
        _pipeline = pipeline


def reset_contact_pipeline():
    set_contact_pipeline(None)
