"""
Bot-Score Verification Service

Verifies client-side CAPTCHA tokens against the provider's siteverify API.

Two providers are supported:
- Google reCAPTCHA v3: returns a score (0.0 - 1.0, higher is more human)
- Cloudflare Turnstile: returns success only, no score

Verification is opt-in: with no secret configured every submission is
accepted without a network call. Once a secret is set the gate fails
closed - a missing token, a timeout or a malformed provider response all
reject the submission.

Documentation:
- https://developers.google.com/recaptcha/docs/v3
- https://developers.cloudflare.com/turnstile/
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

DEFAULT_SCORE_THRESHOLD = 0.5


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one bot-score check."""

    accepted: bool
    score: Optional[float] = None
    reason: str = ''
    skipped: bool = False


class BotVerifier:
    """
    Base siteverify client.

    Subclasses set ``VERIFY_URL`` and ``requires_score``.

    Usage:
        verifier = RecaptchaVerifier(secret_key='...')
        result = verifier.verify(token, user_ip='192.168.1.1')
    """

    VERIFY_URL = None
    requires_score = False

    def __init__(
        self,
        secret_key: Optional[str] = None,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        timeout: int = 10,
    ):
        self.secret_key = secret_key or None
        self.score_threshold = score_threshold
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.secret_key is not None

    def verify(self, token: str, user_ip: Optional[str] = None) -> VerificationResult:
        """
        Verify a client token.

        Args:
            token: The response token produced by the provider's widget
            user_ip: Optional user IP address for additional verification

        Returns:
            VerificationResult; ``accepted`` is False on any failure
        """
        if not self.enabled:
            logger.debug("Bot verification skipped: no secret configured")
            return VerificationResult(accepted=True, reason='not-configured', skipped=True)

        if not token:
            logger.warning("Bot verification failed: no token provided")
            return VerificationResult(accepted=False, reason='missing-token')

        payload = {
            'secret': self.secret_key,
            'response': token,
        }

        # Include IP if provided (recommended for better security)
        if user_ip:
            payload['remoteip'] = user_ip

        try:
            response = requests.post(
                self.VERIFY_URL,
                data=payload,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error("Bot verification timeout")
            return VerificationResult(accepted=False, reason='timeout')
        except requests.exceptions.RequestException as e:
            logger.error(f"Bot verification network error: {e}")
            return VerificationResult(accepted=False, reason='network-error')

        if response.status_code != 200:
            logger.error(
                f"Bot verification API returned status {response.status_code}: {response.text}"
            )
            return VerificationResult(accepted=False, reason=f'http-{response.status_code}')

        try:
            result = response.json()
        except ValueError:
            logger.error("Bot verification API returned a non-JSON body")
            return VerificationResult(accepted=False, reason='malformed-response')

        if not isinstance(result, dict):
            logger.error("Bot verification API returned an unexpected body")
            return VerificationResult(accepted=False, reason='malformed-response')

        return self.evaluate(result)

    def evaluate(self, result: dict) -> VerificationResult:
        """Map a decoded siteverify response to a VerificationResult."""
        if not result.get('success'):
            error_codes = result.get('error-codes', [])
            logger.warning(f"Bot verification rejected token: {error_codes}")
            return VerificationResult(accepted=False, reason='rejected')

        raw_score = result.get('score')
        if raw_score is None:
            if self.requires_score:
                logger.warning("Bot verification response carried no score")
                return VerificationResult(accepted=False, reason='missing-score')
            return VerificationResult(accepted=True, reason='verified')

        # Scores arrive as JSON numbers; bool is an int subclass and is not one
        if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
            logger.error(f"Bot verification returned a non-numeric score: {raw_score!r}")
            return VerificationResult(accepted=False, reason='malformed-response')

        try:
            score = float(raw_score)
        except OverflowError:
            score = math.inf
        if not math.isfinite(score):
            logger.error(f"Bot verification returned a non-finite score: {raw_score!r}")
            return VerificationResult(accepted=False, reason='malformed-response')

        if score < self.score_threshold:
            logger.info(
                f"Bot verification score {score} below threshold {self.score_threshold}"
            )
            return VerificationResult(accepted=False, score=score, reason='low-score')

        return VerificationResult(accepted=True, score=score, reason='verified')


class RecaptchaVerifier(BotVerifier):
    """Google reCAPTCHA v3. A numeric score is required."""

    VERIFY_URL = 'https://www.google.com/recaptcha/api/siteverify'
    requires_score = True


class TurnstileVerifier(BotVerifier):
    """Cloudflare Turnstile. Accepts on ``success`` when no score is returned."""

    VERIFY_URL = 'https://challenges.cloudflare.com/turnstile/v0/siteverify'
    requires_score = False


BOT_VERIFIERS = {
    'recaptcha': RecaptchaVerifier,
    'turnstile': TurnstileVerifier,
}


def build_bot_verifier() -> BotVerifier:
    """Construct the configured verifier from Django settings."""
    provider = getattr(settings, 'BOT_VERIFICATION_PROVIDER', 'recaptcha')
    try:
        verifier_class = BOT_VERIFIERS[provider]
    except KeyError:
        raise ImproperlyConfigured(f"Unknown BOT_VERIFICATION_PROVIDER: {provider!r}")

    return verifier_class(
        secret_key=getattr(settings, 'BOT_VERIFICATION_SECRET', None),
        score_threshold=getattr(settings, 'BOT_SCORE_THRESHOLD', DEFAULT_SCORE_THRESHOLD),
        timeout=getattr(settings, 'BOT_VERIFICATION_TIMEOUT', 10),
    )
