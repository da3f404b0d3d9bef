"""
Contact Form Relay Views

POST /api/contact

Public endpoint. Accepts a contact form payload, runs it through the
submission pipeline and reports the outcome as
``{"ok": true}`` or ``{"ok": false, "error": "<OutcomeCode>", "message": "..."}``.
"""
import logging

from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .outcomes import OutcomeCode
from .pipeline import PipelineResult, get_contact_pipeline
from .rate_limiting import get_client_ip

logger = logging.getLogger(__name__)


class ContactFormSubmitView(APIView):
    """
    Public endpoint for contact form submissions.

    No authentication required. Every other HTTP method is answered by the
    pipeline's method gate; CORS pre-flight is handled by the middleware.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        """Submit a contact form."""
        return self._respond(request, self._payload(request))

    def http_method_not_allowed(self, request, *args, **kwargs):
        return self._respond(request, {})

    def _payload(self, request):
        """Parsed body, or an empty mapping when it cannot be read as an object."""
        try:
            data = request.data
        except (ParseError, UnsupportedMediaType) as e:
            logger.warning(f"Unreadable contact form body: {e}")
            return {}
        if not hasattr(data, 'get'):
            logger.warning("Contact form body is not an object")
            return {}
        return data

    def _respond(self, request, payload):
        try:
            pipeline = get_contact_pipeline()
        except Exception:
            logger.exception("Contact pipeline could not be built")
            result = PipelineResult(OutcomeCode.MISCONFIGURED_SERVER)
        else:
            result = pipeline.process(request.method, payload, get_client_ip(request))

        headers = {}
        if result.retry_after:
            headers['Retry-After'] = str(result.retry_after)
        if result.outcome == OutcomeCode.METHOD_NOT_ALLOWED:
            headers['Allow'] = 'POST, OPTIONS'

        return Response(result.as_response_data(), status=result.status_code, headers=headers)
