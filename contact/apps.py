import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ContactConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'contact'
    verbose_name = 'Contact Form Relay'

    def ready(self):
        """Import signals and build the pipeline once per process."""
        import contact.signals  # noqa
        from contact.pipeline import get_contact_pipeline

        try:
            get_contact_pipeline()
        except Exception:
            # Requests answer MisconfiguredServer until the settings are fixed
            logger.exception("Contact pipeline could not be built at startup")
