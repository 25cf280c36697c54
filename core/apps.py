# core/apps.py
from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Core (Terms, Rooms & Audit)'

    def ready(self):
        logger.debug("Core app initialized")
