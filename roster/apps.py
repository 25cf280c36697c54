# roster/apps.py
from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class RosterConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'roster'
    verbose_name = 'Roster'

    def ready(self):
        logger.debug("Roster app initialized")
