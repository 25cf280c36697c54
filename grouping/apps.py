# grouping/apps.py
from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class GroupingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'grouping'
    verbose_name = 'Student Groups'

    def ready(self):
        logger.debug("Grouping app initialized")
