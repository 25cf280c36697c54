# curriculum/apps.py
from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CurriculumConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'curriculum'
    verbose_name = 'Curriculum Scheduling'

    def ready(self):
        logger.debug("Curriculum app initialized")
