# api/apps.py
import logging

from django.apps import AppConfig
from django.db.models.signals import post_migrate

logger = logging.getLogger('api')


def ensure_cache_status(sender, using='default', **kwargs):
    """Create the CacheStatus singleton row if it does not exist yet."""
    from .models import CacheStatus

    _, created = CacheStatus.objects.using(using).get_or_create(pk=CacheStatus.SINGLETON_PK)
    if created:
        logger.info("Created cache status row.")


class ApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'api'

    def ready(self):
        post_migrate.connect(ensure_cache_status, sender=self)
