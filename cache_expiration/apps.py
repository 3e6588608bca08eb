from django.apps import AppConfig


class CacheExpirationAppConfig(AppConfig):
    name = "cache_expiration"
    verbose_name = "Cache expiration"

    def ready(self):
        # Fail django.setup() on a bad max age or classifier instead of at the first request.
        from .classifiers import get_classifier
        from .config import CacheExpirationConfig

        CacheExpirationConfig.from_settings()
        get_classifier()
