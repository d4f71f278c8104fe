from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'marketplace'
    verbose_name = 'Item Swap Marketplace'

    def ready(self):
        # Register signal receivers
        from . import signals  # noqa: F401
