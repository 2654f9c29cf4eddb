# orders_core/apps.py

from django.apps import AppConfig


class OrdersCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders_core"
    verbose_name = "Orders core"

    def ready(self):
        from . import signals  # noqa
