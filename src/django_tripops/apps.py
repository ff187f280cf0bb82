from django.apps import AppConfig


class DjangoTripOpsConfig(AppConfig):
    name = "django_tripops"
    verbose_name = "Trip Operations"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from . import checks  # noqa: F401
