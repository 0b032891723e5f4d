from django.apps import AppConfig


class EarnConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "earn"
    verbose_name = "CoinEarn"
