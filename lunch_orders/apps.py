from django.apps import AppConfig


class LunchOrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lunch_orders"
    verbose_name = "Lunch Orders"  # Section name in Admin
