"""Django app configuration for the users app."""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    """Accounts, authentication and the referral program."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "users"
    verbose_name = "Users and referrals"
