"""Django app configuration for the phone verification app."""

from django.apps import AppConfig


class VerificationConfig(AppConfig):
    """AppConfig for SMS phone verification and referral payouts."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "verification"
    verbose_name = "Phone verification"
