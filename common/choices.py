"""Shared enumerations and choices used across apps."""

from django.db import models


class UserRole(models.TextChoices):
    """Account kinds: customers buy surplus food, companies list it."""

    CUSTOMER = "customer", "Customer"
    COMPANY = "company", "Company"
