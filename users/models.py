"""User models for authentication, phone verification and referrals.

This module defines the custom `User` model which extends Django's
`AbstractUser` with email uniqueness, an account role, phone verification
state, and the referral/credit balances used by the referral program.
"""

from decimal import Decimal

from common.choices import UserRole
from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models

PHONE_PATTERN = r"^\+[1-9]\d{1,14}\Z"


class User(AbstractUser):
    """Custom user with unique email, phone verification and referral balances.

    Fields:
    - email: the primary email, unique at the database level (normalized).
    - role: customer or company account.
    - phone / phone_verified: contact number and whether it was confirmed by SMS.
    - phone_verification_code / phone_verification_expiry: pending one-time code,
      always set or cleared together.
    - referral_code: this user's own code for inviting others.
    - referred_by: the referral code this user supplied (not a foreign key).
    - has_used_referral: set once the user has passed phone verification.
    - credits: spendable balance; referral_bonus: bonus bookkeeping.
    """

    ROLE_CUSTOMER = UserRole.CUSTOMER
    ROLE_COMPANY = UserRole.COMPANY

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.CUSTOMER)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(PHONE_PATTERN, message="Use E.164 format (e.g., +40712345678)")],
        help_text="Contact number in E.164 format",
    )
    phone_verified = models.BooleanField(default=False)
    phone_verification_code = models.CharField(max_length=6, null=True, blank=True)
    phone_verification_expiry = models.DateTimeField(null=True, blank=True)
    referral_code = models.CharField(max_length=16, unique=True, null=True, blank=True)
    referred_by = models.CharField(max_length=16, null=True, blank=True, db_index=True)
    has_used_referral = models.BooleanField(default=False)
    credits = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    referral_bonus = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    def save(self, *args, **kwargs):
        """Normalize email and phone and persist.

        Stores `email` in lowercase without surrounding whitespace so
        uniqueness checks are reliable.
        """
        if self.email:
            self.email = self.email.strip().lower()
        # Normalize phone whitespace; leave format enforcement to validator
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)

    @property
    def is_company(self) -> bool:
        return self.role == UserRole.COMPANY

    class Meta:
        constraints = [
            # Unverified numbers may collide; a verified number belongs to one account
            models.UniqueConstraint(
                fields=["phone"],
                condition=models.Q(phone_verified=True),
                name="unique_verified_phone",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(phone_verification_code__isnull=True, phone_verification_expiry__isnull=True)
                    | models.Q(phone_verification_code__isnull=False, phone_verification_expiry__isnull=False)
                ),
                name="verification_code_and_expiry_together",
            ),
        ]
        indexes = [
            models.Index(fields=["phone"], name="users_user_phone_idx"),
        ]
