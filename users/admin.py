"""Admin registration for the custom User model.

Extends Django's built-in `UserAdmin` with role, phone verification and
referral/credit fields so support staff can audit referral payouts.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration leveraging the default fieldsets and filters.

    Verification codes are shown read-only; balances are editable for
    manual corrections.
    """

    list_display = (
        "username",
        "email",
        "role",
        "phone",
        "phone_verified",
        "referral_code",
        "referred_by",
        "credits",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "phone_verified", "has_used_referral", "is_staff", "is_active")
    search_fields = ("username", "email", "phone", "referral_code", "referred_by")
    ordering = ("-date_joined",)
    readonly_fields = ("last_login", "date_joined", "phone_verification_code", "phone_verification_expiry")

    fieldsets = (
        (None, {"fields": ("username", "password", "role")}),
        ("Personal info", {"fields": ("first_name", "last_name", "email")}),
        (
            "Phone verification",
            {"fields": ("phone", "phone_verified", "phone_verification_code", "phone_verification_expiry")},
        ),
        (
            "Referrals and credits",
            {"fields": ("referral_code", "referred_by", "has_used_referral", "credits", "referral_bonus")},
        ),
        (
            "Permissions",
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "email", "role", "password1", "password2"),
            },
        ),
    )

    filter_horizontal = ("groups", "user_permissions")
