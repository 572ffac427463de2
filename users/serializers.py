"""Serializers for user profile, registration, referral and sign-in flows.

- ProfileSerializer: read-only profile with phone, credit and referral state.
- ProfileUpdateSerializer: name and phone updates; a new phone must be re-verified.
- UserStatusSerializer: compact verification/credits summary.
- ReferredUserSerializer: users who joined with the caller's referral code.
- RegistrationSerializer: action serializer to create customer or company users.
- EmailOrPhoneTokenObtainPairSerializer: obtain JWTs using email or verified phone.
"""

import logging

from common.choices import UserRole
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import PHONE_PATTERN, User
from .selectors import referral_counts
from .services import ReferralCodeExhausted, assign_referral_code

logger = logging.getLogger("zerowaste.referrals")


class ProfileSerializer(serializers.ModelSerializer):
    """Profile fields for the current user, including referral statistics."""

    total_referrals = serializers.SerializerMethodField()
    verified_referrals = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "phone",
            "phone_verified",
            "credits",
            "referral_code",
            "referred_by",
            "referral_bonus",
            "has_used_referral",
            "date_joined",
            "total_referrals",
            "verified_referrals",
        ]
        read_only_fields = fields

    def _counts(self, obj: User) -> dict:
        cache = self.context.setdefault("_referral_counts", {})
        if obj.pk not in cache:
            cache[obj.pk] = referral_counts(obj)
        return cache[obj.pk]

    def get_total_referrals(self, obj: User) -> int:
        return self._counts(obj)["total"]

    def get_verified_referrals(self, obj: User) -> int:
        return self._counts(obj)["verified"]


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Update names and phone. Changing the phone resets its verification."""

    phone = serializers.RegexField(
        PHONE_PATTERN,
        required=False,
        error_messages={"invalid": "Use E.164 format (e.g., +40712345678)"},
    )

    class Meta:
        model = User
        fields = ["first_name", "last_name", "phone"]

    def update(self, instance: User, validated_data):
        phone = validated_data.get("phone")
        update_fields = list(validated_data.keys())
        if phone and phone != instance.phone:
            # A pending code was issued for the old number
            instance.phone_verified = False
            instance.phone_verification_code = None
            instance.phone_verification_expiry = None
            update_fields += ["phone_verified", "phone_verification_code", "phone_verification_expiry"]
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save(update_fields=update_fields or None)
        return instance


class UserStatusSerializer(serializers.Serializer):
    """Summary used by clients to decide whether to prompt for verification."""

    phoneVerified = serializers.BooleanField(source="phone_verified")
    hasPhone = serializers.SerializerMethodField()
    credits = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    referralCode = serializers.CharField(source="referral_code", allow_null=True)
    totalReferralBonus = serializers.DecimalField(
        source="referral_bonus", max_digits=12, decimal_places=2, coerce_to_string=False
    )

    def get_hasPhone(self, obj: User) -> bool:
        return bool(obj.phone)


class ReferredUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["first_name", "last_name", "email", "date_joined", "phone_verified"]
        read_only_fields = fields


class RegistrationSerializer(serializers.Serializer):
    """Action serializer to register a new user.

    Validates uniqueness of `username` and `email` and enforces Django
    password validators. Uses `set_password` to hash provided password.
    Companies list surplus food; customers (the default) buy it.
    """

    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.CUSTOMER)

    def validate_username(self, value: str) -> str:
        """Ensure the username is not already taken (case-insensitive)."""
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate_email(self, value: str) -> str:
        """Normalize and ensure the email is unique (case-insensitive)."""
        value = value.strip().lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email is already registered.")
        return value

    def validate_password(self, value: str) -> str:
        """Run Django's password validators against the provided password."""
        from django.contrib.auth.password_validation import validate_password

        user = User(username=self.initial_data.get("username", ""), email=self.initial_data.get("email", ""))
        validate_password(value, user=user)
        return value

    def create(self, validated_data):
        user = User(
            username=validated_data["username"],
            email=validated_data["email"],
            first_name=validated_data.get("first_name", ""),
            last_name=validated_data.get("last_name", ""),
            role=validated_data.get("role", UserRole.CUSTOMER),
        )
        user.set_password(validated_data["password"])
        user.save()
        return user


class SignOutSerializer(serializers.Serializer):
    """Request body for signing out (blacklisting refresh token)."""

    refresh = serializers.CharField()


class EmailOrPhoneTokenObtainPairSerializer(serializers.Serializer):
    """Obtain JWTs by authenticating with either email or verified phone.

    Accepts a single `identifier` field which may be an email address
    (case-insensitive) or an E.164 phone number, and a `password`.
    Unverified numbers can be shared between accounts, so phone sign-in
    only matches verified phones. A user signing in without a referral
    code gets one allocated.
    """

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = (attrs.get("identifier") or "").strip()
        password = attrs.get("password") or ""

        if not identifier or not password:
            raise serializers.ValidationError({"detail": "identifier and password are required."})

        if "@" in identifier:
            user = User.objects.filter(email=identifier.lower()).first()
        else:
            user = User.objects.filter(phone=identifier, phone_verified=True).first()

        if not user or not user.check_password(password) or not user.is_active:
            raise serializers.ValidationError({"detail": "Invalid credentials."})

        if not user.referral_code:
            try:
                assign_referral_code(user)
            except ReferralCodeExhausted:
                # Sign-in must not fail because of referral bookkeeping
                logger.warning("referral.code_unavailable", extra={"user_id": user.pk})

        refresh = RefreshToken.for_user(user)
        return {"access": str(refresh.access_token), "refresh": str(refresh)}
