"""Read-only data access helpers for users and referrals."""

from typing import Optional

from django.db.models import Count, Q, QuerySet

from .models import User


def referral_code_exists(code: str) -> bool:
    """Return True if any user currently holds `code` as their referral code."""

    return User.objects.filter(referral_code=code).exists()


def get_referrer(code: str) -> Optional[User]:
    """Return a user holding the given referral code, if any."""

    if not code:
        return None
    return User.objects.filter(referral_code=code).first()


def phone_claimed_by_other(*, phone: str, user_id: int) -> bool:
    """Return True if another account has already verified `phone`."""

    return User.objects.filter(phone=phone, phone_verified=True).exclude(pk=user_id).exists()


def list_referred_users(user: User) -> QuerySet[User]:
    """Users who signed up with `user`'s referral code, newest first."""

    if not user.referral_code:
        return User.objects.none()
    return User.objects.filter(referred_by=user.referral_code).order_by("-date_joined", "id")


def referral_counts(user: User) -> dict:
    """Return total and phone-verified counts of users referred by `user`."""

    agg = list_referred_users(user).aggregate(
        total=Count("id"),
        verified=Count("id", filter=Q(phone_verified=True)),
    )
    return {"total": agg.get("total") or 0, "verified": agg.get("verified") or 0}
