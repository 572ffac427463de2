"""Phone verification workflow: issue SMS codes and confirm them.

Sending stores a 6-digit code on the user row before delivery is attempted,
so a pending code can exist even when the SMS never arrived. Confirming a
code marks the phone verified and pays out referral bonuses at most once
per user; the whole confirmation runs in one transaction against a locked
user row and finishes with a conditional update, so concurrent duplicate
confirmations cannot both succeed.
"""

import logging
import re
import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import NamedTuple, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from users.models import PHONE_PATTERN, User
from users.selectors import get_referrer, phone_claimed_by_other
from users.services import ReferralCodeExhausted, allocate_referral_code

from .sms import BaseSmsBackend, send_sms

logger = logging.getLogger("zerowaste.verification")

PHONE_RE = re.compile(PHONE_PATTERN)
SMS_TEMPLATE = "Your ZeroWaste verification code is: {code}. Valid for {minutes} minutes."

_DEFAULTS = {
    "CODE_TTL_MINUTES": 10,
    "REFEREE_BONUS": Decimal("25.00"),
    "REFERRER_BONUS": Decimal("15.00"),
    "CURRENCY": "RON",
}


class PhoneVerificationError(Exception):
    """Base class for verification failures shown to the caller.

    Each subclass carries the HTTP status and the user-facing message the
    API responds with.
    """

    status_code = 400
    default_message = "Phone verification failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPhoneFormat(PhoneVerificationError):
    default_message = "Invalid phone number format. Please include country code (e.g., +40...)"


class PhoneAlreadyClaimed(PhoneVerificationError):
    default_message = "This phone number is already verified by another account"


class InvalidReferralCode(PhoneVerificationError):
    default_message = "Invalid referral code"


class InvalidOrExpiredCode(PhoneVerificationError):
    default_message = "Invalid or expired verification code"


class UserNotFound(PhoneVerificationError):
    status_code = 404
    default_message = "User not found"


class SmsDeliveryFailed(PhoneVerificationError):
    status_code = 500
    default_message = "Failed to send SMS. Please try again."


class VerificationFailed(PhoneVerificationError):
    status_code = 500
    default_message = "Failed to verify phone"


class VerificationDispatch(NamedTuple):
    """Outcome of `send_verification_code`.

    `dev_code` is only set when delivery was skipped or failed and the caller
    asked for the code to be exposed.
    """

    delivered: bool
    expires_at: datetime
    dev_code: Optional[str] = None


class VerificationResult(NamedTuple):
    bonus_amount: Decimal
    bonus_message: str
    referral_code: str


def _setting(key: str):
    return getattr(settings, "PHONE_VERIFICATION", {}).get(key, _DEFAULTS[key])


def generate_verification_code() -> str:
    """Return a 6-digit code drawn uniformly from 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


def validate_phone(phone) -> str:
    """Return `phone` unchanged if it is `+` and 2-15 digits without a leading zero."""
    if not isinstance(phone, str) or not PHONE_RE.fullmatch(phone):
        raise InvalidPhoneFormat()
    return phone


def send_verification_code(
    *,
    user: User,
    phone: str,
    referral_code: Optional[str] = None,
    expose_code_on_failure: bool = False,
    skip_sms: bool = False,
    sms_backend: Optional[BaseSmsBackend] = None,
    now: Optional[datetime] = None,
) -> VerificationDispatch:
    """Issue a one-time code for `phone`, store it on `user`, then text it.

    A supplied referral code must belong to another user; it is recorded as
    `referred_by` unless the user was already referred. Nothing is written
    when validation fails. Delivery failures either raise `SmsDeliveryFailed`
    or, with `expose_code_on_failure`, return the code for the caller to
    show; the stored code is kept in both cases.
    """
    phone = validate_phone(phone)
    if phone_claimed_by_other(phone=phone, user_id=user.pk):
        raise PhoneAlreadyClaimed()

    now = now or timezone.now()
    ttl_minutes = int(_setting("CODE_TTL_MINUTES"))
    code = generate_verification_code()
    expires_at = now + timedelta(minutes=ttl_minutes)
    updates = {
        "phone": phone,
        "phone_verification_code": code,
        "phone_verification_expiry": expires_at,
    }

    if referral_code:
        referrer = get_referrer(referral_code)
        if referrer is None or referrer.pk == user.pk:
            raise InvalidReferralCode()
        if user.referred_by is None:
            updates["referred_by"] = referral_code
        elif user.referred_by != referral_code:
            logger.info(
                "phone_verification.referral_kept",
                extra={"event": "phone_verification.referral_kept", "user_id": user.pk},
            )

    try:
        updated = User.objects.filter(pk=user.pk).update(**updates)
    except DatabaseError as exc:
        logger.exception("phone_verification.persist_failed", extra={"user_id": user.pk})
        raise VerificationFailed("Failed to send verification code") from exc
    if not updated:
        raise UserNotFound()
    for field, value in updates.items():
        setattr(user, field, value)

    logger.info(
        "phone_verification.code_issued",
        extra={
            "event": "phone_verification.code_issued",
            "user_id": user.pk,
            "phone": phone,
            "referred": "referred_by" in updates,
        },
    )

    if skip_sms:
        logger.info("phone_verification.sms_skipped", extra={"event": "phone_verification.sms_skipped"})
        return VerificationDispatch(delivered=False, expires_at=expires_at, dev_code=code)

    body = SMS_TEMPLATE.format(code=code, minutes=ttl_minutes)
    try:
        send_sms(phone, body, backend=sms_backend)
    except Exception as exc:
        logger.warning(
            "phone_verification.sms_failed",
            extra={"event": "phone_verification.sms_failed", "user_id": user.pk, "error": str(exc)},
        )
        if expose_code_on_failure:
            return VerificationDispatch(delivered=False, expires_at=expires_at, dev_code=code)
        raise SmsDeliveryFailed() from exc
    return VerificationDispatch(delivered=True, expires_at=expires_at)


def code_is_valid(user: User, code: str, now: datetime) -> bool:
    """Stored code present, equal to `code` verbatim, and not yet expired."""
    return (
        user.phone_verification_code is not None
        and user.phone_verification_code == code
        and user.phone_verification_expiry is not None
        and user.phone_verification_expiry > now
    )


def bonus_message(amount: Decimal) -> str:
    if amount <= 0:
        return ""
    return f"Welcome! You received {amount} {_setting('CURRENCY')} bonus from referral!"


def _credit_referrers(*, referral_code: str, amount: Decimal) -> int:
    """Credit every account holding `referral_code`; returns the number credited."""
    return User.objects.filter(referral_code=referral_code).update(
        credits=F("credits") + amount,
        referral_bonus=F("referral_bonus") + amount,
    )


def _finalize(*, locked: User, code: str, now: datetime, bonus: Decimal) -> str:
    """Apply the verified state in one conditional update and return the referral code.

    When the user has no referral code yet, a fresh one is allocated; a
    unique-constraint collision on that code retries with another candidate.
    """
    attempts = int(getattr(settings, "REFERRAL_CODE_MAX_ATTEMPTS", 100))
    for _ in range(attempts):
        referral_code = locked.referral_code or allocate_referral_code(locked.email)
        updates = {
            "phone_verified": True,
            "phone_verification_code": None,
            "phone_verification_expiry": None,
            "credits": F("credits") + bonus,
            "has_used_referral": True,
            "referral_code": referral_code,
        }
        # Referee bookkeeping overwrites rather than accumulates
        if bonus > 0:
            updates["referral_bonus"] = bonus
        target = User.objects.filter(pk=locked.pk, phone_verification_code=code, phone_verification_expiry__gt=now)
        if bonus > 0:
            target = target.filter(has_used_referral=False)
        try:
            with transaction.atomic():
                updated = target.update(**updates)
        except IntegrityError:
            if locked.referral_code:
                raise
            continue
        if updated != 1:
            raise InvalidOrExpiredCode()
        return referral_code
    raise ReferralCodeExhausted(f"No free referral code after {attempts} attempts")


def confirm_verification_code(*, user: User, code: str, now: Optional[datetime] = None) -> VerificationResult:
    """Verify `code` for `user` and apply referral bonuses exactly once.

    - Validation failures raise `InvalidOrExpiredCode` and change nothing.
    - A referred user who has never used a referral gets the referee bonus;
      every account holding the referring code gets the referrer bonus.
    - `has_used_referral` is set on every successful confirmation.
    - A referral code is allocated for users who do not have one yet.

    Any other failure rolls the whole confirmation back and raises
    `VerificationFailed`.
    """
    now = now or timezone.now()
    referee_bonus = Decimal(str(_setting("REFEREE_BONUS")))
    referrer_bonus = Decimal(str(_setting("REFERRER_BONUS")))

    try:
        with transaction.atomic():
            try:
                locked = User.objects.select_for_update().get(pk=user.pk)
            except User.DoesNotExist:
                raise UserNotFound()

            if not code_is_valid(locked, code, now):
                raise InvalidOrExpiredCode()
            if locked.phone and phone_claimed_by_other(phone=locked.phone, user_id=locked.pk):
                raise PhoneAlreadyClaimed()

            bonus = Decimal("0.00")
            if locked.referred_by and not locked.has_used_referral:
                bonus = referee_bonus
                credited = _credit_referrers(referral_code=locked.referred_by, amount=referrer_bonus)
                logger.info(
                    "referral.referrer_credited",
                    extra={
                        "event": "referral.referrer_credited",
                        "user_id": locked.pk,
                        "referral_code": locked.referred_by,
                        "accounts": credited,
                        "amount": str(referrer_bonus),
                    },
                )

            referral_code = _finalize(locked=locked, code=code, now=now, bonus=bonus)
    except PhoneVerificationError:
        raise
    except (DatabaseError, ReferralCodeExhausted) as exc:
        logger.exception("phone_verification.confirm_failed", extra={"user_id": user.pk})
        raise VerificationFailed() from exc

    user.refresh_from_db()
    logger.info(
        "phone_verification.confirmed",
        extra={
            "event": "phone_verification.confirmed",
            "user_id": user.pk,
            "bonus_amount": str(bonus),
        },
    )
    return VerificationResult(bonus_amount=bonus, bonus_message=bonus_message(bonus), referral_code=referral_code)
