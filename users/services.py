"""Referral code allocation for user accounts.

Codes look like `ALI4821`: the first three characters of the email's local
part, uppercased, followed by four random digits. The prefix only makes a
code recognisable to its owner; it carries no security weight.
"""

import logging
import random
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from .models import User
from .selectors import referral_code_exists

logger = logging.getLogger("zerowaste.referrals")


class ReferralCodeExhausted(Exception):
    """Raised when no free referral code was found within the attempt budget."""


def _max_attempts(max_attempts: Optional[int]) -> int:
    if max_attempts is not None:
        return max_attempts
    return int(getattr(settings, "REFERRAL_CODE_MAX_ATTEMPTS", 100))


def generate_referral_code(email: str) -> str:
    """Build one candidate code from the email's local part and a 4-digit number."""
    local_part = (email or "").split("@", 1)[0]
    return f"{local_part[:3].upper()}{random.randint(1000, 9999)}"


def allocate_referral_code(email: str, *, max_attempts: Optional[int] = None) -> str:
    """Return a referral code not held by any user at the time of the check.

    Regenerates candidates until one is free. Nothing is persisted; callers
    that store the code should go through `assign_referral_code`, which also
    survives a concurrent writer taking the same code.
    """
    attempts = _max_attempts(max_attempts)
    for _ in range(attempts):
        candidate = generate_referral_code(email)
        if not referral_code_exists(candidate):
            return candidate
        logger.debug("referral.code_collision", extra={"event": "referral.code_collision", "candidate": candidate})
    raise ReferralCodeExhausted(f"No free referral code after {attempts} attempts")


def assign_referral_code(user: User, *, max_attempts: Optional[int] = None) -> str:
    """Persist a referral code for `user` if they do not have one yet.

    The unique constraint on `referral_code` is the final arbiter: a write
    that loses a race raises IntegrityError inside its savepoint and is
    retried with a fresh candidate. Returns the user's (possibly existing) code.
    """
    if user.referral_code:
        return user.referral_code

    attempts = _max_attempts(max_attempts)
    for _ in range(attempts):
        code = allocate_referral_code(user.email, max_attempts=attempts)
        try:
            with transaction.atomic():
                updated = User.objects.filter(pk=user.pk, referral_code__isnull=True).update(referral_code=code)
        except IntegrityError:
            continue
        if not updated:
            # Another request assigned a code first; keep theirs
            user.refresh_from_db(fields=["referral_code"])
            return user.referral_code
        user.referral_code = code
        logger.info(
            "referral.code_assigned",
            extra={"event": "referral.code_assigned", "user_id": user.pk, "referral_code": code},
        )
        return code
    raise ReferralCodeExhausted(f"No free referral code after {attempts} attempts")
