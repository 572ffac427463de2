from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone
from users.tests.factories import UserFactory


@pytest.mark.django_db
def test_clears_only_expired_codes():
    now = timezone.now()
    expired = UserFactory(phone_verification_code="123456", phone_verification_expiry=now - timedelta(minutes=1))
    pending = UserFactory(phone_verification_code="654321", phone_verification_expiry=now + timedelta(minutes=5))

    out = StringIO()
    call_command("clear_expired_phone_codes", stdout=out)

    expired.refresh_from_db()
    pending.refresh_from_db()
    assert "Expired verification codes cleared: 1" in out.getvalue()
    assert expired.phone_verification_code is None
    assert expired.phone_verification_expiry is None
    assert pending.phone_verification_code == "654321"
