import re
from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.test import APIClient
from users.tests.factories import UserFactory, VerifiedUserFactory
from verification.sms import BaseSmsBackend, SmsDeliveryError

SEND_URL = "verification:send-code"
CONFIRM_URL = "verification:confirm-code"


class FailingSmsBackend(BaseSmsBackend):
    def send_message(self, to, body):
        raise SmsDeliveryError("provider down")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def bob(api_client):
    user = UserFactory(email="bob@x.com")
    api_client.force_authenticate(user=user)
    return user


def _code_from(outbox) -> str:
    return re.search(r"\d{6}", outbox[-1].body).group(0)


@pytest.mark.django_db
@pytest.mark.parametrize("method,name", [("post", SEND_URL), ("patch", CONFIRM_URL)])
def test_unauthenticated_requests_are_rejected(api_client, method, name):
    response = getattr(api_client, method)(reverse(name), {"phone": "+40711111111", "code": "123456"}, format="json")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.django_db
def test_send_requires_phone(api_client, bob):
    response = api_client.post(reverse(SEND_URL), {}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "Phone number required"}


@pytest.mark.django_db
def test_send_rejects_bad_phone(api_client, bob):
    response = api_client.post(reverse(SEND_URL), {"phone": "0711111111"}, format="json")
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid phone number format")


@pytest.mark.django_db
def test_send_rejects_claimed_phone(api_client, bob):
    VerifiedUserFactory(phone="+40711111111")
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "This phone number is already verified by another account"}


@pytest.mark.django_db
def test_send_rejects_unknown_referral_code(api_client, bob, sms_outbox):
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111", "referralCode": "NOPE0000"}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid referral code"}
    assert sms_outbox == []


@pytest.mark.django_db
def test_send_treats_empty_referral_code_as_absent(api_client, bob):
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111", "referralCode": ""}, format="json")
    assert response.status_code == 200
    bob.refresh_from_db()
    assert bob.referred_by is None


@pytest.mark.django_db
def test_send_texts_code(api_client, bob, sms_outbox):
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Verification code sent to your phone"}
    assert len(sms_outbox) == 1
    assert sms_outbox[0].to == "+40711111111"
    bob.refresh_from_db()
    assert bob.phone_verification_code == _code_from(sms_outbox)


@pytest.mark.django_db
def test_referral_signup_end_to_end(api_client, bob, sms_outbox):
    alice = UserFactory(email="alice@x.com", referral_code="ALI1234")

    response = api_client.post(
        reverse(SEND_URL), {"phone": "+40711111111", "referralCode": "ALI1234"}, format="json"
    )
    assert response.status_code == 200

    response = api_client.patch(reverse(CONFIRM_URL), {"code": _code_from(sms_outbox)}, format="json")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Phone verified successfully!"
    assert body["bonusAmount"] == 25
    assert body["bonusMessage"] == "Welcome! You received 25.00 RON bonus from referral!"
    assert body["referralCode"].startswith("BOB")

    alice.refresh_from_db()
    bob.refresh_from_db()
    assert alice.credits == Decimal("15.00")
    assert alice.referral_bonus == Decimal("15.00")
    assert bob.phone_verified is True
    assert bob.has_used_referral is True
    assert bob.credits == Decimal("25.00")
    assert bob.referral_code == body["referralCode"]


@pytest.mark.django_db
def test_confirm_without_referral_reports_no_bonus(api_client, bob, sms_outbox):
    api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    response = api_client.patch(reverse(CONFIRM_URL), {"code": _code_from(sms_outbox)}, format="json")
    assert response.status_code == 200
    assert response.json()["bonusAmount"] == 0
    assert response.json()["bonusMessage"] == ""


@pytest.mark.django_db
def test_confirm_requires_code(api_client, bob):
    response = api_client.patch(reverse(CONFIRM_URL), {}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "Verification code required"}


@pytest.mark.django_db
def test_confirm_rejects_wrong_code(api_client, bob, sms_outbox):
    api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    wrong = "100000" if _code_from(sms_outbox) != "100000" else "100001"
    response = api_client.patch(reverse(CONFIRM_URL), {"code": wrong}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired verification code"}


@pytest.mark.django_db
def test_sms_failure_is_reported(api_client, bob, settings):
    settings.SMS_BACKEND = "verification.tests.test_phone_verification_api.FailingSmsBackend"
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send SMS. Please try again."}
    bob.refresh_from_db()
    assert bob.phone_verification_code is not None


@pytest.mark.django_db
def test_sms_failure_returns_code_when_exposure_enabled(api_client, bob, settings):
    settings.SMS_BACKEND = "verification.tests.test_phone_verification_api.FailingSmsBackend"
    settings.PHONE_VERIFICATION = {**settings.PHONE_VERIFICATION, "EXPOSE_CODE_ON_FAILURE": True}
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "SMS service unavailable. Your verification code is:"
    bob.refresh_from_db()
    assert body["devCode"] == bob.phone_verification_code

    response = api_client.patch(reverse(CONFIRM_URL), {"code": body["devCode"]}, format="json")
    assert response.status_code == 200


@pytest.mark.django_db
def test_skip_sms_returns_code_without_sending(api_client, bob, settings, sms_outbox):
    settings.PHONE_VERIFICATION = {**settings.PHONE_VERIFICATION, "SKIP_SMS": True}
    response = api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    assert response.status_code == 200
    assert len(response.json()["devCode"]) == 6
    assert sms_outbox == []


@pytest.mark.django_db
def test_status_reflects_verification(api_client, bob, sms_outbox):
    api_client.post(reverse(SEND_URL), {"phone": "+40711111111"}, format="json")
    api_client.patch(reverse(CONFIRM_URL), {"code": _code_from(sms_outbox)}, format="json")
    response = api_client.get(reverse("user_status"))
    assert response.status_code == 200
    assert response.json()["phoneVerified"] is True
    assert response.json()["hasPhone"] is True


@pytest.mark.django_db
def test_confirm_rejects_overlong_code_with_standard_message(api_client, bob):
    response = api_client.patch(reverse(CONFIRM_URL), {"code": "1" * 40}, format="json")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired verification code"}
