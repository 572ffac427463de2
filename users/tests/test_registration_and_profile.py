from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from users.tests.factories import UserFactory, VerifiedUserFactory


@pytest.mark.django_db
def test_register_customer_by_default():
    client = APIClient()
    payload = {
        "username": "newuser",
        "email": "NewUser@Example.com",
        "password": "StrongPass123!",
        "first_name": "New",
        "last_name": "User",
    }
    resp = client.post("/api/v1/account/register/", payload, format="json")
    assert resp.status_code == 201
    assert resp.data["email"] == "newuser@example.com"
    assert resp.data["role"] == "customer"
    assert resp.data["phone_verified"] is False

    user = get_user_model().objects.get(username="newuser")
    assert user.credits == Decimal("0.00")
    assert user.has_used_referral is False


@pytest.mark.django_db
def test_register_company_account():
    client = APIClient()
    payload = {"username": "bistro", "email": "owner@bistro.ro", "password": "StrongPass123!", "role": "company"}
    resp = client.post("/api/v1/account/register/", payload, format="json")
    assert resp.status_code == 201
    assert get_user_model().objects.get(username="bistro").is_company


@pytest.mark.django_db
def test_register_duplicate_email_rejected():
    UserFactory(email="taken@example.com")
    client = APIClient()
    payload = {"username": "other", "email": "taken@example.com", "password": "StrongPass123!"}
    resp = client.post("/api/v1/account/register/", payload, format="json")
    assert resp.status_code == 400
    assert "email" in resp.json()


@pytest.mark.django_db
def test_profile_includes_referral_counts():
    alice = UserFactory(referral_code="ALI1234")
    UserFactory(referred_by="ALI1234", phone_verified=True, phone="+40711111111")
    UserFactory(referred_by="ALI1234")
    UserFactory(referred_by="OTH9999")
    client = APIClient()
    client.force_authenticate(user=alice)

    resp = client.get("/api/v1/account/profile/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["referral_code"] == "ALI1234"
    assert body["total_referrals"] == 2
    assert body["verified_referrals"] == 1


@pytest.mark.django_db
def test_profile_phone_change_resets_verification():
    user = VerifiedUserFactory(phone="+40700000001")
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.patch("/api/v1/account/profile/", {"phone": "+40700000002"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["detail"] == "Phone updated. Please verify your new number."
    user.refresh_from_db()
    assert user.phone == "+40700000002"
    assert user.phone_verified is False


@pytest.mark.django_db
def test_profile_phone_change_discards_pending_code(sms_outbox):
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    client.post("/api/v1/phone-verification/send/", {"phone": "+40711111111"}, format="json")
    user.refresh_from_db()
    old_code = user.phone_verification_code
    assert old_code is not None

    resp = client.patch("/api/v1/account/profile/", {"phone": "+40799999999"}, format="json")
    assert resp.status_code == 200
    user.refresh_from_db()
    assert user.phone_verification_code is None
    assert user.phone_verification_expiry is None

    resp = client.patch("/api/v1/phone-verification/confirm/", {"code": old_code}, format="json")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid or expired verification code"}
    user.refresh_from_db()
    assert user.phone == "+40799999999"
    assert user.phone_verified is False


@pytest.mark.django_db
def test_profile_name_change_keeps_verification():
    user = VerifiedUserFactory(phone="+40700000001")
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.patch("/api/v1/account/profile/", {"first_name": "Ana"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["detail"] == "Profile updated successfully"
    user.refresh_from_db()
    assert user.first_name == "Ana"
    assert user.phone_verified is True


@pytest.mark.django_db
def test_profile_rejects_malformed_phone():
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.patch("/api/v1/account/profile/", {"phone": "0712345678"}, format="json")
    assert resp.status_code == 400
    assert "phone" in resp.json()


@pytest.mark.django_db
def test_user_status_summary():
    user = UserFactory(
        phone="+40711111111",
        referral_code="USE1234",
        credits=Decimal("40.00"),
        referral_bonus=Decimal("15.00"),
    )
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.get("/api/v1/account/status/")
    assert resp.status_code == 200
    assert resp.json() == {
        "phoneVerified": False,
        "hasPhone": True,
        "credits": 40.0,
        "referralCode": "USE1234",
        "totalReferralBonus": 15.0,
    }


@pytest.mark.django_db
def test_user_status_requires_auth():
    resp = APIClient().get("/api/v1/account/status/")
    assert resp.status_code == 401


@pytest.mark.django_db
def test_referrals_list_filters_by_verification():
    alice = UserFactory(referral_code="ALI1234")
    UserFactory(referred_by="ALI1234", email="v@example.com", phone="+40711111111", phone_verified=True)
    UserFactory(referred_by="ALI1234", email="u@example.com")
    client = APIClient()
    client.force_authenticate(user=alice)

    resp = client.get("/api/v1/account/referrals/")
    assert resp.status_code == 200
    assert resp.json()["count"] == 2

    resp = client.get("/api/v1/account/referrals/", {"phone_verified": "true"})
    emails = [row["email"] for row in resp.json()["results"]]
    assert emails == ["v@example.com"]


@pytest.mark.django_db
def test_referrals_list_empty_without_code():
    user = UserFactory()
    UserFactory(referred_by="ALI1234")
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.get("/api/v1/account/referrals/")
    assert resp.status_code == 200
    assert resp.json()["count"] == 0
