from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase


class AuthFlowTests(APITestCase):
    def setUp(self):
        self.User = get_user_model()
        self.password = "StrongPass123!"
        self.user = self.User.objects.create_user(
            username="jdoe",
            email="jdoe@example.com",
            password=self.password,
            first_name="John",
            last_name="Doe",
        )

    def _signin(self, identifier):
        return self.client.post(
            "/api/v1/auth/signin/",
            {"identifier": identifier, "password": self.password},
            format="json",
        )

    def test_login_returns_tokens(self):
        resp = self._signin(self.user.email)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)

    def test_login_assigns_missing_referral_code(self):
        self.assertIsNone(self.user.referral_code)
        self._signin(self.user.email)
        self.user.refresh_from_db()
        self.assertTrue(self.user.referral_code.startswith("JDO"))
        self.assertEqual(len(self.user.referral_code), 7)

    def test_login_keeps_existing_referral_code(self):
        self.user.referral_code = "JDO1234"
        self.user.save(update_fields=["referral_code"])
        self._signin(self.user.email)
        self.user.refresh_from_db()
        self.assertEqual(self.user.referral_code, "JDO1234")

    def test_profile_requires_auth(self):
        resp = self.client.get("/api/v1/account/profile/")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_with_access_token(self):
        access = self._signin(self.user.email).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        resp = self.client.get("/api/v1/account/profile/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["email"], self.user.email)

    def test_logout_blacklists_refresh(self):
        refresh = self._signin(self.user.email).data["refresh"]
        resp = self.client.post("/api/v1/auth/signout/", {"refresh": refresh}, format="json")
        self.assertIn(resp.status_code, (status.HTTP_205_RESET_CONTENT, status.HTTP_200_OK))
        # Try refreshing with the blacklisted token
        resp2 = self.client.post("/api/v1/auth/refresh/", {"refresh": refresh}, format="json")
        self.assertEqual(resp2.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_with_verified_phone_returns_tokens(self):
        self.user.phone = "+40712345678"
        self.user.phone_verified = True
        self.user.save(update_fields=["phone", "phone_verified"])
        resp = self._signin("+40712345678")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn("access", resp.data)

    def test_login_with_unverified_phone_is_rejected(self):
        self.user.phone = "+40712345678"
        self.user.save(update_fields=["phone"])
        resp = self._signin("+40712345678")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_wrong_password(self):
        resp = self.client.post(
            "/api/v1/auth/signin/",
            {"identifier": self.user.email, "password": "nope"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
