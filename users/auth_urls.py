"""Authentication routes grouped under /api/v1/auth.

JWT sign-in accepts an email or a verified phone number; refresh and verify
maintain tokens, and sign-out blacklists the refresh token.
"""

from django.urls import path

from .views import RefreshView, SignInView, SignOutView, VerifyView

urlpatterns = [
    path("signin/", SignInView.as_view(), name="signin"),
    path("refresh/", RefreshView.as_view(), name="token_refresh"),
    path("verify/", VerifyView.as_view(), name="token_verify"),
    path("signout/", SignOutView.as_view(), name="signout"),
]
