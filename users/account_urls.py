"""Account routes grouped under /api/v1/account.

Includes profile, verification/credit status, referred users and registration.
"""

from django.urls import path

from .views import ProfileView, ReferralListView, register, user_status

urlpatterns = [
    path("profile/", ProfileView.as_view(), name="profile"),
    path("status/", user_status, name="user_status"),
    path("referrals/", ReferralListView.as_view(), name="referrals"),
    path("register/", register, name="register"),
]
