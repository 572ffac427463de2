"""Phone verification routes (v1), mounted under /api/v1/phone-verification/."""

from django.urls import path

from .views import ConfirmCodeView, SendCodeView

app_name = "verification"

urlpatterns = [
    path("send/", SendCodeView.as_view(), name="send-code"),
    path("confirm/", ConfirmCodeView.as_view(), name="confirm-code"),
]
