"""Phone verification API views.

Endpoints:
- send: validate a phone (and optional referral code), store a one-time code
  and text it to the user.
- confirm: check the code, mark the phone verified and pay referral bonuses.

Every failure is answered with `{"error": message}`; views stay thin and
delegate the workflow to `verification.services`.
"""

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from users.logging import log_auth_event

from .serializers import (
    ConfirmCodeResponseSerializer,
    ConfirmCodeSerializer,
    ErrorSerializer,
    SendCodeResponseSerializer,
    SendCodeSerializer,
    first_error,
)
from .services import PhoneVerificationError, confirm_verification_code, send_verification_code

logger = logging.getLogger("zerowaste.verification")


class PhoneVerificationView(APIView):
    """Shared auth, throttling and error shaping for the verification endpoints."""

    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    failure_message = "Request failed"

    def handle_exception(self, exc):
        if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
            return Response({"error": "Unauthorized"}, status=status.HTTP_401_UNAUTHORIZED)
        if isinstance(exc, APIException):
            response = super().handle_exception(exc)
            response.data = {"error": first_error(response.data)}
            return response
        logger.exception("phone_verification.unhandled", extra={"path": self.request.path})
        return Response({"error": self.failure_message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    def error_response(self, request, action: str, exc: PhoneVerificationError) -> Response:
        log_auth_event(action, request, user=request.user, status=type(exc).__name__)
        return Response({"error": exc.message}, status=exc.status_code)


class SendCodeView(PhoneVerificationView):
    throttle_scope = "phone_verify_send"
    failure_message = "Failed to send verification code"

    @extend_schema(
        tags=["Phone Verification Endpoints"],
        summary="Send a phone verification code",
        description=(
            "Stores a 6-digit code valid for 10 minutes and texts it to `phone` (E.164, e.g. +40712345678).\n\n"
            "An optional `referralCode` links the account to its referrer; the bonus is paid on confirmation.\n\n"
            "Outside production, `devCode` is returned when SMS delivery is skipped or fails."
        ),
        request=SendCodeSerializer,
        responses={
            200: SendCodeResponseSerializer,
            400: OpenApiResponse(response=ErrorSerializer, description="Bad phone, claimed phone or bad referral"),
            401: OpenApiResponse(response=ErrorSerializer, description="Unauthorized"),
            500: OpenApiResponse(response=ErrorSerializer, description="SMS delivery or persistence failure"),
        },
        examples=[
            OpenApiExample("Send", value={"phone": "+40711111111", "referralCode": "ALI1234"}, request_only=True),
            OpenApiExample(
                "Sent", value={"success": True, "message": "Verification code sent to your phone"}, response_only=True
            ),
        ],
    )
    def post(self, request):
        serializer = SendCodeSerializer(data=request.data)
        if not serializer.is_valid():
            log_auth_event("phone_verification_send", request, user=request.user, status="invalid")
            return Response({"error": first_error(serializer.errors)}, status=status.HTTP_400_BAD_REQUEST)

        options = getattr(settings, "PHONE_VERIFICATION", {})
        try:
            dispatch = send_verification_code(
                user=request.user,
                phone=serializer.validated_data["phone"],
                referral_code=serializer.validated_data.get("referral_code") or None,
                expose_code_on_failure=bool(options.get("EXPOSE_CODE_ON_FAILURE", False)),
                skip_sms=bool(options.get("SKIP_SMS", False)),
            )
        except PhoneVerificationError as exc:
            return self.error_response(request, "phone_verification_send", exc)

        if dispatch.delivered:
            log_auth_event("phone_verification_send", request, user=request.user, status="sent")
            return Response({"success": True, "message": "Verification code sent to your phone"})

        log_auth_event("phone_verification_send", request, user=request.user, status="dev_code")
        return Response(
            {
                "success": True,
                "message": "SMS service unavailable. Your verification code is:",
                "devCode": dispatch.dev_code,
            }
        )


class ConfirmCodeView(PhoneVerificationView):
    throttle_scope = "phone_verify_confirm"
    failure_message = "Failed to verify phone"

    @extend_schema(
        tags=["Phone Verification Endpoints"],
        summary="Confirm a phone verification code",
        description=(
            "Marks the phone as verified when `code` matches the stored, unexpired code.\n\n"
            "Referred users receive their referral bonus once; the referrer is credited at the same time."
        ),
        request=ConfirmCodeSerializer,
        responses={
            200: ConfirmCodeResponseSerializer,
            400: OpenApiResponse(response=ErrorSerializer, description="Invalid or expired verification code"),
            401: OpenApiResponse(response=ErrorSerializer, description="Unauthorized"),
            404: OpenApiResponse(response=ErrorSerializer, description="User not found"),
            500: OpenApiResponse(response=ErrorSerializer, description="Verification failed"),
        },
        examples=[
            OpenApiExample("Confirm", value={"code": "482913"}, request_only=True),
            OpenApiExample(
                "Confirmed",
                value={
                    "success": True,
                    "message": "Phone verified successfully!",
                    "bonusMessage": "Welcome! You received 25.00 RON bonus from referral!",
                    "bonusAmount": 25.0,
                    "referralCode": "BOB4821",
                },
                response_only=True,
            ),
        ],
    )
    def patch(self, request):
        serializer = ConfirmCodeSerializer(data=request.data)
        if not serializer.is_valid():
            log_auth_event("phone_verification_confirm", request, user=request.user, status="invalid")
            return Response({"error": first_error(serializer.errors)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = confirm_verification_code(user=request.user, code=serializer.validated_data["code"])
        except PhoneVerificationError as exc:
            return self.error_response(request, "phone_verification_confirm", exc)

        log_auth_event(
            "phone_verification_confirm",
            request,
            user=request.user,
            status="success",
            extra={"bonus_amount": str(result.bonus_amount)},
        )
        return Response(
            {
                "success": True,
                "message": "Phone verified successfully!",
                "bonusMessage": result.bonus_message,
                "bonusAmount": result.bonus_amount,
                "referralCode": result.referral_code,
            }
        )
