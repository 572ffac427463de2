"""Users app API views.

Endpoints include:
- profile: returns (GET) or updates (PATCH) the current user's profile.
- status: compact phone verification / credits / referral summary.
- referrals: users who joined with the current user's referral code.
- register: creates a new customer or company account.
- signin/refresh/verify: JWT issue and maintenance.
- signout: blacklists refresh tokens for JWT logout.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken, TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from .logging import log_auth_event
from .selectors import list_referred_users
from .serializers import (
    EmailOrPhoneTokenObtainPairSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    ReferredUserSerializer,
    RegistrationSerializer,
    SignOutSerializer,
    UserStatusSerializer,
)


class ProfileView(APIView):
    """Retrieve and update the authenticated user's profile."""

    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "profile"

    @extend_schema(
        tags=["User Endpoints"],
        summary="Get current user profile",
        description=(
            "Returns the current authenticated user's profile, including phone verification state, "
            "credits, referral code and referral counts.\n\n"
            "Auth: Requires JWT (Authorization: Bearer <token>) or session auth."
        ),
        responses={
            200: OpenApiResponse(description="User profile", response=ProfileSerializer),
            401: OpenApiResponse(description="Unauthorized"),
        },
    )
    def get(self, request):
        log_auth_event("profile", request, user=request.user)
        return Response(ProfileSerializer(request.user).data)

    @extend_schema(
        tags=["User Endpoints"],
        summary="Update current user profile",
        description="Update `first_name`, `last_name` or `phone`. A changed phone must be verified again.",
        request=ProfileUpdateSerializer,
        responses={200: ProfileSerializer, 400: OpenApiResponse(description="Validation error")},
    )
    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        phone_before = request.user.phone
        user = serializer.save()
        phone_changed = user.phone != phone_before
        log_auth_event("profile_update", request, user=user, extra={"phone_changed": phone_changed})
        data = dict(ProfileSerializer(user).data)
        data["detail"] = (
            "Phone updated. Please verify your new number." if phone_changed else "Profile updated successfully"
        )
        return Response(data)


@extend_schema(
    tags=["User Endpoints"],
    summary="Get verification and credit status",
    responses={200: UserStatusSerializer, 401: OpenApiResponse(description="Unauthorized")},
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def user_status(request):
    """Return phone verification, credit and referral summary for the current user."""
    return Response(UserStatusSerializer(request.user).data)


user_status.throttle_scope = "profile"


class ReferralListView(generics.ListAPIView):
    """List users who signed up with the current user's referral code."""

    permission_classes = [IsAuthenticated]
    serializer_class = ReferredUserSerializer
    filterset_fields = ["phone_verified"]
    ordering_fields = ["date_joined", "id"]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "profile"

    @extend_schema(tags=["User Endpoints"], summary="List referred users")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return list_referred_users(self.request.user)


@extend_schema(tags=["User Endpoints"], request=RegistrationSerializer, responses={201: ProfileSerializer})
@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def register(request):
    """Register a new customer or company account."""
    serializer = RegistrationSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        log_auth_event("register", request, user=user, status="success")
        return Response(ProfileSerializer(user).data, status=status.HTTP_201_CREATED)
    log_auth_event("register", request, status="invalid")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Throttle scope for registration
register.throttle_scope = "register"


class SignOutView(APIView):
    """Blacklist a refresh token so it can no longer mint access tokens."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "signout"
    permission_classes = [AllowAny]

    @extend_schema(tags=["User Endpoints"], request=SignOutSerializer)
    def post(self, request):
        serializer = SignOutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"detail": "Refresh token is required."}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(serializer.validated_data["refresh"])
            token.blacklist()
        except TokenError:
            log_auth_event("signout", request, status="invalid_token")
            return Response({"detail": "Invalid token."}, status=status.HTTP_400_BAD_REQUEST)
        log_auth_event("signout", request, status="success")
        return Response({"detail": "Signed out."}, status=status.HTTP_205_RESET_CONTENT)


class SignInView(TokenObtainPairView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "signin"
    serializer_class = EmailOrPhoneTokenObtainPairSerializer

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("signin", request, status=status_label)
        return resp


class RefreshView(TokenRefreshView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "token_refresh"

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("token_refresh", request, status=status_label)
        return resp


class VerifyView(TokenVerifyView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "token_verify"

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("token_verify", request, status=status_label)
        return resp
