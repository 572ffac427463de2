"""Request and response serializers for phone verification.

Field names follow the public JSON contract (`referralCode`, `devCode`,
`bonusAmount`), mapped onto snake_case service arguments via `source`.
"""

from rest_framework import serializers


class SendCodeSerializer(serializers.Serializer):
    """Body of `POST /phone-verification/send/`."""

    phone = serializers.CharField(
        max_length=32,
        trim_whitespace=True,
        error_messages={"required": "Phone number required", "blank": "Phone number required"},
    )
    referralCode = serializers.CharField(
        source="referral_code",
        max_length=16,
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=True,
    )


class ConfirmCodeSerializer(serializers.Serializer):
    """Body of `PATCH /phone-verification/confirm/`.

    The code is compared verbatim, so whitespace is not trimmed.
    """

    code = serializers.CharField(
        trim_whitespace=False,
        error_messages={"required": "Verification code required", "blank": "Verification code required"},
    )


class SendCodeResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    devCode = serializers.CharField(required=False)


class ConfirmCodeResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    bonusMessage = serializers.CharField(allow_blank=True)
    bonusAmount = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    referralCode = serializers.CharField()


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()


def first_error(errors) -> str:
    """Flatten DRF's error structure to its first human-readable message."""
    if isinstance(errors, dict):
        for value in errors.values():
            return first_error(value)
    if isinstance(errors, (list, tuple)) and errors:
        return first_error(errors[0])
    return str(errors) if errors else "Invalid request"
