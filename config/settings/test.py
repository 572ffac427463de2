from .base import *  # noqa
from .base import BASE_DIR, PHONE_VERIFICATION
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

# Test settings: force SQLite to keep CI/pytest independent of external services
DEBUG = False

# Use a local SQLite database for reliability and speed in tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

# Fast hashing keeps factory-heavy tests quick
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Manifest storage needs collectstatic; tests only need plain storage
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

# Capture outbound SMS in memory (see verification.sms.outbox)
SMS_BACKEND = "verification.sms.LocmemSmsBackend"

PHONE_VERIFICATION = {
    **PHONE_VERIFICATION,
    "SKIP_SMS": False,
    "EXPOSE_CODE_ON_FAILURE": False,
}

# Slightly relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "1000/min",
    "anon": "1000/min",
    "signin": "1000/min",
    "register": "1000/min",
    "profile": "1000/min",
    "phone_verify_send": "1000/min",
    "phone_verify_confirm": "1000/min",
}
