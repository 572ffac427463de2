from decouple import config as _config

from .base import PHONE_VERIFICATION as BASE_PHONE_VERIFICATION
from .base import *  # noqa

DEBUG = True

# In dev, allow the browsable API and relaxed CORS
CORS_ALLOW_ALL_ORIGINS = True

# SMS backend for dev: log messages unless Twilio is explicitly configured
SMS_BACKEND = _config("SMS_BACKEND", default="verification.sms.ConsoleSmsBackend")

# Outside production a failed delivery hands the code back so flows stay testable
PHONE_VERIFICATION = {
    **BASE_PHONE_VERIFICATION,
    "EXPOSE_CODE_ON_FAILURE": _config("EXPOSE_CODE_ON_FAILURE", default=True, cast=bool),
}

# Optional Redis cache for local parity

_REDIS_URL = _config("REDIS_URL", default="")
if _REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": _REDIS_URL,
        }
    }
    SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "zerowaste.verification": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": False,
        },
    },
}
