import json
import logging
import re
from datetime import datetime, timezone

# LogRecord attributes that are never copied into the payload
_RESERVED = frozenset(
    (
        "msg",
        "args",
        "levelname",
        "levelno",
        "name",
        "created",
        "msecs",
        "relativeCreated",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "exc_info",
        "exc_text",
        "stack_info",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    )
)

# Keys whose values are secrets and must never reach log storage
SECRET_KEYS = frozenset(("code", "dev_code", "devCode", "verification_code", "phone_verification_code", "body"))
PHONE_KEYS = frozenset(("phone", "to"))

_PHONE_RE = re.compile(r"^\+?\d{4,15}$")


def mask_phone(value) -> str:
    """Keep the country prefix and last two digits of a phone number.

    `+40711111111` becomes `+40*******11`. Values that do not look like a
    phone number are returned unchanged.
    """
    text = str(value)
    if not _PHONE_RE.match(text):
        return text
    head = 3 if text.startswith("+") else 2
    if len(text) <= head + 2:
        return text
    return text[:head] + "*" * (len(text) - head - 2) + text[-2:]


def scrub(payload: dict) -> dict:
    """Return a copy of `payload` with secrets redacted and phones masked."""
    cleaned = {}
    for key, value in payload.items():
        if key in SECRET_KEYS and value is not None:
            cleaned[key] = "***"
        elif key in PHONE_KEYS and value:
            cleaned[key] = mask_phone(value)
        elif isinstance(value, dict):
            cleaned[key] = scrub(value)
        else:
            cleaned[key] = value
    return cleaned


class JsonFormatter(logging.Formatter):
    """JSON formatter for production logs.

    - Merges base fields (time, level, name, message) with any attributes
      provided via `extra` on the log record (e.g., event, user_id).
    - If the message is a dict, it is merged into the payload under its keys.
    - Verification codes are redacted and phone numbers masked.
    - Dates are ISO-8601 UTC.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
        }

        msg = record.msg if isinstance(record.msg, dict) else record.getMessage()
        if isinstance(msg, dict):
            payload = {**base, **msg}
        else:
            payload = {**base, "message": msg}

        for key, value in record.__dict__.items():
            if key in _RESERVED:
                continue
            # Only include simple JSON-serializable values
            try:
                json.dumps(value)
                payload.setdefault(key, value)
            except TypeError:
                payload.setdefault(key, str(value))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(scrub(payload), ensure_ascii=False)
