import logging

logger = logging.getLogger("auth")


def client_ip(request) -> str | None:
    """Return the caller's address, preferring the first X-Forwarded-For hop."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR")


def log_auth_event(action: str, request, user=None, status: str = "success", extra: dict | None = None):
    """Emit a structured account event with action, user, role, ip, and status."""
    payload = {
        "action": action,
        "ip": client_ip(request),
        "status": status,
    }
    if user is not None and getattr(user, "is_authenticated", False):
        payload["user_id"] = getattr(user, "id", None)
        payload["role"] = getattr(user, "role", None)
    if extra:
        payload.update(extra)
    logger.info(payload)
