"""Pluggable SMS delivery.

Mirrors Django's email backends: `SMS_BACKEND` holds the dotted path of
the backend class and `send_sms()` delivers through it.

- TwilioSmsBackend: production delivery through the Twilio REST API.
- ConsoleSmsBackend: prints messages instead of sending them (development).
- LocmemSmsBackend: appends messages to `outbox` (tests).
"""

import logging
import sys
from typing import NamedTuple, Optional

from django.conf import settings
from django.utils.module_loading import import_string
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

logger = logging.getLogger("zerowaste.verification")

# Messages captured by LocmemSmsBackend, in send order
outbox: list["SmsMessage"] = []


class SmsMessage(NamedTuple):
    to: str
    body: str


class SmsDeliveryError(Exception):
    """Raised when the provider cannot be reached, rejects the message, or is misconfigured."""


class BaseSmsBackend:
    """Base class for SMS backends; subclasses implement `send_message`."""

    def send_message(self, to: str, body: str) -> Optional[str]:
        """Deliver `body` to `to`. Returns a provider message id when one exists."""
        raise NotImplementedError("subclasses of BaseSmsBackend must override send_message()")


class ConsoleSmsBackend(BaseSmsBackend):
    """Write messages to a stream (stdout by default) instead of sending them.

    The body carries the one-time code, so it goes to the stream only and
    never into log records.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def send_message(self, to: str, body: str) -> Optional[str]:
        self.stream.write(f"SMS to {to}\n{body}\n{'-' * 40}\n")
        self.stream.flush()
        logger.info("sms.console", extra={"event": "sms.console", "to": to})
        return None


class LocmemSmsBackend(BaseSmsBackend):
    def send_message(self, to: str, body: str) -> Optional[str]:
        outbox.append(SmsMessage(to=to, body=body))
        return f"locmem-{len(outbox)}"


class TwilioSmsBackend(BaseSmsBackend):
    """Send messages with the Twilio REST client.

    Credentials and the sender number come from `TWILIO_ACCOUNT_SID`,
    `TWILIO_AUTH_TOKEN` and `TWILIO_PHONE_NUMBER`. Missing credentials are
    reported as a delivery error at send time so the caller decides how to
    degrade.
    """

    def __init__(self, account_sid: Optional[str] = None, auth_token: Optional[str] = None, from_number=None):
        self.account_sid = account_sid or getattr(settings, "TWILIO_ACCOUNT_SID", "")
        self.auth_token = auth_token or getattr(settings, "TWILIO_AUTH_TOKEN", "")
        self.from_number = from_number or getattr(settings, "TWILIO_PHONE_NUMBER", "")
        self._client = None

    def get_client(self):
        if not (self.account_sid and self.auth_token and self.from_number):
            raise SmsDeliveryError("Twilio credentials not configured")
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send_message(self, to: str, body: str) -> Optional[str]:
        client = self.get_client()
        try:
            message = client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioException as exc:
            raise SmsDeliveryError(str(exc)) from exc
        logger.info("sms.sent", extra={"event": "sms.sent", "to": to, "sid": message.sid})
        return message.sid


def get_sms_backend(backend: Optional[str] = None, **kwargs) -> BaseSmsBackend:
    """Instantiate the configured backend (or the dotted path given)."""
    klass = import_string(backend or getattr(settings, "SMS_BACKEND", "verification.sms.ConsoleSmsBackend"))
    return klass(**kwargs)


def send_sms(to: str, body: str, *, backend: Optional[BaseSmsBackend] = None) -> Optional[str]:
    """Send one SMS through `backend` or the configured default."""
    backend = backend or get_sms_backend()
    return backend.send_message(to, body)
