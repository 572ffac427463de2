import pytest
from verification import sms


@pytest.fixture(autouse=True)
def sms_outbox():
    """Empty the in-memory SMS outbox around every test."""
    sms.outbox.clear()
    yield sms.outbox
    sms.outbox.clear()
