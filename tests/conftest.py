"""Shared fixtures for Navigator Messages tests."""
import os
import pytest
from datetime import datetime, timedelta, timezone

from navigator_messages import (
    MessageDefaults,
    MessageEncryptor,
    MessageVerifier,
    get_defaults,
)


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def reset_defaults():
    """Process-wide defaults are cached; start every test from scratch."""
    get_defaults.cache_clear()
    yield
    get_defaults.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def defaults():
    return MessageDefaults()


@pytest.fixture
def secret():
    return os.urandom(32)


@pytest.fixture
def encryptor(secret, clock, defaults):
    """AEAD (aes-256-gcm) encryptor."""
    return MessageEncryptor(secret, clock=clock, defaults=defaults)


@pytest.fixture
def cbc_encryptor(secret, clock, defaults):
    """Block cipher encryptor, signed with HMAC."""
    return MessageEncryptor(
        secret, cipher="aes-256-cbc", clock=clock, defaults=defaults
    )


@pytest.fixture
def verifier(clock, defaults):
    return MessageVerifier(b"Hey, I'm a secret!", clock=clock, defaults=defaults)
