"""
Metadata Envelope — expiration and purpose attached to a payload.

The envelope is a plain dict, so any envelope-safe serializer can carry it::

    {"_rails": {"data": <value>, "exp": "2024-01-01T00:00:00.000Z", "pur": "login"}}

The reserved key names are part of the wire format and must never change
for already issued tokens to keep verifying. When a serializer
cannot carry a dict (or legacy mode is on), the already serialized payload is
base64-encoded into a ``"message"`` key and the envelope itself is JSON
encoded (the "dual" envelope).

A payload without metadata is never wrapped. Expiry and purpose are only
evaluated at verification time; a mismatch yields ``None``, never an error.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from .exceptions import FormatError

ENVELOPE_KEY = "_rails"
DATA_KEY = "data"
MESSAGE_KEY = "message"
EXPIRY_KEY = "exp"
PURPOSE_KEY = "pur"

# Opening bytes of a JSON-encoded dual envelope.
DUAL_ENVELOPE_PREFIX = b'{"_rails":{"message":'

Expiry = Union[int, float, timedelta]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def has_metadata(
    expires_at: Optional[datetime] = None,
    expires_in: Optional[Expiry] = None,
    purpose: Any = None,
) -> bool:
    return expires_at is not None or expires_in is not None or purpose is not None


def format_expiry(value: datetime) -> str:
    """ISO-8601 UTC instant with millisecond precision."""
    return _as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_expiry(value: Any) -> datetime:
    """Parse a stored expiry back into an aware UTC datetime.

    Raises:
        FormatError: If the value is not an ISO-8601 instant.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        raise FormatError(f"Invalid expiry type: {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as err:
        raise FormatError(f"Invalid expiry: {value!r}") from err
    return _as_utc(parsed)


def pick_expiry(
    expires_at: Optional[datetime] = None,
    expires_in: Optional[Expiry] = None,
    *,
    now: datetime,
) -> Optional[str]:
    """Resolve a single expiry instant; ``expires_at`` takes precedence."""
    if expires_at is not None:
        return format_expiry(expires_at)
    if expires_in is not None:
        if not isinstance(expires_in, timedelta):
            expires_in = timedelta(seconds=expires_in)
        return format_expiry(now + expires_in)
    return None


def wrap(
    payload: Any,
    expires_at: Optional[datetime] = None,
    expires_in: Optional[Expiry] = None,
    purpose: Any = None,
    *,
    now: datetime,
    mode: str = DATA_KEY,
) -> Any:
    """Wrap ``payload`` in a metadata envelope.

    Args:
        payload: Value (``data`` mode) or encoded inner string (``message`` mode).
        expires_at: Absolute expiry instant.
        expires_in: Relative expiry, seconds or timedelta, added to ``now``.
        purpose: Scope of the message, stored as its string form.
        now: Current time.
        mode: Envelope payload key, ``"data"`` or ``"message"``.

    Returns:
        The envelope dict, or ``payload`` unchanged when no metadata is given.
    """
    if not has_metadata(expires_at, expires_in, purpose):
        return payload
    inner: dict[str, Any] = {mode: payload}
    expiry = pick_expiry(expires_at, expires_in, now=now)
    if expiry is not None:
        inner[EXPIRY_KEY] = expiry
    if purpose is not None:
        inner[PURPOSE_KEY] = str(purpose)
    return {ENVELOPE_KEY: inner}


def is_envelope(candidate: Any) -> bool:
    return isinstance(candidate, dict) and ENVELOPE_KEY in candidate


def is_dual_envelope(data: Union[bytes, str]) -> bool:
    """Cheap prefix check for JSON-encoded dual envelopes; no parsing."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return isinstance(data, (bytes, bytearray)) and data.startswith(DUAL_ENVELOPE_PREFIX)


def unwrap(
    candidate: Any,
    purpose: Any = None,
    *,
    now: datetime,
    mode: str = DATA_KEY,
) -> Any:
    """Extract the payload from ``candidate`` if its metadata is still valid.

    Returns ``None`` when the envelope expired, when purposes differ (both
    must be equal or both absent), or when a purpose is expected but the
    candidate carries no envelope.

    Raises:
        FormatError: If the envelope is structurally invalid.
    """
    if not is_envelope(candidate):
        return candidate if purpose is None else None
    inner = candidate[ENVELOPE_KEY]
    if not isinstance(inner, dict):
        raise FormatError("Invalid metadata envelope")
    expiry = inner.get(EXPIRY_KEY)
    if expiry is not None and _as_utc(now) >= parse_expiry(expiry):
        return None
    expected = str(purpose) if purpose is not None else None
    if inner.get(PURPOSE_KEY) != expected:
        return None
    return inner.get(mode)
