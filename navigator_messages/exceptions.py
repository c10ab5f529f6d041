"""Exceptions raised by Navigator Messages.

Expired or purpose-mismatched messages are never reported as errors:
they resolve to ``None``, exactly like a message that was never issued.
"""


class MessageError(Exception):
    """Base class for every message protection failure."""


class FormatError(MessageError, ValueError):
    """Malformed encoded text or bytes that cannot be deserialized."""


class InvalidMessage(MessageError):
    """A message could not be decrypted or verified."""


class InvalidSignature(InvalidMessage):
    """The message signature does not match its data."""
