"""
Codec — conversion between application values and textual tokens.

Shared base of :class:`MessageVerifier` and :class:`MessageEncryptor`: byte
to text encoding (standard or URL-safe base64, fixed per instance),
serializer delegation and metadata envelope handling.
"""
import re
import base64
import binascii
import logging
import math
from datetime import datetime
from typing import Any, Optional

import orjson

from . import metadata
from .conf import MessageConfig
from .exceptions import FormatError

logger = logging.getLogger("navigator.messages")

SEPARATOR = "--"

_URL_SAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


class Codec:
    """Serializer-agnostic encoder for message parts."""

    config: MessageConfig

    @classmethod
    def from_config(cls, config: MessageConfig):
        """Build an instance straight from a validated configuration."""
        instance = cls.__new__(cls)
        instance._setup(config)
        return instance

    def _setup(self, config: MessageConfig) -> None:
        self.config = config
        self._serializer = config.serializer
        self._url_safe = config.url_safe
        self._dual_envelope = config.legacy_metadata or not getattr(
            config.serializer, "envelope_safe", True
        )

    @property
    def url_safe(self) -> bool:
        return self._url_safe

    @property
    def serializer(self) -> Any:
        return self._serializer

    def now(self) -> datetime:
        return self.config.clock()

    # ------------------------------------------------------------------
    # Text encoding
    # ------------------------------------------------------------------

    def encode(self, data: bytes, url_safe: Optional[bool] = None) -> str:
        if url_safe is None:
            url_safe = self._url_safe
        if url_safe:
            return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")
        return base64.b64encode(data).decode("ascii")

    def decode(self, text: str, url_safe: Optional[bool] = None) -> bytes:
        """Strictly decode base64 text.

        Raises:
            FormatError: If ``text`` is not valid for the selected alphabet.
        """
        if url_safe is None:
            url_safe = self._url_safe
        if not isinstance(text, str):
            raise FormatError(f"Expected encoded text, got {type(text).__name__}")
        if url_safe and not _URL_SAFE_ALPHABET.fullmatch(text):
            raise FormatError("Invalid URL-safe base64 text")
        try:
            if url_safe:
                data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
            else:
                data = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as err:
            raise FormatError("Invalid base64 text") from err
        # only the canonical encoding is accepted; non-zero trailing bits are rejected
        if self.encode(data, url_safe=url_safe) != text:
            raise FormatError("Non-canonical base64 text")
        return data

    def encoded_length(self, length: int) -> int:
        """Length of the encoded form of ``length`` raw bytes."""
        if self._url_safe:
            return math.ceil(4 * length / 3)  # unpadded
        return 4 * math.ceil(length / 3)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self, value: Any) -> bytes:
        try:
            return self._serializer.serialize(value)
        except Exception as err:
            raise FormatError(f"Unable to serialize value: {err}") from err

    def deserialize(self, data: bytes) -> Any:
        try:
            return self._serializer.deserialize(data)
        except Exception as err:
            raise FormatError(f"Unable to deserialize value: {err}") from err

    def serialize_with_metadata(
        self,
        value: Any,
        expires_at: Optional[datetime] = None,
        expires_in: Optional[metadata.Expiry] = None,
        purpose: Any = None,
    ) -> bytes:
        """Serialize ``value``, wrapped in a metadata envelope when needed."""
        if not metadata.has_metadata(expires_at, expires_in, purpose):
            return self.serialize(value)
        if self._dual_envelope:
            inner = self.encode(self.serialize(value), url_safe=False)
            envelope = metadata.wrap(
                inner, expires_at, expires_in, purpose,
                now=self.now(), mode=metadata.MESSAGE_KEY,
            )
            return orjson.dumps(envelope)
        envelope = metadata.wrap(
            value, expires_at, expires_in, purpose, now=self.now(),
        )
        return self.serialize(envelope)

    def deserialize_with_metadata(self, data: bytes, purpose: Any = None) -> Any:
        """Deserialize ``data`` and check its metadata.

        Returns:
            The payload, or None if expired or scoped to another purpose.

        Raises:
            FormatError: Malformed data or envelope.
        """
        if self._dual_envelope and metadata.is_dual_envelope(data):
            try:
                envelope = orjson.loads(data)
            except orjson.JSONDecodeError as err:
                raise FormatError("Invalid metadata envelope") from err
            inner = metadata.unwrap(
                envelope, purpose, now=self.now(), mode=metadata.MESSAGE_KEY,
            )
            if inner is None:
                return None
            return self.deserialize(self.decode(inner, url_safe=False))
        return metadata.unwrap(self.deserialize(data), purpose, now=self.now())
