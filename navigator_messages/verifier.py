"""
Message Verifier — HMAC signed, readable tokens.

Token format: ``base64(data)--base64(hmac(secret, data))``.

The payload is only signed, never encrypted: anyone holding the token can
read it, nobody without the secret can alter it. Use
:class:`~navigator_messages.encryptor.MessageEncryptor` for confidentiality.

Security Note:
    Signatures are compared in constant time. Every failure (bad split,
    bad encoding, digest mismatch) raises the same InvalidSignature.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from cryptography.exceptions import InvalidSignature as MacMismatch
from cryptography.hazmat.primitives import hmac

from .ciphers import get_digest
from .codec import SEPARATOR, Codec
from .conf import MessageConfig, MessageDefaults, get_defaults, utc_now
from .exceptions import FormatError, InvalidSignature
from .metadata import Expiry
from .serializers import Serializer

logger = logging.getLogger("navigator.messages")


class MessageVerifier(Codec):
    """Sign values and verify signed tokens.

    Example::

        verifier = MessageVerifier(b"secret", digest="SHA256")
        token = verifier.generate({"user_id": 1}, expires_in=3600)
        verifier.verified(token)  # {"user_id": 1}
    """

    def __init__(
        self,
        secret: Union[bytes, str],
        *,
        digest: Optional[str] = None,
        serializer: Union[str, Serializer, None] = None,
        url_safe: bool = False,
        legacy_metadata: Optional[bool] = None,
        clock: Optional[Callable[[], datetime]] = None,
        defaults: Optional[MessageDefaults] = None,
    ):
        defaults = defaults or get_defaults()
        config = MessageConfig(
            secret=secret,
            digest=digest or defaults.default_digest,
            serializer=(
                serializer if serializer is not None else defaults.default_serializer
            ),
            url_safe=url_safe,
            legacy_metadata=(
                defaults.legacy_metadata if legacy_metadata is None else legacy_metadata
            ),
            clock=clock or utc_now,
        )
        self._setup(config)

    def _setup(self, config: MessageConfig) -> None:
        super()._setup(config)
        self._digest_size = get_digest(config.digest).digest_size
        self._encoded_mac_length = self.encoded_length(self._digest_size)
        logger.debug(
            "MessageVerifier ready: digest=%s serializer=%s url_safe=%s",
            config.digest, type(config.serializer).__name__, config.url_safe,
        )

    def _mac(self, data: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(self.config.secret, get_digest(self.config.digest))
        mac.update(data)
        return mac

    # ------------------------------------------------------------------
    # Raw bytes
    # ------------------------------------------------------------------

    def sign(self, data: bytes) -> str:
        """Sign raw bytes: ``encode(data)--encode(mac)``."""
        digest = self._mac(data).finalize()
        return f"{self.encode(data)}{SEPARATOR}{self.encode(digest)}"

    def verify(self, token: str) -> bytes:
        """Check the signature of ``token`` and return the signed bytes.

        The MAC segment is taken from the right end of the token using its
        known encoded length.

        Raises:
            InvalidSignature: Malformed token or signature mismatch.
        """
        if not isinstance(token, str):
            raise InvalidSignature("Signed message must be text")
        index = len(token) - self._encoded_mac_length
        start = index - len(SEPARATOR)
        if start <= 0 or token[start:index] != SEPARATOR:
            raise InvalidSignature("Malformed signed message")
        try:
            data = self.decode(token[:start])
            signature = self.decode(token[index:])
        except FormatError as err:
            raise InvalidSignature("Malformed signed message") from err
        try:
            self._mac(data).verify(signature)
        except MacMismatch:
            raise InvalidSignature("Signature mismatch") from None
        return data

    def valid_message(self, token: str) -> bool:
        try:
            self.verify(token)
        except InvalidSignature:
            return False
        return True

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def generate(
        self,
        value: Any,
        expires_at: Optional[datetime] = None,
        expires_in: Optional[Expiry] = None,
        purpose: Any = None,
    ) -> str:
        """Serialize ``value`` with optional metadata and sign it."""
        return self.sign(
            self.serialize_with_metadata(value, expires_at, expires_in, purpose)
        )

    def verify_message(self, token: str, purpose: Any = None) -> Any:
        """Verify ``token`` and return its value.

        Returns:
            The value, or None when expired or issued for another purpose.

        Raises:
            InvalidSignature: Tampered or malformed token.
        """
        data = self.verify(token)
        try:
            return self.deserialize_with_metadata(data, purpose)
        except FormatError as err:
            raise InvalidSignature("Unreadable signed message") from err

    def verified(self, token: str, purpose: Any = None) -> Any:
        """Like :meth:`verify_message`, but an invalid token also yields None."""
        try:
            return self.verify_message(token, purpose)
        except InvalidSignature:
            return None
