"""
Message Encryptor — confidential, tamper-evident tokens.

Token formats (every segment base64 encoded, joined with ``--``):

- AEAD ciphers (``aes-*-gcm``, ``chacha20-poly1305``)::

    ciphertext--iv--auth_tag

- Block ciphers (``aes-*-cbc``), signed afterwards by an internal
  :class:`MessageVerifier` over the whole string::

    base64(ciphertext--iv)--mac

Signing block-cipher output before any decryption is attempted keeps
forged ciphertexts away from the padding check (no padding oracle).

Security Note:
    A fresh random IV is generated per message and cipher state is never
    shared between calls. Never log plaintext, tokens or key material.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, modes

from .ciphers import AUTH_TAG_LENGTH, get_cipher, key_len
from .codec import SEPARATOR, Codec
from .conf import MessageConfig, MessageDefaults, get_defaults, utc_now
from .exceptions import InvalidMessage
from .metadata import Expiry
from .serializers import NullSerializer, Serializer
from .verifier import MessageVerifier

logger = logging.getLogger("navigator.messages")


class MessageEncryptor(Codec):
    """Encrypt values into opaque tokens and decrypt them back.

    Example::

        key = MessageEncryptor.key_len()
        crypt = MessageEncryptor(secrets.token_bytes(key))
        token = crypt.encrypt_and_sign("my secret data", purpose="login")
        crypt.decrypt_and_verify(token, purpose="login")  # "my secret data"
        crypt.decrypt_and_verify(token)                   # None

    Args:
        secret: Encryption key, exactly as long as the cipher's key size.
        sign_secret: Signing key for block ciphers (defaults to ``secret``).
            Ignored by AEAD ciphers.
        cipher: Cipher identifier, default from process-wide defaults.
        digest: HMAC digest for block ciphers.
        serializer: Serializer name or instance.
        url_safe: Use URL-safe, unpadded base64.
        legacy_metadata: Write and detect dual metadata envelopes.
        clock: Callable returning the current aware UTC datetime.
        defaults: Defaults to use instead of the process-wide ones.
    """

    def __init__(
        self,
        secret: Union[bytes, str],
        sign_secret: Union[bytes, str, None] = None,
        *,
        cipher: Optional[str] = None,
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
            sign_secret=sign_secret,
            cipher=cipher or defaults.default_cipher,
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
        self._cipher = get_cipher(config.cipher)
        self._verifier: Optional[MessageVerifier] = None
        if not self._cipher.authenticated:
            self._verifier = MessageVerifier.from_config(
                MessageConfig(
                    secret=config.sign_secret or config.secret,
                    digest=config.digest,
                    serializer=NullSerializer(),
                    url_safe=config.url_safe,
                    clock=config.clock,
                )
            )
        self._encoded_iv_length = self.encoded_length(self._cipher.iv_size)
        self._encoded_tag_length = self.encoded_length(AUTH_TAG_LENGTH)
        logger.debug(
            "MessageEncryptor ready: cipher=%s aead=%s serializer=%s url_safe=%s",
            config.cipher, self.aead_mode,
            type(config.serializer).__name__, config.url_safe,
        )

    @property
    def aead_mode(self) -> bool:
        return self._cipher.authenticated

    @classmethod
    def key_len(cls, cipher: Optional[str] = None) -> int:
        """Key size in bytes for ``cipher`` (or the default cipher)."""
        return key_len(cipher or get_defaults().default_cipher)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt_and_sign(
        self,
        value: Any,
        expires_at: Optional[datetime] = None,
        expires_in: Optional[Expiry] = None,
        purpose: Any = None,
    ) -> str:
        """Encrypt ``value`` (and sign it, for block ciphers).

        Args:
            value: Any value the serializer accepts.
            expires_at: Datetime after which the message is no longer valid.
            expires_in: Seconds or timedelta the message stays valid.
            purpose: The message only verifies with this same purpose.

        Returns:
            The token.
        """
        data = self.serialize_with_metadata(value, expires_at, expires_in, purpose)
        return self._sign(self._encrypt(data))

    def decrypt_and_verify(self, token: str, purpose: Any = None) -> Any:
        """Decrypt and verify ``token``.

        Returns:
            The original value, or None if the message expired or was
            issued for a different purpose.

        Raises:
            InvalidMessage: The token was tampered with, is malformed, or was
                produced with another secret/cipher. Block-cipher signature
                failures raise its subclass InvalidSignature.
        """
        if not isinstance(token, str):
            raise InvalidMessage("Encrypted message must be text")
        try:
            data = self._decrypt(self._verify(token))
            return self.deserialize_with_metadata(data, purpose)
        except (ValueError, TypeError) as err:
            raise InvalidMessage("Unable to decrypt message") from err

    # ------------------------------------------------------------------
    # Signing (block ciphers only)
    # ------------------------------------------------------------------

    def _sign(self, message: str) -> str:
        if self._verifier is None:
            return message
        return self._verifier.sign(message.encode("ascii"))

    def _verify(self, token: str) -> str:
        if self._verifier is None:
            return token
        return self._verifier.verify(token).decode("ascii")

    # ------------------------------------------------------------------
    # Cipher operations
    # ------------------------------------------------------------------

    def _block_cipher(self, iv: bytes) -> Cipher:
        return Cipher(self._cipher.block_algorithm(self.config.secret), modes.CBC(iv))

    def _encrypt(self, data: bytes) -> str:
        iv = self._cipher.random_iv()
        if self.aead_mode:
            aead = self._cipher.aead_cls(self.config.secret)
            sealed = aead.encrypt(iv, data, b"")
            parts = [sealed[:-AUTH_TAG_LENGTH], iv, sealed[-AUTH_TAG_LENGTH:]]
        else:
            padder = padding.PKCS7(self._cipher.block_algorithm.block_size).padder()
            padded = padder.update(data) + padder.finalize()
            encryptor = self._block_cipher(iv).encryptor()
            parts = [encryptor.update(padded) + encryptor.finalize(), iv]
        return SEPARATOR.join(self.encode(part) for part in parts)

    def _decrypt(self, message: str) -> bytes:
        encrypted, iv, auth_tag = self._extract_parts(message)
        if self.aead_mode:
            # reject truncated tags before they reach the cipher
            if len(auth_tag) != AUTH_TAG_LENGTH:
                raise InvalidMessage("Invalid authentication tag length")
            return self._open(encrypted, iv, auth_tag)
        decryptor = self._block_cipher(iv).decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        unpadder = padding.PKCS7(self._cipher.block_algorithm.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()

    def _open(self, encrypted: bytes, iv: bytes, auth_tag: bytes) -> bytes:
        aead = self._cipher.aead_cls(self.config.secret)
        try:
            return aead.decrypt(iv, encrypted + auth_tag, b"")
        except InvalidTag:
            raise InvalidMessage("Message authentication failed") from None

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def _extract_part(self, message: str, rindex: int, length: int) -> str:
        index = rindex - length
        start = index - len(SEPARATOR)
        if start < 0 or message[start:index] != SEPARATOR:
            raise InvalidMessage("Malformed encrypted message")
        return message[index:rindex]

    def _extract_parts(self, message: str) -> tuple[bytes, bytes, Optional[bytes]]:
        """Split ``ciphertext--iv[--tag]`` from the right end.

        Segment lengths are known in advance, so separators inside the
        encoded ciphertext cannot cause ambiguity.
        """
        rindex = len(message)
        auth_tag = None
        if self.aead_mode:
            auth_tag = self._extract_part(message, rindex, self._encoded_tag_length)
            rindex -= len(SEPARATOR) + self._encoded_tag_length
        iv = self._extract_part(message, rindex, self._encoded_iv_length)
        rindex -= len(SEPARATOR) + self._encoded_iv_length
        encrypted = message[:rindex]
        return (
            self.decode(encrypted),
            self.decode(iv),
            self.decode(auth_tag) if auth_tag is not None else None,
        )
