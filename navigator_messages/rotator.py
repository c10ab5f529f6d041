"""
Rotator — fallback configurations for verifying and decrypting messages.

A rotator holds one primary verifier/encryptor, always used to produce
tokens, plus an ordered list of fallbacks tried (in registration order) when
the primary rejects a token. Rotating out an old secret or cipher then goes:

    rotator = EncryptorRotator(MessageEncryptor(new_secret))
    rotator.rotate(old_secret)                 # old secret, same cipher
    rotator.rotate(cipher="aes-256-cbc")       # same secret, old cipher

and dropping the fallback once every old token has expired.
"""
import logging
from typing import Any, Callable, Iterable, Optional, Union

from .exceptions import InvalidMessage, InvalidSignature

logger = logging.getLogger("navigator.messages")


class Rotator:
    """Compose a primary instance with fallback instances of the same type.

    Args:
        primary: The verifier or encryptor producing new tokens.
        fallbacks: Already built fallback instances.
        on_rotation: Called without arguments whenever a fallback, rather
            than the primary, accepted a token.
    """

    def __init__(
        self,
        primary: Any,
        fallbacks: Iterable[Any] = (),
        on_rotation: Optional[Callable[[], Any]] = None,
    ):
        self._primary = primary
        self._fallbacks: list[Any] = []
        self._on_rotation = on_rotation
        for fallback in fallbacks:
            self._add(fallback)

    def __repr__(self) -> str:
        return (
            f'<{type(self).__name__} primary={type(self._primary).__name__} '
            f'fallbacks={len(self._fallbacks)}>'
        )

    @property
    def primary(self) -> Any:
        return self._primary

    @property
    def fallbacks(self) -> tuple:
        return tuple(self._fallbacks)

    @property
    def config(self):
        return self._primary.config

    def _add(self, fallback: Any) -> None:
        if not isinstance(fallback, type(self._primary)):
            raise TypeError(
                f"Fallback must be a {type(self._primary).__name__}, "
                f"got {type(fallback).__name__}"
            )
        self._fallbacks.append(fallback)

    def rotate(
        self,
        secret: Union[bytes, str, None] = None,
        sign_secret: Union[bytes, str, None] = None,
        **overrides: Any,
    ) -> "Rotator":
        """Register a fallback derived from the primary's configuration.

        Only the given fields change; everything else is inherited from the
        primary as configured right now. A new ``secret`` without a
        ``sign_secret`` signs with that same secret.

        Returns:
            This rotator, for chaining.
        """
        if secret is not None:
            overrides["secret"] = secret
            overrides["sign_secret"] = sign_secret
        elif sign_secret is not None:
            overrides["sign_secret"] = sign_secret
        config = self._primary.config.derive(**overrides)
        self._add(type(self._primary).from_config(config))
        return self

    def _run(self, operation: Callable[[Any], Any]) -> Any:
        try:
            return operation(self._primary)
        except InvalidMessage as primary_error:
            for index, fallback in enumerate(self._fallbacks, start=1):
                try:
                    result = operation(fallback)
                except InvalidMessage:
                    continue
                logger.debug("Message accepted by rotation fallback #%d", index)
                if self._on_rotation is not None:
                    self._on_rotation()
                return result
            raise primary_error


class EncryptorRotator(Rotator):
    """Rotating :class:`~navigator_messages.encryptor.MessageEncryptor`."""

    def encrypt_and_sign(self, value: Any, **metadata: Any) -> str:
        return self._primary.encrypt_and_sign(value, **metadata)

    def decrypt_and_verify(self, token: str, purpose: Any = None) -> Any:
        return self._run(
            lambda encryptor: encryptor.decrypt_and_verify(token, purpose=purpose)
        )


class VerifierRotator(Rotator):
    """Rotating :class:`~navigator_messages.verifier.MessageVerifier`."""

    def sign(self, data: bytes) -> str:
        return self._primary.sign(data)

    def generate(self, value: Any, **metadata: Any) -> str:
        return self._primary.generate(value, **metadata)

    def verify(self, token: str) -> bytes:
        return self._run(lambda verifier: verifier.verify(token))

    def verify_message(self, token: str, purpose: Any = None) -> Any:
        return self._run(
            lambda verifier: verifier.verify_message(token, purpose=purpose)
        )

    def verified(self, token: str, purpose: Any = None) -> Any:
        try:
            return self.verify_message(token, purpose=purpose)
        except InvalidSignature:
            return None

    def valid_message(self, token: str) -> bool:
        try:
            self.verify(token)
        except InvalidSignature:
            return False
        return True
