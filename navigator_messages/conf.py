"""
Messages Configuration — process-wide defaults and per-instance settings.

Process-wide defaults are read from environment variables once:
    NAV_MESSAGES_AUTHENTICATED_ENCRYPTION = true|false  (AEAD vs. CBC default cipher)
    NAV_MESSAGES_SERIALIZER = json|jsonpickle|null
    NAV_MESSAGES_DIGEST = SHA1|SHA256|...
    NAV_MESSAGES_LEGACY_METADATA = true|false

Encryptors and verifiers resolve their settings into an immutable
:class:`MessageConfig` at construction; changing the environment afterwards
never alters an existing instance.

Security Note:
    Never log key material. Secrets are excluded from reprs.
"""
import os
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .ciphers import get_cipher, get_digest
from .serializers import get_serializer

logger = logging.getLogger("navigator.messages")

_TRUE_VALUES = ("1", "true", "yes", "on")


def utc_now() -> datetime:
    """Default clock: current aware UTC time."""
    return datetime.now(timezone.utc)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


class MessageDefaults(BaseModel):
    """Process-wide defaults applied when a setting is not given explicitly."""

    model_config = ConfigDict(frozen=True)

    use_authenticated_encryption: bool = True
    default_serializer: str = Field(default="json")
    default_digest: str = Field(default="SHA1")
    legacy_metadata: bool = False

    @field_validator("default_serializer")
    @classmethod
    def validate_serializer(cls, v: str) -> str:
        """Validate the serializer name is registered."""
        get_serializer(v)
        return v.lower()

    @field_validator("default_digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate the digest is supported."""
        get_digest(v)
        return v.upper()

    @property
    def default_cipher(self) -> str:
        if self.use_authenticated_encryption:
            return "aes-256-gcm"
        return "aes-256-cbc"

    @classmethod
    def from_env(cls) -> "MessageDefaults":
        """Create MessageDefaults by loading values from environment.

        Returns:
            Populated MessageDefaults instance.
        """
        defaults = cls(
            use_authenticated_encryption=_env_flag(
                "NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", True
            ),
            default_serializer=os.environ.get("NAV_MESSAGES_SERIALIZER", "json"),
            default_digest=os.environ.get("NAV_MESSAGES_DIGEST", "SHA1"),
            legacy_metadata=_env_flag("NAV_MESSAGES_LEGACY_METADATA", False),
        )
        logger.debug(
            "Message defaults loaded: cipher=%s serializer=%s digest=%s legacy=%s",
            defaults.default_cipher,
            defaults.default_serializer,
            defaults.default_digest,
            defaults.legacy_metadata,
        )
        return defaults


@lru_cache(maxsize=1)
def get_defaults() -> MessageDefaults:
    """Process-wide defaults, read from the environment on first use only."""
    return MessageDefaults.from_env()


class MessageConfig(BaseModel):
    """Validated, immutable configuration of a verifier or encryptor.

    ``cipher`` is None for plain verifiers.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    secret: bytes = Field(repr=False)
    sign_secret: Optional[bytes] = Field(default=None, repr=False)
    cipher: Optional[str] = None
    digest: str = "SHA1"
    serializer: Any = Field(default="json", validate_default=True)
    url_safe: bool = False
    legacy_metadata: bool = False
    clock: Callable[[], datetime] = Field(default=utc_now, repr=False)

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: Optional[str]) -> Optional[str]:
        """Validate cipher is supported."""
        if v is None:
            return v
        return get_cipher(v).name

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate digest is supported."""
        get_digest(v)
        return v.upper()

    @field_validator("serializer")
    @classmethod
    def resolve_serializer(cls, v: Any) -> Any:
        """Resolve serializer names into serializer instances."""
        return get_serializer(v)

    @model_validator(mode="after")
    def validate_secret(self) -> "MessageConfig":
        """Ensure the secret fits the cipher's key size."""
        if not self.secret:
            raise ValueError("secret cannot be empty")
        if self.cipher is not None:
            expected = get_cipher(self.cipher).key_size
            if len(self.secret) != expected:
                raise ValueError(
                    f"secret for {self.cipher} must be exactly {expected} bytes, "
                    f"got {len(self.secret)}"
                )
        return self

    def derive(self, **overrides: Any) -> "MessageConfig":
        """Return a validated copy with ``overrides`` applied.

        Unlike ``model_copy``, the new configuration goes through validation.
        """
        return type(self)(**{**dict(self), **overrides})
