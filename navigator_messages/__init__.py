"""Navigator Messages — signed and encrypted tokens.

Produces tamper-evident, optionally confidential tokens carrying an
application payload plus expiration and purpose metadata, safe to hand to
untrusted clients (cookies, one-time links, capability tokens).

Security Note (Threat Model):
    Secrets are provided by the caller and held in process memory for the
    lifetime of each encryptor/verifier. How secrets are stored, derived
    or distributed is out of scope.
"""

from .version import __version__
from .exceptions import MessageError, FormatError, InvalidMessage, InvalidSignature
from .conf import MessageConfig, MessageDefaults, get_defaults
from .ciphers import generate_secret, key_len
from .serializers import (
    Serializer,
    JSONSerializer,
    JsonPickleSerializer,
    NullSerializer,
    get_serializer,
)
from .codec import Codec
from .verifier import MessageVerifier
from .encryptor import MessageEncryptor
from .rotator import Rotator, EncryptorRotator, VerifierRotator

__all__ = [
    "__version__",
    "MessageError",
    "FormatError",
    "InvalidMessage",
    "InvalidSignature",
    "MessageConfig",
    "MessageDefaults",
    "get_defaults",
    "generate_secret",
    "key_len",
    "Serializer",
    "JSONSerializer",
    "JsonPickleSerializer",
    "NullSerializer",
    "get_serializer",
    "Codec",
    "MessageVerifier",
    "MessageEncryptor",
    "Rotator",
    "EncryptorRotator",
    "VerifierRotator",
]
