"""
Cipher and digest registry.

Maps the textual algorithm identifiers accepted by encryptors and verifiers
("aes-256-gcm", "SHA256", ...) onto ``cryptography`` primitives, together with
the key and IV sizes needed to build and parse tokens.

Security Note:
    IVs are random per message. Never log key material.
"""
import os
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import algorithms
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

AUTH_TAG_LENGTH = 16  # AEAD tag size, bytes
AEAD_IV_SIZE = 12  # 96-bit nonce
BLOCK_IV_SIZE = 16  # AES block size


@dataclass(frozen=True)
class CipherSpec:
    """Static description of a supported cipher."""

    name: str
    key_size: int
    iv_size: int
    aead_cls: Optional[type] = None
    block_algorithm: Optional[type] = None

    @property
    def authenticated(self) -> bool:
        return self.aead_cls is not None

    def random_iv(self) -> bytes:
        return os.urandom(self.iv_size)


CIPHERS: dict[str, CipherSpec] = {
    "aes-128-gcm": CipherSpec("aes-128-gcm", 16, AEAD_IV_SIZE, aead_cls=AESGCM),
    "aes-192-gcm": CipherSpec("aes-192-gcm", 24, AEAD_IV_SIZE, aead_cls=AESGCM),
    "aes-256-gcm": CipherSpec("aes-256-gcm", 32, AEAD_IV_SIZE, aead_cls=AESGCM),
    "chacha20-poly1305": CipherSpec(
        "chacha20-poly1305", 32, AEAD_IV_SIZE, aead_cls=ChaCha20Poly1305
    ),
    "aes-128-cbc": CipherSpec(
        "aes-128-cbc", 16, BLOCK_IV_SIZE, block_algorithm=algorithms.AES
    ),
    "aes-192-cbc": CipherSpec(
        "aes-192-cbc", 24, BLOCK_IV_SIZE, block_algorithm=algorithms.AES
    ),
    "aes-256-cbc": CipherSpec(
        "aes-256-cbc", 32, BLOCK_IV_SIZE, block_algorithm=algorithms.AES
    ),
}

DIGESTS: dict[str, type] = {
    "SHA1": hashes.SHA1,
    "SHA224": hashes.SHA224,
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


def get_cipher(name: str) -> CipherSpec:
    """Return the CipherSpec registered under ``name``.

    Raises:
        ValueError: If the cipher is not supported.
    """
    try:
        return CIPHERS[name.lower()]
    except (KeyError, AttributeError):
        raise ValueError(
            f"Unsupported cipher: {name!r} (available: {sorted(CIPHERS)})"
        ) from None


def get_digest(name: str) -> hashes.HashAlgorithm:
    """Return a fresh hash algorithm instance for ``name``.

    Raises:
        ValueError: If the digest is not supported.
    """
    try:
        return DIGESTS[name.upper().replace("-", "")]()
    except (KeyError, AttributeError):
        raise ValueError(
            f"Unsupported digest: {name!r} (available: {sorted(DIGESTS)})"
        ) from None


def key_len(cipher: str) -> int:
    """Key size in bytes required by ``cipher``."""
    return get_cipher(cipher).key_size


def generate_secret(cipher: str) -> bytes:
    """Generate a random key suitable for ``cipher``.

    This is a utility for operators to generate new secrets.
    """
    return secrets.token_bytes(key_len(cipher))
