"""
Tests for process-wide defaults and per-instance configuration.
"""
import pytest
from pydantic import ValidationError

from navigator_messages import (
    JSONSerializer,
    MessageConfig,
    MessageDefaults,
    MessageEncryptor,
    MessageVerifier,
    generate_secret,
    get_defaults,
    key_len,
)


class TestMessageDefaults:
    """Tests for MessageDefaults."""

    def test_builtin_defaults(self):
        defaults = MessageDefaults()
        assert defaults.default_cipher == "aes-256-gcm"
        assert defaults.default_serializer == "json"
        assert defaults.default_digest == "SHA1"
        assert defaults.legacy_metadata is False

    def test_non_authenticated_cipher(self):
        assert MessageDefaults(
            use_authenticated_encryption=False
        ).default_cipher == "aes-256-cbc"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", "false")
        monkeypatch.setenv("NAV_MESSAGES_SERIALIZER", "jsonpickle")
        monkeypatch.setenv("NAV_MESSAGES_DIGEST", "sha256")
        monkeypatch.setenv("NAV_MESSAGES_LEGACY_METADATA", "yes")
        defaults = MessageDefaults.from_env()
        assert defaults.default_cipher == "aes-256-cbc"
        assert defaults.default_serializer == "jsonpickle"
        assert defaults.default_digest == "SHA256"
        assert defaults.legacy_metadata is True

    @pytest.mark.parametrize(
        "field,value",
        [("default_serializer", "marshal"), ("default_digest", "MD4")],
    )
    def test_invalid(self, field, value):
        with pytest.raises(ValidationError):
            MessageDefaults(**{field: value})

    def test_read_once(self, monkeypatch):
        monkeypatch.delenv("NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", raising=False)
        first = get_defaults()
        monkeypatch.setenv("NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", "false")
        assert get_defaults() is first
        assert get_defaults().default_cipher == "aes-256-gcm"

    def test_instances_keep_their_defaults(self, monkeypatch):
        monkeypatch.delenv("NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", raising=False)
        encryptor = MessageEncryptor(generate_secret("aes-256-gcm"))
        monkeypatch.setenv("NAV_MESSAGES_AUTHENTICATED_ENCRYPTION", "false")
        get_defaults.cache_clear()
        assert get_defaults().default_cipher == "aes-256-cbc"
        assert encryptor.config.cipher == "aes-256-gcm"
        assert encryptor.decrypt_and_verify(encryptor.encrypt_and_sign(1)) == 1

    def test_verifier_uses_default_digest(self):
        verifier = MessageVerifier(
            b"secret", defaults=MessageDefaults(default_digest="SHA384")
        )
        assert verifier.config.digest == "SHA384"


class TestMessageConfig:
    """Tests for MessageConfig."""

    def test_resolves_serializer(self):
        config = MessageConfig(secret=b"secret", serializer="json")
        assert isinstance(config.serializer, JSONSerializer)

    def test_default_serializer_resolved(self):
        assert isinstance(MessageConfig(secret=b"secret").serializer, JSONSerializer)

    def test_text_secret(self):
        assert MessageConfig(secret="secret").secret == b"secret"

    def test_frozen(self):
        config = MessageConfig(secret=b"secret")
        with pytest.raises(ValidationError):
            config.url_safe = True

    def test_secret_hidden(self):
        config = MessageConfig(secret=b"top-secret", sign_secret=b"also-secret")
        assert "top-secret" not in repr(config)
        assert "also-secret" not in repr(config)

    def test_derive_validates(self):
        config = MessageConfig(secret=generate_secret("aes-256-gcm"), cipher="aes-256-gcm")
        assert config.derive(cipher="chacha20-poly1305").cipher == "chacha20-poly1305"
        with pytest.raises(ValidationError):
            config.derive(cipher="aes-128-gcm")

    def test_cipher_name_normalized(self):
        config = MessageConfig(secret=generate_secret("aes-256-gcm"), cipher="AES-256-GCM")
        assert config.cipher == "aes-256-gcm"

    def test_key_len(self):
        assert key_len("aes-128-gcm") == 16
        assert key_len("aes-192-cbc") == 24
        assert key_len("chacha20-poly1305") == 32
        assert len(generate_secret("aes-128-cbc")) == 16
