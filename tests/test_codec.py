"""
Tests for the Codec base: text encoding and serializer delegation.
"""
import pytest

from navigator_messages import Codec, FormatError, MessageConfig


def make_codec(url_safe: bool = False, serializer="json") -> Codec:
    return Codec.from_config(
        MessageConfig(secret=b"secret", serializer=serializer, url_safe=url_safe)
    )


class TestEncoding:
    """Tests for base64 encode/decode."""

    def test_standard_encoding_is_padded(self):
        codec = make_codec()
        assert codec.encode(b"\xfb\xff") == "+/8="
        assert codec.decode("+/8=") == b"\xfb\xff"

    def test_url_safe_encoding_is_unpadded(self):
        codec = make_codec(url_safe=True)
        assert codec.encode(b"\xfb\xff") == "-_8"
        assert codec.decode("-_8") == b"\xfb\xff"

    def test_per_call_override(self):
        codec = make_codec(url_safe=True)
        assert codec.encode(b"\xfb\xff", url_safe=False) == "+/8="

    @pytest.mark.parametrize("text", ["not base64!", "abc", "Zm9v\n"])
    def test_standard_rejects_malformed_text(self, text):
        with pytest.raises(FormatError):
            make_codec().decode(text)

    def test_standard_rejects_url_safe_alphabet(self):
        with pytest.raises(FormatError):
            make_codec().decode("-_8=")

    def test_url_safe_rejects_standard_alphabet(self):
        with pytest.raises(FormatError):
            make_codec(url_safe=True).decode("+/8")

    def test_decode_requires_text(self):
        with pytest.raises(FormatError):
            make_codec().decode(b"Zm9v")

    @pytest.mark.parametrize(
        "url_safe,length,expected",
        [
            (False, 12, 16),
            (False, 16, 24),
            (False, 20, 28),
            (True, 12, 16),
            (True, 16, 22),
            (True, 20, 27),
        ],
    )
    def test_encoded_length(self, url_safe, length, expected):
        codec = make_codec(url_safe=url_safe)
        assert codec.encoded_length(length) == expected
        assert len(codec.encode(b"x" * length)) == expected


class TestSerialization:
    """Tests for serializer delegation and error normalization."""

    def test_round_trip(self):
        codec = make_codec()
        value = {"a": [1, 2, 3], "b": None}
        assert codec.deserialize(codec.serialize(value)) == value

    def test_unserializable_value(self):
        with pytest.raises(FormatError):
            make_codec().serialize(object())

    def test_malformed_bytes(self):
        with pytest.raises(FormatError):
            make_codec().deserialize(b"{not json")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            make_codec().deserialize(b"\xff")


class TestCanonicalEncoding:
    """Only the canonical encoding of some bytes is accepted."""

    @pytest.mark.parametrize("text", ["+/9=", "+/+=", "+///"])
    def test_standard_non_zero_trailing_bits(self, text):
        with pytest.raises(FormatError):
            make_codec().decode(text)

    @pytest.mark.parametrize("text", ["-_9", "-__"])
    def test_url_safe_non_zero_trailing_bits(self, text):
        with pytest.raises(FormatError):
            make_codec(url_safe=True).decode(text)

    def test_url_safe_rejects_padding(self):
        with pytest.raises(FormatError):
            make_codec(url_safe=True).decode("-_8=")

    @pytest.mark.parametrize("url_safe", [False, True])
    def test_every_length_round_trips(self, url_safe):
        codec = make_codec(url_safe=url_safe)
        for length in range(0, 40):
            data = bytes(range(255, 255 - length, -1))
            assert codec.decode(codec.encode(data)) == data
