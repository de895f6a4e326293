"""
Unit tests for nips.nip19 module.

Tests:
- encode() known vector and prefixes
- decode() / decode_with_prefix() round trip and prefix checks
- EncodingError on odd length and non-hex input
- DecodingError on bad checksum, unknown prefix and non-str input
"""

import pytest

from nostrkit.core.exceptions import DecodingError, EncodingError, KeyCodecError
from nostrkit.models import KeyPrefix
from nostrkit.nips.nip19 import decode, decode_with_prefix, encode, to_note, to_npub, to_nsec


# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)


class TestEncode:
    """Hex to bech32."""

    def test_known_nsec_vector(self):
        assert encode(KeyPrefix.NSEC, VALID_HEX_KEY) == VALID_NSEC_KEY
        assert to_nsec(VALID_HEX_KEY) == VALID_NSEC_KEY

    def test_prefix_as_str(self):
        assert encode("nsec", VALID_HEX_KEY) == VALID_NSEC_KEY

    def test_uppercase_hex_accepted(self):
        assert encode(KeyPrefix.NSEC, VALID_HEX_KEY.upper()) == VALID_NSEC_KEY

    def test_prefixes(self):
        assert to_npub(VALID_HEX_KEY).startswith("npub1")
        assert to_note(VALID_HEX_KEY).startswith("note1")

    def test_odd_length(self):
        with pytest.raises(EncodingError, match="odd length"):
            encode(KeyPrefix.NPUB, "abc")

    def test_non_hex(self):
        with pytest.raises(EncodingError, match="non-hex"):
            encode(KeyPrefix.NPUB, "zz" * 32)

    def test_whitespace_is_not_hex(self):
        with pytest.raises(EncodingError):
            encode(KeyPrefix.NPUB, "ab cd ")

    def test_unknown_prefix(self):
        with pytest.raises(EncodingError, match="prefix"):
            encode("nprofile", VALID_HEX_KEY)

    def test_non_str_input(self):
        with pytest.raises(EncodingError):
            encode(KeyPrefix.NPUB, b"\x00" * 32)


class TestDecode:
    """Bech32 to hex."""

    def test_known_nsec_vector(self):
        assert decode(VALID_NSEC_KEY) == VALID_HEX_KEY

    def test_returns_prefix(self):
        assert decode_with_prefix(VALID_NSEC_KEY) == (KeyPrefix.NSEC, VALID_HEX_KEY)

    @pytest.mark.parametrize("prefix", list(KeyPrefix))
    def test_round_trip(self, prefix):
        hex_value = "00ff" * 16
        assert decode(encode(prefix, hex_value), expected_prefix=prefix) == hex_value

    def test_round_trip_normalizes_case(self):
        assert decode(encode(KeyPrefix.NOTE, "ABCDEF")) == "abcdef"

    def test_expected_prefix_mismatch(self):
        with pytest.raises(DecodingError, match="expected npub"):
            decode(VALID_NSEC_KEY, expected_prefix=KeyPrefix.NPUB)

    def test_bad_checksum(self):
        corrupted = VALID_NSEC_KEY[:-1] + ("q" if VALID_NSEC_KEY[-1] != "q" else "p")
        with pytest.raises(DecodingError, match="checksum"):
            decode(corrupted)

    def test_invalid_npub_is_recoverable(self):
        with pytest.raises(DecodingError):
            decode("npub1invalidchecksum")

    def test_unsupported_prefix(self):
        with pytest.raises(DecodingError, match="unsupported"):
            decode("bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4")

    def test_non_str(self):
        with pytest.raises(DecodingError):
            decode(None)

    def test_errors_share_base(self):
        assert issubclass(EncodingError, KeyCodecError)
        assert issubclass(DecodingError, ValueError)
