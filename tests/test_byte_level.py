"""Tests for the byte-level alphabet."""

import pytest

from qwen3tok import BYTE_LEVEL_ALPHABET, InvalidByteMappingError


def test_alphabet_is_a_bijection():
    """All 256 bytes map to distinct characters."""
    chars = [BYTE_LEVEL_ALPHABET.encode_byte(b) for b in range(256)]
    assert len(set(chars)) == 256
    assert all(BYTE_LEVEL_ALPHABET.decode_char(c) == b for b, c in enumerate(chars))


@pytest.mark.parametrize(
    ("byte", "char"),
    [
        (ord("A"), "A"),
        (ord("!"), "!"),
        (ord("~"), "~"),
        (0xA1, "¡"),
        (0xFF, "ÿ"),
        (0x00, "Ā"),
        (0x0A, "Ċ"),  # newline -> "Ċ"
        (0x20, "Ġ"),  # space -> "Ġ"
        (0x7F, "ġ"),
        (0xAD, "Ń"),  # soft hyphen -> "Ń"
    ],
)
def test_reference_table_entries(byte, char):
    """Table matches the GPT-2 bytes_to_unicode scheme."""
    assert BYTE_LEVEL_ALPHABET.encode_byte(byte) == char


def test_shifted_code_points_are_dense():
    """Non-visible bytes take code points 256..323 in byte order."""
    shifted = sorted(ord(c) for c in BYTE_LEVEL_ALPHABET.characters() if ord(c) >= 256)
    assert shifted == list(range(256, 256 + 68))


def test_round_trip_arbitrary_bytes():
    """Every byte sequence, including invalid UTF-8, survives the mapping."""
    data = bytes(range(256)) + b"\xff\xfe\x80"
    assert BYTE_LEVEL_ALPHABET.decode_text(BYTE_LEVEL_ALPHABET.encode_bytes(data)) == data


def test_encode_text_uses_utf8():
    """Text is mapped through its UTF-8 bytes."""
    assert BYTE_LEVEL_ALPHABET.encode_text(" é") == "ĠÃ©"


def test_decode_rejects_foreign_character():
    """Characters outside the alphabet raise InvalidByteMappingError with position."""
    with pytest.raises(InvalidByteMappingError) as exc:
        BYTE_LEVEL_ALPHABET.decode_text("ab€c")
    assert exc.value.char == "€"
    assert exc.value.position == 2


def test_encode_byte_out_of_range():
    """Values outside 0..255 are rejected."""
    with pytest.raises(ValueError):
        BYTE_LEVEL_ALPHABET.encode_byte(256)
