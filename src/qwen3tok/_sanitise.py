"""
Utilities for rendering byte-level tokens as readable strings in messages.
"""

import unicodedata

from ._byte_level import BYTE_LEVEL_ALPHABET
from .errors import InvalidByteMappingError


def _escape_ctrl_chars(s: str) -> str:
    """Replace all Unicode control characters with their escape sequences."""
    cleaned = []
    for c in s:
        # control category codes vary: Cc, Cf, Cn etc.
        # so check via first character
        if unicodedata.category(c)[0] != "C":
            cleaned.append(c)
        else:
            cleaned.append(f"\\u{ord(c):04x}")
    return "".join(cleaned)


def render_bytes(b: bytes) -> str:
    """
    Decode bytes as UTF-8 and escape control characters.

    Invalid UTF-8 sequences are replaced with the Unicode replacement character.
    """
    return _escape_ctrl_chars(b.decode("utf-8", errors="replace"))


def render_token(token: str) -> str:
    """
    Render a byte-level token (e.g. ``"Ġhello"``) as the text it stands for.

    Strings that are not byte-level encoded are shown escaped but otherwise as is.
    """
    try:
        return render_bytes(BYTE_LEVEL_ALPHABET.decode_text(token))
    except InvalidByteMappingError:
        return _escape_ctrl_chars(token)
