"""
Byte-level alphabet: a reversible mapping between raw bytes and printable characters.

The table is the GPT-2 ``bytes_to_unicode`` scheme used by byte-level BPE
vocabularies (GPT-2, Llama 3, Qwen2, Qwen3). Bytes that are already visible
characters map to themselves; every other byte is shifted into the code points
starting at 256, in byte order.
"""

from typing import Final

from .errors import InvalidByteMappingError


def _visible_bytes() -> list[int]:
    """Return the bytes that stand for themselves: '!'..'~', '¡'..'¬', '®'..'ÿ'."""
    return (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("¡"), ord("¬") + 1))
        + list(range(ord("®"), ord("ÿ") + 1))
    )


def _build_table() -> dict[int, str]:
    visible = _visible_bytes()
    table = {b: chr(b) for b in visible}
    n = 0
    for b in range(256):
        if b not in table:
            table[b] = chr(256 + n)
            n += 1
    return table


class ByteLevelAlphabet:
    """Bijection between the 256 byte values and 256 printable characters."""

    def __init__(self) -> None:
        self._byte_to_char: dict[int, str] = _build_table()
        self._char_to_byte: dict[str, int] = {
            c: b for b, c in self._byte_to_char.items()
        }
        # bytes.translate lookup: byte -> mapped char, indexed by byte value
        self._chars: tuple[str, ...] = tuple(self._byte_to_char[b] for b in range(256))

    def encode_byte(self, b: int) -> str:
        if not 0 <= b <= 255:
            raise ValueError(f"byte out of range: {b}")
        return self._chars[b]

    def decode_char(self, c: str) -> int:
        try:
            return self._char_to_byte[c]
        except KeyError:
            raise InvalidByteMappingError(
                "character is not part of the byte-level alphabet", char=c
            ) from None

    def encode_bytes(self, data: bytes) -> str:
        """Map every byte of ``data`` to its alphabet character."""
        chars = self._chars
        return "".join([chars[b] for b in data])

    def encode_text(self, text: str) -> str:
        """Map the UTF-8 encoding of ``text`` through the alphabet."""
        return self.encode_bytes(text.encode("utf-8"))

    def decode_text(self, text: str) -> bytes:
        """
        Reverse the alphabet mapping for a string of mapped characters.

        :raises InvalidByteMappingError: If ``text`` contains a character that
            no byte maps to.
        """
        lookup = self._char_to_byte
        out = bytearray()
        for pos, c in enumerate(text):
            b = lookup.get(c)
            if b is None:
                raise InvalidByteMappingError(
                    "character is not part of the byte-level alphabet",
                    char=c,
                    position=pos,
                )
            out.append(b)
        return bytes(out)

    def characters(self) -> tuple[str, ...]:
        """Return all 256 alphabet characters in byte order."""
        return self._chars


BYTE_LEVEL_ALPHABET: Final[ByteLevelAlphabet] = ByteLevelAlphabet()
