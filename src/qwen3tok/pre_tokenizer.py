"""Pre-tokenization: split text into added-token and regex-run segments."""

import unicodedata
from dataclasses import dataclass
from typing import Callable

from .added_tokens import AddedToken, AddedTokenRegistry
from .pattern import compile_pattern

type CharSpans = tuple[tuple[int, int], ...]


@dataclass(frozen=True, slots=True)
class Segment:
    """
    A contiguous slice of the input text.

    ``text`` is the slice after normalization, which is what BPE consumes.

    ``start`` and ``length`` count code points of the source text. Atomic
    segments are added tokens and carry their token in ``added``. When
    normalization changed the slice, ``char_spans`` holds the source
    ``(start, end)`` of every character of ``text``.
    """

    text: str
    is_atomic: bool
    start: int
    length: int
    added: AddedToken | None = None
    char_spans: CharSpans | None = None

    @property
    def end(self) -> int:
        return self.start + self.length

    def source_span(self, first: int, last: int) -> tuple[int, int]:
        """Return the source ``(start, end)`` of characters ``first..last`` of ``text``."""
        if self.char_spans is None:
            return self.start + first, self.start + last + 1
        return self.char_spans[first][0], self.char_spans[last][1]


def _normalize_tracked(
    span: str, normalizer: Callable[[str], str]
) -> tuple[str, list[tuple[int, int]] | None]:
    """
    Normalize ``span`` and map each output character back to its source range.

    The span is normalized one starter at a time (a character with combining
    class 0 plus the marks that follow it). If composition crosses a starter,
    as Hangul jamo do, the whole span becomes a single source range.
    Returns ``None`` for the map when normalization changed nothing.
    """
    normalized = normalizer(span)
    if normalized == span:
        return normalized, None

    chunks: list[tuple[int, int]] = []
    start = 0
    for i in range(1, len(span)):
        if not unicodedata.combining(span[i]):
            chunks.append((start, i))
            start = i
    chunks.append((start, len(span)))
    pieces = [normalizer(span[a:b]) for a, b in chunks]
    if "".join(pieces) != normalized:
        chunks, pieces = [(0, len(span))], [normalized]

    spans: list[tuple[int, int]] = []
    carry: int | None = None
    for (a, b), piece in zip(chunks, pieces, strict=True):
        if not piece:
            # removed text belongs to its neighbour
            if spans:
                spans[-1] = (spans[-1][0], b)
            elif carry is None:
                carry = a
            continue
        first = a if carry is None else carry
        carry = None
        spans.extend([(first, b)] * len(piece))
    return normalized, spans


class PreTokenizer:
    """
    Split text into ordered, exhaustive, non-overlapping segments.

    :param pattern: Regex grouping text into runs.
    :param registry: Added tokens carved out before the regex split.
    :param normalizer: Applied to the text between added tokens, or ``None``.
    """

    def __init__(
        self,
        pattern: str,
        registry: AddedTokenRegistry,
        normalizer: Callable[[str], str] | None = None,
    ) -> None:
        self.pattern = pattern
        self.compiled_pat = compile_pattern(pattern)
        self.registry = registry
        self.normalizer = normalizer

    def split(self, text: str) -> list[Segment]:
        """
        Split ``text`` into segments.

        Added tokens are carved out of the raw text first (leftmost, longest on
        ties); the text between them is normalized and split with the regex
        pattern, so regex runs never cross an added-token boundary.
        Segment offsets refer to ``text``.
        """
        segments: list[Segment] = []
        pos = 0
        for start, tok in self.registry.find_all(text):
            if start > pos:
                self._split_span(text[pos:start], pos, segments)
            n = len(tok.content)
            segments.append(Segment(tok.content, True, start, n, tok))
            pos = start + n
        if pos < len(text):
            self._split_span(text[pos:], pos, segments)
        return segments

    def _split_span(self, span: str, offset: int, out: list[Segment]) -> None:
        """Append regex runs of ``span``; text the pattern skips becomes its own segment."""
        spans = None
        if self.normalizer is not None:
            span, spans = _normalize_tracked(span, self.normalizer)

        def emit(piece: str, start: int) -> None:
            if spans is None:
                out.append(Segment(piece, False, offset + start, len(piece)))
                return
            chars = tuple(
                (offset + a, offset + b) for a, b in spans[start : start + len(piece)]
            )
            begin, end = chars[0][0], chars[-1][1]
            out.append(Segment(piece, False, begin, end - begin, char_spans=chars))

        pos = 0
        for m in self.compiled_pat.finditer(span):
            start, end = m.span()
            if start == end:
                continue
            if start > pos:
                emit(span[pos:start], pos)
            emit(m.group(0), start)
            pos = end
        if pos < len(span):
            emit(span[pos:], pos)

    def pre_tokenize(self, text: str) -> list[str]:
        """Return just the segment strings."""
        return [seg.text for seg in self.split(text)]
