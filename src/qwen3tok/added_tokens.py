"""Added tokens: literal strings that are never split or merged."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Final

import regex as re

from .errors import ConfigurationError
from .types import TokenId


@dataclass(frozen=True, slots=True)
class AddedToken:
    """An atomic token; ``special`` ones are dropped by ``decode(skip_special_tokens=True)``."""

    content: str
    id: TokenId
    special: bool = False


# Published Qwen3 added tokens (tokenizer_config.json "added_tokens_decoder").
QWEN3_ADDED_TOKENS: Final[tuple[AddedToken, ...]] = (
    AddedToken("<|endoftext|>", 151643, True),
    AddedToken("<|im_start|>", 151644, True),
    AddedToken("<|im_end|>", 151645, True),
    AddedToken("<|object_ref_start|>", 151646, True),
    AddedToken("<|object_ref_end|>", 151647, True),
    AddedToken("<|box_start|>", 151648, True),
    AddedToken("<|box_end|>", 151649, True),
    AddedToken("<|quad_start|>", 151650, True),
    AddedToken("<|quad_end|>", 151651, True),
    AddedToken("<|vision_start|>", 151652, True),
    AddedToken("<|vision_end|>", 151653, True),
    AddedToken("<|vision_pad|>", 151654, True),
    AddedToken("<|image_pad|>", 151655, True),
    AddedToken("<|video_pad|>", 151656, True),
    AddedToken("<tool_call>", 151657),
    AddedToken("</tool_call>", 151658),
    AddedToken("<|fim_prefix|>", 151659),
    AddedToken("<|fim_middle|>", 151660),
    AddedToken("<|fim_suffix|>", 151661),
    AddedToken("<|fim_pad|>", 151662),
    AddedToken("<|repo_name|>", 151663),
    AddedToken("<|file_sep|>", 151664),
    AddedToken("<tool_response>", 151665),
    AddedToken("</tool_response>", 151666),
    AddedToken("<think>", 151667),
    AddedToken("</think>", 151668),
)


class AddedTokenRegistry:
    """
    Immutable set of added tokens with longest-literal-first matching.

    Matching uses a single alternation regex whose branches are ordered by
    descending literal length, so at any start position the longest literal wins.
    """

    def __init__(self, tokens: Iterable[AddedToken] = ()) -> None:
        by_content: dict[str, AddedToken] = {}
        by_id: dict[TokenId, AddedToken] = {}
        for tok in tokens:
            if not tok.content:
                raise ConfigurationError("added token content must not be empty")
            if tok.id < 0:
                raise ConfigurationError(
                    f"added token {tok.content!r} has negative id {tok.id}"
                )
            if tok.content in by_content:
                raise ConfigurationError(f"duplicate added token {tok.content!r}")
            if tok.id in by_id:
                raise ConfigurationError(
                    f"added tokens {by_id[tok.id].content!r} and {tok.content!r} "
                    f"share id {tok.id}"
                )
            by_content[tok.content] = tok
            by_id[tok.id] = tok

        self._by_content = by_content
        self._by_id = by_id
        self._special_ids: frozenset[TokenId] = frozenset(
            tok.id for tok in by_content.values() if tok.special
        )
        self._pattern: re.Pattern[str] | None = None
        if by_content:
            # escape regex metachars like "|" in "<|im_start|>"
            literals = sorted(by_content, key=len, reverse=True)
            self._pattern = re.compile("|".join(re.escape(lit) for lit in literals))

    def longest_match_at(self, text: str, pos: int) -> AddedToken | None:
        """Return the longest added token starting exactly at ``pos``, if any."""
        if self._pattern is None:
            return None
        m = self._pattern.match(text, pos)
        return self._by_content[m.group(0)] if m else None

    def find_all(self, text: str) -> Iterator[tuple[int, AddedToken]]:
        """Yield ``(start, token)`` for leftmost non-overlapping occurrences."""
        if self._pattern is None:
            return
        for m in self._pattern.finditer(text):
            yield m.start(), self._by_content[m.group(0)]

    def get(self, content: str) -> AddedToken | None:
        return self._by_content.get(content)

    def by_id(self, tok_id: TokenId) -> AddedToken | None:
        return self._by_id.get(tok_id)

    def all(self) -> tuple[AddedToken, ...]:
        return tuple(self._by_content.values())

    def as_dict(self) -> dict[str, TokenId]:
        """Return a copy of the content -> id mapping."""
        return {content: tok.id for content, tok in self._by_content.items()}

    @property
    def special_ids(self) -> frozenset[TokenId]:
        return self._special_ids

    def __contains__(self, content: object) -> bool:
        return content in self._by_content

    def __len__(self) -> int:
        return len(self._by_content)
