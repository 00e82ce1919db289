"""Construction-time tokenizer configuration."""

import unicodedata
from dataclasses import dataclass, field, replace
from typing import Callable, Final

from .added_tokens import QWEN3_ADDED_TOKENS, AddedToken
from .errors import ConfigurationError
from .pattern import TokenPattern
from .types import TokenId

QWEN3_PAD_TOKEN_ID: Final[TokenId] = 151643


def nfc(text: str) -> str:
    """NFC normalizer used by Qwen3 tokenizers."""
    return unicodedata.normalize("NFC", text)


@dataclass(frozen=True)
class TokenizerConfig:
    """
    Immutable options applied when a tokenizer is built.

    :param byte_level: Vocabulary is byte-level encoded. Must be ``True``.
    :param normalizer: Text normalization applied before pre-tokenization,
        or ``None`` to leave input untouched.
    :param pattern: Pre-tokenization regex.
    :param added_tokens: Atomic tokens matched before the regex split.
    :param pad_token_id: Id appended by embedding-model tokenizers.
    :param cache_size: Upper bound on memoized segments; ``None`` is unbounded.
    """

    byte_level: bool = True
    normalizer: Callable[[str], str] | None = nfc
    pattern: str = TokenPattern.QWEN3.value
    added_tokens: tuple[AddedToken, ...] = field(default=QWEN3_ADDED_TOKENS)
    pad_token_id: TokenId = QWEN3_PAD_TOKEN_ID
    cache_size: int | None = None

    def __post_init__(self) -> None:
        if not self.byte_level:
            raise ConfigurationError("only byte-level vocabularies are supported")
        if self.pad_token_id < 0:
            raise ConfigurationError(f"pad token id must be >= 0: {self.pad_token_id}")
        if self.cache_size is not None and self.cache_size < 0:
            raise ConfigurationError(f"cache size must be >= 0: {self.cache_size}")
        # accept any iterable but store a tuple so the config stays hashable
        object.__setattr__(self, "added_tokens", tuple(self.added_tokens))

    @classmethod
    def default(cls) -> "TokenizerConfig":
        """Return the Qwen3 defaults."""
        return cls()

    def with_added_tokens(self, added_tokens: tuple[AddedToken, ...]) -> "TokenizerConfig":
        return replace(self, added_tokens=tuple(added_tokens))


def validate_model_name(model_name: str) -> None:
    """
    Check that ``model_name`` names a Qwen3 model.

    :raises ConfigurationError: If the name is blank or lacks ``qwen3``.
    """
    if not model_name or not model_name.strip():
        raise ConfigurationError("model name cannot be empty")
    if "qwen3" not in model_name.lower():
        raise ConfigurationError(
            f"model name {model_name!r} does not appear to be a Qwen3 model "
            "(expected e.g. 'Qwen/Qwen3-0.6B' or 'Qwen/Qwen3-Embedding-0.6B')"
        )
