"""qwen3tok: Qwen3-compatible byte-level BPE tokenization."""

from ._byte_level import BYTE_LEVEL_ALPHABET, ByteLevelAlphabet
from .added_tokens import QWEN3_ADDED_TOKENS, AddedToken, AddedTokenRegistry
from .config import QWEN3_PAD_TOKEN_ID, TokenizerConfig, validate_model_name
from .errors import (
    ConfigurationError,
    InvalidByteMappingError,
    LoadError,
    ModelLoadError,
    PatternError,
    ProviderError,
    Qwen3TokError,
    TokenizationError,
    VocabularyError,
)
from .pattern import TokenPattern, list_patterns
from .pre_tokenizer import PreTokenizer, Segment
from .providers import (
    CachedModelFileProvider,
    LocalFileProvider,
    TokenizerFileProvider,
)
from .tokenizer import EncodingResult, ModelInputs, Qwen3Tokenizer
from .vocab import MergeTable, VocabularyStore, load_vocab_and_merges

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("qwen3tok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Qwen3Tokenizer",
    "EncodingResult",
    "ModelInputs",
    "TokenizerConfig",
    "AddedToken",
    "AddedTokenRegistry",
    "ByteLevelAlphabet",
    "PreTokenizer",
    "Segment",
    "VocabularyStore",
    "MergeTable",
    "TokenPattern",
    "TokenizerFileProvider",
    "LocalFileProvider",
    "CachedModelFileProvider",
    "BYTE_LEVEL_ALPHABET",
    "QWEN3_ADDED_TOKENS",
    "QWEN3_PAD_TOKEN_ID",
    "load_vocab_and_merges",
    "list_patterns",
    "validate_model_name",
    "Qwen3TokError",
    "ModelLoadError",
    "LoadError",
    "InvalidByteMappingError",
    "VocabularyError",
    "TokenizationError",
    "ProviderError",
    "ConfigurationError",
    "PatternError",
]
