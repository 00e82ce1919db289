"""Shared fixtures: tiny byte-level vocabularies written to temporary files."""

import json
from pathlib import Path

import pytest

from qwen3tok import AddedToken, Qwen3Tokenizer, TokenizerConfig
from qwen3tok._byte_level import BYTE_LEVEL_ALPHABET

# Merge rules in rank order; "Ġ" is the byte-level form of a space.
MERGES: list[tuple[str, str]] = [
    ("a", "b"),
    ("h", "e"),
    ("l", "l"),
    ("he", "ll"),
    ("hell", "o"),
    ("Ġ", "w"),
    ("o", "r"),
    ("Ġw", "or"),
    ("l", "d"),
    ("Ġwor", "ld"),
]

# Ids for the fixture vocabulary: singletons are their byte value, merges follow.
HELLO_ID = 260
SPACE_WORLD_ID = 265
LL_ID = 258
HE_ID = 257

TEST_ADDED_TOKENS: tuple[AddedToken, ...] = (
    AddedToken("<|endoftext|>", 1000, special=True),
    AddedToken("<|im_start|>", 1001, special=True),
    AddedToken("<think>", 1002),
    AddedToken("<|end", 1003),
)


def build_vocab(
    merges: list[tuple[str, str]], leading: tuple[str, ...] = ()
) -> dict[str, int]:
    """Assign ids to ``leading`` tokens, then the 256 byte singletons, then merge results."""
    vocab: dict[str, int] = {}
    tokens = [
        *leading,
        *BYTE_LEVEL_ALPHABET.characters(),
        *(left + right for left, right in merges),
    ]
    for tok in tokens:
        if tok not in vocab:
            vocab[tok] = len(vocab)
    return vocab


def write_files(
    directory: Path,
    vocab: dict,
    merges: list[tuple[str, str]] | list[str],
    header: bool = True,
) -> tuple[Path, Path]:
    """Write ``vocab.json`` and ``merges.txt``; merges may be pairs or raw lines."""
    directory.mkdir(parents=True, exist_ok=True)
    vocab_path = directory / "vocab.json"
    merges_path = directory / "merges.txt"
    vocab_path.write_text(json.dumps(vocab, ensure_ascii=False), encoding="utf-8")
    lines = ["#version: 0.2"] if header else []
    lines += [m if isinstance(m, str) else f"{m[0]} {m[1]}" for m in merges]
    merges_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return vocab_path, merges_path


@pytest.fixture
def tokenizer_files(tmp_path):
    """Return ``(vocab_path, merges_path)`` for the fixture vocabulary."""
    return write_files(tmp_path / "model", build_vocab(MERGES), MERGES)


@pytest.fixture
def test_config():
    """Config with a small added-token set and pad id 1000."""
    return TokenizerConfig(added_tokens=TEST_ADDED_TOKENS, pad_token_id=1000)


@pytest.fixture
def tokenizer(tokenizer_files, test_config):
    """Return a non-embedding tokenizer over the fixture vocabulary."""
    return Qwen3Tokenizer.from_files(*tokenizer_files, False, test_config)


@pytest.fixture
def embedding_tokenizer(tokenizer_files):
    """Return an embedding tokenizer with the Qwen3 defaults (pad id 151643)."""
    return Qwen3Tokenizer.from_files(*tokenizer_files, is_for_embedding_model=True)


@pytest.fixture
def qwen3_tokenizer(tokenizer_files):
    """Return a non-embedding tokenizer with the Qwen3 defaults."""
    return Qwen3Tokenizer.from_files(*tokenizer_files, is_for_embedding_model=False)
