"""Tests for added-token matching and regex pre-tokenization."""

import pytest

from qwen3tok import (
    AddedToken,
    AddedTokenRegistry,
    ConfigurationError,
    PatternError,
    PreTokenizer,
    TokenPattern,
    list_patterns,
)
from qwen3tok.config import nfc

from conftest import TEST_ADDED_TOKENS


@pytest.fixture
def registry():
    return AddedTokenRegistry(TEST_ADDED_TOKENS)


@pytest.fixture
def pre_tokenizer(registry):
    return PreTokenizer(TokenPattern.QWEN3.value, registry, nfc)


# Added-token registry
# ---------------------------------------------------------------------------


def test_longest_match_wins(registry):
    """At one position the longest literal is chosen."""
    tok = registry.longest_match_at("x<|endoftext|>", 1)
    assert tok is not None and tok.content == "<|endoftext|>"
    short = registry.longest_match_at("<|endx", 0)
    assert short is not None and short.content == "<|end"


def test_no_match_at_position(registry):
    """Matching is anchored at the given position."""
    assert registry.longest_match_at("x<think>", 0) is None


def test_find_all_is_leftmost_and_non_overlapping(registry):
    """Occurrences are reported in order without overlap."""
    found = [(pos, tok.id) for pos, tok in registry.find_all("<think><|end<|im_start|>")]
    assert found == [(0, 1002), (7, 1003), (12, 1001)]


def test_special_ids(registry):
    """Only tokens flagged special are in special_ids."""
    assert registry.special_ids == frozenset({1000, 1001})


def test_empty_registry_matches_nothing():
    """A registry without tokens never matches."""
    empty = AddedTokenRegistry()
    assert empty.longest_match_at("<think>", 0) is None
    assert list(empty.find_all("<think>")) == []


@pytest.mark.parametrize(
    "tokens",
    [
        (AddedToken("<a>", 1), AddedToken("<a>", 2)),
        (AddedToken("<a>", 1), AddedToken("<b>", 1)),
        (AddedToken("", 1),),
        (AddedToken("<a>", -1),),
    ],
)
def test_invalid_registries(tokens):
    """Duplicate contents or ids, empty contents and negative ids are rejected."""
    with pytest.raises(ConfigurationError):
        AddedTokenRegistry(tokens)


# Regex splitting
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Hello, world! 123", ["Hello", ",", " world", "!", " ", "1", "2", "3"]),
        ("it's", ["it", "'s"]),
        ("IT'S", ["IT", "'S"]),
        ("a\n\nb", ["a", "\n\n", "b"]),
        ("hello   world", ["hello", "  ", " world"]),
        ("  ", ["  "]),
        ("", []),
    ],
)
def test_qwen3_pattern_groups(pre_tokenizer, text, expected):
    """Letters, single digits, punctuation and whitespace form separate runs."""
    assert pre_tokenizer.pre_tokenize(text) == expected


def test_added_tokens_are_atomic_segments(pre_tokenizer):
    """Added tokens are carved out and regex runs never cross them."""
    segments = pre_tokenizer.split("hi <|im_start|>there")
    assert [(s.text, s.is_atomic) for s in segments] == [
        ("hi", False),
        (" ", False),
        ("<|im_start|>", True),
        ("there", False),
    ]
    assert segments[2].added.id == 1001


def test_offsets_cover_text(pre_tokenizer):
    """Segments are exhaustive, ordered and non-overlapping."""
    text = "Hi <think>2 cats\n\tand <|endoftext|>!"
    segments = pre_tokenizer.split(text)
    pos = 0
    for seg in segments:
        assert seg.start == pos
        assert text[seg.start : seg.end] == seg.text
        pos = seg.end
    assert pos == len(text)


def test_unmatched_text_still_emitted(registry):
    """Text the pattern skips becomes its own segment."""
    pt = PreTokenizer(r"\d+", registry)
    assert pt.pre_tokenize("ab12cd") == ["ab", "12", "cd"]


def test_normalizer_applies_between_added_tokens(pre_tokenizer):
    """NFC composes characters in the text between added tokens."""
    segments = pre_tokenizer.split("cafe\u0301")
    assert [s.text for s in segments] == ["caf\u00e9"]
    assert (segments[0].start, segments[0].length) == (0, 5)


def test_normalized_segments_keep_source_offsets(pre_tokenizer):
    """Segments after a composed character still point at the source text."""
    segments = pre_tokenizer.split("cafe\u0301 bar<think>e\u0301")
    assert [s.text for s in segments] == ["caf\u00e9", " bar", "<think>", "\u00e9"]
    assert [(s.start, s.end) for s in segments] == [(0, 5), (5, 9), (9, 16), (16, 18)]
    assert segments[0].source_span(3, 3) == (3, 5)


def test_composition_across_starters(pre_tokenizer):
    """Hangul jamo compose across starters, so the gap maps as one range."""
    segments = pre_tokenizer.split("\u1100\u1161 x")
    assert [s.text for s in segments] == ["\uac00", " x"]
    assert [(s.start, s.end) for s in segments] == [(0, 4), (0, 4)]


def test_invalid_pattern(registry):
    """A pattern that does not compile raises PatternError."""
    with pytest.raises(PatternError):
        PreTokenizer("(unclosed", registry)


# Built-in patterns
# ---------------------------------------------------------------------------


def test_pattern_lookup():
    """Names are case-insensitive and QWEN3 aliases QWEN2."""
    assert TokenPattern.get("qwen3") == TokenPattern.QWEN2.value
    assert "QWEN3" in list_patterns()
    with pytest.raises(PatternError):
        TokenPattern.get("nope")
