"""
Vocabulary and merge-rule tables loaded from ``vocab.json`` and ``merges.txt``.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Final

from ._byte_level import BYTE_LEVEL_ALPHABET
from ._decorators import measure_time
from ._sanitise import render_token
from .errors import ModelLoadError
from .types import ByteLevelToken, MergePair, MergeRanks, TokenId

VERSION_HEADER: Final[str] = "#version"

log = logging.getLogger(__name__)


class VocabularyStore:
    """Immutable bidirectional token-string <-> id table."""

    def __init__(self, token_to_id: Mapping[ByteLevelToken, TokenId]) -> None:
        self._token_to_id: Mapping[ByteLevelToken, TokenId] = MappingProxyType(
            dict(token_to_id)
        )
        self._id_to_token: Mapping[TokenId, ByteLevelToken] = MappingProxyType(
            {tok_id: tok for tok, tok_id in self._token_to_id.items()}
        )

    def token_to_id(self, token: ByteLevelToken) -> TokenId | None:
        return self._token_to_id.get(token)

    def id_to_token(self, tok_id: TokenId) -> ByteLevelToken | None:
        return self._id_to_token.get(tok_id)

    def as_dict(self) -> dict[ByteLevelToken, TokenId]:
        """Return a copy of the token -> id mapping."""
        return dict(self._token_to_id)

    @property
    def mapping(self) -> Mapping[ByteLevelToken, TokenId]:
        """Read-only view of the token -> id mapping."""
        return self._token_to_id

    def __contains__(self, token: object) -> bool:
        return token in self._token_to_id

    def __len__(self) -> int:
        return len(self._token_to_id)


class MergeTable:
    """Ordered merge rules; a lower rank is applied first."""

    def __init__(self, pairs: list[MergePair]) -> None:
        ranks: MergeRanks = {}
        for pair in pairs:
            # first occurrence keeps the better rank
            ranks.setdefault(pair, len(ranks))
        self._ranks: Mapping[MergePair, int] = MappingProxyType(ranks)

    def rank(self, left: ByteLevelToken, right: ByteLevelToken) -> int | None:
        return self._ranks.get((left, right))

    @property
    def ranks(self) -> Mapping[MergePair, int]:
        """Read-only view of pair -> rank."""
        return self._ranks

    def pairs(self) -> Iterator[MergePair]:
        """Yield merge pairs in rank order."""
        return iter(self._ranks)

    def __contains__(self, pair: object) -> bool:
        return pair in self._ranks

    def __len__(self) -> int:
        return len(self._ranks)


def _read_vocab(path: Path) -> dict[ByteLevelToken, TokenId]:
    if not path.is_file():
        raise ModelLoadError("vocabulary file does not exist", model_path=str(path))

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ModelLoadError(
            "vocabulary file is unreadable", model_path=str(path)
        ) from e
    except json.JSONDecodeError as e:
        raise ModelLoadError(
            f"vocabulary file is not valid JSON: {e.msg}",
            model_path=str(path),
            line_no=e.lineno,
        ) from e

    if not isinstance(raw, dict):
        raise ModelLoadError(
            "vocabulary must be a JSON object of token -> id", model_path=str(path)
        )

    vocab: dict[ByteLevelToken, TokenId] = {}
    seen_ids: dict[TokenId, ByteLevelToken] = {}
    for tok, tok_id in raw.items():
        # bool is an int subclass but never a valid id
        if not isinstance(tok_id, int) or isinstance(tok_id, bool) or tok_id < 0:
            raise ModelLoadError(
                f"invalid id for token {render_token(tok)!r}: {tok_id!r}",
                model_path=str(path),
            )
        if tok_id in seen_ids:
            raise ModelLoadError(
                f"duplicate id {tok_id} for tokens {render_token(seen_ids[tok_id])!r} "
                f"and {render_token(tok)!r}",
                model_path=str(path),
            )
        seen_ids[tok_id] = tok
        vocab[tok] = tok_id

    # every byte must be representable so BPE never needs an unknown token
    missing = [c for c in BYTE_LEVEL_ALPHABET.characters() if c not in vocab]
    if missing:
        shown = ", ".join(f"U+{ord(c):04X}" for c in missing[:8])
        raise ModelLoadError(
            f"vocabulary is missing {len(missing)} byte-level base symbols ({shown})",
            model_path=str(path),
        )

    return vocab


def _read_merges(
    path: Path, vocab: Mapping[ByteLevelToken, TokenId]
) -> list[MergePair]:
    if not path.is_file():
        raise ModelLoadError("merges file does not exist", model_path=str(path))

    pairs: list[MergePair] = []
    seen: set[MergePair] = set()
    try:
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                # only strip the newline: symbols never contain whitespace
                line = line.rstrip("\r\n")
                if line_no == 1 and line.startswith(VERSION_HEADER):
                    continue
                if not line.strip():
                    continue

                parts = line.split()
                if len(parts) != 2:
                    raise ModelLoadError(
                        f"merge rule must contain two symbols: {line!r}",
                        model_path=str(path),
                        line_no=line_no,
                    )
                left, right = parts
                for symbol in (left, right, left + right):
                    if symbol not in vocab:
                        raise ModelLoadError(
                            f"merge symbol {render_token(symbol)!r} not in vocabulary",
                            model_path=str(path),
                            line_no=line_no,
                        )

                pair = (left, right)
                if pair in seen:
                    log.warning(
                        f"duplicate merge rule at line {line_no}: "
                        f"{render_token(left)!r} {render_token(right)!r} (keeping first)"
                    )
                    continue
                seen.add(pair)
                pairs.append(pair)
    except (OSError, UnicodeDecodeError) as e:
        raise ModelLoadError("merges file is unreadable", model_path=str(path)) from e

    return pairs


@measure_time
def load_vocab_and_merges(
    vocab_path: str | Path, merges_path: str | Path
) -> tuple[VocabularyStore, MergeTable]:
    """
    Load a byte-level BPE vocabulary and its merge rules.

    :param vocab_path: Path to ``vocab.json`` (token -> id object).
    :param merges_path: Path to ``merges.txt`` (one ``left right`` pair per line).
    :return: The immutable vocabulary store and merge table.
    :raises ModelLoadError: If either file is missing, unreadable or malformed,
        or if a merge rule references a symbol missing from the vocabulary.
    """
    vocab_path, merges_path = Path(vocab_path), Path(merges_path)
    log.info(f"loading vocabulary from {vocab_path}")
    vocab = _read_vocab(vocab_path)
    log.info(f"loading merges from {merges_path}")
    pairs = _read_merges(merges_path, vocab)

    store, table = VocabularyStore(vocab), MergeTable(pairs)
    log.info(f"loaded {len(store)} vocabulary entries and {len(table)} merge rules")
    return store, table
