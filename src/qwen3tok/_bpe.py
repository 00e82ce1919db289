"""
Core Byte Pair Encoding (BPE) operations.
"""

import logging
import threading

from ._byte_level import BYTE_LEVEL_ALPHABET, ByteLevelAlphabet
from .errors import TokenizationError
from .types import ByteLevelToken, MergePair, TokenId
from .vocab import MergeTable, VocabularyStore

log = logging.getLogger(__name__)

type MergedWord = tuple[ByteLevelToken, ...]


def bpe_merge(symbols: list[ByteLevelToken], target: MergePair) -> list[ByteLevelToken]:
    """
    Merge all non-overlapping occurrences of a target pair, scanning left to right.

    ``["a", "a", "a"]`` merged on ``("a", "a")`` gives ``["aa", "a"]``.
    """
    left, right = target
    merged = left + right
    newsyms: list[ByteLevelToken] = []

    i = 0
    n = len(symbols)
    while i < n:
        # check if we can form a pair and it matches the target
        if i < n - 1 and symbols[i] == left and symbols[i + 1] == right:
            newsyms.append(merged)
            i += 2
        else:
            newsyms.append(symbols[i])
            i += 1

    return newsyms


class SegmentCache:
    """
    Memo of byte-level segment -> merged symbols.

    Lookups are plain dict reads; inserts take a lock so eviction and
    insertion never interleave. Two threads computing the same key write the
    same value, so a lost race is harmless.

    :param max_entries: ``None`` for unbounded, ``0`` to disable caching,
        otherwise the oldest entries are evicted first.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self.max_entries = max_entries
        self._data: dict[str, MergedWord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> MergedWord | None:
        return self._data.get(key)

    def put(self, key: str, value: MergedWord) -> None:
        if self.max_entries == 0:
            return
        with self._lock:
            if key in self._data:
                return
            if self.max_entries is not None and len(self._data) >= self.max_entries:
                # dicts keep insertion order: first key is the oldest
                oldest = next(iter(self._data))
                del self._data[oldest]
                log.debug(f"segment cache full ({self.max_entries}), evicted oldest entry")
            self._data[key] = value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class BpeEngine:
    """Applies ranked merges to pre-tokenized segments and maps symbols to ids."""

    def __init__(
        self,
        vocab: VocabularyStore,
        merges: MergeTable,
        alphabet: ByteLevelAlphabet = BYTE_LEVEL_ALPHABET,
        cache_size: int | None = None,
    ) -> None:
        self.vocab = vocab
        self.merges = merges
        self.alphabet = alphabet
        self.cache = SegmentCache(cache_size)
        # direct mapping refs avoid a method call per lookup in the merge loop
        self._ranks = merges.ranks
        self._token_to_id = vocab.mapping

    def merge_word(self, mapped: str) -> MergedWord:
        """
        Run BPE over a byte-level mapped string.

        Each pass finds the lowest-ranked adjacent pair in the whole word and
        merges every occurrence of it; stops when no adjacent pair has a rule.
        """
        cached = self.cache.get(mapped)
        if cached is not None:
            return cached

        symbols = list(mapped)
        ranks = self._ranks
        while len(symbols) > 1:
            best: MergePair | None = None
            best_rank = -1
            for pair in zip(symbols, symbols[1:]):
                rank = ranks.get(pair)
                if rank is not None and (best is None or rank < best_rank):
                    best, best_rank = pair, rank
            if best is None:
                break
            symbols = bpe_merge(symbols, best)

        word = tuple(symbols)
        self.cache.put(mapped, word)
        return word

    def encode_segment(self, text: str) -> list[tuple[TokenId, ByteLevelToken]]:
        """
        Encode one non-atomic segment.

        :returns: ``(id, byte_level_symbol)`` per produced token, in order.
        :raises TokenizationError: If a merged symbol has no vocabulary id.
        """
        if not text:
            return []
        word = self.merge_word(self.alphabet.encode_text(text))
        token_to_id = self._token_to_id
        out: list[tuple[TokenId, ByteLevelToken]] = []
        for symbol in word:
            tok_id = token_to_id.get(symbol)
            if tok_id is None:
                raise TokenizationError(
                    f"symbol {symbol!r} is not in the vocabulary", segment=text
                )
            out.append((tok_id, symbol))
        return out

    def encode_segment_ids(self, text: str) -> list[TokenId]:
        return [tok_id for tok_id, _ in self.encode_segment(text)]

    def count_segment(self, text: str) -> int:
        """Number of tokens ``text`` encodes to, without the id lookups."""
        if not text:
            return 0
        return len(self.merge_word(self.alphabet.encode_text(text)))
