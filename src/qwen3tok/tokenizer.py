"""
Qwen3 byte-level BPE tokenizer.
"""

import logging
import os
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from math import ceil
from pathlib import Path
from types import MappingProxyType

import numpy as np
from typing_extensions import deprecated

from ._bpe import BpeEngine
from ._byte_level import BYTE_LEVEL_ALPHABET
from .added_tokens import AddedTokenRegistry
from .config import TokenizerConfig
from .errors import ConfigurationError, VocabularyError
from .pre_tokenizer import PreTokenizer, Segment
from .providers import CachedModelFileProvider, TokenizerFileProvider
from .types import Offset, TokenId
from .vocab import MergeTable, VocabularyStore, load_vocab_and_merges

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodingResult:
    """Ids with their single-token decoded strings and ``(start, length)`` offsets."""

    ids: list[TokenId]
    tokens: list[str]
    offsets: list[Offset]

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class ModelInputs:
    """Unpadded 1-D ``int64`` arrays for a single sequence."""

    input_ids: np.ndarray
    attention_mask: np.ndarray
    position_ids: np.ndarray
    sequence_length: int


class Qwen3Tokenizer:
    """
    Tokenizer for Qwen3 models (LLM, embedding, reranker and vision-language).

    Instances are immutable after construction apart from an internal segment
    cache and can be shared across threads.

    :param vocab: Base byte-level vocabulary.
    :param merges: Ranked merge rules.
    :param is_for_embedding_model: Append the pad token when
        ``add_special_tokens`` is requested, as Qwen3 embedding models expect.
    :param config: Construction options; Qwen3 defaults when ``None``.
    :raises ConfigurationError: If an embedding tokenizer's pad id resolves to no token.
    """

    def __init__(
        self,
        vocab: VocabularyStore,
        merges: MergeTable,
        is_for_embedding_model: bool = False,
        config: TokenizerConfig | None = None,
    ) -> None:
        self.config = config or TokenizerConfig.default()
        self.is_for_embedding_model = is_for_embedding_model
        self.pad_token_id: TokenId = self.config.pad_token_id

        self._vocab = vocab
        self._registry = AddedTokenRegistry(self.config.added_tokens)
        if (
            is_for_embedding_model
            and self._registry.by_id(self.pad_token_id) is None
            and vocab.id_to_token(self.pad_token_id) is None
        ):
            raise ConfigurationError(
                f"pad token id {self.pad_token_id} is neither an added token nor in the vocabulary"
            )
        self._pre_tokenizer = PreTokenizer(
            self.config.pattern, self._registry, self.config.normalizer
        )
        self._bpe = BpeEngine(
            vocab, merges, BYTE_LEVEL_ALPHABET, cache_size=self.config.cache_size
        )

        # base vocab overlaid with added tokens: added tokens win on equal spelling
        combined = vocab.as_dict()
        combined.update(self._registry.as_dict())
        self._combined_vocab = MappingProxyType(combined)
        self._vocab_size = len(
            {*vocab.mapping.values(), *(tok.id for tok in self._registry.all())}
        )

        log.info(
            f"tokenizer ready: {len(vocab)} base tokens, {len(merges)} merges, "
            f"{len(self._registry)} added tokens, embedding model: {is_for_embedding_model}"
        )

    # Construction
    # ---------------------------------------------------------------------------

    @classmethod
    def from_files(
        cls,
        vocab_path: str | Path,
        merges_path: str | Path,
        is_for_embedding_model: bool = False,
        config: TokenizerConfig | None = None,
    ) -> "Qwen3Tokenizer":
        """
        Build a tokenizer from local ``vocab.json`` and ``merges.txt`` files.

        :raises ModelLoadError: If either file is missing or malformed.
        """
        vocab, merges = load_vocab_and_merges(vocab_path, merges_path)
        return cls(vocab, merges, is_for_embedding_model, config)

    @classmethod
    def from_provider(
        cls,
        provider: TokenizerFileProvider,
        is_for_embedding_model: bool = False,
        config: TokenizerConfig | None = None,
    ) -> "Qwen3Tokenizer":
        """
        Build a tokenizer from files supplied by ``provider``.

        :raises ProviderError: If the provider cannot supply the files.
        :raises ModelLoadError: If the supplied files are malformed.
        """
        vocab_path, merges_path = provider.get_files()
        return cls.from_files(vocab_path, merges_path, is_for_embedding_model, config)

    @classmethod
    async def from_provider_async(
        cls,
        provider: TokenizerFileProvider,
        is_for_embedding_model: bool = False,
        config: TokenizerConfig | None = None,
    ) -> "Qwen3Tokenizer":
        """Async variant of :meth:`from_provider`; only file acquisition is awaited."""
        vocab_path, merges_path = await provider.get_files_async()
        return cls.from_files(vocab_path, merges_path, is_for_embedding_model, config)

    @classmethod
    def from_cache(
        cls,
        model_name: str,
        cache_dir: str | Path,
        is_for_embedding_model: bool = False,
        config: TokenizerConfig | None = None,
    ) -> "Qwen3Tokenizer":
        """
        Build a tokenizer for ``model_name`` (e.g. ``"Qwen/Qwen3-0.6B"``) from a local cache.

        :raises ConfigurationError: If ``model_name`` is not a Qwen3 model name.
        :raises ProviderError: If the model's files are not in ``cache_dir``.
        """
        provider = CachedModelFileProvider(model_name, cache_dir)
        return cls.from_provider(provider, is_for_embedding_model, config)

    # Encoding
    # ---------------------------------------------------------------------------

    def _appends_pad(self, add_special_tokens: bool) -> bool:
        return add_special_tokens and self.is_for_embedding_model

    def encode(self, text: str, add_special_tokens: bool = True) -> list[TokenId]:
        """
        Encode text into token ids.

        :param add_special_tokens: For embedding models, append the pad token.
            Has no effect on other models.
        """
        ids: list[TokenId] = []
        for seg in self._pre_tokenizer.split(text):
            if seg.is_atomic:
                ids.append(seg.added.id)
            else:
                ids.extend(self._bpe.encode_segment_ids(seg.text))
        if self._appends_pad(add_special_tokens):
            ids.append(self.pad_token_id)
        return ids

    def encode_detailed(self, text: str, add_special_tokens: bool = True) -> EncodingResult:
        """
        Encode text, also returning each token's decoded string and offset.

        Offsets are ``(start, length)`` in code points of ``text``. A token
        covers the characters its bytes came from, so a character split
        across tokens is covered by each of them. The appended pad token,
        if any, has offset ``(len(text), 0)``.
        """
        ids: list[TokenId] = []
        tokens: list[str] = []
        offsets: list[Offset] = []

        for seg in self._pre_tokenizer.split(text):
            if seg.is_atomic:
                ids.append(seg.added.id)
                tokens.append(seg.added.content)
                offsets.append((seg.start, seg.length))
                continue
            encoded = self._bpe.encode_segment(seg.text)
            for (tok_id, _), offset in zip(
                encoded, _sub_token_offsets(seg, [sym for _, sym in encoded]), strict=True
            ):
                ids.append(tok_id)
                tokens.append(self.decode([tok_id], skip_special_tokens=False))
                offsets.append(offset)

        if self._appends_pad(add_special_tokens):
            ids.append(self.pad_token_id)
            tokens.append(self.decode([self.pad_token_id], skip_special_tokens=False))
            offsets.append((len(text), 0))

        return EncodingResult(ids, tokens, offsets)

    def count_tokens(self, text: str, add_special_tokens: bool = True) -> int:
        """Return ``len(self.encode(text, add_special_tokens))`` without building ids."""
        count = 0
        for seg in self._pre_tokenizer.split(text):
            count += 1 if seg.is_atomic else self._bpe.count_segment(seg.text)
        return count + 1 if self._appends_pad(add_special_tokens) else count

    def encode_batch(
        self,
        texts: Iterable[str],
        add_special_tokens: bool = True,
        num_workers: int | None = None,
    ) -> list[list[TokenId]]:
        """
        Encode many texts, in a thread pool when more than one worker is used.

        Results are in input order and equal to calling :meth:`encode` per text.
        """
        texts = list(texts)
        if not texts:
            return []

        # delegate texts among worker threads
        if num_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, num_workers)  # "0" interpreted as 1 worker

        if workers == 1 or len(texts) == 1:
            return [self.encode(text, add_special_tokens) for text in texts]

        # group texts to reduce task-scheduling overhead for many short documents
        target_tasks = min(len(texts), workers * 2)
        group_size = max(1, ceil(len(texts) / target_tasks))
        groups = [texts[idx : idx + group_size] for idx in range(0, len(texts), group_size)]

        def encode_group(group: list[str]) -> list[list[TokenId]]:
            return [self.encode(text, add_special_tokens) for text in group]

        with ThreadPoolExecutor(max_workers=workers) as pool:
            encoded_groups = list(pool.map(encode_group, groups))
        return [encoded for group in encoded_groups for encoded in group]

    # Decoding
    # ---------------------------------------------------------------------------

    def decode(self, ids: Iterable[TokenId], skip_special_tokens: bool = True) -> str:
        """
        Decode token ids back into text.

        Byte sequences that are not valid UTF-8 (e.g. a lone token holding
        half of a multi-byte character) decode to U+FFFD.

        :param skip_special_tokens: Drop ids of added tokens flagged special.
        :raises VocabularyError: If an id is neither in the vocabulary nor an added token.
        :raises InvalidByteMappingError: If a vocabulary entry is not byte-level encoded.
        """
        special_ids = self._registry.special_ids
        chunks: list[bytes] = []
        for tok_id in ids:
            if skip_special_tokens and tok_id in special_ids:
                continue
            added = self._registry.by_id(tok_id)
            if added is not None:
                chunks.append(added.content.encode("utf-8"))
                continue
            token = self._vocab.id_to_token(tok_id)
            if token is None:
                raise VocabularyError("token id not found in vocabulary", invalid_id=tok_id)
            chunks.append(BYTE_LEVEL_ALPHABET.decode_text(token))
        return b"".join(chunks).decode("utf-8", errors="replace")

    # Model inputs
    # ---------------------------------------------------------------------------

    def prepare_model_inputs(self, text: str, add_special_tokens: bool = True) -> ModelInputs:
        """
        Encode ``text`` into unpadded model inputs.

        ``attention_mask`` is all ones and ``position_ids`` counts from 0.
        For batches, call per text and pad the arrays yourself.
        """
        ids = self.encode(text, add_special_tokens)
        n = len(ids)
        return ModelInputs(
            input_ids=np.asarray(ids, dtype=np.int64),
            attention_mask=np.ones(n, dtype=np.int64),
            position_ids=np.arange(n, dtype=np.int64),
            sequence_length=n,
        )

    @deprecated("Use `prepare_model_inputs()`; the inputs are not specific to ONNX.")
    def prepare_for_onnx(self, text: str, add_special_tokens: bool = True) -> ModelInputs:
        return self.prepare_model_inputs(text, add_special_tokens)

    # Vocabulary
    # ---------------------------------------------------------------------------

    @property
    def vocabulary_size(self) -> int:
        """Number of distinct ids, base vocabulary plus added tokens."""
        return self._vocab_size

    @property
    def vocabulary(self) -> Mapping[str, TokenId]:
        """Base vocabulary with added tokens overlaid."""
        return self._combined_vocab

    @property
    def added_tokens(self) -> dict[str, TokenId]:
        return self._registry.as_dict()

    @property
    def special_token_ids(self) -> frozenset[TokenId]:
        """Ids of added tokens flagged special; skipped by ``decode`` by default."""
        return self._registry.special_ids

    def token_to_id(self, token: str) -> TokenId | None:
        return self._combined_vocab.get(token)

    def id_to_token(self, tok_id: TokenId) -> str | None:
        added = self._registry.by_id(tok_id)
        if added is not None:
            return added.content
        return self._vocab.id_to_token(tok_id)

    def clear_cache(self) -> None:
        """Drop memoized segment merges; results are unaffected."""
        self._bpe.cache.clear()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vocabulary_size={self.vocabulary_size}, "
            f"is_for_embedding_model={self.is_for_embedding_model})"
        )


def _sub_token_offsets(seg: Segment, symbols: list[str]) -> list[Offset]:
    """
    Map BPE symbols of ``seg`` back to ``(start, length)`` spans in the source text.

    Each byte-level symbol has one character per byte, so symbol lengths
    walk the segment's UTF-8 bytes; each byte knows the character it came from.
    """
    char_of_byte: list[int] = []
    for idx, c in enumerate(seg.text):
        char_of_byte.extend([idx] * len(c.encode("utf-8")))

    offsets: list[Offset] = []
    pos = 0
    for sym in symbols:
        first, last = char_of_byte[pos], char_of_byte[pos + len(sym) - 1]
        pos += len(sym)
        start, end = seg.source_span(first, last)
        offsets.append((start, end - start))
    return offsets
