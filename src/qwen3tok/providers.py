"""
File providers that hand tokenizer files (``vocab.json``, ``merges.txt``) to the core.

Providers only resolve local paths; downloading from a model hub is left to
callers, who can populate a cache directory or implement their own provider.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Final, override

from .config import validate_model_name
from .errors import ConfigurationError, ProviderError

VOCAB_FILENAME: Final[str] = "vocab.json"
MERGES_FILENAME: Final[str] = "merges.txt"

log = logging.getLogger(__name__)


class TokenizerFileProvider(ABC):
    """Supplies the vocabulary and merges file paths a tokenizer is built from."""

    @abstractmethod
    def get_files(self) -> tuple[Path, Path]:
        """
        Return ``(vocab_path, merges_path)``.

        :raises ProviderError: If the files cannot be supplied.
        """
        ...

    async def get_files_async(self) -> tuple[Path, Path]:
        """
        Async variant of :meth:`get_files`.

        Runs :meth:`get_files` in a worker thread; cancel the awaiting task
        to abandon the call.
        """
        return await asyncio.to_thread(self.get_files)


class LocalFileProvider(TokenizerFileProvider):
    """Provider for two explicit file paths."""

    def __init__(self, vocab_path: str | Path, merges_path: str | Path) -> None:
        super().__init__()
        self.vocab_path = Path(vocab_path)
        self.merges_path = Path(merges_path)

    @override
    def get_files(self) -> tuple[Path, Path]:
        for path in (self.vocab_path, self.merges_path):
            if not path.is_file():
                raise ProviderError("tokenizer file not found", path=str(path))
        return self.vocab_path, self.merges_path


class CachedModelFileProvider(TokenizerFileProvider):
    """
    Provider reading a model's files from a local cache directory.

    Files are expected at ``<cache_dir>/<org>/<model>/vocab.json`` and
    ``.../merges.txt``, e.g. ``cache/Qwen/Qwen3-0.6B/vocab.json``.

    :raises ConfigurationError: If ``model_name`` is not a Qwen3 model name.
    """

    def __init__(self, model_name: str, cache_dir: str | Path) -> None:
        super().__init__()
        validate_model_name(model_name)
        parts = [p for p in model_name.strip().split("/") if p]
        if any(p in (".", "..") for p in parts):
            raise ConfigurationError(f"invalid model name {model_name!r}")
        self.model_name = model_name
        self.cache_dir = Path(cache_dir)
        self.model_dir = self.cache_dir.joinpath(*parts)

    @override
    def get_files(self) -> tuple[Path, Path]:
        log.debug(f"resolving {self.model_name} files in {self.model_dir}")
        if not self.model_dir.is_dir():
            raise ProviderError(
                "model is not present in cache",
                model_name=self.model_name,
                path=str(self.model_dir),
            )
        vocab_path = self.model_dir / VOCAB_FILENAME
        merges_path = self.model_dir / MERGES_FILENAME
        for path in (vocab_path, merges_path):
            if not path.is_file():
                raise ProviderError(
                    "tokenizer file not found in cache",
                    model_name=self.model_name,
                    path=str(path),
                )
        return vocab_path, merges_path
