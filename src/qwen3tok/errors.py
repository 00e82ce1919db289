"""Custom exception hierarchy for qwen3tok errors."""

import regex as re

from .types import TokenId


class Qwen3TokError(Exception):
    """Base exception for all qwen3tok errors."""


class ModelLoadError(Qwen3TokError):
    """Raised when loading vocabulary or merge files fails."""

    def __init__(
        self,
        message: str,
        *,
        model_path: str | None = None,
        line_no: int | None = None,
    ) -> None:
        extra = " "
        if model_path:
            extra += f"(path: {model_path}) "
        if line_no is not None:
            extra += f"(line: {line_no}) "
        super().__init__(message + extra)
        self.model_path = model_path
        self.line_no = line_no


LoadError = ModelLoadError


class InvalidByteMappingError(Qwen3TokError):
    """Raised when a character has no byte in the byte-level alphabet."""

    def __init__(
        self,
        message: str,
        *,
        char: str | None = None,
        position: int | None = None,
    ) -> None:
        extra = " "
        if char is not None:
            extra += f"(char: U+{ord(char):04X}) "
        if position is not None:
            extra += f"(position: {position}) "
        super().__init__(message + extra)
        self.char = char
        self.position = position


class VocabularyError(Qwen3TokError):
    """Raised when vocabulary lookups fail."""

    def __init__(self, message: str, *, invalid_id: TokenId | None = None) -> None:
        extra = " "
        # decoding: id not in vocab or added tokens
        if invalid_id is not None:
            extra += f"(invalid id: {invalid_id}) "
        super().__init__(message + extra)
        self.invalid_id = invalid_id


class TokenizationError(Qwen3TokError):
    """Raised when tokenization fails."""

    def __init__(self, message: str, *, segment: str | None = None) -> None:
        super().__init__(message)
        self.segment = segment


class ProviderError(Qwen3TokError):
    """Raised when a file provider cannot supply tokenizer files."""

    def __init__(
        self,
        message: str,
        *,
        model_name: str | None = None,
        path: str | None = None,
    ) -> None:
        extra = " "
        if model_name:
            extra += f"(model: {model_name}) "
        if path:
            extra += f"(path: {path}) "
        super().__init__(message + extra)
        self.model_name = model_name
        self.path = path


class ConfigurationError(Qwen3TokError):
    """Raised when tokenizer configuration is invalid."""


class PatternError(ConfigurationError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err
