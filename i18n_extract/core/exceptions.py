"""
Custom exceptions for i18n-extract.
"""

from typing import List, Optional, Tuple


class I18nExtractError(Exception):
    """Base exception for i18n-extract."""
    pass


class ParseError(I18nExtractError):
    """Raised when a script or markup block cannot be parsed."""
    pass


class ConfigError(I18nExtractError):
    """Raised when configuration-related errors occur."""
    pass


class CompilerError(I18nExtractError):
    """Base class for markup compiler lifecycle errors."""
    pass


class NoActiveBatchError(CompilerError):
    """Raised when a compiler is requested outside of a batch."""

    def __init__(self, message: str = "No active batch. Call start_batch() first."):
        super().__init__(message)


class VersionMismatchError(CompilerError):
    """Raised when a compiler version differs from the active batch version."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Compiler version mismatch: batch uses '{expected}', requested '{actual}'"
        )


class CompilerNotLoadedError(CompilerError):
    """Raised when a compiler was expected in the cache but is absent."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Compiler '{version}' is not loaded")


class CompilerLoadError(CompilerError):
    """Raised when every resolution root failed to provide the compiler.

    ``attempts`` holds ``(root, error)`` pairs in the order they were tried.
    """

    def __init__(self, version: str, attempts: List[Tuple[Optional[str], Exception]]):
        self.version = version
        self.attempts = attempts
        details = "; ".join(
            f"{root or '<default import path>'}: {error}" for root, error in attempts
        )
        super().__init__(f"Failed to load compiler '{version}' ({details})")


class ReconstructionFailed(I18nExtractError):
    """Raised when an expression node cannot be sliced or rebuilt."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Cannot reconstruct expression of kind '{kind}'")
