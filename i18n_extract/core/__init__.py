"""
Core module for i18n-extract
============================

Planners and the pipeline are imported from their modules directly:
    from i18n_extract.core.processor import TransformPipeline
"""

from .exceptions import (
    I18nExtractError, ParseError, ConfigError, CompilerError,
    NoActiveBatchError, VersionMismatchError, CompilerNotLoadedError, CompilerLoadError,
    ReconstructionFailed,
)
from .types import Location, ExtractedString, UsedExistingKey, PatchSpan, ChangeDetail

__all__ = [
    'I18nExtractError', 'ParseError', 'ConfigError', 'CompilerError',
    'NoActiveBatchError', 'VersionMismatchError', 'CompilerNotLoadedError', 'CompilerLoadError',
    'ReconstructionFailed',
    'Location', 'ExtractedString', 'UsedExistingKey', 'PatchSpan', 'ChangeDetail',
]
