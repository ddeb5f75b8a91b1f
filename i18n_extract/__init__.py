"""
i18n-extract - Source String Extraction for Vue and React
=========================================================

Finds marked strings (``___Hello___`` by default) in Vue single-file
components and JavaScript/TypeScript/JSX sources, replaces them with
translation calls and records the generated keys:
- Markup templates are rewritten through a tree-sitter based compiler, with a
  regex fallback
- Scripts are patched in place, or reprinted in regenerate mode
- The translation import and hook are added once per file
"""

__version__ = "1.0.0"

from .core.exceptions import I18nExtractError, ParseError, ConfigError
from .core.processor import TransformPipeline, TransformResult
from .core.key_registry import KeyRegistry
from .utils.config import TransformOptions, I18nImportConfig, ConfigManager

__all__ = [
    '__version__',
    'I18nExtractError', 'ParseError', 'ConfigError',
    'TransformPipeline', 'TransformResult',
    'KeyRegistry',
    'TransformOptions', 'I18nImportConfig', 'ConfigManager',
]
