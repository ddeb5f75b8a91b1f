"""
Utils module for i18n-extract
=============================
"""

from .config import ConfigManager, TransformOptions, I18nImportConfig, Framework
from .encoding import read_text_safely, write_text_safely
