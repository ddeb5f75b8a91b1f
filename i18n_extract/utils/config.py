"""
Configuration Manager
====================

Transform options and their JSON persistence.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.exceptions import ConfigError
from ..core.key_registry import DEFAULT_PATTERN, KEY_SCOPES, KEY_STRATEGIES, compile_pattern


class Framework(Enum):
    """Supported UI frameworks."""
    REACT = "react"
    VUE = "vue"


FRAMEWORK_DEFAULTS: Dict[str, Dict[str, str]] = {
    Framework.REACT.value: {"import_name": "useTranslation", "source": "react-i18next"},
    Framework.VUE.value: {"import_name": "useI18n", "source": "vue-i18n"},
}

REWRITE_MODES = ("patch", "regenerate")
TEMPLATE_MODES = ("auto", "ast", "regex")
COMMENT_TYPES = ("line", "block")
RECONSTRUCTION_POLICIES = ("keep", "abort")

DEFAULT_CONFIG_FILE = "i18n.config.json"

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


@dataclass
class I18nImportConfig:
    """How the translation function is made available in a file."""
    name: str = "t"
    import_name: Optional[str] = None
    source: Optional[str] = None
    no_import: bool = False
    merge_imports: bool = True
    global_function: Optional[str] = None
    use_this_in_script: bool = False


@dataclass
class TransformOptions:
    """Options for one extraction run."""
    pattern: str = DEFAULT_PATTERN
    framework: str = Framework.REACT.value
    i18n_import: I18nImportConfig = field(default_factory=I18nImportConfig)

    # keys
    key_strategy: str = "value"
    key_prefix: str = ""
    key_scope: str = "file"
    generate_key: Optional[Callable[[str, str], str]] = field(default=None, repr=False, compare=False)

    # rewriting
    append_extracted_comment: bool = False
    extracted_comment_type: str = "line"
    rewrite_mode: str = "patch"
    template_mode: str = "auto"
    disabled_fallback: bool = False
    reconstruction_policy: str = "keep"

    # markup compiler
    compiler_version: str = "vue3"
    compiler_paths: List[str] = field(default_factory=list)

    # files
    include: List[str] = field(default_factory=lambda: ["src/**/*.{js,jsx,ts,tsx,vue}"])
    exclude: List[str] = field(default_factory=lambda: ["**/node_modules/**", "**/dist/**"])
    output_path: Optional[str] = "i18n/extracted.json"
    existing_translations: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.i18n_import, dict):
            self.i18n_import = I18nImportConfig(**self.i18n_import)
        self.validate()
        defaults = FRAMEWORK_DEFAULTS[self.framework]
        if self.i18n_import.import_name is None:
            self.i18n_import.import_name = defaults["import_name"]
        if self.i18n_import.source is None:
            self.i18n_import.source = defaults["source"]

    def validate(self) -> None:
        """Raise ConfigError for invalid values."""
        compile_pattern(self.pattern)
        checks = (
            ("framework", self.framework, tuple(FRAMEWORK_DEFAULTS)),
            ("key_strategy", self.key_strategy, KEY_STRATEGIES),
            ("key_scope", self.key_scope, KEY_SCOPES),
            ("extracted_comment_type", self.extracted_comment_type, COMMENT_TYPES),
            ("rewrite_mode", self.rewrite_mode, REWRITE_MODES),
            ("template_mode", self.template_mode, TEMPLATE_MODES),
            ("reconstruction_policy", self.reconstruction_policy, RECONSTRUCTION_POLICIES),
        )
        for name, value, allowed in checks:
            if value not in allowed:
                raise ConfigError(f"Invalid {name} '{value}', expected one of {allowed}")
        if not self.i18n_import.name:
            raise ConfigError("Translation function name must not be empty")

    @property
    def translation_method(self) -> str:
        return self.i18n_import.name

    @property
    def hook_name(self) -> str:
        return self.i18n_import.import_name

    @property
    def import_source(self) -> str:
        return self.i18n_import.source

    @property
    def no_import(self) -> bool:
        return self.i18n_import.no_import

    @property
    def template_function(self) -> str:
        """Call name used inside markup templates."""
        if self.no_import:
            return self.i18n_import.global_function or "$t"
        return self.translation_method

    @property
    def script_function(self) -> str:
        """Call name used inside script code."""
        name = self.translation_method
        if self.no_import and self.i18n_import.global_function:
            name = self.i18n_import.global_function
        if self.i18n_import.use_this_in_script and not name.startswith("this."):
            name = f"this.{name}"
        return name

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("generate_key", None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransformOptions":
        """Build options from a JSON mapping; camelCase keys are accepted."""
        known = {f.name for f in fields(cls)}
        import_known = {f.name for f in fields(I18nImportConfig)}
        kwargs: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = to_snake_case(raw_key)
            if key in ("i18n_config", "i18n_import") and isinstance(value, dict):
                import_data = {to_snake_case(k): v for k, v in value.items()}
                unknown = set(import_data) - import_known
                if unknown:
                    raise ConfigError(f"Unknown i18n_import options: {sorted(unknown)}")
                kwargs["i18n_import"] = I18nImportConfig(**import_data)
            elif key in known and key != "generate_key":
                kwargs[key] = value
            else:
                raise ConfigError(f"Unknown configuration option '{raw_key}'")
        return cls(**kwargs)

    def merged(self, overrides: Dict[str, Any]) -> "TransformOptions":
        """Return a copy with ``overrides`` applied (None values are ignored)."""
        data = self.to_dict()
        import_overrides = overrides.get("i18n_import") or {}
        for key, value in overrides.items():
            if key != "i18n_import" and value is not None:
                data[key] = value
        for key, value in import_overrides.items():
            if value is not None:
                data["i18n_import"][key] = value
        if "framework" in overrides and overrides["framework"] is not None:
            # let the new framework pick its own hook defaults
            if "import_name" not in import_overrides:
                data["i18n_import"]["import_name"] = None
            if "source" not in import_overrides:
                data["i18n_import"]["source"] = None
        options = TransformOptions.from_dict(data)
        options.generate_key = self.generate_key
        return options


class ConfigManager:
    """Loads and saves ``TransformOptions`` as JSON."""

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE):
        self.logger = logging.getLogger(__name__)
        self.config_file = Path(config_file)
        self.options = TransformOptions()

    def load_config(self) -> bool:
        """Load configuration from file. Invalid values raise ConfigError."""
        if not self.config_file.exists():
            self.logger.info("Config file doesn't exist, using defaults")
            return False

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Error loading configuration from {self.config_file}: {e}")
            return False

        if not isinstance(config_data, dict):
            raise ConfigError(f"{self.config_file} must contain a JSON object")

        self.options = TransformOptions.from_dict(config_data)
        self.logger.info("Configuration loaded successfully")
        return True

    def save_config(self, options: Optional[TransformOptions] = None) -> bool:
        """Save configuration to file, keeping a ``.bak`` of the previous one."""
        if options is not None:
            self.options = options
        try:
            if self.config_file.exists():
                backup_file = self.config_file.with_suffix('.json.bak')
                try:
                    self.config_file.replace(backup_file)
                except OSError as e:
                    self.logger.warning(f"Could not create backup: {e}")

            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.options.to_dict(), f, indent=4, ensure_ascii=False)

            self.logger.info("Configuration saved successfully")
            return True
        except OSError as e:
            self.logger.error(f"Error saving configuration: {e}")
            return False
