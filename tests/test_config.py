import json

import pytest

from i18n_extract.core.exceptions import ConfigError
from i18n_extract.utils.config import ConfigManager, I18nImportConfig, TransformOptions, to_snake_case


def test_framework_defaults():
    react = TransformOptions()
    assert (react.translation_method, react.hook_name, react.import_source) == (
        "t", "useTranslation", "react-i18next"
    )
    vue = TransformOptions(framework="vue")
    assert (vue.hook_name, vue.import_source) == ("useI18n", "vue-i18n")


def test_call_names():
    options = TransformOptions(framework="vue", i18n_import=I18nImportConfig(no_import=True))
    assert options.template_function == "$t"
    assert options.script_function == "t"

    options = TransformOptions(
        framework="vue",
        i18n_import=I18nImportConfig(no_import=True, global_function="$tr", use_this_in_script=True),
    )
    assert options.template_function == "$tr"
    assert options.script_function == "this.$tr"


def test_invalid_values():
    with pytest.raises(ConfigError):
        TransformOptions(rewrite_mode="rewrite")
    with pytest.raises(ConfigError):
        TransformOptions(pattern="no group")
    with pytest.raises(ConfigError):
        TransformOptions(framework="svelte")


def test_from_dict_accepts_camel_case():
    options = TransformOptions.from_dict({
        "keyStrategy": "counter",
        "appendExtractedComment": True,
        "i18nConfig": {"noImport": True, "globalFunction": "$t"},
    })
    assert options.key_strategy == "counter"
    assert options.append_extracted_comment
    assert options.no_import
    assert to_snake_case("templateMode") == "template_mode"

    with pytest.raises(ConfigError):
        TransformOptions.from_dict({"unknownOption": 1})


def test_merged_overrides_and_framework_switch():
    options = TransformOptions(key_strategy="slug")
    merged = options.merged({"framework": "vue", "pattern": None, "rewrite_mode": "regenerate"})
    assert merged.framework == "vue"
    assert merged.hook_name == "useI18n"
    assert merged.key_strategy == "slug"
    assert merged.rewrite_mode == "regenerate"
    assert merged.pattern == options.pattern


def test_config_manager_round_trip(tmp_path):
    path = tmp_path / "i18n.config.json"
    manager = ConfigManager(str(path))
    assert manager.load_config() is False

    assert manager.save_config(TransformOptions(framework="vue", key_strategy="counter"))
    assert manager.save_config()
    assert (tmp_path / "i18n.config.json.bak").exists()

    loaded = ConfigManager(str(path))
    assert loaded.load_config() is True
    assert loaded.options.framework == "vue"
    assert loaded.options.key_strategy == "counter"


def test_config_manager_rejects_non_object(tmp_path):
    path = tmp_path / "i18n.config.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigManager(str(path)).load_config()
