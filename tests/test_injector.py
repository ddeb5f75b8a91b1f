from i18n_extract.core.injector import (
    HookConfig,
    TextInjector,
    TreeInjector,
    has_hook_destructure,
    has_named_import,
    insert_hook,
    insert_named_import,
)
from i18n_extract.core.script_parser import ScriptParser
from i18n_extract.utils.config import TransformOptions

REACT = HookConfig("t", "useTranslation", "react-i18next")
VUE = HookConfig("t", "useI18n", "vue-i18n")


def test_import_goes_after_multiline_import_block():
    code = 'import React from "react";\nimport {\n  a,\n  b,\n} from "x";\n\nconst c = 1;\n'
    result = insert_named_import(code, "react-i18next", "useTranslation")
    assert result == (
        'import React from "react";\nimport {\n  a,\n  b,\n} from "x";\n'
        'import { useTranslation } from "react-i18next";\n\nconst c = 1;\n'
    )


def test_import_is_merged_into_existing_specifiers():
    code = 'import { Trans } from "react-i18next";\n'
    result = insert_named_import(code, "react-i18next", "useTranslation")
    assert result == 'import { Trans, useTranslation } from "react-i18next";\n'
    assert insert_named_import(result, "react-i18next", "useTranslation") == result


def test_import_detection_uses_local_names():
    assert has_named_import('import { useI18n } from "vue-i18n";', "vue-i18n", "useI18n")
    assert not has_named_import('import { useI18n as use } from "vue-i18n";', "vue-i18n", "useI18n")
    assert not has_named_import('import { useI18n } from "other";', "vue-i18n", "useI18n")


def test_hook_detection():
    assert has_hook_destructure("const { t, i18n } = useTranslation();", "t", "useTranslation")
    assert has_hook_destructure("const t = useI18n();", "t", "useI18n")
    assert not has_hook_destructure("const { te } = useI18n();", "t", "useI18n")


def test_hook_in_function_component():
    code = 'import React from "react";\n\nexport function App() {\n  return null;\n}\n'
    result = TextInjector(REACT).ensure(code)
    assert result == (
        'import React from "react";\nimport { useTranslation } from "react-i18next";\n\n'
        "export function App() {\n  const { t } = useTranslation();\n  return null;\n}\n"
    )
    assert TextInjector(REACT).ensure(result) == result


def test_hook_in_arrow_component():
    code = "const App = () => {\n  return null;\n};\n"
    result = insert_hook(code, "const { t } = useTranslation();")
    assert result == "const App = () => {\n  const { t } = useTranslation();\n  return null;\n};\n"


def test_hook_in_existing_setup():
    code = "\nexport default {\n  setup() {\n    return {};\n  },\n};\n"
    result = TextInjector(VUE).ensure(code)
    assert "  setup() {\n    const { t } = useI18n();\n    return {};" in result
    assert result.startswith('\nimport { useI18n } from "vue-i18n";\nexport default {')


def test_setup_is_synthesized_for_options_object():
    code = "\nexport default {\n  data() {\n    return {};\n  },\n};\n"
    result = TextInjector(VUE).ensure(code)
    assert (
        "export default {\n  setup() {\n    const { t } = useI18n();\n    return {};\n  },\n  data() {"
        in result
    )


def test_setup_script_hook_at_top_level():
    code = '\nconst msg = t("k1");\n'
    result = TextInjector(VUE).ensure(code, is_setup=True)
    assert result == '\nimport { useI18n } from "vue-i18n";\nconst { t } = useI18n();\nconst msg = t("k1");\n'


def test_member_translation_method_needs_nothing():
    config = HookConfig("this.$t", "useI18n", "vue-i18n")
    assert not config.needs_import
    assert TextInjector(config).ensure("const a = 1;") == "const a = 1;"


def test_tree_injector_component_body():
    parsed = ScriptParser().parse("import React from 'react';\n\nexport function App() {\n  return null;\n}\n")
    result = TreeInjector(REACT).ensure(parsed)
    assert result == (
        "import React from 'react';\nimport { useTranslation } from \"react-i18next\";\n\n"
        "export function App() {\n  const { t } = useTranslation();\n  return null;\n}\n"
    )


def test_tree_injector_merges_and_detects_existing():
    parser = ScriptParser()
    parsed = parser.parse('import { Trans } from "react-i18next";\nconst x = 1;\n')
    result = TreeInjector(REACT).ensure(parsed, is_setup=True)
    assert result == (
        'import { Trans, useTranslation } from "react-i18next";\n'
        "const { t } = useTranslation();\nconst x = 1;\n"
    )
    assert TreeInjector(REACT).ensure(parser.parse(result), is_setup=True) == result


def test_hook_config_from_options():
    options = TransformOptions(framework="vue")
    config = HookConfig.from_options(options)
    assert (config.translation_method, config.hook_name, config.source) == ("t", "useI18n", "vue-i18n")
    assert HookConfig.from_options(options, "this.$t").translation_method == "this.$t"


def test_text_injector_keeps_crlf_line_endings():
    code = '\r\nconst msg = t("k1");\r\n'
    result = TextInjector(VUE).ensure(code, is_setup=True)
    assert result == (
        '\r\nimport { useI18n } from "vue-i18n";\r\nconst { t } = useI18n();\r\nconst msg = t("k1");\r\n'
    )


def test_tree_injector_keeps_crlf_line_endings():
    code = "import React from 'react';\r\n\r\nexport function App() {\r\n  return null;\r\n}\r\n"
    result = TreeInjector(REACT).ensure(ScriptParser().parse(code))
    assert result == (
        "import React from 'react';\r\nimport { useTranslation } from \"react-i18next\";\r\n\r\n"
        "export function App() {\r\n  const { t } = useTranslation();\r\n  return null;\r\n}\r\n"
    )
