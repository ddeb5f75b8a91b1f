import logging

from i18n_extract.core.compiler_manager import CompilerManager
from i18n_extract.core.context import PlanningContext
from i18n_extract.core.key_registry import KeyRegistry
from i18n_extract.core.template_planner import TemplatePlanner
from i18n_extract.utils.config import TransformOptions


def plan(template, mode="auto", load=True, **overrides):
    options = TransformOptions(framework="vue", key_strategy="counter", template_mode=mode, **overrides)
    registry = KeyRegistry.from_options(options)
    manager = CompilerManager(include_cwd=False)
    ctx = PlanningContext(registry, options, "App.vue", call_name="t")
    with manager.batch(options.compiler_version):
        if load:
            manager.get_compiler(options.compiler_version)
        result = TemplatePlanner(manager).process(template, ctx)
    return result, registry


def test_text_node_becomes_interpolation():
    result, registry = plan("\n  <p>___Hi___</p>\n")
    assert result.mode == "ast"
    assert result.code == "\n  <p>{{ t('k1') }}</p>\n"
    record = registry.extracted[0]
    assert (record.value, record.key, record.line, record.column) == ("Hi", "k1", 2, 5)
    assert result.spans[0].start == 6


def test_static_attribute_becomes_binding():
    result, _ = plan('<input placeholder="___Name___">')
    assert result.code == "<input :placeholder=\"t('k1')\">"


def test_directive_ternary():
    result, _ = plan("<p :title=\"ok ? '___Yes___' : '___No___'\">x</p>")
    assert result.code == "<p :title=\"ok ? t('k1') : t('k2')\">x</p>"


def test_interpolation_partial_string_and_template_literal():
    result, registry = plan("<p>{{ '___Hi___ there' }}</p><b>{{ `___Hello ${name}___` }}</b>")
    assert "{{ t('k1') + ' there' }}" in result.code
    assert "{{ t('k2', { arg1: name }) }}" in result.code
    assert [r.value for r in registry.extracted] == ["Hi", "Hello {arg1}"]


def test_bare_identifier_interpolation():
    result, _ = plan("<p>{{ ___Hi___ }}</p>")
    assert result.code == "<p>{{ t('k1') }}</p>"


def test_regex_mode():
    result, _ = plan("<p :title=\"ok ? '___Yes___' : '___No___'\">___Hi___</p>", mode="regex", load=False)
    assert result.mode == "regex"
    assert result.code == "<p :title=\"ok ? t('k1') : t('k2')\">{{ t('k3') }}</p>"


def test_falls_back_to_regex_without_compiler(caplog):
    with caplog.at_level(logging.WARNING):
        result, _ = plan("<p>___Hi___</p>", load=False)
    assert result.mode == "regex"
    assert result.code == "<p>{{ t('k1') }}</p>"
    assert "No markup compiler loaded" in caplog.text


def test_ast_mode_without_fallback_leaves_template(caplog):
    with caplog.at_level(logging.WARNING):
        result, registry = plan("<p>___Hi___</p>", mode="ast", load=False, disabled_fallback=True)
    assert result.mode == "unchanged"
    assert result.code == "<p>___Hi___</p>"
    assert registry.extracted == []


def test_extracted_comment():
    result, _ = plan("<p>___Hi___</p>", append_extracted_comment=True)
    assert result.code == "<p>{{ t('k1') }} <!-- Hi --></p>"


def test_template_without_matches_is_skipped():
    result, registry = plan("<p>{{ msg }}</p>")
    assert result.mode == "skipped"
    assert not result.changed
    assert result.code == "<p>{{ msg }}</p>"
    assert registry.extracted == []


def test_array_and_object_literals_match_regex_mode():
    template = "<p :title=\"['___Arr___'].join()\">{{ { a: '___Obj___' }.a }}</p>"
    expected = "<p :title=\"[t('k1')].join()\">{{ { a: t('k2') }.a }}</p>"

    tree, tree_registry = plan(template)
    regex, regex_registry = plan(template, mode="regex", load=False)

    assert tree.mode == "ast"
    assert tree.code == expected
    assert regex.code == expected
    tree_records = [(r.value, r.key) for r in tree_registry.extracted]
    assert tree_records == [(r.value, r.key) for r in regex_registry.extracted]
    assert tree_records == [("Arr", "k1"), ("Obj", "k2")]


def test_unary_expression_and_object_keys():
    result, registry = plan("<p v-if=\"!'___Hidden___'\" :data=\"{ '___Key___': 1 }\">x</p>")
    assert result.code == "<p v-if=\"!t('k1')\" :data=\"{ '___Key___': 1 }\">x</p>"
    assert [r.value for r in registry.extracted] == ["Hidden"]


def test_unsupported_expression_uses_regex_rewrite(caplog):
    with caplog.at_level(logging.WARNING):
        result, registry = plan("<p>{{ new Label('___Item___').text }}</p>")
    assert result.mode == "ast"
    assert result.code == "<p>{{ new Label(t('k1')).text }}</p>"
    assert [r.value for r in registry.extracted] == ["Item"]
    assert "rewriting it in regex mode" in caplog.text


def test_markup_parse_failure_falls_back_to_regex(caplog):
    with caplog.at_level(logging.WARNING):
        result, registry = plan('<p a="1>___Hi___</p><')
    assert result.mode == "regex"
    assert "{{ t('k1') }}" in result.code
    assert [r.value for r in registry.extracted] == ["Hi"]
    assert "falling back to regex mode" in caplog.text


def test_markup_parse_failure_without_fallback_leaves_template(caplog):
    with caplog.at_level(logging.WARNING):
        result, registry = plan('<p a="1>___Hi___</p><', disabled_fallback=True)
    assert result.mode == "unchanged"
    assert result.code == '<p a="1>___Hi___</p><'
    assert registry.extracted == []
    assert "fallback disabled" in caplog.text


def test_html_entities_are_decoded_before_key_resolution():
    result, registry = plan('<p title="___A &amp; B___">___T&amp;C___</p>')
    assert result.code == "<p :title=\"t('k1')\">{{ t('k2') }}</p>"
    assert [r.value for r in registry.extracted] == ["A & B", "T&C"]
