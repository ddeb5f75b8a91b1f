import pytest

from i18n_extract.core.context import PlanningContext
from i18n_extract.core.exceptions import ParseError
from i18n_extract.core.key_registry import KeyRegistry
from i18n_extract.core.script_planner import ScriptProcessor
from i18n_extract.utils.config import TransformOptions


def rewrite(code, plugins=("jsx",), **overrides):
    options = TransformOptions(key_strategy="counter", **overrides)
    registry = KeyRegistry.from_options(options)
    ctx = PlanningContext(registry, options, "a.js", call_name="t")
    result = ScriptProcessor(ctx, plugins).process(code)
    return result, registry


def test_full_match_string():
    result, registry = rewrite('const x = "___Hello___";')
    assert result.code == 'const x = t("k1");'
    assert result.plan.call_count == 1
    record = registry.extracted[0]
    assert (record.value, record.key, record.line, record.column) == ("Hello", "k1", 1, 10)


def test_partial_string_concatenation():
    result, _ = rewrite('const x = "Hi ___Bob___!";')
    assert result.code == 'const x = "Hi " + t("k1") + "!";'

    result, _ = rewrite('foo("a ___B___".length);')
    assert result.code == 'foo(("a " + t("k1")).length);'


def test_only_first_match_of_a_string_is_replaced():
    result, registry = rewrite('const x = "___A___ and ___B___";')
    assert result.code == 'const x = t("k1") + " and ___B___";'
    assert len(registry.extracted) == 1


def test_template_literal_per_quasi():
    result, _ = rewrite("const s = `___A___${x}___B___`;")
    assert result.code == 'const s = t("k1") + x + t("k2");'


def test_template_literal_whole_match_with_arguments():
    result, registry = rewrite("const s = `___Hi ${user.name}___`;")
    assert result.code == 'const s = t("k1", { arg1: user.name });'
    assert registry.extracted[0].value == "Hi {arg1}"


def test_template_literal_leading_expressions():
    result, _ = rewrite("const s = `${a}${b}___X___`;")
    assert result.code == 'const s = "" + a + b + t("k1");'


def test_skipped_contexts():
    code = (
        'import x from "___A___";\n'
        'const o = { "___K___": 1 };\n'
        't("___Already___");\n'
    )
    result, registry = rewrite(code)
    assert result.code == code
    assert registry.extracted == []

    ts_code = 'type T = "___A___";\n'
    result, registry = rewrite(ts_code, plugins=("typescript",))
    assert result.code == ts_code
    assert registry.extracted == []


def test_jsx_text_and_attribute():
    result, _ = rewrite('const el = <p title="___Name___">___Hi___ there</p>;')
    assert result.code == 'const el = <p title={t("k1")}>{t("k2")} there</p>;'


def test_line_comment_goes_to_end_of_statement():
    result, _ = rewrite('const a = "___Hi___";\nconst b = 1;\n', append_extracted_comment=True)
    assert result.code == 'const a = t("k1"); // Hi\nconst b = 1;\n'


def test_block_comment_and_jsx_comment():
    result, _ = rewrite(
        'const a = "___Hi___";', append_extracted_comment=True, extracted_comment_type="block"
    )
    assert result.code == 'const a = t("k1") /* Hi */;'

    result, _ = rewrite("const el = <p>___Hi___</p>;", append_extracted_comment=True)
    assert result.code == 'const el = <p>{t("k1") /* Hi */}</p>;'


def test_non_ascii_source_offsets():
    result, _ = rewrite('const a = "é✓"; const b = "___Hi___";')
    assert result.code == 'const a = "é✓"; const b = t("k1");'


def test_parse_error():
    with pytest.raises(ParseError):
        rewrite("const = ;")


def test_regenerate_mode_reprints():
    result, _ = rewrite('const a = "___Hi___";\nfunction  f( ){return 1}\n', rewrite_mode="regenerate")
    assert 'const a = t("k1");' in result.code
    assert "function f()" in result.code
    assert result.code.endswith("\n")
