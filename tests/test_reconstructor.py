import pytest

from i18n_extract.core import expressions as ex
from i18n_extract.core.exceptions import ReconstructionFailed
from i18n_extract.core.reconstructor import reconstruct
from i18n_extract.core.script_parser import ScriptParser


def test_slices_original_text_when_offsets_are_known():
    content = "user.name  +  count"
    node = ScriptParser().parse_expression(content)
    assert isinstance(node, ex.BinaryExpression)
    assert reconstruct(node, content) == content
    assert reconstruct(node.left, content) == "user.name"


def test_rebuilds_synthesized_nodes():
    node = ex.ConditionalExpression(
        test=ex.Identifier("ok"),
        consequent=ex.StringLiteral("yes"),
        alternate=ex.CallExpression(ex.Identifier("fmt"), [ex.Literal("1")]),
    )
    assert reconstruct(node, "") == "ok ? 'yes' : fmt(1)"

    member = ex.MemberExpression(ex.Identifier("items"), ex.Literal("0"), computed=True)
    assert reconstruct(member, "") == "items[0]"

    template = ex.TemplateLiteral(["a ", ""], [ex.Identifier("b")])
    assert reconstruct(template, "") == "`a ${b}`"


def test_unknown_kind_fails():
    with pytest.raises(ReconstructionFailed) as info:
        reconstruct(ex.UnknownExpression("arrow_function"), "")
    assert info.value.kind == "arrow_function"
