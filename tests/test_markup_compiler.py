import pytest
import tree_sitter_html

from i18n_extract.core import expressions as ex
from i18n_extract.core.exceptions import ParseError
from i18n_extract.core.markup_compiler import (
    NODE_ATTRIBUTE,
    NODE_DIRECTIVE,
    NODE_ELEMENT,
    NODE_INTERPOLATION,
    NODE_SIMPLE_EXPRESSION,
    NODE_TEXT,
    AttributeNode,
    DirectiveNode,
    InterpolationNode,
    MarkupCompiler,
    TextNode,
    split_directive,
)


@pytest.fixture(scope="module")
def compiler():
    return MarkupCompiler("vue3", tree_sitter_html)


def test_parse_element_props_and_children(compiler):
    doc = '<template><p title="Hi" :label="msg">Hello {{ name }}!</p></template>'
    root = compiler.parse(doc)
    template = root.children[0]
    assert template.tag == "template"
    p = template.children[0]
    assert p.type == NODE_ELEMENT
    assert p.tag == "p"

    title, label = p.props
    assert isinstance(title, AttributeNode) and title.type == NODE_ATTRIBUTE
    assert title.value.content == "Hi"
    assert title.quote == '"'
    assert isinstance(label, DirectiveNode) and label.type == NODE_DIRECTIVE
    assert (label.name, label.arg) == ("bind", "label")
    assert label.exp.type == NODE_SIMPLE_EXPRESSION
    assert isinstance(label.exp.ast, ex.Identifier)

    text, interpolation, tail = p.children
    assert isinstance(text, TextNode) and text.type == NODE_TEXT
    assert text.content == "Hello "
    assert text.loc.start.offset == doc.index("Hello")
    assert isinstance(interpolation, InterpolationNode) and interpolation.type == NODE_INTERPOLATION
    assert interpolation.content.content == "name"
    assert interpolation.content.loc.start.offset == doc.index("name }}")
    assert tail.content == "!"


def test_nested_templates_and_positions(compiler):
    doc = "<template>\n  <template v-if=\"ok\">\n    <b>x</b>\n  </template>\n</template>"
    root = compiler.parse(doc)
    outer = root.children[0]
    inner = [c for c in outer.children if not isinstance(c, TextNode)][0]
    assert inner.tag == "template"
    bold = [c for c in inner.children if not isinstance(c, TextNode)][0]
    assert bold.tag == "b"
    assert bold.loc.start.line == 3
    assert bold.loc.start.column == 4


def test_missing_template_root(compiler):
    with pytest.raises(ParseError):
        compiler.parse("<div>no template</div>")


def test_split_directive():
    assert split_directive(":title") == ("bind", "title")
    assert split_directive("@click.stop") == ("on", "click")
    assert split_directive("v-if") == ("if", None)
    assert split_directive("v-bind:title") == ("bind", "title")
    assert split_directive("#default") == ("slot", "default")
