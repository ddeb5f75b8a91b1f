"""
Markup compiler
===============

Turns a ``<template>...</template>`` document into a Vue-style node tree:
elements, text, interpolations, attributes and directives, each carrying its
character offsets in the compiled document. Structure comes from the
tree-sitter HTML grammar; text runs and ``{{ }}`` interpolations are cut from
the gaps between child tags, and expressions are parsed with the script
grammar.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from tree_sitter import Language, Node, Parser

from . import expressions as ex
from .exceptions import ParseError
from .script_parser import ScriptParser, SourceText

# Vue compiler node type codes
NODE_ROOT = 0
NODE_ELEMENT = 1
NODE_TEXT = 2
NODE_COMMENT = 3
NODE_SIMPLE_EXPRESSION = 4
NODE_INTERPOLATION = 5
NODE_ATTRIBUTE = 6
NODE_DIRECTIVE = 7

DIRECTIVE_PREFIXES = (":", "@", "#", "v-")

_INTERPOLATION_RE = re.compile(r"\{\{([\s\S]*?)\}\}")
_TAG_NODES = {"start_tag", "end_tag", "self_closing_tag"}
_STRUCTURAL_NODES = {"element", "script_element", "style_element", "comment", "erroneous_end_tag", "doctype"}


@dataclass
class Position:
    offset: int
    line: int
    column: int


@dataclass
class SourceLocation:
    start: Position
    end: Position
    source: str


@dataclass
class TextNode:
    content: str
    loc: SourceLocation
    type: int = field(default=NODE_TEXT, init=False)


@dataclass
class SimpleExpressionNode:
    content: str
    loc: SourceLocation
    ast: Optional[ex.Expr] = None
    type: int = field(default=NODE_SIMPLE_EXPRESSION, init=False)


@dataclass
class InterpolationNode:
    content: SimpleExpressionNode
    loc: SourceLocation
    type: int = field(default=NODE_INTERPOLATION, init=False)


@dataclass
class AttributeNode:
    name: str
    value: Optional[TextNode]
    loc: SourceLocation
    quote: str = '"'
    type: int = field(default=NODE_ATTRIBUTE, init=False)


@dataclass
class DirectiveNode:
    raw_name: str
    name: str
    arg: Optional[str]
    exp: Optional[SimpleExpressionNode]
    loc: SourceLocation
    quote: str = '"'
    type: int = field(default=NODE_DIRECTIVE, init=False)


Prop = Union[AttributeNode, DirectiveNode]


@dataclass
class ElementNode:
    tag: str
    props: List[Prop]
    children: List["TemplateChild"]
    loc: SourceLocation
    type: int = field(default=NODE_ELEMENT, init=False)


TemplateChild = Union[ElementNode, TextNode, InterpolationNode]


@dataclass
class RootNode:
    children: List[ElementNode]
    loc: SourceLocation
    type: int = field(default=NODE_ROOT, init=False)


def split_directive(raw_name: str) -> Tuple[str, Optional[str]]:
    """``:title`` -> (bind, title), ``@click.stop`` -> (on, click), ``v-if`` -> (if, None)."""
    if raw_name.startswith(":"):
        name, arg = "bind", raw_name[1:]
    elif raw_name.startswith("@"):
        name, arg = "on", raw_name[1:]
    elif raw_name.startswith("#"):
        name, arg = "slot", raw_name[1:]
    else:
        name, _, arg = raw_name[2:].partition(":")
    arg = arg.split(".")[0] if arg else None
    return name.split(".")[0], arg or None


class MarkupCompiler:
    """Compiler handle managed by ``CompilerManager``."""

    def __init__(self, version: str, language_module):
        self.version = version
        self.language = Language(language_module.language())
        self.expression_parser = ScriptParser(("jsx",))
        self.logger = logging.getLogger(__name__)

    def parse(self, document: str) -> RootNode:
        source = SourceText(document)
        tree = Parser(self.language).parse(source.data)
        if tree.root_node.has_error:
            raise ParseError("Template markup could not be parsed")
        return _TreeBuilder(source, self.expression_parser).build(tree.root_node)


class _TreeBuilder:
    def __init__(self, source: SourceText, expression_parser: ScriptParser):
        self.source = source
        self.expression_parser = expression_parser

    def build(self, document: Node) -> RootNode:
        template = None
        for child in document.named_children:
            if child.type == "element" and self._tag_name(child).lower() == "template":
                template = child
                break
        if template is None:
            raise ParseError("No <template> root element found")
        return RootNode(
            children=[self._element(template)],
            loc=self._loc(0, len(self.source.text)),
        )

    def _loc(self, start: int, end: int) -> SourceLocation:
        start_line, start_col = self.source.position(start)
        end_line, end_col = self.source.position(end)
        return SourceLocation(
            start=Position(start, start_line, start_col),
            end=Position(end, end_line, end_col),
            source=self.source.text[start:end],
        )

    def _open_tag(self, element: Node) -> Optional[Node]:
        for child in element.children:
            if child.type in ("start_tag", "self_closing_tag"):
                return child
        return None

    def _tag_name(self, element: Node) -> str:
        tag = self._open_tag(element)
        if tag is None:
            return ""
        for child in tag.children:
            if child.type == "tag_name":
                return self.source.text_of(child)
        return ""

    def _element(self, element: Node) -> ElementNode:
        start, end = self.source.span(element)
        open_tag = self._open_tag(element)
        props: List[Prop] = []
        content_start = end
        if open_tag is not None:
            props = [self._prop(a) for a in open_tag.children if a.type == "attribute"]
            content_start = self.source.span(open_tag)[1]

        content_end = end
        for child in element.children:
            if child.type == "end_tag":
                content_end = self.source.span(child)[0]

        children: List[TemplateChild] = []
        if element.type == "element" and open_tag is not None and open_tag.type == "start_tag":
            children = self._children(element, content_start, content_end)

        return ElementNode(
            tag=self._tag_name(element),
            props=props,
            children=children,
            loc=self._loc(start, end),
        )

    def _children(self, element: Node, content_start: int, content_end: int) -> List[TemplateChild]:
        children: List[TemplateChild] = []
        cursor = content_start
        for child in element.children:
            if child.type in _TAG_NODES or child.type not in _STRUCTURAL_NODES:
                continue
            child_start, child_end = self.source.span(child)
            children.extend(self._text_run(cursor, child_start))
            if child.type == "element":
                children.append(self._element(child))
            cursor = child_end
        children.extend(self._text_run(cursor, content_end))
        return children

    def _text_run(self, start: int, end: int) -> List[TemplateChild]:
        """Split a raw text run into text and interpolation nodes."""
        nodes: List[TemplateChild] = []
        if start >= end:
            return nodes
        text = self.source.text[start:end]
        cursor = 0
        for match in _INTERPOLATION_RE.finditer(text):
            if match.start() > cursor:
                nodes.append(self._text(start + cursor, start + match.start()))
            inner = match.group(1)
            stripped = inner.strip()
            if stripped:
                inner_start = start + match.start(1) + (len(inner) - len(inner.lstrip()))
                inner_end = inner_start + len(stripped)
                nodes.append(InterpolationNode(
                    content=self._expression(inner_start, inner_end),
                    loc=self._loc(start + match.start(), start + match.end()),
                ))
            cursor = match.end()
        if cursor < len(text):
            nodes.append(self._text(start + cursor, end))
        return nodes

    def _text(self, start: int, end: int) -> TextNode:
        return TextNode(content=self.source.text[start:end], loc=self._loc(start, end))

    def _expression(self, start: int, end: int) -> SimpleExpressionNode:
        content = self.source.text[start:end]
        ast = self.expression_parser.parse_expression(content) if content.strip() else None
        return SimpleExpressionNode(content=content, loc=self._loc(start, end), ast=ast)

    def _prop(self, attribute: Node) -> Prop:
        start, end = self.source.span(attribute)
        name = ""
        value_range: Optional[Tuple[int, int]] = None
        quote = ""
        for child in attribute.children:
            if child.type == "attribute_name":
                name = self.source.text_of(child)
            elif child.type == "quoted_attribute_value":
                q_start, q_end = self.source.span(child)
                quote = self.source.text[q_start]
                value_range = (q_start + 1, q_end - 1)
            elif child.type == "attribute_value":
                value_range = self.source.span(child)

        loc = self._loc(start, end)
        if name.startswith(DIRECTIVE_PREFIXES):
            directive, arg = split_directive(name)
            exp = self._expression(*value_range) if value_range else None
            return DirectiveNode(
                raw_name=name, name=directive, arg=arg, exp=exp, loc=loc, quote=quote or '"'
            )

        value = self._text(*value_range) if value_range else None
        return AttributeNode(name=name, value=value, loc=loc, quote=quote or '"')
