"""
Script parser adapter
=====================

Wraps the tree-sitter JavaScript/TypeScript grammars. tree-sitter reports
byte offsets, every other part of the engine works with character offsets;
``SourceText`` converts between the two and resolves line/column positions.
"""

from __future__ import annotations

import bisect
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from tree_sitter import Language, Node, Parser, Tree

from . import expressions as ex
from .codegen import cook_js_string
from .exceptions import ParseError

logger = logging.getLogger(__name__)

_LANGUAGES: Dict[str, Language] = {}
_thread_state = threading.local()

SCRIPT_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    ".js": ("jsx",),
    ".jsx": ("jsx",),
    ".mjs": ("jsx",),
    ".cjs": ("jsx",),
    ".ts": ("typescript",),
    ".mts": ("typescript",),
    ".cts": ("typescript",),
    ".tsx": ("typescript", "jsx"),
}

_IDENTIFIER_TYPES = {
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "private_property_identifier",
    "this",
    "super",
}
_LITERAL_TYPES = {"number", "true", "false", "null", "undefined", "regex"}


def _load_language(name: str) -> Language:
    """Lazy-load a grammar; ``name`` is javascript, typescript or tsx."""
    language = _LANGUAGES.get(name)
    if language is None:
        if name == "javascript":
            import tree_sitter_javascript as ts_javascript
            language = Language(ts_javascript.language())
        elif name == "typescript":
            import tree_sitter_typescript as ts_typescript
            language = Language(ts_typescript.language_typescript())
        elif name == "tsx":
            import tree_sitter_typescript as ts_typescript
            language = Language(ts_typescript.language_tsx())
        else:
            raise ValueError(f"Unknown script language '{name}'")
        _LANGUAGES[name] = language
    return language


def get_parser(name: str) -> Parser:
    """Per-thread cached parser for ``name``."""
    parsers = getattr(_thread_state, "parsers", None)
    if parsers is None:
        parsers = _thread_state.parsers = {}
    parser = parsers.get(name)
    if parser is None:
        parser = parsers[name] = Parser(_load_language(name))
    return parser


def language_for_plugins(plugins: Sequence[str]) -> str:
    if "typescript" in plugins:
        return "tsx" if "jsx" in plugins else "typescript"
    return "javascript"


def plugins_for_path(path: str) -> Tuple[str, ...]:
    return SCRIPT_EXTENSIONS.get(PurePath(path).suffix.lower(), ("jsx",))


def plugins_for_lang_attr(lang: Optional[str]) -> Tuple[str, ...]:
    """Parser plugins for a ``<script lang="...">`` attribute."""
    lang = (lang or "js").lower()
    if lang == "tsx":
        return ("typescript", "jsx")
    if lang in ("ts", "typescript"):
        return ("typescript",)
    return ("jsx",)


class SourceText:
    """Text plus byte/character offset and line/column lookups."""

    def __init__(self, text: str):
        self.text = text
        self.data = text.encode("utf-8")
        self._byte_to_char: Optional[List[int]] = None
        if len(self.data) != len(text):
            mapping: List[int] = []
            for index, char in enumerate(text):
                mapping.extend([index] * len(char.encode("utf-8")))
            mapping.append(len(text))
            self._byte_to_char = mapping
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def char_offset(self, byte_offset: int) -> int:
        if self._byte_to_char is None:
            return byte_offset
        return self._byte_to_char[byte_offset]

    def span(self, node: Node) -> Tuple[int, int]:
        return self.char_offset(node.start_byte), self.char_offset(node.end_byte)

    def text_of(self, node: Node) -> str:
        start, end = self.span(node)
        return self.text[start:end]

    def position(self, offset: int) -> Tuple[int, int]:
        """1-based line and 0-based column of a character offset."""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index]

    def line_end(self, offset: int) -> int:
        newline = self.text.find("\n", offset)
        return len(self.text) if newline == -1 else newline


@dataclass
class ParsedScript:
    source: SourceText
    tree: Tree
    language: str

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def text(self) -> str:
        return self.source.text

    def span(self, node: Node) -> Tuple[int, int]:
        return self.source.span(node)

    def text_of(self, node: Node) -> str:
        return self.source.text_of(node)

    def walk(self, node: Optional[Node] = None) -> Iterator[Node]:
        """Pre-order traversal."""
        stack = [node or self.root]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))


def same_node(a: Optional[Node], b: Optional[Node]) -> bool:
    if a is None or b is None:
        return False
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def first_named(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def template_parts(parsed: ParsedScript, node: Node) -> Tuple[List[Tuple[int, int]], List[Node]]:
    """Split a template_string into raw quasi ranges and substitution nodes.

    There is always one more quasi than substitutions.
    """
    start, end = parsed.span(node)
    cursor = start + 1
    quasis: List[Tuple[int, int]] = []
    substitutions: List[Node] = []
    for child in node.children:
        if child.type != "template_substitution":
            continue
        sub_start, sub_end = parsed.span(child)
        quasis.append((cursor, sub_start))
        substitutions.append(child)
        cursor = sub_end
    quasis.append((cursor, end - 1))
    return quasis, substitutions


def is_tagged_template(node: Node) -> bool:
    parent = node.parent
    return (
        parent is not None
        and parent.type == "call_expression"
        and same_node(parent.child_by_field_name("arguments"), node)
    )


class ScriptParser:
    """Parses script blocks into ``ParsedScript`` trees."""

    def __init__(self, plugins: Sequence[str] = ("jsx",)):
        self.plugins = tuple(plugins)
        self.language = language_for_plugins(self.plugins)
        self.logger = logging.getLogger(__name__)

    def parse(self, code: str, strict: bool = True) -> ParsedScript:
        source = SourceText(code)
        tree = get_parser(self.language).parse(source.data)
        parsed = ParsedScript(source=source, tree=tree, language=self.language)
        if strict and tree.root_node.has_error:
            line, column = self._first_error(parsed)
            raise ParseError(
                f"Syntax error in {self.language} source at line {line}, column {column}"
            )
        return parsed

    def is_valid(self, code: str) -> bool:
        tree = get_parser(self.language).parse(code.encode("utf-8"))
        return not tree.root_node.has_error

    def parse_expression(self, content: str) -> Optional[ex.Expr]:
        """Parse a standalone expression; offsets are relative to ``content``.

        Returns None when ``content`` is not a single valid expression.
        """
        wrapped = f"({content})"
        try:
            parsed = self.parse(wrapped)
        except ParseError:
            return None

        statements = [c for c in parsed.root.named_children if c.type != "comment"]
        if len(statements) != 1 or statements[0].type != "expression_statement":
            return None
        paren = first_named(statements[0])
        if paren is None or paren.type != "parenthesized_expression":
            return None
        if parsed.span(paren) != (0, len(wrapped)):
            return None
        inner = first_named(paren)
        if inner is None:
            return None
        return to_expression(parsed, inner, base=1)

    def _first_error(self, parsed: ParsedScript) -> Tuple[int, int]:
        for node in parsed.walk():
            if node.type == "ERROR" or node.is_missing:
                return parsed.source.position(parsed.span(node)[0])
        return 1, 0


def to_expression(parsed: ParsedScript, node: Node, base: int = 0) -> ex.Expr:
    """Convert a tree-sitter expression node to the expression model."""
    start, end = parsed.span(node)
    start -= base
    end -= base
    kind = node.type

    if kind == "string":
        raw = parsed.text_of(node)
        return ex.StringLiteral(value=cook_js_string(raw[1:-1]), raw=raw, start=start, end=end)

    if kind == "template_string" and not is_tagged_template(node):
        quasis, substitutions = template_parts(parsed, node)
        return ex.TemplateLiteral(
            quasis=[parsed.text[q_start:q_end] for q_start, q_end in quasis],
            expressions=[
                to_expression(parsed, first_named(sub), base)
                if first_named(sub) is not None
                else ex.UnknownExpression("empty", start=None, end=None)
                for sub in substitutions
            ],
            start=start,
            end=end,
        )

    if kind in _IDENTIFIER_TYPES:
        return ex.Identifier(name=parsed.text_of(node), start=start, end=end)

    if kind in _LITERAL_TYPES:
        return ex.Literal(raw=parsed.text_of(node), start=start, end=end)

    if kind == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        if obj is not None and prop is not None:
            return ex.MemberExpression(
                object=to_expression(parsed, obj, base),
                property=to_expression(parsed, prop, base),
                start=start,
                end=end,
            )

    if kind == "subscript_expression":
        obj = node.child_by_field_name("object")
        index = node.child_by_field_name("index")
        if obj is not None and index is not None:
            return ex.MemberExpression(
                object=to_expression(parsed, obj, base),
                property=to_expression(parsed, index, base),
                computed=True,
                start=start,
                end=end,
            )

    if kind == "call_expression":
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is not None and arguments is not None and arguments.type == "arguments":
            return ex.CallExpression(
                callee=to_expression(parsed, function, base),
                arguments=[
                    to_expression(parsed, arg, base)
                    for arg in arguments.named_children
                    if arg.type != "comment"
                ],
                start=start,
                end=end,
            )

    if kind == "binary_expression":
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        operator = node.child_by_field_name("operator")
        if left is not None and right is not None and operator is not None:
            return ex.BinaryExpression(
                operator=parsed.text_of(operator),
                left=to_expression(parsed, left, base),
                right=to_expression(parsed, right, base),
                start=start,
                end=end,
            )

    if kind == "ternary_expression":
        test = node.child_by_field_name("condition")
        consequent = node.child_by_field_name("consequence")
        alternate = node.child_by_field_name("alternative")
        if test is not None and consequent is not None and alternate is not None:
            return ex.ConditionalExpression(
                test=to_expression(parsed, test, base),
                consequent=to_expression(parsed, consequent, base),
                alternate=to_expression(parsed, alternate, base),
                start=start,
                end=end,
            )

    if kind == "parenthesized_expression":
        inner = first_named(node)
        if inner is not None:
            return ex.ParenthesizedExpression(
                expression=to_expression(parsed, inner, base), start=start, end=end
            )

    if kind == "unary_expression":
        operator = node.child_by_field_name("operator")
        argument = node.child_by_field_name("argument")
        if operator is not None and argument is not None:
            return ex.UnaryExpression(
                operator=parsed.text_of(operator),
                argument=to_expression(parsed, argument, base),
                start=start,
                end=end,
            )

    if kind == "array":
        return ex.ArrayExpression(
            elements=[
                to_expression(parsed, element, base)
                for element in node.named_children
                if element.type != "comment"
            ],
            start=start,
            end=end,
        )

    if kind == "object":
        return ex.ObjectExpression(
            properties=[
                _property(parsed, prop, base)
                for prop in node.named_children
                if prop.type != "comment"
            ],
            start=start,
            end=end,
        )

    return ex.UnknownExpression(node_type=kind, start=start, end=end)


def _property(parsed: ParsedScript, node: Node, base: int) -> ex.Expr:
    start, end = parsed.span(node)
    if node.type != "pair":
        return ex.UnknownExpression(node_type=node.type, start=start - base, end=end - base)

    key = node.child_by_field_name("key")
    value = node.child_by_field_name("value")
    computed = key.type == "computed_property_name"
    if computed and first_named(key) is not None:
        key_expr = to_expression(parsed, first_named(key), base)
    else:
        key_start, key_end = parsed.span(key)
        key_expr = ex.Identifier(name=parsed.text_of(key), start=key_start - base, end=key_end - base)
    return ex.Property(
        key=key_expr,
        value=to_expression(parsed, value, base),
        computed=computed,
        start=start - base,
        end=end - base,
    )
