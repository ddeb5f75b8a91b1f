"""
Expression model
================

Parsed sub-expressions as a tagged union: one dataclass per kind, matched with
``isinstance``. ``start``/``end`` are character offsets into the text the
expression was parsed from, or None for synthesized nodes.
"""

from dataclasses import dataclass, field
from typing import List, Optional


class Expr:
    """Marker base for expression nodes."""

    start: Optional[int]
    end: Optional[int]

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass
class StringLiteral(Expr):
    value: str
    raw: str = ""
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class TemplateLiteral(Expr):
    quasis: List[str]
    expressions: List[Expr] = field(default_factory=list)
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class Identifier(Expr):
    name: str
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class Literal(Expr):
    """Numbers, booleans, null and other literals kept by their source text."""
    raw: str
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class MemberExpression(Expr):
    object: Expr
    property: Expr
    computed: bool = False
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class CallExpression(Expr):
    callee: Expr
    arguments: List[Expr] = field(default_factory=list)
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class BinaryExpression(Expr):
    operator: str
    left: Expr
    right: Expr
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class ConditionalExpression(Expr):
    test: Expr
    consequent: Expr
    alternate: Expr
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class ParenthesizedExpression(Expr):
    expression: Expr
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class UnaryExpression(Expr):
    operator: str
    argument: Expr
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class ArrayExpression(Expr):
    elements: List[Expr] = field(default_factory=list)
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class Property(Expr):
    """``key: value`` inside an object literal. Keys are never rewritten."""
    key: Expr
    value: Expr
    computed: bool = False
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class ObjectExpression(Expr):
    properties: List[Expr] = field(default_factory=list)
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass
class UnknownExpression(Expr):
    node_type: str
    start: Optional[int] = None
    end: Optional[int] = None

    @property
    def kind(self) -> str:
        return self.node_type


def children(node: Expr) -> List[Expr]:
    """Sub-expressions whose string literals may be translated."""
    if isinstance(node, TemplateLiteral):
        return list(node.expressions)
    if isinstance(node, MemberExpression):
        return [node.object, node.property] if node.computed else [node.object]
    if isinstance(node, CallExpression):
        return [node.callee] + list(node.arguments)
    if isinstance(node, BinaryExpression):
        return [node.left, node.right]
    if isinstance(node, ConditionalExpression):
        return [node.test, node.consequent, node.alternate]
    if isinstance(node, ParenthesizedExpression):
        return [node.expression]
    if isinstance(node, UnaryExpression):
        return [node.argument]
    if isinstance(node, ArrayExpression):
        return list(node.elements)
    if isinstance(node, ObjectExpression):
        return list(node.properties)
    if isinstance(node, Property):
        return [node.value]
    return []
