"""
Expression reconstruction.

Returns the source text of a parsed sub-expression. The exact slice of the
original text is used whenever the node carries usable offsets; otherwise the
text is rebuilt from the node's kind. Rebuilding is lossy (comments, spacing
and redundant parentheses are not preserved).
"""

from .codegen import quote_js
from .exceptions import ReconstructionFailed
from . import expressions as ex


def has_trustworthy_offsets(node: ex.Expr, original: str) -> bool:
    start, end = node.start, node.end
    return start is not None and end is not None and 0 <= start <= end <= len(original)


def reconstruct(node: ex.Expr, original: str) -> str:
    """Slice ``node`` out of ``original`` or rebuild it by kind.

    Raises ReconstructionFailed for kinds that cannot be rebuilt.
    """
    if has_trustworthy_offsets(node, original):
        return original[node.start:node.end]
    return rebuild(node, original)


def rebuild(node: ex.Expr, original: str = "") -> str:
    if isinstance(node, ex.StringLiteral):
        return quote_js(node.value, "'")
    if isinstance(node, ex.Identifier):
        return node.name
    if isinstance(node, ex.Literal):
        return node.raw
    if isinstance(node, ex.BinaryExpression):
        return f"{reconstruct(node.left, original)} {node.operator} {reconstruct(node.right, original)}"
    if isinstance(node, ex.MemberExpression):
        obj = reconstruct(node.object, original)
        prop = reconstruct(node.property, original)
        return f"{obj}[{prop}]" if node.computed else f"{obj}.{prop}"
    if isinstance(node, ex.CallExpression):
        args = ", ".join(reconstruct(arg, original) for arg in node.arguments)
        return f"{reconstruct(node.callee, original)}({args})"
    if isinstance(node, ex.ConditionalExpression):
        return (
            f"{reconstruct(node.test, original)} ? "
            f"{reconstruct(node.consequent, original)} : "
            f"{reconstruct(node.alternate, original)}"
        )
    if isinstance(node, ex.ParenthesizedExpression):
        return f"({reconstruct(node.expression, original)})"
    if isinstance(node, ex.UnaryExpression):
        separator = " " if node.operator.isalpha() else ""
        return f"{node.operator}{separator}{reconstruct(node.argument, original)}"
    if isinstance(node, ex.ArrayExpression):
        return "[" + ", ".join(reconstruct(e, original) for e in node.elements) + "]"
    if isinstance(node, ex.Property):
        key = reconstruct(node.key, original)
        if node.computed:
            key = f"[{key}]"
        return f"{key}: {reconstruct(node.value, original)}"
    if isinstance(node, ex.ObjectExpression):
        if not node.properties:
            return "{}"
        return "{ " + ", ".join(reconstruct(p, original) for p in node.properties) + " }"
    if isinstance(node, ex.TemplateLiteral):
        parts = [node.quasis[0]]
        for expression, quasi in zip(node.expressions, node.quasis[1:]):
            parts.append("${" + reconstruct(expression, original) + "}")
            parts.append(quasi)
        return "`" + "".join(parts) + "`"
    raise ReconstructionFailed(node.kind)
