"""
Template replacement planner
============================

Finds matching text in a markup template and plans the substitutions.

Tree mode walks the node tree produced by the markup compiler. The block is
compiled inside a synthetic ``<template>`` wrapper, so spans are collected in
wrapper coordinates and shifted back when applied.

Regex mode works on raw substrings and is used when no compiler is loaded,
when it is requested explicitly, or when tree mode fails.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from . import expressions as ex
from .codegen import (
    block_comment,
    build_call,
    cook_js_string,
    html_comment,
    join_concatenation,
    quote_js,
    split_matches,
)
from .compiler_manager import CompilerManager
from .context import PlanningContext
from .exceptions import ParseError, ReconstructionFailed
from .markup_compiler import (
    AttributeNode,
    DirectiveNode,
    ElementNode,
    InterpolationNode,
    RootNode,
    SimpleExpressionNode,
    TextNode,
)
from .patcher import (
    TEMPLATE_WRAPPER_CLOSE,
    TEMPLATE_WRAPPER_OPEN,
    SpanCollector,
    apply_patches,
    shift_spans,
)
from .reconstructor import has_trustworthy_offsets, reconstruct
from .script_parser import SourceText
from .types import PatchSpan

logger = logging.getLogger(__name__)

_SIMPLE_KINDS = (
    ex.Identifier,
    ex.MemberExpression,
    ex.CallExpression,
    ex.StringLiteral,
    ex.TemplateLiteral,
    ex.Literal,
    ex.ParenthesizedExpression,
)

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]*)\}")
_LITERAL_RE = re.compile(
    r"'(?:[^'\\\n]|\\.)*'"
    r'|"(?:[^"\\\n]|\\.)*"'
    r"|`(?:[^`\\]|\\.)*`"
)
_TERNARY_BEFORE_RE = re.compile(r"\?\s*$")
_TERNARY_BETWEEN_RE = re.compile(r"^\s*:\s*$")


def opposite_quote(quote: str) -> str:
    return "'" if quote == '"' else '"'


@dataclass
class TemplateResult:
    code: str
    spans: List[PatchSpan] = field(default_factory=list)
    mode: str = "unchanged"

    @property
    def changed(self) -> bool:
        return bool(self.spans)


class ExpressionRewriter:
    """Rewrites the matching string parts of a parsed expression.

    Untouched sub-expressions are reproduced through ``reconstruct``; the
    matching literals become translation calls.
    """

    def __init__(
        self,
        ctx: PlanningContext,
        content: str,
        base_offset: int,
        positions: SourceText,
        quote: str = "'",
    ):
        self.ctx = ctx
        self.content = content
        self.base_offset = base_offset
        self.positions = positions
        self.quote = quote

    def contains_match(self, node: ex.Expr) -> bool:
        pattern = self.ctx.pattern
        if isinstance(node, ex.StringLiteral):
            return bool(pattern.search(node.value))
        if isinstance(node, ex.TemplateLiteral):
            return (
                any(pattern.search(q) for q in node.quasis)
                or self._whole_template_match(node) is not None
                or any(self.contains_match(e) for e in node.expressions)
            )
        return any(self.contains_match(child) for child in ex.children(node))

    def has_unsupported_match(self, node: ex.Expr) -> bool:
        """True when matching text sits in a sub-expression of an unmodelled kind."""
        if isinstance(node, ex.UnknownExpression):
            if not has_trustworthy_offsets(node, self.content):
                return False
            return bool(self.ctx.pattern.search(self.content[node.start:node.end]))
        return any(self.has_unsupported_match(child) for child in ex.children(node))

    def rewrite(self, node: ex.Expr, top: bool = False) -> str:
        if not self.contains_match(node):
            return reconstruct(node, self.content)

        if isinstance(node, ex.StringLiteral):
            parts = [
                self.call(chunk, node.start) if is_match else quote_js(chunk, self.quote)
                for is_match, chunk, _ in split_matches(node.value, self.ctx.pattern)
            ]
            return self._group(" + ".join(parts), len(parts) > 1, top)

        if isinstance(node, ex.TemplateLiteral):
            return self._rewrite_template(node, top)

        if isinstance(node, ex.ConditionalExpression):
            return (
                f"{self.rewrite(node.test)} ? {self.rewrite(node.consequent)} : "
                f"{self.rewrite(node.alternate)}"
            )
        if isinstance(node, ex.BinaryExpression):
            return f"{self.rewrite(node.left)} {node.operator} {self.rewrite(node.right)}"
        if isinstance(node, ex.CallExpression):
            args = ", ".join(self.rewrite(arg) for arg in node.arguments)
            return f"{self.rewrite(node.callee)}({args})"
        if isinstance(node, ex.MemberExpression):
            if node.computed:
                return f"{self.rewrite(node.object)}[{self.rewrite(node.property)}]"
            return f"{self.rewrite(node.object)}.{reconstruct(node.property, self.content)}"
        if isinstance(node, ex.ParenthesizedExpression):
            return f"({self.rewrite(node.expression, top=True)})"
        if isinstance(node, (ex.UnaryExpression, ex.ArrayExpression, ex.ObjectExpression, ex.Property)):
            return self._splice(node)

        raise ReconstructionFailed(node.kind)

    def _splice(self, node: ex.Expr) -> str:
        """Source of ``node`` with only its matching sub-expressions replaced."""
        if not has_trustworthy_offsets(node, self.content):
            raise ReconstructionFailed(node.kind)
        text = self.content[node.start:node.end]
        for child in sorted(ex.children(node), key=lambda c: c.start or 0, reverse=True):
            if not self.contains_match(child):
                continue
            if not has_trustworthy_offsets(child, self.content):
                raise ReconstructionFailed(child.kind)
            start, end = child.start - node.start, child.end - node.start
            text = text[:start] + self.rewrite(child) + text[end:]
        return text

    def call(self, matched: str, offset: Optional[int], args: Optional[Sequence[Tuple[str, str]]] = None) -> str:
        line, column = self.positions.position(self.base_offset + (offset or 0))
        key = self.ctx.resolve(matched, line, column)
        if key is None:
            return quote_js(matched, self.quote)
        call = build_call(self.ctx.call_name, key, self.quote, args)
        if self.ctx.with_comment:
            call += " " + block_comment(self.ctx.value_of(matched))
        return call

    def _whole_template_match(self, node: ex.TemplateLiteral) -> Optional[str]:
        if not node.expressions:
            return None
        raw = node.quasis[0]
        for index, quasi in enumerate(node.quasis[1:], start=1):
            raw += "${arg%d}" % index + quasi
        match = self.ctx.pattern.search(raw)
        if match and match.start() == 0 and match.end() == len(raw):
            return raw
        return None

    def _rewrite_template(self, node: ex.TemplateLiteral, top: bool) -> str:
        pattern = self.ctx.pattern
        if any(pattern.search(q) for q in node.quasis):
            parts: List[str] = []
            leading = 0
            counting = True
            for index, quasi in enumerate(node.quasis):
                for is_match, chunk, _ in split_matches(quasi, pattern):
                    counting = False
                    if is_match:
                        parts.append(self.call(cook_js_string(chunk), node.start))
                    else:
                        parts.append(quote_js(cook_js_string(chunk), self.quote))
                if index < len(node.expressions):
                    expression = node.expressions[index]
                    text = self.rewrite(expression)
                    if not isinstance(expression, _SIMPLE_KINDS):
                        text = f"({text})"
                    parts.append(text)
                    if counting:
                        leading += 1
            return self._group(join_concatenation(parts, leading), len(parts) > 1, top)

        raw = self._whole_template_match(node)
        if raw is not None:
            args = [
                (f"arg{index}", self.rewrite(expression))
                for index, expression in enumerate(node.expressions, start=1)
            ]
            return self.call(raw, node.start, args)

        rebuilt = node.quasis[0]
        for expression, quasi in zip(node.expressions, node.quasis[1:]):
            rebuilt += "${" + self.rewrite(expression, top=True) + "}" + quasi
        return "`" + rebuilt + "`"

    @staticmethod
    def _group(text: str, multi: bool, top: bool) -> str:
        if multi and not top:
            return f"({text})"
        return text


class _Pass:
    """State of one planning pass over a template block."""

    def __init__(self, ctx: PlanningContext, template: str, offset: int = 0):
        self.ctx = ctx
        self.template = template
        self.offset = offset
        self.positions = SourceText(template)
        self.collector = SpanCollector()

    def position(self, offset: int) -> Tuple[int, int]:
        return self.positions.position(offset - self.offset)

    def add_span(self, start: int, end: int, replacement: str) -> None:
        line, column = self.position(start)
        end_line, end_column = self.position(end)
        self.collector.add(PatchSpan(
            start=start,
            end=end,
            replacement=replacement,
            line=line + self.ctx.line_offset,
            column=column,
            end_line=end_line + self.ctx.line_offset,
            end_column=end_column,
        ))

    def call(self, matched: str, offset: int, quote: str = "'", args=None) -> Optional[str]:
        line, column = self.position(offset)
        key = self.ctx.resolve(matched, line, column)
        if key is None:
            return None
        return build_call(self.ctx.call_name, key, quote, args)

    def text_replacement(self, matched: str, offset: int) -> Optional[str]:
        call = self.call(matched, offset)
        if call is None:
            return None
        replacement = "{{ " + call + " }}"
        if self.ctx.with_comment:
            replacement += " " + html_comment(self.ctx.value_of(matched))
        return replacement

    def plan_text(self, text: str, base: int) -> None:
        for match in self.ctx.pattern.finditer(text):
            replacement = self.text_replacement(html.unescape(match.group(0)), base + match.start())
            if replacement is not None:
                self.add_span(base + match.start(), base + match.end(), replacement)

    def static_attribute(self, name: str, value: str, value_offset: int, quote: str) -> Optional[str]:
        """``title="___Hi___"`` becomes ``:title="t('Hi')"``."""
        js_quote = opposite_quote(quote)
        parts: List[str] = []
        for is_match, chunk, chunk_offset in split_matches(value, self.ctx.pattern):
            if is_match:
                chunk = html.unescape(chunk)
                call = self.call(chunk, value_offset + chunk_offset, js_quote)
                if call is None:
                    return None
                if self.ctx.with_comment:
                    call += " " + block_comment(self.ctx.value_of(chunk))
                parts.append(call)
            else:
                parts.append(quote_js(chunk, js_quote))
        return f":{name}={quote}{' + '.join(parts)}{quote}"

    def regex_expression(self, expression: str, offset: int, quote: str) -> None:
        """Rewrite the three literal shapes inside an expression."""
        pattern = self.ctx.pattern
        local = SpanCollector()
        literals = list(_LITERAL_RE.finditer(expression))
        handled = set()

        # cond ? '___A___' : '___B___'
        for index, (first, second) in enumerate(zip(literals, literals[1:])):
            if index in handled:
                continue
            if not _TERNARY_BEFORE_RE.search(expression[:first.start()]):
                continue
            if not _TERNARY_BETWEEN_RE.match(expression[first.end():second.start()]):
                continue
            a_body, b_body = first.group(0)[1:-1], second.group(0)[1:-1]
            if not (pattern.fullmatch(a_body) and pattern.fullmatch(b_body)):
                continue
            call_a = self._literal_call(first, offset, quote)
            call_b = self._literal_call(second, offset, quote)
            if call_a and call_b:
                local.add(PatchSpan(first.start(), second.end(), f"{call_a} : {call_b}"))
                handled.update((index, index + 1))

        for index, literal in enumerate(literals):
            if index in handled or not pattern.search(literal.group(0)):
                continue
            replacement = self._literal_call(literal, offset, quote)
            if replacement is not None:
                local.add(PatchSpan(literal.start(), literal.end(), replacement))

        # bare ___text___ outside any literal
        for match in pattern.finditer(expression):
            if any(lit.start() <= match.start() < lit.end() for lit in literals):
                continue
            call = self.call(match.group(0), offset + match.start(), quote)
            if call is not None:
                local.add(PatchSpan(match.start(), match.end(), self._with_comment(call, match.group(0))))

        if len(local):
            rewritten = apply_patches(expression, local)
            self.add_span(offset, offset + len(expression), rewritten)

    def _literal_call(self, literal: re.Match, offset: int, quote: str) -> Optional[str]:
        token = literal.group(0)
        body = token[1:-1]
        pattern = self.ctx.pattern
        position = offset + literal.start()

        if token.startswith("`"):
            if "${" in body:
                match = pattern.fullmatch(body)
                if not match:
                    return None
                args = [
                    (f"arg{index}", expr.strip())
                    for index, expr in enumerate(_PLACEHOLDER_RE.findall(body), start=1)
                ]
                call = self.call(body, position, quote, args)
                return self._with_comment(call, body) if call else None
            body = cook_js_string(body)
        else:
            body = cook_js_string(body)

        parts: List[str] = []
        for is_match, chunk, _ in split_matches(body, pattern):
            if is_match:
                call = self.call(chunk, position, quote)
                if call is None:
                    return None
                parts.append(self._with_comment(call, chunk))
            else:
                parts.append(quote_js(chunk, quote))
        if len(parts) > 1:
            return "(" + " + ".join(parts) + ")"
        return parts[0] if parts else None

    def _with_comment(self, call: str, matched: str) -> str:
        if self.ctx.with_comment:
            return f"{call} {block_comment(self.ctx.value_of(matched))}"
        return call

    def apply(self, mode: str) -> TemplateResult:
        spans = list(self.collector)
        code = apply_patches(self.template, spans, offset=self.offset)
        return TemplateResult(code=code, spans=shift_spans(spans, -self.offset), mode=mode)


class _TreePass(_Pass):
    def __init__(self, ctx: PlanningContext, template: str):
        super().__init__(ctx, template, offset=len(TEMPLATE_WRAPPER_OPEN))

    def visit(self, node) -> None:
        if isinstance(node, RootNode):
            for child in node.children:
                self.visit(child)
        elif isinstance(node, ElementNode):
            for prop in node.props:
                if isinstance(prop, DirectiveNode):
                    self.directive(prop)
                else:
                    self.attribute(prop)
            for child in node.children:
                self.visit(child)
        elif isinstance(node, TextNode):
            self.plan_text(node.content, node.loc.start.offset)
        elif isinstance(node, InterpolationNode):
            self.expression(node.content, "'")

    def attribute(self, node: AttributeNode) -> None:
        value = node.value
        if value is None or not self.ctx.pattern.search(value.content):
            return
        replacement = self.static_attribute(node.name, value.content, value.loc.start.offset, node.quote)
        if replacement is not None:
            self.add_span(node.loc.start.offset, node.loc.end.offset, replacement)

    def directive(self, node: DirectiveNode) -> None:
        if node.exp is not None:
            self.expression(node.exp, opposite_quote(node.quote))

    def expression(self, exp: SimpleExpressionNode, quote: str) -> None:
        start, end = exp.loc.start.offset, exp.loc.end.offset
        content = exp.content
        ast = exp.ast
        pattern = self.ctx.pattern

        if ast is None or isinstance(ast, ex.Identifier):
            stripped = content.strip()
            if pattern.fullmatch(stripped):
                call = self.call(stripped, start, quote)
                if call is not None:
                    if self.ctx.with_comment:
                        call += " " + block_comment(self.ctx.value_of(stripped))
                    self.add_span(start, end, call)
            elif ast is None and pattern.search(content):
                logger.warning(f"Cannot parse template expression {content!r}, rewriting it in regex mode")
                self.regex_expression(content, start, quote)
            return

        rewriter = ExpressionRewriter(self.ctx, content, start - self.offset, self.positions, quote)
        if rewriter.has_unsupported_match(ast):
            logger.warning(f"Unsupported template expression {content!r}, rewriting it in regex mode")
            self.regex_expression(content, start, quote)
            return
        if not rewriter.contains_match(ast):
            return
        try:
            replacement = rewriter.rewrite(ast, top=True)
        except ReconstructionFailed as e:
            if self.ctx.options.reconstruction_policy == "abort":
                raise
            logger.warning(f"Keeping template expression {content!r} unchanged: {e}")
            return
        if replacement != content:
            self.add_span(start, end, replacement)


# --- regex mode -------------------------------------------------------------

_MARKUP_TOKEN_RE = re.compile(
    r"(?P<interp>\{\{(?P<expr>[\s\S]*?)\}\})"
    r"|(?P<comment><!--[\s\S]*?-->)"
    r"|(?P<tag></?[A-Za-z][^\s/>]*(?:\"[^\"]*\"|'[^']*'|[^'\">])*>)"
)
_TAG_NAME_RE = re.compile(r"</?[A-Za-z][^\s/>]*")
_ATTR_RE = re.compile(
    r"""(?P<name>[^\s"'<>/=]+)(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s"'=<>`]+)))?"""
)


class _RegexPass(_Pass):
    def run(self) -> None:
        cursor = 0
        for token in _MARKUP_TOKEN_RE.finditer(self.template):
            if token.start() > cursor:
                self.plan_text(self.template[cursor:token.start()], cursor)
            if token.group("interp") is not None:
                inner_start = token.start("expr")
                expression = self.template[inner_start:token.end("expr")]
                stripped = expression.strip()
                if stripped:
                    lead = len(expression) - len(expression.lstrip())
                    self.regex_expression(stripped, inner_start + lead, "'")
            elif token.group("tag") is not None:
                self.tag(token.group("tag"), token.start())
            cursor = token.end()
        if cursor < len(self.template):
            self.plan_text(self.template[cursor:], cursor)

    def tag(self, tag: str, offset: int) -> None:
        name_match = _TAG_NAME_RE.match(tag)
        if name_match is None or tag.startswith("</"):
            return
        body_start = name_match.end()
        for attr in _ATTR_RE.finditer(tag, body_start):
            name = attr.group("name")
            for group, quote in (("dq", '"'), ("sq", "'"), ("uq", "")):
                value = attr.group(group)
                if value is not None:
                    break
            else:
                continue
            if not self.ctx.pattern.search(value):
                continue
            value_offset = offset + attr.start(group)
            if name.startswith((":", "@", "#", "v-")):
                self.regex_expression(value, value_offset, opposite_quote(quote or '"'))
            else:
                replacement = self.static_attribute(name, value, value_offset, quote or '"')
                if replacement is not None:
                    self.add_span(offset + attr.start(), offset + attr.end(), replacement)


class TemplatePlanner:
    """Chooses the planning mode and applies its result."""

    def __init__(self, compiler_manager: Optional[CompilerManager] = None):
        self.compiler_manager = compiler_manager
        self.logger = logging.getLogger(__name__)

    def process(self, template: str, ctx: PlanningContext) -> TemplateResult:
        if not ctx.pattern.search(template):
            return TemplateResult(code=template, mode="skipped")

        options = ctx.options
        if options.template_mode == "regex":
            return self.process_regex(template, ctx)

        compiler = self._loaded_compiler(options.compiler_version)
        if compiler is None:
            if options.template_mode == "ast" and options.disabled_fallback:
                self.logger.warning(
                    "AST template mode requested but no markup compiler is loaded; "
                    "fallback disabled, template left unchanged"
                )
                return TemplateResult(code=template, mode="unchanged")
            self.logger.warning("No markup compiler loaded, using regex template mode")
            return self.process_regex(template, ctx)

        try:
            return self.process_tree(template, compiler, ctx)
        except (ParseError, ReconstructionFailed) as e:
            if options.disabled_fallback:
                self.logger.warning(
                    f"Template AST processing failed ({e}); fallback disabled, template left unchanged"
                )
                return TemplateResult(code=template, mode="unchanged")
            self.logger.warning(f"Template AST processing failed ({e}); falling back to regex mode")
            return self.process_regex(template, ctx)

    def process_tree(self, template: str, compiler, ctx: PlanningContext) -> TemplateResult:
        root = compiler.parse(TEMPLATE_WRAPPER_OPEN + template + TEMPLATE_WRAPPER_CLOSE)
        tree_pass = _TreePass(ctx, template)
        tree_pass.visit(root)
        return tree_pass.apply("ast")

    def process_regex(self, template: str, ctx: PlanningContext) -> TemplateResult:
        regex_pass = _RegexPass(ctx, template)
        regex_pass.run()
        return regex_pass.apply("regex")

    def _loaded_compiler(self, version: str):
        manager = self.compiler_manager
        if manager is None or not manager.has_loaded_compiler(version):
            return None
        return manager.get_loaded_compiler(version)
