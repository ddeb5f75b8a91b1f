"""
Script replacement planner
==========================

A single pass over the parsed script emits one ``PatchSpan`` per rewritten
literal. The spans are then materialized in one of two ways:

- ``patch``: spans are spliced into the original text and the import/hook
  are added with the text-level injector. Everything else stays byte-identical.
- ``regenerate``: spans are spliced, the result is re-parsed, the tree-level
  injector adds the import/hook and the whole block is reprinted.

Both ways introduce the same calls and record the same keys.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import jsbeautifier
from tree_sitter import Node

from .codegen import (
    block_comment,
    build_call,
    cook_js_string,
    join_concatenation,
    line_comment,
    quote_js,
    split_matches,
)
from .context import PlanningContext
from .exceptions import ParseError
from .injector import HookConfig, TextInjector, TreeInjector
from .patcher import SpanCollector, apply_patches
from .script_parser import (
    ParsedScript,
    ScriptParser,
    first_named,
    is_tagged_template,
    same_node,
    template_parts,
)
from .types import PatchSpan

logger = logging.getLogger(__name__)

CALL_QUOTE = '"'

# strings in these positions are never user-facing text
_SKIPPED_PARENTS = {
    "import_statement",
    "export_statement",
    "import_require_clause",
    "literal_type",
    "enum_assignment",
    "enum_body",
    "property_signature",
    "jsx_namespace_name",
}

# a concatenation can replace a literal here without parentheses
_CONCAT_SAFE_PARENTS = {
    "variable_declarator",
    "arguments",
    "assignment_expression",
    "return_statement",
    "expression_statement",
    "pair",
    "array",
    "jsx_expression",
    "parenthesized_expression",
    "template_substitution",
    "arrow_function",
    "ternary_expression",
    "public_field_definition",
    "field_definition",
}

_SIMPLE_NODE_TYPES = {
    "identifier",
    "member_expression",
    "subscript_expression",
    "call_expression",
    "string",
    "template_string",
    "number",
    "parenthesized_expression",
    "this",
    "true",
    "false",
    "null",
    "undefined",
}


@dataclass
class ScriptPlan:
    spans: List[PatchSpan] = field(default_factory=list)
    # spans that introduced a translation call (comment insertions excluded)
    call_spans: List[PatchSpan] = field(default_factory=list)

    @property
    def call_count(self) -> int:
        return len(self.call_spans)


@dataclass
class ScriptResult:
    code: str
    plan: ScriptPlan
    injected: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.plan.spans) or self.injected


class ScriptPlanner:
    """Plans literal replacements over one parsed script."""

    def __init__(self, ctx: PlanningContext, parsed: ParsedScript):
        self.ctx = ctx
        self.parsed = parsed
        self.logger = logging.getLogger(__name__)
        self._line_comments: "OrderedDict[int, List[str]]" = OrderedDict()

    def plan(self) -> ScriptPlan:
        call_spans = self._walk(self.parsed.root)
        collector = SpanCollector()
        collector.extend(call_spans)
        for position, values in self._line_comments.items():
            comment = " " + line_comment(", ".join(values))
            collector.add(PatchSpan(position, position, comment, *self._span_position(position, position)))
        return ScriptPlan(spans=list(collector), call_spans=call_spans)

    # traversal -------------------------------------------------------

    def _walk(self, root: Node) -> List[PatchSpan]:
        spans: List[PatchSpan] = []
        stack = [root]
        while stack:
            node = stack.pop()
            planned = self._plan_node(node)
            if planned is not None:
                spans.extend(planned)
                continue
            stack.extend(reversed(node.children))
        return spans

    def _plan_node(self, node: Node) -> Optional[List[PatchSpan]]:
        """Spans for ``node``; None means descend into its children."""
        kind = node.type
        if kind == "string":
            return self._plan_string(node)
        if kind == "template_string" and not is_tagged_template(node):
            return self._plan_template(node)
        if kind == "jsx_text":
            return self._plan_jsx_text(node)
        if kind == "comment":
            return []
        return None

    def _render(self, node: Node) -> str:
        """Source text of ``node`` with nested literals already rewritten."""
        start, _ = self.parsed.span(node)
        return apply_patches(self.parsed.text_of(node), self._walk(node), offset=start)

    # helpers ---------------------------------------------------------

    def _span_position(self, start: int, end: int) -> Tuple[int, int, int, int]:
        line, column = self.parsed.source.position(start)
        end_line, end_column = self.parsed.source.position(end)
        offset = self.ctx.line_offset
        return line + offset, column, end_line + offset, end_column

    def _span(self, node: Node, replacement: str) -> PatchSpan:
        start, end = self.parsed.span(node)
        return PatchSpan(start, end, replacement, *self._span_position(start, end))

    def _call(self, matched: str, offset: int, args: Optional[Sequence[Tuple[str, str]]] = None) -> Optional[str]:
        line, column = self.parsed.source.position(offset)
        key = self.ctx.resolve(matched, line, column)
        if key is None:
            return None
        return build_call(self.ctx.call_name, key, CALL_QUOTE, args)

    def _with_comment(self, call: str, matched: str, node: Node, inline: bool = False) -> str:
        if not self.ctx.with_comment:
            return call
        value = self.ctx.value_of(matched)
        if inline or self.ctx.options.extracted_comment_type == "block":
            return f"{call} {block_comment(value)}"
        self._line_comments.setdefault(self._statement_line_end(node), []).append(value)
        return call

    def _statement_line_end(self, node: Node) -> int:
        current = node
        while current.parent is not None:
            kind = current.type
            if kind.endswith("statement") or kind.endswith("declaration") or kind.endswith("definition"):
                break
            current = current.parent
        end = self.parsed.span(current)[1]
        return self.parsed.source.line_end(end)

    def _needs_parens(self, node: Node) -> bool:
        parent = node.parent
        if parent is None or parent.type in _CONCAT_SAFE_PARENTS:
            return False
        if parent.type == "binary_expression":
            operator = parent.child_by_field_name("operator")
            return operator is None or self.parsed.text_of(operator) != "+"
        return True

    def _is_translation_argument(self, node: Node) -> bool:
        parent = node.parent
        if parent is None or parent.type != "arguments":
            return False
        call = parent.parent
        if call is None or call.type != "call_expression":
            return False
        function = call.child_by_field_name("function")
        if function is None:
            return False
        callee = self.parsed.text_of(function)
        method = self.ctx.options.translation_method.split(".")[-1]
        return callee == self.ctx.call_name or callee.split(".")[-1] in (method, "$t")

    def _is_skipped_string(self, node: Node) -> bool:
        parent = node.parent
        if parent is None:
            return False
        if parent.type in _SKIPPED_PARENTS:
            return True
        if parent.type in ("pair", "method_definition", "public_field_definition", "field_definition"):
            key = parent.child_by_field_name("key") or parent.child_by_field_name("name") \
                or parent.child_by_field_name("property")
            if same_node(key, node):
                return True
        return self._is_translation_argument(node)

    # planners --------------------------------------------------------

    def _plan_string(self, node: Node) -> List[PatchSpan]:
        parent = node.parent
        if parent is not None and parent.type == "jsx_attribute":
            return self._plan_jsx_attribute(node)
        if self._is_skipped_string(node):
            return []

        raw = self.parsed.text_of(node)
        value = cook_js_string(raw[1:-1])
        parts = split_matches(value, self.ctx.pattern, first_only=True)
        if not any(is_match for is_match, _, _ in parts):
            return []

        start, _ = self.parsed.span(node)
        rendered: List[str] = []
        for is_match, chunk, _ in parts:
            if not is_match:
                rendered.append(quote_js(chunk, CALL_QUOTE))
                continue
            call = self._call(chunk, start)
            if call is None:
                return []
            rendered.append(self._with_comment(call, chunk, node))

        replacement = " + ".join(rendered)
        if len(rendered) > 1 and self._needs_parens(node):
            replacement = f"({replacement})"
        return [self._span(node, replacement)]

    def _plan_template(self, node: Node) -> Optional[List[PatchSpan]]:
        pattern = self.ctx.pattern
        quasis, substitutions = template_parts(self.parsed, node)
        texts = [self.parsed.text[q_start:q_end] for q_start, q_end in quasis]

        if any(pattern.search(text) for text in texts):
            parts: List[str] = []
            leading = 0
            counting = True
            for index, ((q_start, _), text) in enumerate(zip(quasis, texts)):
                for is_match, chunk, chunk_offset in split_matches(text, pattern):
                    counting = False
                    if is_match:
                        cooked = cook_js_string(chunk)
                        call = self._call(cooked, q_start + chunk_offset)
                        if call is None:
                            return None
                        parts.append(self._with_comment(call, cooked, node))
                    else:
                        parts.append(quote_js(cook_js_string(chunk), CALL_QUOTE))
                if index < len(substitutions):
                    parts.append(self._substitution(substitutions[index]))
                    if counting:
                        leading += 1
            replacement = join_concatenation(parts, leading)
            if len(parts) > 1 and self._needs_parens(node):
                replacement = f"({replacement})"
            return [self._span(node, replacement)]

        if not substitutions:
            return []

        raw = texts[0]
        for index, text in enumerate(texts[1:], start=1):
            raw += "${arg%d}" % index + text
        match = pattern.search(raw)
        if not match or match.start() != 0 or match.end() != len(raw):
            return None

        args = [
            (f"arg{index}", self._render(first_named(sub)) if first_named(sub) is not None else "undefined")
            for index, sub in enumerate(substitutions, start=1)
        ]
        call = self._call(raw, self.parsed.span(node)[0], args)
        if call is None:
            return None
        return [self._span(node, self._with_comment(call, raw, node))]

    def _substitution(self, substitution: Node) -> str:
        expression = first_named(substitution)
        if expression is None:
            return '""'
        rendered = self._render(expression)
        if expression.type not in _SIMPLE_NODE_TYPES:
            rendered = f"({rendered})"
        return rendered

    def _plan_jsx_text(self, node: Node) -> List[PatchSpan]:
        text = self.parsed.text_of(node)
        start, _ = self.parsed.span(node)
        spans: List[PatchSpan] = []
        for match in self.ctx.pattern.finditer(text):
            call = self._call(match.group(0), start + match.start())
            if call is None:
                continue
            call = self._with_comment(call, match.group(0), node, inline=True)
            match_start, match_end = start + match.start(), start + match.end()
            spans.append(PatchSpan(
                match_start, match_end, "{" + call + "}",
                *self._span_position(match_start, match_end),
            ))
        return spans

    def _plan_jsx_attribute(self, node: Node) -> List[PatchSpan]:
        value = self.parsed.text_of(node)[1:-1]
        if not self.ctx.pattern.search(value):
            return []
        start, _ = self.parsed.span(node)
        rendered: List[str] = []
        for is_match, chunk, chunk_offset in split_matches(value, self.ctx.pattern):
            if not is_match:
                rendered.append(quote_js(chunk, CALL_QUOTE))
                continue
            call = self._call(chunk, start + 1 + chunk_offset)
            if call is None:
                return []
            rendered.append(self._with_comment(call, chunk, node, inline=True))
        return [self._span(node, "{" + " + ".join(rendered) + "}")]


# ----------------------------------------------------------------------------
# Materialization
# ----------------------------------------------------------------------------

def reprint(code: str, parser: ScriptParser) -> str:
    """Reformat ``code``; the input is returned when the output does not parse."""
    body = code.strip()
    if not body:
        return code
    leading = code[:len(code) - len(code.lstrip())]
    trailing = code[len(code.rstrip()):]

    options = jsbeautifier.default_options()
    options.indent_size = 2
    options.preserve_newlines = True
    options.max_preserve_newlines = 2
    options.brace_style = "collapse,preserve-inline"
    options.e4x = True
    printed = jsbeautifier.beautify(body, options).strip()

    if not parser.is_valid(printed):
        logger.warning("Reprinted script does not parse, keeping unformatted output")
        return code
    return leading + printed + trailing


class ScriptProcessor:
    """Plans, materializes and injects for one script block."""

    def __init__(
        self,
        ctx: PlanningContext,
        plugins: Sequence[str] = ("jsx",),
        hook: Optional[HookConfig] = None,
    ):
        self.ctx = ctx
        self.parser = ScriptParser(plugins)
        self.hook = hook
        self.logger = logging.getLogger(__name__)

    def process(self, code: str, is_setup: bool = False, force_injection: bool = False) -> ScriptResult:
        parsed = self.parser.parse(code)
        plan = ScriptPlanner(self.ctx, parsed).plan()

        inject = self.hook is not None and (plan.call_count > 0 or force_injection)
        if not plan.spans and not inject:
            return ScriptResult(code=code, plan=plan)

        patched = apply_patches(code, plan.spans)
        if self.ctx.options.rewrite_mode == "regenerate":
            result = self._regenerate(patched, inject, is_setup)
        else:
            result = TextInjector(self.hook).ensure(patched, is_setup) if inject else patched

        injected = inject and result != patched
        return ScriptResult(code=result, plan=plan, injected=injected)

    def _regenerate(self, patched: str, inject: bool, is_setup: bool) -> str:
        try:
            reparsed = self.parser.parse(patched)
        except ParseError as e:
            raise ParseError(f"Rewritten script is not valid: {e}") from e
        code = TreeInjector(self.hook).ensure(reparsed, is_setup) if inject else patched
        return reprint(code, self.parser)
