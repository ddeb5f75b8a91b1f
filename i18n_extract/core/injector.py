"""
Import and hook injection
=========================

Makes the translation function resolvable in a rewritten script:

- a named import of the hook (``import { useI18n } from "vue-i18n";``)
- a hook statement (``const { t } = useI18n();``) in the right scope

Two flavours exist. ``TextInjector`` edits the text with line-based and
regex heuristics and is used with minimal patching. ``TreeInjector`` locates
insertion points on the parsed tree and is used when the script is
regenerated. Both do nothing when the declaration is already present.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from .codegen import detect_newline
from .patcher import apply_patches
from .script_parser import ParsedScript, first_named
from .types import PatchSpan

logger = logging.getLogger(__name__)

_IMPORT_START_RE = re.compile(r"""^import(?:\s|\{|['"*])""")
_IMPORT_END_RE = re.compile(r"""(?:\bfrom\s*['"][^'"]+['"]|^import\s*['"][^'"]+['"])\s*;?\s*(?://.*)?$""")
_SETUP_RE = re.compile(
    r"\bsetup\s*(?:\([^)]*\)|:\s*(?:async\s+)?(?:function\s*)?\([^)]*\)\s*(?:=>)?)\s*\{"
)
_DEFAULT_EXPORT_OBJECT_RE = re.compile(r"\bexport\s+default\s+(?:defineComponent\s*\(\s*)?\{")
_COMPONENT_RES = (
    re.compile(
        r"\bfunction\s+[A-Z][\w$]*\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?::\s*[^{=]+?)?\s*\{"
    ),
    re.compile(
        r"\b(?:const|let|var)\s+[A-Z][\w$]*\s*(?::\s*[^=]+?)?=\s*(?:async\s*)?"
        r"(?:function\s*)?\([^)]*\)\s*(?::\s*[^{=]+?)?\s*(?:=>)?\s*\{"
    ),
)


@dataclass
class HookConfig:
    """What has to be declared for ``translation_method`` to resolve."""
    translation_method: str = "t"
    hook_name: str = "useTranslation"
    source: str = "react-i18next"
    merge_imports: bool = True

    @classmethod
    def from_options(cls, options, translation_method: Optional[str] = None) -> "HookConfig":
        return cls(
            translation_method=translation_method or options.translation_method,
            hook_name=options.hook_name,
            source=options.import_source,
            merge_imports=options.i18n_import.merge_imports,
        )

    @property
    def needs_import(self) -> bool:
        # member calls such as this.$t rely on a global
        return "." not in self.translation_method

    @property
    def needs_hook(self) -> bool:
        return self.needs_import and self.hook_name != self.translation_method

    @property
    def imported_name(self) -> str:
        return self.hook_name if self.needs_hook else self.translation_method

    def import_line(self) -> str:
        return f'import {{ {self.imported_name} }} from "{self.source}";'

    def hook_statement(self) -> str:
        return f"const {{ {self.translation_method} }} = {self.hook_name}();"


# ----------------------------------------------------------------------------
# Text level
# ----------------------------------------------------------------------------

def _local_names(specifiers: str) -> List[str]:
    names = []
    for part in specifiers.split(","):
        part = part.strip()
        if not part or part.startswith("type "):
            continue
        names.append(re.split(r"\s+as\s+", part)[-1].strip())
    return names


def _brace_import_re(source: str) -> re.Pattern:
    return re.compile(
        r"import\s+(?:[\w$]+\s*,\s*)?\{(?P<names>[^}]*)\}\s*from\s*['\"]"
        + re.escape(source)
        + r"['\"]"
    )


def has_named_import(code: str, source: str, name: str) -> bool:
    """True when ``name`` is imported (as a local binding) from ``source``."""
    return any(
        name in _local_names(m.group("names"))
        for m in _brace_import_re(source).finditer(code)
    )


def import_block_end(lines: List[str]) -> int:
    """Index of the line right after the leading import statements.

    Multi-line imports are followed to their closing line. Without imports
    this is the first non-blank line.
    """
    last_import = -1
    first_content: Optional[int] = None
    in_import = False
    in_comment = False

    for index, line in enumerate(lines):
        stripped = line.strip()
        if in_import:
            if _IMPORT_END_RE.search(stripped):
                in_import = False
                last_import = index
            continue
        if in_comment:
            if "*/" in stripped:
                in_comment = False
            continue
        if not stripped:
            continue
        if first_content is None:
            first_content = index
        if stripped.startswith("//"):
            continue
        if stripped.startswith("/*"):
            if "*/" not in stripped:
                in_comment = True
            continue
        if _IMPORT_START_RE.match(stripped):
            if _IMPORT_END_RE.search(stripped):
                last_import = index
            else:
                in_import = True
            continue
        break

    if last_import >= 0:
        return last_import + 1
    if first_content is not None:
        return first_content
    return min(1, len(lines) - 1) if lines else 0


def insert_named_import(code: str, source: str, name: str, merge: bool = True) -> str:
    """Add ``import { name } from "source";`` unless it is already there."""
    if has_named_import(code, source, name):
        return code

    if merge:
        for match in _brace_import_re(source).finditer(code):
            if re.match(r"import\s+type\b", match.group(0)):
                continue
            names = match.group("names")
            body = names.rstrip()
            trailing = names[len(body):]
            if body.endswith(","):
                body = body[:-1].rstrip()
            if not body.strip():
                merged = f" {name} "
            elif "\n" in names:
                indent = re.search(r"\n([ \t]*)\S", names)
                merged = f"{body},\n{indent.group(1) if indent else '  '}{name}{trailing}"
            else:
                merged = f"{body}, {name}{trailing}"
            start, end = match.span("names")
            return code[:start] + merged + code[end:]

    lines = code.split("\n")
    index = import_block_end(lines)
    lines.insert(index, f'import {{ {name} }} from "{source}";')
    return "\n".join(lines)


def has_hook_destructure(code: str, variable: str, hook: str) -> bool:
    """Detects ``const { t } = useI18n()`` and ``const t = useI18n()``."""
    var = re.escape(variable)
    pattern = re.compile(
        r"\b(?:const|let|var)\s*(?:\{[^}]*(?<![\w$])" + var + r"(?![\w$])[^}]*\}|"
        + var + r")\s*=\s*" + re.escape(hook) + r"\s*\("
    )
    return bool(pattern.search(code))


def _indent_after(code: str, brace_end: int) -> str:
    line_start = code.rfind("\n", 0, brace_end) + 1
    base = re.match(r"[ \t]*", code[line_start:]).group(0)
    rest = code[brace_end:]
    following = re.search(r"\n([ \t]*)\S", rest)
    if following and len(following.group(1)) > len(base):
        return following.group(1)
    return base + ("\t" if "\t" in base else "  ")


def _insert_after_brace(code: str, brace_end: int, statement: str) -> str:
    indent = _indent_after(code, brace_end)
    return code[:brace_end] + f"\n{indent}{statement}" + code[brace_end:]


def synthesized_setup(statement: str, indent: str) -> str:
    inner = indent + ("\t" if "\t" in indent else "  ")
    return f"\n{indent}setup() {{\n{inner}{statement}\n{inner}return {{}};\n{indent}}},"


def insert_hook(code: str, statement: str, is_setup: bool = False) -> str:
    """Place ``statement`` in the setup body, component bodies or top level."""
    if not is_setup:
        setup = _SETUP_RE.search(code)
        if setup:
            return _insert_after_brace(code, setup.end(), statement)

        component = _DEFAULT_EXPORT_OBJECT_RE.search(code)
        if component:
            brace_end = component.end()
            indent = _indent_after(code, brace_end)
            return code[:brace_end] + synthesized_setup(statement, indent) + code[brace_end:]

        braces = sorted(
            {m.end() for regex in _COMPONENT_RES for m in regex.finditer(code)},
            reverse=True,
        )
        if braces:
            for brace_end in braces:
                code = _insert_after_brace(code, brace_end, statement)
            return code

    lines = code.split("\n")
    index = import_block_end(lines)
    lines.insert(index, statement)
    return "\n".join(lines)


class TextInjector:
    """Text-level, idempotent import and hook injection."""

    def __init__(self, config: HookConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def ensure(self, code: str, is_setup: bool = False) -> str:
        config = self.config
        if not config.needs_import:
            return code

        newline = detect_newline(code)
        if newline != "\n":
            code = code.replace(newline, "\n")
        code = insert_named_import(code, config.source, config.imported_name, config.merge_imports)
        if config.needs_hook and not has_hook_destructure(code, config.translation_method, config.hook_name):
            code = insert_hook(code, config.hook_statement(), is_setup)
            self.logger.debug(f"Inserted {config.hook_name}() hook")
        if newline != "\n":
            code = code.replace("\n", newline)
        return code


# ----------------------------------------------------------------------------
# Tree level
# ----------------------------------------------------------------------------

_FUNCTION_TYPES = {"function_expression", "function", "arrow_function", "generator_function"}


class TreeInjector:
    """Finds insertion points for import and hook on a parsed script."""

    def __init__(self, config: HookConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def ensure(self, parsed: ParsedScript, is_setup: bool = False) -> str:
        config = self.config
        if not config.needs_import:
            return parsed.text

        insertions: Dict[int, List[str]] = {}
        spans: List[PatchSpan] = []

        if not self.has_import(parsed):
            merge = self._merge_span(parsed) if config.merge_imports else None
            if merge is not None:
                spans.append(merge)
            else:
                position, text = self._import_insertion(parsed)
                insertions.setdefault(position, []).append(text)

        if config.needs_hook and not self.has_hook(parsed):
            for position, text in self._hook_insertions(parsed, is_setup):
                insertions.setdefault(position, []).append(text)

        newline = detect_newline(parsed.text)
        for position, texts in insertions.items():
            spans.append(PatchSpan(position, position, "".join(texts).replace("\n", newline)))
        return apply_patches(parsed.text, spans)

    # detection -------------------------------------------------------

    def _imports(self, parsed: ParsedScript) -> List[Node]:
        return [n for n in parsed.root.named_children if n.type == "import_statement"]

    def _import_source(self, parsed: ParsedScript, node: Node) -> Optional[str]:
        source = node.child_by_field_name("source")
        if source is None:
            return None
        return parsed.text_of(source)[1:-1]

    def _is_type_import(self, node: Node) -> bool:
        return any(child.type == "type" for child in node.children)

    def _named_imports(self, node: Node) -> Optional[Node]:
        for clause in node.named_children:
            if clause.type == "import_clause":
                for child in clause.named_children:
                    if child.type == "named_imports":
                        return child
        return None

    def has_import(self, parsed: ParsedScript) -> bool:
        name = self.config.imported_name
        for node in self._imports(parsed):
            if self._is_type_import(node) or self._import_source(parsed, node) != self.config.source:
                continue
            named = self._named_imports(node)
            if named is None:
                continue
            for spec in named.named_children:
                if spec.type != "import_specifier":
                    continue
                local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                if local is not None and parsed.text_of(local) == name:
                    return True
        return False

    def has_hook(self, parsed: ParsedScript) -> bool:
        variable = self.config.translation_method
        for node in parsed.walk():
            if node.type != "variable_declarator":
                continue
            value = node.child_by_field_name("value")
            if value is None or value.type != "call_expression":
                continue
            function = value.child_by_field_name("function")
            if function is None or parsed.text_of(function) != self.config.hook_name:
                continue
            name = node.child_by_field_name("name")
            if name is None:
                continue
            if name.type == "identifier" and parsed.text_of(name) == variable:
                return True
            if name.type == "object_pattern":
                for prop in name.named_children:
                    if prop.type == "shorthand_property_identifier_pattern" and parsed.text_of(prop) == variable:
                        return True
                    if prop.type == "pair_pattern":
                        bound = prop.child_by_field_name("value")
                        if bound is not None and parsed.text_of(bound) == variable:
                            return True
        return False

    # insertion points ------------------------------------------------

    def _merge_span(self, parsed: ParsedScript) -> Optional[PatchSpan]:
        for node in self._imports(parsed):
            if self._is_type_import(node) or self._import_source(parsed, node) != self.config.source:
                continue
            named = self._named_imports(node)
            if named is None:
                continue
            specs = [s for s in named.named_children if s.type == "import_specifier"]
            if specs:
                position = parsed.span(specs[-1])[1]
                return PatchSpan(position, position, f", {self.config.imported_name}")
            position = parsed.span(named)[0] + 1
            return PatchSpan(position, position, f" {self.config.imported_name} ")
        return None

    def _after_imports(self, parsed: ParsedScript) -> Tuple[int, bool]:
        """Position after the leading imports, and whether any import exists."""
        last_import = None
        for node in parsed.root.named_children:
            if node.type == "comment":
                continue
            if node.type != "import_statement":
                break
            last_import = node
        if last_import is not None:
            return parsed.span(last_import)[1], True
        statements = [n for n in parsed.root.named_children]
        if statements:
            return parsed.span(statements[0])[0], False
        return len(parsed.text), False

    def _import_insertion(self, parsed: ParsedScript) -> Tuple[int, str]:
        position, after_import = self._after_imports(parsed)
        line = self.config.import_line()
        if after_import:
            return position, "\n" + line
        return position, line + "\n"

    def _top_level_hook(self, parsed: ParsedScript) -> Tuple[int, str]:
        position, after_import = self._after_imports(parsed)
        statement = self.config.hook_statement()
        if after_import:
            return position, "\n" + statement
        return position, statement + "\n"

    def _body_insertion(self, parsed: ParsedScript, body: Node) -> Tuple[int, str]:
        brace_end = parsed.span(body)[0] + 1
        indent = _indent_after(parsed.text, brace_end)
        return brace_end, f"\n{indent}{self.config.hook_statement()}"

    def _hook_insertions(self, parsed: ParsedScript, is_setup: bool) -> List[Tuple[int, str]]:
        if is_setup:
            return [self._top_level_hook(parsed)]

        setup_body = self._find_setup_body(parsed)
        if setup_body is not None:
            return [self._body_insertion(parsed, setup_body)]

        component_object = self._find_default_export_object(parsed)
        if component_object is not None:
            brace_end = parsed.span(component_object)[0] + 1
            indent = _indent_after(parsed.text, brace_end)
            return [(brace_end, synthesized_setup(self.config.hook_statement(), indent))]

        bodies = self._component_bodies(parsed)
        if bodies:
            return [self._body_insertion(parsed, body) for body in bodies]

        return [self._top_level_hook(parsed)]

    def _find_setup_body(self, parsed: ParsedScript) -> Optional[Node]:
        for node in parsed.walk():
            if node.type == "method_definition":
                name = node.child_by_field_name("name")
                if name is not None and parsed.text_of(name) == "setup":
                    return node.child_by_field_name("body")
            elif node.type == "pair":
                key = node.child_by_field_name("key")
                value = node.child_by_field_name("value")
                if (
                    key is not None and parsed.text_of(key).strip("'\"") == "setup"
                    and value is not None and value.type in _FUNCTION_TYPES
                ):
                    body = value.child_by_field_name("body")
                    if body is not None and body.type == "statement_block":
                        return body
        return None

    def _find_default_export_object(self, parsed: ParsedScript) -> Optional[Node]:
        for node in parsed.root.named_children:
            if node.type != "export_statement":
                continue
            if not any(child.type == "default" for child in node.children):
                continue
            for child in node.named_children:
                if child.type == "object":
                    return child
                if child.type == "call_expression":
                    arguments = child.child_by_field_name("arguments")
                    first = first_named(arguments) if arguments is not None else None
                    if first is not None and first.type == "object":
                        return first
        return None

    def _component_bodies(self, parsed: ParsedScript) -> List[Node]:
        bodies: List[Node] = []
        for node in parsed.root.named_children:
            declaration = node
            if node.type == "export_statement":
                declaration = node.child_by_field_name("declaration") or first_named(node)
                if declaration is None:
                    continue
            if declaration.type == "function_declaration":
                name = declaration.child_by_field_name("name")
                body = declaration.child_by_field_name("body")
                if name is not None and parsed.text_of(name)[:1].isupper() and body is not None:
                    bodies.append(body)
            elif declaration.type in ("lexical_declaration", "variable_declaration"):
                for declarator in declaration.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    name = declarator.child_by_field_name("name")
                    value = declarator.child_by_field_name("value")
                    if (
                        name is None or value is None
                        or not parsed.text_of(name)[:1].isupper()
                        or value.type not in _FUNCTION_TYPES
                    ):
                        continue
                    body = value.child_by_field_name("body")
                    if body is not None and body.type == "statement_block":
                        bodies.append(body)
        return bodies
