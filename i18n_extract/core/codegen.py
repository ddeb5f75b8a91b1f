"""
Small helpers that render JavaScript snippets: quoted strings, translation
calls, concatenation chains and extracted-value comments.
"""

import re
from typing import List, Optional, Pattern, Sequence, Tuple

_JS_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def cook_js_string(raw: str) -> str:
    """Resolve JavaScript escape sequences in the body of a string literal."""

    def _replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        if seq in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
            # line continuation
            return ""
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _JS_ESCAPE_RE.sub(_replace, raw)


def quote_js(value: str, quote: str = '"') -> str:
    """Render ``value`` as a JavaScript string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return f"{quote}{escaped}{quote}"


def build_call(
    method: str,
    key: str,
    quote: str = '"',
    args: Optional[Sequence[Tuple[str, str]]] = None,
) -> str:
    """Render ``method(key)`` or ``method(key, { name: expr, ... })``."""
    rendered = quote_js(key, quote)
    if args:
        params = ", ".join(f"{name}: {expr}" for name, expr in args)
        return f"{method}({rendered}, {{ {params} }})"
    return f"{method}({rendered})"


def join_concatenation(parts: List[str], leading_expressions: int = 0) -> str:
    """Join rendered parts with ``+``.

    When the chain starts with two or more plain expressions an empty string
    is prepended so that ``+`` concatenates instead of adding numbers.
    """
    if leading_expressions >= 2:
        parts = ['""'] + parts
    return " + ".join(parts)


def comment_text(value: str) -> str:
    """Make an extracted value safe to embed in any comment style."""
    return (
        value.replace("*/", "* /")
        .replace("-->", "-- >")
        .replace("\r", " ")
        .replace("\n", " ")
    )


def block_comment(value: str) -> str:
    return f"/* {comment_text(value)} */"


def line_comment(value: str) -> str:
    return f"// {comment_text(value)}"


def html_comment(value: str) -> str:
    return f"<!-- {comment_text(value)} -->"


def split_matches(text: str, pattern: Pattern, first_only: bool = False) -> List[Tuple[bool, str, int]]:
    """Cut ``text`` into ``(is_match, chunk, offset)`` parts around pattern matches."""
    parts: List[Tuple[bool, str, int]] = []
    cursor = 0
    for match in pattern.finditer(text):
        if match.start() == match.end():
            continue
        if match.start() > cursor:
            parts.append((False, text[cursor:match.start()], cursor))
        parts.append((True, match.group(0), match.start()))
        cursor = match.end()
        if first_only:
            break
    if cursor < len(text):
        parts.append((False, text[cursor:], cursor))
    return parts


def detect_newline(text: str) -> str:
    """``"\\r\\n"`` when every line break in ``text`` is CRLF, else ``"\\n"``."""
    crlf = text.count("\r\n")
    if crlf and crlf == text.count("\n"):
        return "\r\n"
    return "\n"
