"""
Single-file component splitting and reassembly.

Blocks are located by tag counting so that nested ``<template>`` elements
inside the root template do not end it early. Reassembly splices the new
block contents into the original file, leaving everything outside the
rewritten blocks untouched.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .codegen import detect_newline
from .patcher import apply_patches
from .types import PatchSpan

_ATTR_RE = re.compile(r"""([^\s=/>]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+)))?""")


@dataclass
class SfcBlock:
    """One top-level block. ``start``/``end`` delimit its content."""
    name: str
    content: str
    attrs: Dict[str, Optional[str]]
    start: int
    end: int
    tag_start: int
    tag_end: int

    @property
    def lang(self) -> Optional[str]:
        return self.attrs.get("lang")

    @property
    def is_setup(self) -> bool:
        return "setup" in self.attrs


@dataclass
class SfcDocument:
    code: str
    template: Optional[SfcBlock] = None
    script: Optional[SfcBlock] = None
    scripts: List[SfcBlock] = field(default_factory=list)

    @property
    def is_setup_script(self) -> bool:
        return self.script is not None and self.script.is_setup

    def line_offset(self, block: SfcBlock) -> int:
        """Lines in the file before the first line of ``block``'s content."""
        return self.code.count("\n", 0, block.start)


def parse_attrs(raw: str) -> Dict[str, Optional[str]]:
    attrs: Dict[str, Optional[str]] = {}
    for match in _ATTR_RE.finditer(raw or ""):
        name = match.group(1)
        value = next((g for g in match.groups()[1:] if g is not None), None)
        attrs[name] = value
    return attrs


def _tag_patterns(name: str) -> Tuple[re.Pattern, re.Pattern]:
    open_re = re.compile(rf"<{name}(\s[^>]*)?>", re.IGNORECASE)
    close_re = re.compile(rf"</{name}\s*>", re.IGNORECASE)
    return open_re, close_re


def _matching_close(code: str, name: str, position: int) -> Optional[re.Match]:
    open_re, close_re = _tag_patterns(name)
    depth = 1
    cursor = position
    while depth > 0:
        close = close_re.search(code, cursor)
        if close is None:
            return None
        nested = open_re.search(code, cursor, close.start())
        if nested is not None:
            if not nested.group(0).endswith("/>"):
                depth += 1
            cursor = nested.end()
            continue
        depth -= 1
        if depth == 0:
            return close
        cursor = close.end()
    return None


def extract_blocks(code: str, name: str) -> List[SfcBlock]:
    """All top-level ``<name>`` blocks of ``code`` in document order."""
    open_re, _ = _tag_patterns(name)
    blocks: List[SfcBlock] = []
    cursor = 0
    while True:
        opening = open_re.search(code, cursor)
        if opening is None:
            break
        if opening.group(0).endswith("/>"):
            cursor = opening.end()
            continue
        close = _matching_close(code, name, opening.end())
        if close is None:
            break
        blocks.append(SfcBlock(
            name=name,
            content=code[opening.end():close.start()],
            attrs=parse_attrs(opening.group(1) or ""),
            start=opening.end(),
            end=close.start(),
            tag_start=opening.start(),
            tag_end=close.end(),
        ))
        cursor = close.end()
    return blocks


def extract_block(code: str, name: str) -> Optional[SfcBlock]:
    blocks = extract_blocks(code, name)
    return blocks[0] if blocks else None


def parse_sfc(code: str) -> SfcDocument:
    """Split a component; ``<script setup>`` wins when both script kinds exist."""
    scripts = extract_blocks(code, "script")
    script = next((s for s in scripts if s.is_setup), scripts[0] if scripts else None)
    return SfcDocument(
        code=code,
        template=extract_block(code, "template"),
        script=script,
        scripts=scripts,
    )


def script_setup_block(body: str, lang: Optional[str] = None, newline: str = "\n") -> str:
    lang_attr = f' lang="{lang}"' if lang else ""
    return f"<script setup{lang_attr}>{newline}{body}{newline}</script>"


def assemble_sfc(
    doc: SfcDocument,
    new_contents: Sequence[Tuple[SfcBlock, str]],
    appended_script: Optional[str] = None,
) -> str:
    """Rebuild the file from replaced block contents.

    ``appended_script`` is a complete block placed after the template (or at
    the end of the file when there is none).
    """
    spans = [
        PatchSpan(block.start, block.end, content)
        for block, content in new_contents
        if content != block.content
    ]
    if appended_script:
        position = doc.template.tag_end if doc.template is not None else len(doc.code)
        newline = detect_newline(doc.code)
        spans.append(PatchSpan(position, position, newline * 2 + appended_script))
    return apply_patches(doc.code, spans)
