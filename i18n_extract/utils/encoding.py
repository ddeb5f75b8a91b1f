"""
Encoding helpers to read and write source files without crashing on bad bytes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import chardet

logger = logging.getLogger(__name__)


def detect_encoding(raw: bytes, preferred: Tuple[str, ...] = ("utf-8-sig", "utf-8")) -> str:
    """First preferred encoding that decodes ``raw``, else chardet's guess."""
    for enc in preferred:
        try:
            raw.decode(enc)
            return enc
        except UnicodeDecodeError:
            continue
    detected = chardet.detect(raw)
    return detected.get("encoding") or "utf-8"


def read_text_safely(path: Path, preferred: Tuple[str, ...] = ("utf-8-sig", "utf-8")) -> Optional[str]:
    """
    Read a source file as text:
    - try preferred encodings first
    - then chardet detection with errors='replace'
    Line endings are kept as they are. Returns None on I/O failure.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return None

    enc = detect_encoding(raw, preferred)
    try:
        return raw.decode(enc, errors="replace")
    except LookupError:
        logger.warning(f"Unknown encoding '{enc}' detected for {path}, decoding as utf-8")
        return raw.decode("utf-8", errors="replace")


def write_text_safely(path: Path, text: str, encoding: str = "utf-8") -> bool:
    """Write ``text`` without newline translation. Returns True on success."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding=encoding, newline="") as f:
            f.write(text)
        return True
    except OSError as e:
        logger.error(f"Cannot write {path}: {e}")
        return False
