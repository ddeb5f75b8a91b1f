"""
File discovery, batch processing and translation file output.
"""

import concurrent.futures
import json
import logging
import os
import re
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import I18nExtractError
from .processor import TransformPipeline, TransformResult
from .types import ExtractedString, UsedExistingKey
from ..utils.encoding import read_text_safely, write_text_safely

logger = logging.getLogger(__name__)

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> List[str]:
    """``src/*.{js,ts}`` -> ``['src/*.js', 'src/*.ts']``."""
    match = _BRACE_RE.search(pattern)
    if match is None or "," not in match.group(1):
        return [pattern]
    head, tail = pattern[:match.start()], pattern[match.end():]
    expanded: List[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def _matches(rel_path: str, patterns: Sequence[str]) -> bool:
    for pattern in patterns:
        if fnmatch(rel_path, pattern):
            return True
        # "**/" also matches zero directories
        if "**/" in pattern and fnmatch(rel_path, pattern.replace("**/", "")):
            return True
    return False


def collect_files(
    patterns: Iterable[str],
    root: str = ".",
    exclude: Optional[Iterable[str]] = None,
) -> List[Path]:
    """Files under ``root`` matching any include pattern and no exclude pattern."""
    include = [p for pattern in patterns for p in expand_braces(pattern.replace("\\", "/"))]
    excluded = [p for pattern in (exclude or []) for p in expand_braces(pattern.replace("\\", "/"))]
    root_path = Path(root)

    found: List[Path] = []
    for current, dirs, files in os.walk(root_path):
        rel_dir = Path(current).relative_to(root_path).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"
        dirs[:] = sorted(d for d in dirs if not _matches(f"{rel_dir}{d}/", excluded))
        for name in sorted(files):
            rel_path = rel_dir + name
            if _matches(rel_path, include) and not _matches(rel_path, excluded):
                found.append(Path(current) / name)

    logger.debug(f"Collected {len(found)} files under {root_path}")
    return found


def _flatten(data: Dict, prefix: str = "") -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, full_key))
        elif isinstance(value, str):
            flat[full_key] = value
    return flat


def _read_json(path: Path) -> Optional[Dict]:
    text = read_text_safely(path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.error(f"{path} must contain a JSON object")
        return None
    return data


def load_existing_translations(path: Optional[str]) -> Dict[str, str]:
    """Read a ``{key: value}`` file (nested objects use dotted keys) as ``{value: key}``."""
    if not path or not Path(path).exists():
        return {}
    data = _read_json(Path(path))
    if data is None:
        return {}
    value_to_key: Dict[str, str] = {}
    for key, value in _flatten(data).items():
        # first key wins for duplicated values
        value_to_key.setdefault(value, key)
    logger.info(f"Loaded {len(value_to_key)} existing translations from {path}")
    return value_to_key


def write_translations(path: str, extracted: Iterable[ExtractedString]) -> int:
    """Merge extracted keys into ``path``. Returns the number of new keys."""
    target = Path(path)
    data: Dict[str, str] = {}
    if target.exists():
        data = _read_json(target) or {}

    added = 0
    for record in extracted:
        if record.key not in data:
            data[record.key] = record.value
            added += 1

    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    if not write_text_safely(target, text):
        raise I18nExtractError(f"Cannot write translations to {target}")
    logger.info(f"Wrote {added} new keys to {target}")
    return added


@dataclass
class ProcessSummary:
    files_scanned: int = 0
    files_changed: int = 0
    failed: List[str] = field(default_factory=list)
    extracted: List[ExtractedString] = field(default_factory=list)
    used_existing: List[UsedExistingKey] = field(default_factory=list)

    def add(self, path: Path, result: Optional[TransformResult]) -> None:
        self.files_scanned += 1
        if result is None:
            self.failed.append(str(path))
            return
        if result.changed:
            self.files_changed += 1
        self.extracted.extend(result.extracted_strings)
        self.used_existing.extend(result.used_existing_keys)


def process_file(path: Path, pipeline: TransformPipeline, dry_run: bool = False) -> Optional[TransformResult]:
    """Transform one file in place. Returns None when the file fails."""
    code = read_text_safely(path)
    if code is None:
        return None
    try:
        result = pipeline.transform(code, str(path))
    except (I18nExtractError, ValueError) as e:
        logger.error(f"Failed to process {path}: {e}")
        return None

    if result.changed:
        logger.info(f"{'Would update' if dry_run else 'Updated'} {path} ({len(result.extracted_strings)} new strings)")
        if not dry_run and not write_text_safely(path, result.code):
            return None
    return result


def process_files(
    files: Sequence[Path],
    pipeline: TransformPipeline,
    dry_run: bool = False,
    jobs: int = 1,
) -> ProcessSummary:
    """Process ``files``; a failing file is logged and skipped."""
    options = pipeline.options
    if jobs > 1 and options.key_scope != "file":
        logger.warning("Global key scope requires sequential processing, ignoring --jobs")
        jobs = 1

    summary = ProcessSummary()
    with pipeline.compiler_manager.batch(options.compiler_version):
        if jobs > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
                results: List[Tuple[Path, Optional[TransformResult]]] = list(zip(
                    files, executor.map(lambda p: process_file(p, pipeline, dry_run), files)
                ))
        else:
            results = [(path, process_file(path, pipeline, dry_run)) for path in files]

    for path, result in results:
        summary.add(path, result)
    return summary
