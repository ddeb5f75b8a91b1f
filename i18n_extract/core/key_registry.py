"""
Key Registry
============

Maps text values to stable translation keys. A value that is already known
from an existing translation source is reused and reported; a value seen for
the first time in the current scope gets a freshly minted key.
"""

import hashlib
import itertools
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Set, Tuple, Union

from .exceptions import ConfigError
from .types import ExtractedString, Location, UsedExistingKey

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = r"___(.+?)___"

KEY_STRATEGIES = ("value", "slug", "counter", "hash")
KEY_SCOPES = ("file", "global")

_PLACEHOLDER_RE = re.compile(r"\$\{[^}]*\}")
_SLUG_RE = re.compile(r"[^\w]+", re.UNICODE)

KeyGenerator = Callable[[str, str], str]


def compile_pattern(pattern: Union[str, Pattern]) -> Pattern:
    """Compile an extraction pattern, requiring a capture group for the payload."""
    if not isinstance(pattern, str):
        compiled = pattern
    else:
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ConfigError(f"Invalid extraction pattern {pattern!r}: {e}") from e
    if compiled.groups < 1:
        raise ConfigError(
            f"Extraction pattern {compiled.pattern!r} needs a capture group for the text"
        )
    return compiled


def canonical_value(payload: str) -> str:
    """Replace ``${...}`` placeholders with ``{arg1}``, ``{arg2}``, ..."""
    counter = itertools.count(1)
    return _PLACEHOLDER_RE.sub(lambda _m: f"{{arg{next(counter)}}}", payload)


def slugify(value: str, max_length: int = 64) -> str:
    slug = _SLUG_RE.sub("_", value.lower()).strip("_")
    return slug[:max_length].rstrip("_") or "key"


@dataclass
class KeyOptions:
    """Options consumed by ``resolve_key``."""
    pattern: Pattern
    generate_key: KeyGenerator


def resolve_key(
    matched_value: str,
    location: Location,
    existing_value_to_key: Dict[str, str],
    session_keys: Dict[str, str],
    extracted_out: List[ExtractedString],
    used_existing_out: List[UsedExistingKey],
    options: KeyOptions,
) -> Optional[str]:
    """Return the key for ``matched_value`` and record what happened.

    Lookup order: existing translations, keys minted earlier in this
    session, then a freshly generated key. Returns None when the pattern does
    not match ``matched_value``.
    """
    match = options.pattern.search(matched_value)
    if not match:
        logger.warning(f"Value does not match extraction pattern: {matched_value!r}")
        return None

    value = canonical_value(match.group(1))

    existing_key = existing_value_to_key.get(value)
    if existing_key is not None:
        already_recorded = any(
            rec.key == existing_key and rec.value == value and rec.file_path == location.file_path
            for rec in used_existing_out
        )
        if not already_recorded:
            used_existing_out.append(UsedExistingKey(
                value=value,
                key=existing_key,
                file_path=location.file_path,
                line=location.line,
                column=location.column,
            ))
        return existing_key

    key = session_keys.get(value)
    if key is not None:
        return key

    key = options.generate_key(value, location.file_path)
    session_keys[value] = key
    extracted_out.append(ExtractedString(
        value=value,
        key=key,
        file_path=location.file_path,
        line=location.line,
        column=location.column,
    ))
    return key


class KeyRegistry:
    """Run-wide key state.

    With ``scope="file"`` every file gets its own session map, so the same
    value is recorded once per file. With ``scope="global"`` one map is shared
    by the whole run. All mutation goes through ``resolve`` under one lock.
    """

    def __init__(
        self,
        pattern: Union[str, Pattern] = DEFAULT_PATTERN,
        existing: Optional[Dict[str, str]] = None,
        scope: str = "file",
        key_strategy: str = "value",
        key_prefix: str = "",
        generate_key: Optional[KeyGenerator] = None,
    ):
        if scope not in KEY_SCOPES:
            raise ConfigError(f"Unknown key scope '{scope}', expected one of {KEY_SCOPES}")
        if key_strategy not in KEY_STRATEGIES:
            raise ConfigError(
                f"Unknown key strategy '{key_strategy}', expected one of {KEY_STRATEGIES}"
            )

        self.logger = logging.getLogger(__name__)
        self.pattern = compile_pattern(pattern)
        self.existing: Dict[str, str] = dict(existing or {})
        self.scope = scope
        self.key_strategy = key_strategy
        self.key_prefix = key_prefix
        self._custom_generator = generate_key

        self.extracted: List[ExtractedString] = []
        self.used_existing: List[UsedExistingKey] = []

        self._global_keys: Dict[str, str] = {}
        self._file_keys: Dict[str, Dict[str, str]] = {}
        self._taken: Set[str] = set(self.existing.values())
        self._counter = 0
        self._lock = threading.RLock()
        self._options = KeyOptions(pattern=self.pattern, generate_key=self._mint)

    @classmethod
    def from_options(cls, options, existing: Optional[Dict[str, str]] = None) -> "KeyRegistry":
        """Build a registry from ``TransformOptions``."""
        return cls(
            pattern=options.pattern,
            existing=existing,
            scope=options.key_scope,
            key_strategy=options.key_strategy,
            key_prefix=options.key_prefix,
            generate_key=options.generate_key,
        )

    def session_keys(self, file_path: str) -> Dict[str, str]:
        if self.scope == "global":
            return self._global_keys
        return self._file_keys.setdefault(file_path, {})

    def resolve(self, matched_value: str, location: Location) -> Optional[str]:
        with self._lock:
            return resolve_key(
                matched_value,
                location,
                self.existing,
                self.session_keys(location.file_path),
                self.extracted,
                self.used_existing,
                self._options,
            )

    def mark(self) -> Tuple[int, int]:
        """Current record counts, used to slice out records of one transform."""
        with self._lock:
            return len(self.extracted), len(self.used_existing)

    def records_since(
        self, mark: Tuple[int, int], file_path: str
    ) -> Tuple[List[ExtractedString], List[UsedExistingKey]]:
        with self._lock:
            extracted = [r for r in self.extracted[mark[0]:] if r.file_path == file_path]
            used = [r for r in self.used_existing[mark[1]:] if r.file_path == file_path]
        return extracted, used

    def _mint(self, value: str, file_path: str) -> str:
        if self._custom_generator is not None:
            return self._custom_generator(value, file_path)

        if self.key_strategy == "counter":
            self._counter += 1
            key = f"{self.key_prefix or 'k'}{self._counter}"
        elif self.key_strategy == "slug":
            key = self.key_prefix + slugify(value)
        elif self.key_strategy == "hash":
            key = self.key_prefix + hashlib.sha1(value.encode("utf-8")).hexdigest()[:10]
        else:
            key = self.key_prefix + value

        key = self._unique(key, value)
        self._taken.add(key)
        return key

    def _unique(self, key: str, value: str) -> str:
        # the same key minted for the same value in another file is fine
        owners = {v for v, k in self._global_keys.items() if k == key}
        for keys in self._file_keys.values():
            owners.update(v for v, k in keys.items() if k == key)
        if key not in self._taken or owners == {value}:
            return key

        suffix = 2
        while f"{key}_{suffix}" in self._taken:
            suffix += 1
        self.logger.debug(f"Key '{key}' already taken, using '{key}_{suffix}'")
        return f"{key}_{suffix}"
