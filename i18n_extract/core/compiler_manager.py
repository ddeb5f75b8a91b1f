"""
Compiler Lifecycle Manager
==========================

Owns the markup compiler used by the template planner. Compilers are loaded
lazily, only while a batch is open, and cached per version. When the
outermost batch ends, instances that have been idle for too long are dropped.

Typical use::

    manager = CompilerManager()
    with manager.batch("vue3"):
        compiler = manager.get_compiler("vue3")
        ...
"""

import importlib
import importlib.machinery
import importlib.util
import itertools
import logging
import os
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .exceptions import (
    CompilerLoadError,
    CompilerNotLoadedError,
    NoActiveBatchError,
    VersionMismatchError,
)

DEFAULT_COMPILER_VERSION = "vue3"

# version -> grammar module providing the markup language
COMPILER_MODULES: Dict[str, str] = {
    "vue3": "tree_sitter_html",
    "vue2": "tree_sitter_html",
}

ModuleLoader = Callable[[str, Optional[str]], Any]
CompilerFactory = Callable[[str, Any], Any]


def load_module_from_root(module_name: str, root: Optional[str]) -> ModuleType:
    """Import ``module_name`` from ``root``; ``None`` means the default import path."""
    if root is None:
        return importlib.import_module(module_name)

    spec = importlib.machinery.PathFinder.find_spec(module_name, [root])
    if spec is None or spec.loader is None:
        raise ImportError(f"No module named '{module_name}' under {root}")

    loaded = sys.modules.get(module_name)
    if loaded is not None and getattr(loaded, "__spec__", None) is not None:
        if loaded.__spec__.origin == spec.origin:
            return loaded

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise
    return module


def _default_factory(version: str, module: Any):
    from .markup_compiler import MarkupCompiler
    return MarkupCompiler(version, module)


@dataclass
class CompilerInstance:
    handle: Any
    usage_count: int = 0
    last_used: float = 0.0


@dataclass
class BatchContext:
    id: str
    compiler_version: str
    start_time: float = field(default=0.0)


class CompilerManager:
    """Batch-scoped cache of markup compilers."""

    MAX_IDLE_SECONDS = 5 * 60

    def __init__(
        self,
        search_paths: Optional[List[str]] = None,
        loader: Optional[ModuleLoader] = None,
        compiler_factory: Optional[CompilerFactory] = None,
        clock: Callable[[], float] = time.monotonic,
        include_cwd: bool = True,
    ):
        self.logger = logging.getLogger(__name__)
        self.search_paths = list(search_paths or [])
        self.include_cwd = include_cwd
        self._loader = loader or load_module_from_root
        self._factory = compiler_factory or _default_factory
        self._clock = clock
        self._instances: Dict[str, CompilerInstance] = {}
        self._batches: List[BatchContext] = []
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    @property
    def active_batch(self) -> Optional[BatchContext]:
        return self._batches[-1] if self._batches else None

    def start_batch(
        self, compiler_version: str = DEFAULT_COMPILER_VERSION, batch_id: Optional[str] = None
    ) -> BatchContext:
        with self._lock:
            current = self.active_batch
            if current is not None and current.compiler_version != compiler_version:
                raise VersionMismatchError(current.compiler_version, compiler_version)

            context = BatchContext(
                id=batch_id or f"batch-{next(self._ids)}",
                compiler_version=compiler_version,
                start_time=self._clock(),
            )
            self._batches.append(context)
        self.logger.debug(f"Started batch {context.id} (compiler {compiler_version})")
        return context

    def end_batch(self) -> None:
        with self._lock:
            if not self._batches:
                return
            context = self._batches.pop()
            self.logger.debug(f"Ended batch {context.id}")
            if not self._batches:
                self.cleanup()

    @contextmanager
    def batch(
        self, compiler_version: str = DEFAULT_COMPILER_VERSION, batch_id: Optional[str] = None
    ) -> Iterator[BatchContext]:
        context = self.start_batch(compiler_version, batch_id)
        try:
            yield context
        finally:
            self.end_batch()

    # ------------------------------------------------------------------
    # Compilers
    # ------------------------------------------------------------------

    def has_loaded_compiler(self, version: str = DEFAULT_COMPILER_VERSION) -> bool:
        return version in self._instances

    def get_loaded_compiler(self, version: str = DEFAULT_COMPILER_VERSION):
        instance = self._instances.get(version)
        if instance is None:
            raise CompilerNotLoadedError(version)
        self._touch(instance)
        return instance.handle

    def get_compiler(self, version: str = DEFAULT_COMPILER_VERSION):
        context = self.active_batch
        if context is None:
            raise NoActiveBatchError()
        if context.compiler_version != version:
            raise VersionMismatchError(context.compiler_version, version)

        with self._lock:
            instance = self._instances.get(version)
            if instance is None:
                instance = CompilerInstance(handle=self._load(version))
                self._instances[version] = instance
                self.logger.info(f"Loaded markup compiler '{version}'")
            self._touch(instance)
            return instance.handle

    def candidate_roots(self) -> List[Optional[str]]:
        roots: List[Optional[str]] = list(self.search_paths)
        if self.include_cwd:
            roots.append(os.getcwd())
        roots.append(None)
        return roots

    def cleanup(self) -> None:
        """Drop instances idle for longer than ``MAX_IDLE_SECONDS``."""
        now = self._clock()
        for version in list(self._instances):
            if now - self._instances[version].last_used > self.MAX_IDLE_SECONDS:
                del self._instances[version]
                self.logger.debug(f"Evicted idle compiler '{version}'")

    def stats(self) -> Dict[str, Dict[str, float]]:
        return {
            version: {"usage_count": inst.usage_count, "last_used": inst.last_used}
            for version, inst in self._instances.items()
        }

    def _touch(self, instance: CompilerInstance) -> None:
        instance.usage_count += 1
        instance.last_used = self._clock()

    def _load(self, version: str):
        module_name = COMPILER_MODULES.get(version)
        if module_name is None:
            raise CompilerLoadError(
                version, [(None, ValueError(f"Unknown compiler version '{version}'"))]
            )

        attempts: List[Tuple[Optional[str], Exception]] = []
        for root in self.candidate_roots():
            try:
                module = self._loader(module_name, root)
                handle = self._factory(version, module)
            except Exception as e:
                self.logger.debug(f"Compiler '{version}' not found under {root or 'default path'}: {e}")
                attempts.append((root, e))
                continue
            return handle

        raise CompilerLoadError(version, attempts)
