import pytest

from i18n_extract.core.compiler_manager import CompilerManager
from i18n_extract.core.exceptions import (
    CompilerLoadError,
    CompilerNotLoadedError,
    NoActiveBatchError,
    VersionMismatchError,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_manager(loader=None, clock=None, search_paths=None):
    calls = []

    def default_loader(module_name, root):
        calls.append((module_name, root))
        return object()

    manager = CompilerManager(
        search_paths=search_paths,
        loader=loader or default_loader,
        compiler_factory=lambda version, module: ("compiler", version),
        clock=clock or FakeClock(),
        include_cwd=False,
    )
    return manager, calls


def test_get_compiler_requires_batch():
    manager, _ = make_manager()
    with pytest.raises(NoActiveBatchError):
        manager.get_compiler("vue3")


def test_compiler_is_cached_within_batch():
    manager, calls = make_manager()
    with manager.batch("vue3"):
        first = manager.get_compiler("vue3")
        second = manager.get_compiler("vue3")
    assert first is second
    assert len(calls) == 1
    assert manager.stats()["vue3"]["usage_count"] == 2


def test_version_mismatch():
    manager, _ = make_manager()
    with manager.batch("vue3"):
        with pytest.raises(VersionMismatchError):
            manager.get_compiler("vue2")
        with pytest.raises(VersionMismatchError):
            manager.start_batch("vue2")


def test_nested_batches_and_end_without_batch():
    manager, _ = make_manager()
    manager.end_batch()
    outer = manager.start_batch("vue3", "outer")
    inner = manager.start_batch("vue3")
    assert manager.active_batch is inner
    manager.end_batch()
    assert manager.active_batch is outer
    manager.end_batch()
    assert manager.active_batch is None


def test_get_loaded_compiler():
    manager, _ = make_manager()
    assert not manager.has_loaded_compiler("vue3")
    with pytest.raises(CompilerNotLoadedError):
        manager.get_loaded_compiler("vue3")
    with manager.batch("vue3"):
        handle = manager.get_compiler("vue3")
    assert manager.get_loaded_compiler("vue3") is handle


def test_load_tries_roots_in_order():
    attempts = []

    def loader(module_name, root):
        attempts.append(root)
        if root is not None:
            raise ImportError(f"not under {root}")
        return object()

    manager, _ = make_manager(loader=loader, search_paths=["/opt/a", "/opt/b"])
    with manager.batch("vue3"):
        assert manager.get_compiler("vue3") == ("compiler", "vue3")
    assert attempts == ["/opt/a", "/opt/b", None]


def test_load_failure_aggregates_attempts():
    def loader(module_name, root):
        raise ImportError("missing")

    manager, _ = make_manager(loader=loader, search_paths=["/opt/a"])
    with manager.batch("vue3"):
        with pytest.raises(CompilerLoadError) as info:
            manager.get_compiler("vue3")
    assert [root for root, _ in info.value.attempts] == ["/opt/a", None]
    assert not manager.has_loaded_compiler("vue3")


def test_unknown_version_fails_to_load():
    manager, _ = make_manager()
    with manager.batch("svelte"):
        with pytest.raises(CompilerLoadError):
            manager.get_compiler("svelte")


def test_idle_compilers_evicted_when_last_batch_ends():
    clock = FakeClock()
    manager, _ = make_manager(clock=clock)
    with manager.batch("vue3"):
        manager.get_compiler("vue3")
    assert manager.has_loaded_compiler("vue3")

    clock.now = CompilerManager.MAX_IDLE_SECONDS + 1
    with manager.batch("vue3"):
        pass
    assert not manager.has_loaded_compiler("vue3")
