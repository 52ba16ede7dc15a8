"""
Tests for the module configuration cache.
"""

import json

import pytest

from terragrunt_nav.core.models import ParseContext
from terragrunt_nav.core.module_cache import ModuleCacheStore, ModuleConfigManager

from conftest import write


@pytest.fixture
def modules(tmp_path):
    """Three module directories with two .tf files each."""
    dirs = []
    for name in ("one", "two", "three"):
        write(tmp_path / name / "main.tf", "")
        write(tmp_path / name / "variables.tf", "")
        dirs.append(tmp_path / name)
    return dirs


def test_store_evicts_least_recently_accessed():
    """Test that the store evicts the least recently accessed directory."""
    store = ModuleCacheStore(max_size=2)

    store.put("/a", ParseContext(), accessed_at=3)
    store.put("/b", ParseContext(), accessed_at=1)
    store.put("/c", ParseContext(), accessed_at=2)

    assert "/b" not in store
    assert set(store.entries) == set(store.access_times) == {"/a", "/c"}


def test_store_invalidate_forgets_last_module():
    """Test that invalidation forgets the last parsed module."""
    store = ModuleCacheStore()
    store.put("/a", ParseContext(), accessed_at=1)
    store.last_module_path = "/a"

    store.invalidate("/a")

    assert len(store) == 0
    assert store.last_module_path is None


def test_capacity_is_enforced_across_directories(collaborator, clock, modules):
    """Test that the cache never holds more directories than its capacity."""
    manager = ModuleConfigManager(collaborator, ModuleCacheStore(max_size=2), clock=clock)

    for directory in modules:
        manager.resolve_context(str(directory / "main.tf"))
        clock.advance(10)

    store = manager.store
    assert len(store) == 2
    assert set(store.entries) == set(store.access_times)
    assert str(modules[0]) not in store
    assert str(modules[2]) in store


def test_shrinking_capacity_evicts(collaborator, clock, modules):
    """Test that lowering the capacity evicts surplus entries."""
    manager = ModuleConfigManager(collaborator, ModuleCacheStore(max_size=5), clock=clock)
    for directory in modules:
        manager.resolve_context(str(directory / "main.tf"))
        clock.advance(10)

    manager.max_cache_size = 1

    assert list(manager.store.entries) == [str(modules[2])]


def test_directory_parsed_once_until_invalidated(collaborator, clock, modules):
    """Test that a directory is parsed once until it is invalidated."""
    manager = ModuleConfigManager(collaborator, clock=clock)
    active = str(modules[0] / "main.tf")

    manager.resolve_context(active)
    manager.resolve_context(active)

    assert collaborator.directory_passes() == ["main.tf", "variables.tf"]
    # active file is re-parsed with evaluation on every request
    assert collaborator.parsed.count(("main.tf", True)) == 2

    manager.on_document_changed(active)
    manager.resolve_context(active)

    assert collaborator.directory_passes() == ["main.tf", "variables.tf"] * 2


def test_edit_in_other_directory_keeps_cache(collaborator, clock, modules):
    """Test that editing another directory keeps the cached entry."""
    manager = ModuleConfigManager(collaborator, clock=clock)
    manager.resolve_context(str(modules[0] / "main.tf"))

    manager.on_document_changed(str(modules[1] / "main.tf"))

    assert str(modules[0]) in manager.store
    assert manager.store.last_module_path == str(modules[0])


def test_context_carries_cached_snapshot(collaborator, clock, modules):
    """Test that the resolved context carries the cached snapshot."""
    manager = ModuleConfigManager(collaborator, clock=clock)

    context = manager.resolve_context(str(modules[0] / "main.tf"))

    assert context.use_cache is True
    assert context.tf_cache is manager.store.get(str(modules[0]))
    assert set(context.tf_cache.configs) == {"main.tf", "variables.tf"}
    assert context.configs == {"main.tf": {"do_eval": True}}


def test_input_json_inputs_are_overlaid(collaborator, clock, modules):
    """Test that input.json inputs are merged over the module inputs."""
    (modules[0] / "input.json").write_text(json.dumps({"inputs": {"name": "from-json"}}))
    manager = ModuleConfigManager(collaborator, clock=clock)

    context = manager.resolve_context(str(modules[0] / "main.tf"))

    assert context.inputs == {"name": "from-json"}
    cached, inputs = collaborator.overlays[-1]
    assert cached is context.tf_cache
    assert inputs == {"name": "from-json"}


def test_malformed_input_json_is_ignored(collaborator, clock, modules):
    """Test that a malformed input.json is logged and ignored."""
    (modules[0] / "input.json").write_text("{not json")
    manager = ModuleConfigManager(collaborator, clock=clock)

    context = manager.resolve_context(str(modules[0] / "main.tf"))

    assert context.inputs is None
    assert ("main.tf", True) in collaborator.parsed


def test_hcl_include_bypasses_cache(collaborator, clock, tmp_path):
    """Test that raw .hcl files never use the directory cache."""
    include = write(tmp_path / "root.hcl", "")
    write(tmp_path / "main.tf", "")
    manager = ModuleConfigManager(collaborator, clock=clock)

    context = manager.resolve_context(str(include))

    assert context.use_cache is False
    assert context.tf_cache is None
    assert collaborator.directory_passes() == []
    assert len(manager.store) == 0


def test_snapshot_is_alias_free():
    """Test that mutating a snapshot leaves the cache untouched."""
    context = ParseContext(configs={"locals": {"zones": ["a"]}}, inputs={"x": {"y": 1}})
    context.tf_cache = ParseContext()

    snap = context.snapshot()
    context.configs["locals"]["zones"].append("b")
    context.inputs["x"]["y"] = 2

    assert snap.configs == {"locals": {"zones": ["a"]}}
    assert snap.inputs == {"x": {"y": 1}}
    assert snap.tf_cache is None
