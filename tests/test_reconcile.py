"""Tests for pack reconciliation."""

import os

import pytest

from archive.cache import ArchiveCache
from common.errors import CodecError, PathNotFound, TargetNotDeclared
from engine.reconcile import ActionKind, apply_pack, pack_all, pack_target, plan_pack
from ecosystem.npm.scan import scan_installed

from conftest import install_package


def _kinds(plan):
    return [(a.kind, a.name) for a in plan.actions]


class TestPlanPack:
    """The pure diff between declared, installed and cached sets."""

    def test_orphans_missing_and_actions_are_ordered(self):
        plan = plan_pack(
            declared={"b": "^1", "a": "^1", "c": "^1", "gone": "^1"},
            installed={"c": "1.0.0", "a": "1.0.0", "b": "2.0.0", "extra": "9.9.9"},
            cached={"zombie": ["0.1.0"], "a": ["1.0.0"], "b": ["1.0.0"], "old": ["3.0.0"]},
        )
        assert _kinds(plan) == [
            (ActionKind.ORPHAN, "old"),
            (ActionKind.ORPHAN, "zombie"),
            (ActionKind.MISSING, "gone"),
            (ActionKind.SKIP, "a"),
            (ActionKind.REPLACE, "b"),
            (ActionKind.ADD, "c"),
        ]

    def test_undeclared_installs_are_ignored(self):
        plan = plan_pack(declared={}, installed={"x": "1"}, cached={})
        assert plan.actions == []

    def test_replace_carries_both_versions(self):
        plan = plan_pack({"pkg": "*"}, {"pkg": "1.1.0"}, {"pkg": ["1.0.0"]})
        (action,) = plan.mutations
        assert action.kind is ActionKind.REPLACE
        assert action.installed_version == "1.1.0"
        assert action.cached_version == "1.0.0"

    def test_warnings_are_missing_installs(self):
        plan = plan_pack({"a": "1", "b": "1"}, {"a": "1"}, {})
        assert [a.name for a in plan.warnings] == ["b"]

    def test_extra_copies_next_to_the_installed_version_are_pruned(self):
        plan = plan_pack({"pkg": "*"}, {"pkg": "1.9.0"}, {"pkg": ["1.10.0", "1.9.0"]})
        (action,) = plan.mutations
        assert action.kind is ActionKind.PRUNE
        assert action.stale == ["1.10.0"]

    def test_replace_lists_every_stale_version(self):
        plan = plan_pack({"pkg": "*"}, {"pkg": "1.2.0"}, {"pkg": ["1.0.0", "1.1.0"]})
        (action,) = plan.mutations
        assert action.kind is ActionKind.REPLACE
        assert action.stale == ["1.0.0", "1.1.0"]

    def test_single_matching_archive_is_skipped(self):
        plan = plan_pack({"pkg": "*"}, {"pkg": "1.0.0"}, {"pkg": ["1.0.0"]})
        assert _kinds(plan) == [(ActionKind.SKIP, "pkg")]
        assert plan.mutations == []

    def test_each_orphaned_version_is_reported(self):
        plan = plan_pack({}, {}, {"gone": ["1.0.0", "2.0.0"]})
        assert [a.cached_version for a in plan.of_kind(ActionKind.ORPHAN)] == ["1.0.0", "2.0.0"]


@pytest.fixture
def cache(project):
    return ArchiveCache(os.path.join(project, ".modules"))


def test_stale_version_is_replaced(project, cache):
    old_src = install_package(os.path.join(project, "old"), "pkg", "1.0.0")
    cache.write("pkg", "1.0.0", old_src)
    install_package(project, "pkg", "1.1.0")

    pack_all({"pkg": "^1.0.0"}, scan_installed(project), cache, project)

    assert cache.versions("pkg") == ["1.1.0"]
    assert not os.path.exists(cache.archive_path("pkg", "1.0.0"))


def test_convergence_and_idempotence(project, cache, monkeypatch):
    workspace = os.path.dirname(project)
    install_package(project, "a", "1.0.0")
    install_package(project, "@s/b", "2.0.0")
    install_package(workspace, "hoisted", "3.0.0")
    install_package(project, "undeclared", "0.0.1")
    declared = {"a": "1", "@s/b": "2", "hoisted": "3", "missing": "4"}

    installed = scan_installed(project)
    first = pack_all(declared, installed, cache, project)
    assert len(first.applied) == 3

    for name in ("a", "@s/b", "hoisted"):
        assert cache.versions(name) == [installed[name]]
    assert "undeclared" not in cache.entries()

    writes = []
    monkeypatch.setattr(cache, "write", lambda *a, **kw: writes.append(a))
    monkeypatch.setattr(cache, "remove", lambda *a, **kw: writes.append(a))
    second = pack_all(declared, scan_installed(project), cache, project)
    assert second.mutations == []
    assert writes == []


def test_stale_copy_beside_installed_version_is_removed(project, cache, monkeypatch):
    stale_src = install_package(os.path.join(project, "old"), "pkg", "1.10.0")
    cache.write("pkg", "1.10.0", stale_src)
    current_src = install_package(project, "pkg", "1.9.0")
    cache.write("pkg", "1.9.0", current_src)
    current_archive = cache.archive_path("pkg", "1.9.0")
    mtime = os.path.getmtime(current_archive)

    first = pack_all({"pkg": "^1.9.0"}, scan_installed(project), cache, project)

    assert [a.kind for a in first.applied] == [ActionKind.PRUNE]
    assert cache.versions("pkg") == ["1.9.0"]
    assert os.path.getmtime(current_archive) == mtime

    writes = []
    monkeypatch.setattr(cache, "write", lambda *a, **kw: writes.append(a))
    monkeypatch.setattr(cache, "remove", lambda *a, **kw: writes.append(a))
    second = pack_all({"pkg": "^1.9.0"}, scan_installed(project), cache, project)
    assert second.mutations == []
    assert writes == []


def test_pack_target_prunes_extra_copies(project, cache):
    stale_src = install_package(os.path.join(project, "old"), "pkg", "1.10.0")
    cache.write("pkg", "1.10.0", stale_src)
    cache.write("pkg", "1.9.0", install_package(project, "pkg", "1.9.0"))

    plan = pack_target("pkg", {"pkg": "^1"}, cache, project)

    assert [a.kind for a in plan.applied] == [ActionKind.PRUNE]
    assert cache.versions("pkg") == ["1.9.0"]


def test_hoisted_package_source_is_resolved_from_ancestor(project, cache):
    workspace = os.path.dirname(project)
    install_package(workspace, "hoisted", "3.0.0")
    pack_all({"hoisted": "3"}, scan_installed(project), cache, project)
    assert cache.entries() == {"hoisted": "3.0.0"}


def test_orphaned_archive_is_left_alone(project, cache, caplog):
    src = install_package(os.path.join(project, "elsewhere"), "orphan", "1.0.0")
    cache.write("orphan", "1.0.0", src)
    with caplog.at_level("INFO"):
        pack_all({}, {}, cache, project, verbose=True)
    assert cache.entries() == {"orphan": "1.0.0"}
    assert "orphan-v1.0.0 is not specified in the manifest" in caplog.text


def test_missing_install_is_warned(project, cache, caplog):
    plan = pack_all({"ghost": "1"}, {}, cache, project)
    assert [a.name for a in plan.warnings] == ["ghost"]
    assert "ghost is not installed!" in caplog.text


def test_dry_run_does_not_mutate(project, cache):
    install_package(project, "a", "1.0.0")
    plan = pack_all({"a": "1"}, scan_installed(project), cache, project, dry_run=True)
    assert [a.name for a in plan.mutations] == ["a"]
    assert plan.applied == []
    assert cache.entries() == {}


def test_failure_aborts_remaining_actions(project, cache, monkeypatch):
    install_package(project, "a", "1.0.0")
    install_package(project, "b", "1.0.0")
    install_package(project, "c", "1.0.0")
    real_write = cache.write

    def flaky_write(name, version, source):
        if name == "b":
            raise CodecError("disk full")
        return real_write(name, version, source)

    monkeypatch.setattr(cache, "write", flaky_write)
    plan = plan_pack({"a": "1", "b": "1", "c": "1"}, scan_installed(project), {})
    with pytest.raises(CodecError):
        apply_pack(plan, cache, project)

    assert [a.name for a in plan.applied] == ["a"]
    assert cache.entries() == {"a": "1.0.0"}


def test_pack_target_replaces_stale_version(project, cache):
    old_src = install_package(os.path.join(project, "old"), "pkg", "1.0.0")
    cache.write("pkg", "1.0.0", old_src)
    install_package(project, "pkg", "1.1.0")
    install_package(project, "other", "5.0.0")

    plan = pack_target("pkg", {"pkg": "^1", "other": "5"}, cache, project)

    assert [a.kind for a in plan.applied] == [ActionKind.REPLACE]
    assert cache.entries() == {"pkg": "1.1.0"}


def test_pack_target_must_be_declared(project, cache):
    with pytest.raises(TargetNotDeclared):
        pack_target("nope", {"pkg": "1"}, cache, project)


def test_pack_target_not_installed(project, cache):
    with pytest.raises(PathNotFound):
        pack_target("absent-pkg-5d2b", {"absent-pkg-5d2b": "1"}, cache, project)
