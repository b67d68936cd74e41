"""Pack reconciliation: align the archive cache with installed packages.

``plan_pack`` is a pure diff of the declared, installed and cached sets.
``apply_pack`` then performs the resulting archive writes and deletions one
at a time, stopping at the first failure without rolling back. Running pack
again converges from any partially applied state.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from archive.cache import ArchiveCache
from common.errors import TargetNotDeclared
from common.logging_utils import extra_context, is_debug_enabled
from common.paths import resolve_path
from constants import Constants
from ecosystem.npm.scan import installed_version

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    """Kinds of reconciliation outcomes."""
    ORPHAN = "orphan"      # cached but not declared
    MISSING = "missing"    # declared but not installed
    SKIP = "skip"          # cache already matches the install
    ADD = "add"            # installed, not cached yet
    REPLACE = "replace"    # cached at a different version
    PRUNE = "prune"        # cached at the installed version plus stale copies


MUTATING_KINDS = (ActionKind.ADD, ActionKind.REPLACE, ActionKind.PRUNE)


@dataclass
class PackAction:
    kind: ActionKind
    name: str
    installed_version: Optional[str] = None
    cached_version: Optional[str] = None
    stale: List[str] = field(default_factory=list)

    def describe(self, separator: str = Constants.ARCHIVE_SEPARATOR) -> str:
        if self.kind is ActionKind.ORPHAN:
            return f"Module {self.name}{separator}{self.cached_version} is not specified in the manifest"
        if self.kind is ActionKind.MISSING:
            return f"{self.name} is not installed!"
        if self.kind is ActionKind.ADD:
            return f"Adding {self.name}{separator}{self.installed_version}"
        if self.kind is ActionKind.REPLACE:
            return f"Module {self.name} has changed from {self.cached_version} to {self.installed_version}"
        if self.kind is ActionKind.PRUNE:
            return f"Removing stale archives of {self.name}: {self.cached_version}"
        return f"{self.name}{separator}{self.installed_version} is up to date"


@dataclass
class PackPlan:
    """Ordered reconciliation actions plus the ones applied so far."""
    actions: List[PackAction] = field(default_factory=list)
    applied: List[PackAction] = field(default_factory=list)

    def of_kind(self, kind: ActionKind) -> List[PackAction]:
        return [a for a in self.actions if a.kind is kind]

    @property
    def mutations(self) -> List[PackAction]:
        return [a for a in self.actions if a.kind in MUTATING_KINDS]

    @property
    def warnings(self) -> List[PackAction]:
        return self.of_kind(ActionKind.MISSING)


def plan_pack(
    declared: Dict[str, str],
    installed: Dict[str, str],
    cached: Dict[str, List[str]],
) -> PackPlan:
    """Compute the actions that bring the cache in line with the installs.

    Args:
        declared: Declared dependencies for the active mode.
        installed: Installed identifier to version mapping.
        cached: Cached identifier to every version archived for it.

    Returns:
        PackPlan with orphan, missing, then per-package actions, each group
        in lexicographic identifier order. Only a single archive matching the
        installed version counts as up to date.
    """
    plan = PackPlan()
    for name in sorted(set(cached) - set(declared)):
        for version in cached[name]:
            plan.actions.append(PackAction(ActionKind.ORPHAN, name, cached_version=version))
    for name in sorted(set(declared) - set(installed)):
        plan.actions.append(PackAction(ActionKind.MISSING, name))
    for name in sorted(installed):
        if name not in declared:
            continue
        current = installed[name]
        versions = list(dict.fromkeys(cached.get(name) or []))
        stale = [v for v in versions if v != current]
        if not versions:
            kind = ActionKind.ADD
        elif not stale:
            kind = ActionKind.SKIP
        elif current in versions:
            kind = ActionKind.PRUNE
        else:
            kind = ActionKind.REPLACE
        previous = ", ".join(stale) if stale else (current if versions else None)
        plan.actions.append(
            PackAction(kind, name, installed_version=current, cached_version=previous, stale=stale)
        )
    return plan


def _log_plan(plan: PackPlan, separator: str, verbose: bool) -> None:
    for action in plan.actions:
        if action.kind is ActionKind.ORPHAN:
            logger.log(logging.INFO if verbose else logging.DEBUG, action.describe(separator))
        elif action.kind is ActionKind.MISSING:
            logger.warning("WARNING: %s", action.describe(separator))
        elif action.kind is ActionKind.SKIP:
            logger.debug(action.describe(separator))


def apply_pack(
    plan: PackPlan,
    cache: ArchiveCache,
    project_dir: str,
    modules_dir: str = Constants.MODULES_DIR,
    dry_run: bool = False,
    verbose: bool = False,
) -> PackPlan:
    """Perform the add, replace and prune actions of ``plan`` sequentially.

    Replace and prune delete every cached version of the package that
    differs from the installed one. Add and replace then write the new
    archive, resolving the package directory nearest-first from
    ``project_dir``.

    Raises:
        PathNotFound: If a package directory cannot be resolved.
        CodecError: If an archive cannot be removed or written.
    """
    _log_plan(plan, cache.separator, verbose)
    for action in plan.mutations:
        logger.info(action.describe(cache.separator))
        if dry_run:
            continue
        for stale in action.stale:
            cache.remove(action.name, stale)
        if action.kind is not ActionKind.PRUNE:
            source = resolve_path(project_dir, os.path.join(modules_dir, action.name))
            logger.info("Packing %s%s%s", action.name, cache.separator, action.installed_version)
            cache.write(action.name, action.installed_version, source)
            logger.info("Packed %s", action.name)
        plan.applied.append(action)
        if is_debug_enabled(logger):
            logger.debug(
                "Pack action applied",
                extra=extra_context(
                    event="apply",
                    component="reconcile",
                    action=action.kind.value,
                    package=action.name,
                    version=action.installed_version,
                ),
            )
    return plan


def pack_all(
    declared: Dict[str, str],
    installed: Dict[str, str],
    cache: ArchiveCache,
    project_dir: str,
    modules_dir: str = Constants.MODULES_DIR,
    dry_run: bool = False,
    verbose: bool = False,
) -> PackPlan:
    """Reconcile the whole cache against the installed packages."""
    plan = plan_pack(declared, installed, cache.cached_versions())
    return apply_pack(plan, cache, project_dir, modules_dir, dry_run=dry_run, verbose=verbose)


def pack_target(
    name: str,
    declared: Dict[str, str],
    cache: ArchiveCache,
    project_dir: str,
    modules_dir: str = Constants.MODULES_DIR,
    manifest_name: str = Constants.MANIFEST_FILE,
    dry_run: bool = False,
) -> PackPlan:
    """Pack a single declared dependency.

    Raises:
        TargetNotDeclared: If ``name`` is not in ``declared``.
        PathNotFound: If the package is not installed in any ancestor.
        MetadataError: If its metadata cannot be read.
    """
    if name not in declared:
        raise TargetNotDeclared(name)
    version = installed_version(project_dir, name, modules_dir, manifest_name)
    versions = cache.versions(name)
    cached = {name: versions} if versions else {}
    plan = plan_pack({name: declared[name]}, {name: version}, cached)
    return apply_pack(plan, cache, project_dir, modules_dir, dry_run=dry_run)
