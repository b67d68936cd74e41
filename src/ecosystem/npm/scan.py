"""Installed-state scanner for node_modules trees.

Walks the project directory and every ancestor, collecting the packages found
in each ``node_modules`` directory, including ``@scope/name`` packages one
level deeper. The version of every package comes from the nearest
``package.json`` resolvable from the project directory, so a package
installed at several levels reports the copy closest to the project.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from common.errors import MetadataError, PathNotFound
from common.logging_utils import extra_context, is_debug_enabled
from common.paths import parent_dirs, resolve_path
from constants import Constants

logger = logging.getLogger(__name__)


class MetadataStatus(Enum):
    """Outcome of reading a package's own metadata file."""
    OK = "ok"
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"


@dataclass
class MetadataResult:
    """Typed result of ``read_package_version``."""
    status: MetadataStatus
    path: str
    version: Optional[str] = None
    error: Optional[str] = None

    def unwrap(self) -> str:
        """Return the version or raise MetadataError for failed reads."""
        if self.status is not MetadataStatus.OK:
            raise MetadataError(f"Unable to read package metadata {self.path}: {self.error}")
        return self.version


def read_package_version(path: str) -> MetadataResult:
    """Read the ``version`` field of a package.json file.

    A manifest without a version reports ``Constants.MISSING_VERSION``.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as e:
        return MetadataResult(MetadataStatus.NOT_FOUND, path, error=str(e))
    except (OSError, json.JSONDecodeError) as e:
        return MetadataResult(MetadataStatus.PARSE_ERROR, path, error=str(e))
    if not isinstance(data, dict):
        return MetadataResult(MetadataStatus.PARSE_ERROR, path, error="top level is not an object")
    version = data.get("version")
    if version is None:
        logger.debug("No version in %s, using %s", path, Constants.MISSING_VERSION)
        return MetadataResult(MetadataStatus.OK, path, version=Constants.MISSING_VERSION)
    return MetadataResult(MetadataStatus.OK, path, version=str(version))


def list_module_names(modules_path: str) -> List[str]:
    """List package identifiers directly under a node_modules directory.

    Plain entries are returned by name; ``@scope`` directories contribute one
    ``@scope/name`` identifier per child directory. Dot entries and files are
    ignored.
    """
    if not os.path.isdir(modules_path):
        return []
    names: List[str] = []
    for entry in sorted(os.listdir(modules_path)):
        full = os.path.join(modules_path, entry)
        if entry.startswith(".") or not os.path.isdir(full):
            continue
        if entry.startswith("@"):
            for child in sorted(os.listdir(full)):
                if child.startswith(".") or not os.path.isdir(os.path.join(full, child)):
                    continue
                names.append(f"{entry}/{child}")
        else:
            names.append(entry)
    return names


def installed_version(
    project_dir: str,
    name: str,
    modules_dir: str = Constants.MODULES_DIR,
    manifest_name: str = Constants.MANIFEST_FILE,
) -> str:
    """Return the version of the nearest installed copy of ``name``.

    Raises:
        PathNotFound: If no ancestor node_modules holds the package metadata.
        MetadataError: If the metadata cannot be read or parsed.
    """
    path = resolve_path(project_dir, os.path.join(modules_dir, name, manifest_name))
    return read_package_version(path).unwrap()


def scan_installed(
    project_dir: str,
    modules_dir: str = Constants.MODULES_DIR,
    manifest_name: str = Constants.MANIFEST_FILE,
) -> Dict[str, str]:
    """Build the mapping of installed package identifiers to versions.

    Args:
        project_dir: Project root the scan starts from.
        modules_dir: Name of the module directory in each ancestor.
        manifest_name: Metadata file name inside each package.

    Returns:
        Dict mapping identifier to installed version.

    Raises:
        MetadataError: If any discovered package has unresolvable or
            unparseable metadata; no partial result is returned.
    """
    installed: Dict[str, str] = {}
    for directory in parent_dirs(project_dir):
        modules_path = os.path.join(directory, modules_dir)
        for name in list_module_names(modules_path):
            if name in installed:
                continue
            try:
                installed[name] = installed_version(project_dir, name, modules_dir, manifest_name)
            except PathNotFound as e:
                raise MetadataError(f"No metadata for {name} listed in {modules_path}: {e}") from e
            if is_debug_enabled(logger):
                logger.debug(
                    "Installed package discovered",
                    extra=extra_context(
                        event="discovery",
                        component="scan",
                        package=name,
                        version=installed[name],
                        location=modules_path,
                    ),
                )
    logger.debug("Found %d installed packages", len(installed))
    return installed
