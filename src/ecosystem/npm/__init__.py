"""npm ecosystem package.

This package reads npm project state from the local filesystem:
- manifest.py: declared dependency subsets from package.json
- scan.py: installed packages under node_modules, including hoisted ones
"""

from .manifest import ManifestReader  # noqa: F401
from .scan import scan_installed, installed_version, read_package_version  # noqa: F401

__all__ = [
    "ManifestReader",
    "scan_installed",
    "installed_version",
    "read_package_version",
]
