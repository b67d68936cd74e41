"""Nearest-ancestor path resolution.

Packages may be hoisted into a ``node_modules`` directory above the project,
so lookups walk from the starting directory up to the filesystem root and
take the first readable match.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from common.errors import PathNotFound


class ResolutionStatus(Enum):
    """Outcome of an ancestor lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass
class Resolution:
    """Result of ``find_path``; ``searched`` lists every candidate tried, in order."""
    status: ResolutionStatus
    path: Optional[str]
    searched: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status is ResolutionStatus.FOUND


def _is_readable(path: str) -> bool:
    return os.access(path, os.R_OK)


def parent_dirs(base: str) -> List[str]:
    """Return ``base`` followed by each of its ancestors, ending at the root.

    Args:
        base: Starting directory; made absolute before walking.

    Returns:
        List of absolute directory paths, nearest first.
    """
    current = os.path.abspath(base)
    result = [current]
    parent = os.path.dirname(current)
    while parent != current:
        result.append(parent)
        current = parent
        parent = os.path.dirname(current)
    return result


def find_path(
    base: str,
    relative: str,
    is_readable: Callable[[str], bool] = _is_readable,
) -> Resolution:
    """Look up ``relative`` in ``base`` and then in every ancestor directory.

    Args:
        base: Directory the search starts from.
        relative: Path to look for, relative to each candidate directory.
        is_readable: Predicate deciding whether a candidate path matches.

    Returns:
        Resolution with status FOUND and the nearest matching path, or
        NOT_FOUND when no directory up to the root contains ``relative``.
    """
    searched: List[str] = []
    for directory in parent_dirs(base):
        candidate = os.path.join(directory, relative)
        searched.append(candidate)
        if is_readable(candidate):
            return Resolution(ResolutionStatus.FOUND, candidate, searched)
    return Resolution(ResolutionStatus.NOT_FOUND, None, searched)


def resolve_path(base: str, relative: str) -> str:
    """Return the nearest readable ``relative`` path above ``base``.

    Raises:
        PathNotFound: If no ancestor, including the root, contains it.
    """
    resolution = find_path(base, relative)
    if not resolution.found:
        raise PathNotFound(base, relative)
    return resolution.path
