"""Install workflow: replay cached archives into the module directory."""

from __future__ import annotations

import logging
import os
from typing import Dict, List

from archive.cache import ArchiveCache, ArchiveEntry

logger = logging.getLogger(__name__)


def install(declared: Dict[str, str], cache: ArchiveCache, modules_path: str) -> List[ArchiveEntry]:
    """Extract every cached archive of a declared package into ``modules_path``.

    Existing package directories are replaced, not merged. Archives of
    undeclared packages stay in the cache and are not installed.

    Args:
        declared: Declared dependencies for the active mode.
        cache: Archive cache to read from.
        modules_path: Target node_modules directory; created if missing.

    Returns:
        The extracted archive entries, in processing order.

    Raises:
        CodecError: On the first extraction failure; earlier extractions stay.
    """
    os.makedirs(modules_path, exist_ok=True)
    extracted = cache.extract_all(modules_path, lambda name: name in declared)
    logger.info("Done! Now run 'npm rebuild'")
    return extracted
