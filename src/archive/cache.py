"""Archive cache directory holding one ``<name>-v<version>.tgz`` per package.

Namespaced identifiers keep their path shape, so ``@scope/pkg`` at version
``1.0.0`` is stored as ``@scope/pkg-v1.0.0.tgz`` below the cache root.
Filenames are decoded at the last separator occurrence.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple

from archive.codec import TarGzCodec
from common.errors import CodecError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    """A cached archive decoded from its filename."""
    name: str
    version: str
    path: str


class ArchiveCache:
    """Enumerates, writes, removes and extracts cached package archives."""

    def __init__(
        self,
        cache_dir: str,
        separator: str = Constants.ARCHIVE_SEPARATOR,
        extension: str = Constants.ARCHIVE_EXTENSION,
        codec: Optional[TarGzCodec] = None,
    ):
        self.cache_dir = os.path.abspath(cache_dir)
        self.separator = separator
        self.extension = extension
        self.codec = codec or TarGzCodec()
        self._reported_duplicates: Set[str] = set()

    def archive_name(self, name: str, version: str) -> str:
        """Return the cache-relative file name for ``name`` at ``version``."""
        return f"{name}{self.separator}{version}{self.extension}"

    def archive_path(self, name: str, version: str) -> str:
        return os.path.join(self.cache_dir, *self.archive_name(name, version).split("/"))

    def parse_archive_name(self, relpath: str) -> Optional[Tuple[str, str]]:
        """Decode a cache-relative path into ``(name, version)``.

        Returns:
            The decoded pair, or None when the path does not follow the
            naming convention.
        """
        relpath = relpath.replace(os.sep, "/")
        if not relpath.lower().endswith(self.extension.lower()):
            return None
        stem = relpath[: -len(self.extension)]
        idx = stem.rfind(self.separator)
        if idx <= 0:
            return None
        name = stem[:idx]
        version = stem[idx + len(self.separator):]
        if not version or name.endswith("/"):
            return None
        return name, version

    def list_archives(self) -> List[ArchiveEntry]:
        """Return every well-formed archive in the cache, sorted by path."""
        if not os.path.isdir(self.cache_dir):
            return []
        found: List[ArchiveEntry] = []
        for root, dirs, files in os.walk(self.cache_dir):
            dirs.sort()
            for filename in sorted(files):
                full = os.path.join(root, filename)
                rel = os.path.relpath(full, self.cache_dir)
                if not filename.lower().endswith(self.extension.lower()):
                    continue
                parsed = self.parse_archive_name(rel)
                if parsed is None:
                    logger.warning("Ignoring archive with unrecognised name: %s", rel)
                    continue
                found.append(ArchiveEntry(parsed[0], parsed[1], full))
        found.sort(key=lambda e: e.path)
        return found

    def _latest_by_name(self) -> Dict[str, ArchiveEntry]:
        latest: Dict[str, ArchiveEntry] = {}
        for entry in self.list_archives():
            previous = latest.get(entry.name)
            if previous is not None and entry.name not in self._reported_duplicates:
                self._reported_duplicates.add(entry.name)
                logger.warning(
                    "Multiple archives cached for %s (%s, %s); using %s",
                    entry.name, previous.version, entry.version, entry.version,
                )
            latest[entry.name] = entry
        return latest

    def entries(self) -> Dict[str, str]:
        """Map each cached identifier to its cached version."""
        return {name: entry.version for name, entry in self._latest_by_name().items()}

    def versions(self, name: str) -> List[str]:
        """Return every cached version of ``name``."""
        return [e.version for e in self.list_archives() if e.name == name]

    def cached_versions(self) -> Dict[str, List[str]]:
        """Map each cached identifier to every version archived for it."""
        found: Dict[str, List[str]] = {}
        for entry in self.list_archives():
            found.setdefault(entry.name, []).append(entry.version)
        return found

    def write(self, name: str, version: str, source_dir: str) -> str:
        """Archive ``source_dir`` as ``name`` at ``version``.

        Returns:
            Path of the written archive.

        Raises:
            CodecError: If the version cannot be encoded unambiguously or
                compression fails.
        """
        if self.separator in version:
            raise CodecError(
                f"Cannot cache {name}@{version}: version contains the separator '{self.separator}'"
            )
        dest = self.archive_path(name, version)
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        self.codec.compress(source_dir, dest, arcname=name.split("/")[-1])
        if is_debug_enabled(logger):
            logger.debug(
                "Archive written",
                extra=extra_context(event="write", component="cache", package=name, version=version, path=dest),
            )
        return dest

    def remove(self, name: str, version: str) -> None:
        """Delete the archive of ``name`` at ``version``; drop an emptied scope directory."""
        path = self.archive_path(name, version)
        try:
            os.remove(path)
        except OSError as e:
            raise CodecError(f"Failed to remove {path}: {e}") from e
        parent = os.path.dirname(path)
        if parent != self.cache_dir and not os.listdir(parent):
            os.rmdir(parent)

    def extract_all(self, destination_root: str, predicate: Callable[[str], bool]) -> List[ArchiveEntry]:
        """Extract every cached archive whose identifier satisfies ``predicate``.

        Any existing ``destination_root/<name>`` is removed first, so the
        result replaces rather than merges. Stops at the first failure.

        Returns:
            The extracted entries, in processing order.
        """
        extracted: List[ArchiveEntry] = []
        for name, entry in sorted(self._latest_by_name().items()):
            if not predicate(name):
                continue
            out_dir = os.path.join(destination_root, *name.split("/"))
            if os.path.islink(out_dir) or os.path.isfile(out_dir):
                os.remove(out_dir)
            elif os.path.isdir(out_dir):
                shutil.rmtree(out_dir)
            out_parent = os.path.dirname(out_dir)
            os.makedirs(out_parent, exist_ok=True)
            self.codec.extract(entry.path, out_parent)
            logger.info("Extracted %s@%s", entry.name, entry.version)
            extracted.append(entry)
        return extracted
