"""Versioned package archives kept in the project's cache directory."""

from .cache import ArchiveCache, ArchiveEntry  # noqa: F401
from .codec import TarGzCodec  # noqa: F401

__all__ = ["ArchiveCache", "ArchiveEntry", "TarGzCodec"]
