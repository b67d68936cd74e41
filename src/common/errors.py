"""Error hierarchy shared by the scanners, cache and engines."""

from __future__ import annotations


class DepstashError(Exception):
    """Base class for all structural failures raised by depstash."""


class PathNotFound(DepstashError):
    """No directory in the ancestry of ``base`` contains ``relative``."""

    def __init__(self, base: str, relative: str):
        self.base = base
        self.relative = relative
        super().__init__(f"{relative} not found in {base} or any parent directory")


class ManifestError(DepstashError):
    """The project manifest is missing or malformed."""


class MetadataError(DepstashError):
    """An installed package has no readable or parseable metadata."""


class CodecError(DepstashError):
    """An archive could not be compressed or extracted."""


class TargetNotDeclared(DepstashError):
    """A single pack target is not a declared dependency."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} doesn't exist in the manifest")
