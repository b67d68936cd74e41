"""package.json reader exposing the declared dependency subsets."""

from __future__ import annotations

import json
import logging
import os
from typing import Dict, Union

from jsonschema import Draft7Validator

from common.errors import ManifestError
from constants import Constants, InstallMode

logger = logging.getLogger(__name__)

SECTION_REQUIRED = "dependencies"
SECTION_DEVELOPMENT = "devDependencies"
SECTION_OPTIONAL = "optionalDependencies"

_DEPENDENCY_MAP = {
    "type": "object",
    "additionalProperties": {"type": "string"},
}

MANIFEST_SCHEMA = {
    "type": "object",
    "properties": {
        SECTION_REQUIRED: _DEPENDENCY_MAP,
        SECTION_DEVELOPMENT: _DEPENDENCY_MAP,
        SECTION_OPTIONAL: _DEPENDENCY_MAP,
    },
}


def _coerce_mode(mode: Union[InstallMode, str]) -> InstallMode:
    if isinstance(mode, InstallMode):
        return mode
    try:
        return InstallMode(str(mode).lower())
    except ValueError:
        raise ValueError(f"Unsupported install mode: {mode}") from None


class ManifestReader:
    """Declared dependencies of a single project.

    The manifest is read and validated once, when the reader is built.
    ``merged()`` combines the subsets with required entries taking
    precedence over development ones, and development over optional.
    """

    def __init__(self, project_dir: str, manifest_name: str = Constants.MANIFEST_FILE):
        self.project_dir = os.path.abspath(project_dir)
        self.path = os.path.join(self.project_dir, manifest_name)
        self._data = self._load()

    def _load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            raise ManifestError(f"{self.path} not found, unable to continue.") from None
        except OSError as e:
            raise ManifestError(f"Unable to read {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"Malformed JSON in {self.path}: {e}") from e

        errs = sorted(Draft7Validator(MANIFEST_SCHEMA).iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if errs:
            first = errs[0]
            where = "/".join(str(p) for p in first.path) or "<root>"
            raise ManifestError(f"Invalid manifest {self.path} at '{where}': {first.message}")
        logger.debug("Loaded manifest %s", self.path)
        return data

    def _section(self, key: str) -> Dict[str, str]:
        return dict(self._data.get(key) or {})

    def required(self) -> Dict[str, str]:
        return self._section(SECTION_REQUIRED)

    def development(self) -> Dict[str, str]:
        return self._section(SECTION_DEVELOPMENT)

    def optional(self) -> Dict[str, str]:
        return self._section(SECTION_OPTIONAL)

    def merged(self, mode: Union[InstallMode, str] = InstallMode.ALL) -> Dict[str, str]:
        """Return the declared set for ``mode``.

        Args:
            mode: ``production`` for required dependencies only, ``all`` for
                the union of required, development and optional.

        Raises:
            ValueError: For an unknown mode.
        """
        mode = _coerce_mode(mode)
        result = self.required()
        if mode is InstallMode.PRODUCTION:
            return result
        for subset in (self.development(), self.optional()):
            for name, spec in subset.items():
                result.setdefault(name, spec)
        return result
