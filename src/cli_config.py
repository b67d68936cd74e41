"""Runtime settings assembled from CLI flags, environment and YAML config.

Precedence, highest first: CLI arguments, ``DEPSTASH_*`` environment
variables, the YAML config file, then the defaults in ``Constants``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from constants import Constants, _load_yaml_config

logger = logging.getLogger(__name__)


@dataclass
class RuntimeSettings:
    """Effective configuration for a single invocation."""
    project_dir: str
    mode: str = Constants.DEFAULT_MODE
    cache_dir: str = Constants.CACHE_DIR
    modules_dir: str = Constants.MODULES_DIR
    separator: str = Constants.ARCHIVE_SEPARATOR
    archive_extension: str = Constants.ARCHIVE_EXTENSION
    verbose: bool = False

    @property
    def cache_path(self) -> str:
        return os.path.join(self.project_dir, self.cache_dir)

    @property
    def modules_path(self) -> str:
        return os.path.join(self.project_dir, self.modules_dir)


def _first(*values: Optional[Any]) -> Optional[Any]:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def apply_config_overrides(args, environ: Optional[Dict[str, str]] = None) -> RuntimeSettings:
    """Resolve the effective settings for ``args``.

    Args:
        args: Parsed CLI namespace.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        RuntimeSettings with every field resolved.
    """
    env = os.environ if environ is None else environ
    project_dir = os.path.abspath(getattr(args, "CWD", None) or os.getcwd())
    cfg = _load_yaml_config(getattr(args, "CONFIG", None), cwd=project_dir)

    env_mode = env.get(Constants.ENV_MODE)
    if env_mode and env_mode.lower() not in Constants.MODES:
        logger.warning("Ignoring unsupported %s=%s", Constants.ENV_MODE, env_mode)
        env_mode = None

    settings = RuntimeSettings(
        project_dir=project_dir,
        mode=_first(getattr(args, "MODE", None), env_mode and env_mode.lower(), cfg.get("mode"), Constants.DEFAULT_MODE),
        cache_dir=_first(getattr(args, "CACHE_DIR", None), env.get(Constants.ENV_CACHE_DIR), cfg.get("cache_dir"), Constants.CACHE_DIR),
        modules_dir=_first(env.get(Constants.ENV_MODULES_DIR), cfg.get("modules_dir"), Constants.MODULES_DIR),
        separator=_first(cfg.get("separator"), Constants.ARCHIVE_SEPARATOR),
        archive_extension=_first(cfg.get("archive_extension"), Constants.ARCHIVE_EXTENSION),
        verbose=bool(getattr(args, "VERBOSE", False) or cfg.get("verbose", False)),
    )
    logger.debug("Effective settings: %s", settings)
    return settings
