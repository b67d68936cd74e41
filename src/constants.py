"""Constants used in the project."""

import logging
import os
from enum import Enum

import yaml
from jsonschema import Draft7Validator

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    USAGE_ERROR = 2
    EXIT_WARNINGS = 3
    ARCHIVE_ERROR = 4


class InstallMode(Enum):
    """Which declared dependency subsets a command operates on.

    Args:
        Enum (string): Install modes supported by the program.
    """

    PRODUCTION = "production"
    ALL = "all"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MANIFEST_FILE = "package.json"
    MODULES_DIR = "node_modules"
    CACHE_DIR = ".modules"
    ARCHIVE_SEPARATOR = "-v"
    ARCHIVE_EXTENSION = ".tgz"
    DEFAULT_MODE = InstallMode.ALL.value
    MISSING_VERSION = "*"
    MODES = [InstallMode.PRODUCTION.value, InstallMode.ALL.value]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEPSTASH_LOG_LEVEL"
    ENV_MODE = "DEPSTASH_MODE"
    ENV_CACHE_DIR = "DEPSTASH_CACHE_DIR"
    ENV_MODULES_DIR = "DEPSTASH_MODULES_DIR"
    CONFIG_FILE_NAMES = [".depstash.yml", ".depstash.yaml"]
    USER_CONFIG_PATH = os.path.join("~", ".config", "depstash", "depstash.yml")


CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "mode": {"type": "string", "enum": Constants.MODES},
        "cache_dir": {"type": "string", "minLength": 1},
        "modules_dir": {"type": "string", "minLength": 1},
        "separator": {"type": "string", "minLength": 1},
        "archive_extension": {"type": "string", "pattern": r"^\..+"},
        "verbose": {"type": "boolean"},
    },
    "additionalProperties": False,
}


def _config_candidates(cwd=None):
    """Return default config file locations, nearest first."""
    base = cwd or os.getcwd()
    paths = [os.path.join(base, name) for name in Constants.CONFIG_FILE_NAMES]
    paths.append(os.path.expanduser(Constants.USER_CONFIG_PATH))
    return paths


def _load_yaml_config(path=None, cwd=None):
    """Load the YAML configuration file.

    An explicit ``path`` is used as-is; otherwise the first existing default
    location wins. Invalid files are logged and treated as empty.

    Args:
        path (str, optional): Explicit config file path.
        cwd (str, optional): Directory searched for project-level config files.

    Returns:
        dict: Validated configuration values, empty when none was found.
    """
    candidates = [path] if path else _config_candidates(cwd)
    for candidate in candidates:
        if not os.path.isfile(candidate):
            if path:
                logger.warning("Config file not found: %s", candidate)
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config %s: %s", candidate, e)
            return {}
        errs = sorted(Draft7Validator(CONFIG_SCHEMA).iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if errs:
            first = errs[0]
            where = "/".join(str(p) for p in first.path) or "<root>"
            logger.error("Ignoring invalid config %s at '%s': %s", candidate, where, first.message)
            return {}
        logger.debug("Loaded config from %s", candidate)
        return data
    return {}
