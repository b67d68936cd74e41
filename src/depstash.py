"""depstash - Vendor npm dependencies as versioned archives.

    ``pack`` refreshes the project's archive cache from the installed
    node_modules trees; ``install`` replays the cache into node_modules.

    Returns:
        int: Exit code
"""
import logging
import sys

from args import parse_args
from archive.cache import ArchiveCache
from cli_config import apply_config_overrides
from common.errors import CodecError, DepstashError
from common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes
from engine.install import install
from engine.reconcile import pack_all, pack_target
from ecosystem.npm.manifest import ManifestReader
from ecosystem.npm.scan import scan_installed

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    configure_logging()

    # without --loglevel the level taken from the environment stands
    level_name = "ERROR" if getattr(args, "QUIET", False) else getattr(args, "LOG_LEVEL", None)
    if level_name:
        logging.getLogger().setLevel(getattr(logging, str(level_name).upper(), logging.INFO))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.debug("Logging to file: %s", log_file)


def _build_cache(settings):
    return ArchiveCache(
        settings.cache_path,
        separator=settings.separator,
        extension=settings.archive_extension,
    )


def run_install(settings):
    """Run the install command.

    Returns:
        int: Number of warnings raised (always zero for install).
    """
    manifest = ManifestReader(settings.project_dir)
    if settings.mode == "production":
        logger.info("Installing production modules")
    else:
        logger.info("Installing all modules")
    install(manifest.merged(settings.mode), _build_cache(settings), settings.modules_path)
    return 0


def run_pack(settings, target=None, dry_run=False):
    """Run the pack command, for every dependency or for ``target`` only.

    Returns:
        int: Number of warnings raised.
    """
    manifest = ManifestReader(settings.project_dir)
    cache = _build_cache(settings)
    if target:
        # a single target is looked up in every subset regardless of mode
        plan = pack_target(
            target,
            manifest.merged("all"),
            cache,
            settings.project_dir,
            settings.modules_dir,
            dry_run=dry_run,
        )
    else:
        installed = scan_installed(settings.project_dir, settings.modules_dir)
        plan = pack_all(
            manifest.merged(settings.mode),
            installed,
            cache,
            settings.project_dir,
            settings.modules_dir,
            dry_run=dry_run,
            verbose=settings.verbose,
        )
    if dry_run:
        logger.info("Dry run: %d archive change(s) pending", len(plan.mutations))
    elif not plan.mutations:
        logger.info("Archive cache is up to date")
    return len(plan.warnings)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    settings = apply_config_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND, cwd=settings.project_dir),
        )

    try:
        with Timer() as timer:
            if args.COMMAND == "install":
                warnings = run_install(settings)
            else:
                warnings = run_pack(settings, getattr(args, "TARGET", None), getattr(args, "DRY_RUN", False))
    except CodecError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.ARCHIVE_ERROR.value)
    except (DepstashError, OSError) as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit", component="cli", action=args.COMMAND, duration_ms=timer.duration_ms
            ),
        )

    if warnings and args.ERROR_ON_WARNINGS:
        logger.error("Warnings present, exiting with non-zero status code.")
        sys.exit(ExitCodes.EXIT_WARNINGS.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
