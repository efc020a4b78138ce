# File: typespec_serializers/cli.py
"""
TypeSpec Serializers - Command-Line Interface
===============================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate every model file (options from ./typespec_serializers.yaml)
    typespec-serializers generate

    # Rewrite everything, with an explicit config file
    typespec-serializers generate --force -c config/typespec.yaml

    # Keep generated files in sync while editing serializers
    typespec-serializers watch -v

    # Also available as a module
    python -m typespec_serializers generate

Exit codes:
    0 - success
    1 - configuration error (e.g. unresolvable base serializer)
    4 - input error (missing or invalid config file)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, NoReturn, Optional, Sequence

from typespec_serializers.config import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    GeneratorConfig,
    get_config,
    load_config_file,
)

if TYPE_CHECKING:
    from typespec_serializers.generator import GenerationReport, TypeSpecGenerator

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_CONFIGURATION_ERROR: int = 1
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the package logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("typespec_serializers")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from typespec_serializers import __version__

    common: argparse.ArgumentParser = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        metavar="FILE",
        help=f"YAML config file (default: ./{DEFAULT_CONFIG_FILENAME} when present).",
    )
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="typespec-serializers",
        description="Generate TypeSpec models from serializer definitions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate\n"
            "  %(prog)s generate --force -c typespec_serializers.yaml\n"
            "  %(prog)s watch -v\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    generate = commands.add_parser(
        "generate",
        parents=[common],
        help="Generate a TypeSpec model for every serializer.",
    )
    generate.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=None,
        help="Clear the output directory and rewrite every file.",
    )

    commands.add_parser(
        "watch",
        parents=[common],
        help="Generate, then regenerate whenever serializer files change.",
    )
    return parser


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _load_options(config_arg: Optional[str]) -> Dict[str, Any]:
    """
    Options from the config file, or ``{"root": cwd}`` without one.

    Raises:
        FileNotFoundError: If an explicit config file is missing.
        ConfigurationError: If the file is invalid.
    """
    if config_arg is not None:
        return load_config_file(Path(config_arg).resolve())

    default_path: Path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if default_path.is_file():
        return load_config_file(default_path)
    return {"root": Path.cwd()}


def _configure(config_arg: Optional[str]) -> GeneratorConfig:
    options: Dict[str, Any] = _load_options(config_arg)
    config: GeneratorConfig = get_config().reconfigure(**options)

    # Serializer packages under the project root import as regular modules.
    root: str = str(config.root.resolve())
    if root not in sys.path:
        sys.path.insert(0, root)

    logger.info("Root:        %s", config.root)
    logger.info("Serializers: %s", ", ".join(str(p) for p in config.serializers_paths))
    logger.info("Output:      %s", config.output_path)
    return config


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_generate(config: GeneratorConfig, force: Optional[bool]) -> int:
    from typespec_serializers.generator import GenerationReport, TypeSpecGenerator

    generator: TypeSpecGenerator = TypeSpecGenerator(config)
    report: GenerationReport = generator.generate(force=force)
    print(report.summary())
    return EXIT_SUCCESS


def _regenerate(generator: TypeSpecGenerator) -> bool:
    """
    Run one incremental pass and print its summary.

    Failures (e.g. a syntax error in a serializer being edited) are logged and
    the pending changes are kept, so watching continues.  Returns False when
    the pass failed.
    """
    try:
        report: Optional[GenerationReport] = generator.generate_changed()
    except Exception as exc:
        logger.exception("Regeneration FAILED, waiting for the next change: %s", exc)
        return False
    if report is not None:
        print(report.summary())
    return True


def _run_watch(config: GeneratorConfig) -> int:
    from typespec_serializers.changes import ChangeTracker
    from typespec_serializers.generator import TypeSpecGenerator

    generator: TypeSpecGenerator = TypeSpecGenerator(config)
    print(generator.generate().summary())

    tracker: ChangeTracker = generator.track_changes()
    print("Watching for serializer changes (Ctrl+C to stop)...")
    try:
        while True:
            if not tracker.wait_for_changes(timeout=1.0):
                continue
            _regenerate(generator)
    except KeyboardInterrupt:
        logger.info("Stopping watcher.")
    finally:
        tracker.stop()
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    try:
        config: GeneratorConfig = _configure(args.config)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    try:
        if args.command == "watch":
            exit_code: int = _run_watch(config)
        else:
            exit_code = _run_generate(config, args.force)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("typespec_serializers.cli loaded.")
