"""
Command-line interface for build-watch.

Commands:
- run:  resolve dependencies, build and run the project, then watch it
- dist: resolve dependencies and build a distribution once
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from build_watch.config import DEFAULT_CONFIG_FILE, ProjectConfigStore, load_watch_settings
from build_watch.deps import DependencyResolver
from build_watch.exceptions import BuildWatchError, ConfigError, DependencyError
from build_watch.executor import create_executor
from build_watch.session import WatchSession


logger = logging.getLogger("build-watch")


def configure_logging(verbose: bool = False) -> None:
    """Configure console logging for a command run."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Suppress verbose watchdog library logging
    logging.getLogger("watchdog.observers.inotify_buffer").setLevel(logging.WARNING)
    logging.getLogger("watchdog.observers").setLevel(logging.WARNING)


def _load_project(args):
    """Load settings and configuration for the project at args.root."""
    root = Path(args.root).resolve()
    settings = load_watch_settings(root, config_file=args.config, tick_interval_ms=args.tick_ms)
    config_store = ProjectConfigStore(root / settings.config_file)
    resolver = DependencyResolver(config_store, cwd=str(root))
    return root, settings, config_store, resolver


def _ensure_dependencies(resolver: DependencyResolver) -> bool:
    try:
        resolver.ensure_golang()
    except DependencyError as e:
        logger.error(f"Failed to load project Go dependencies, {e}")
        return False

    try:
        resolver.ensure_assets()
    except DependencyError as e:
        logger.error(f"Failed to load project assets dependencies, {e}")
        return False

    return True


# =============================================================================
# RUN COMMAND
# =============================================================================

def cmd_run(args) -> int:
    """Build, run and watch the project."""
    try:
        root, settings, config_store, resolver = _load_project(args)
    except ConfigError as e:
        logger.error(f"{e}")
        return 1

    if not _ensure_dependencies(resolver):
        return 1

    executor = create_executor(root, config_store, settings, app_args=args.app_args)
    session = WatchSession(
        root=str(root),
        config_store=config_store,
        executor=executor,
        resolver=resolver,
        settings=settings
    )

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, stopping ...")
        session.stop()

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    try:
        session.run_and_watch()
    except BuildWatchError as e:
        logger.error(f"Failed to start watching project changes, {e}")
        return 1
    finally:
        executor.shutdown()

    return 0


# =============================================================================
# DIST COMMAND
# =============================================================================

def cmd_dist(args) -> int:
    """Build assets and a distribution binary once."""
    try:
        root, settings, config_store, resolver = _load_project(args)
    except ConfigError as e:
        logger.error(f"{e}")
        return 1

    if not _ensure_dependencies(resolver):
        return 1

    executor = create_executor(root, config_store, settings, app_args=args.app_args)
    try:
        executor.dist()
    except BuildWatchError as e:
        logger.error(f"Failed to build distribution, {e}")
        return 1

    return 0


# =============================================================================
# MAIN
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build-watch",
        description="Watch a Go + assets project and rebuild on changes"
    )
    parser.add_argument("--root", default=".", help="Project root directory")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Configuration file, relative to the root")
    parser.add_argument("--tick-ms", type=int, default=None, help="Debounce tick in milliseconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Build, run and watch the project")
    run_parser.add_argument("app_args", nargs=argparse.REMAINDER, help="Arguments for the application")
    run_parser.set_defaults(func=cmd_run)

    dist_parser = subparsers.add_parser("dist", help="Build a distribution")
    dist_parser.add_argument("app_args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    dist_parser.set_defaults(func=cmd_dist)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
