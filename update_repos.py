#!/usr/bin/env python3
"""Fetch and fast-forward (or rebase) every git repository under a directory."""
from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from colorama import init as colorama_init

from git_operations import GitGateway, InvalidRootError
from repo_state import RunOptions
from report import ReportRenderer
from run_coordinator import RunCoordinator
from settings_db import SettingsDB

__version__ = "1.0.0"

EXIT_OK = 0
EXIT_INVALID_ROOT = 1
EXIT_USAGE = 2
EXIT_FAILURES = 3
EXIT_INTERRUPTED = 130

ROOT_ENV = "UPDATE_REPOS_ROOT"
PREFIX_ENV = "UPDATE_REPOS_PREFIX"

logger = logging.getLogger("update_repos")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a value >= 1, got {number}")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a value > 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="update-repos",
        description="Fetch and update every git repository directly under a root directory.",
        epilog=(
            "Exit codes: 0 success, 1 invalid root path, 2 invalid arguments, "
            "3 one or more repositories failed to sync."
        ),
    )
    parser.add_argument(
        "root",
        nargs="?",
        help=f"Directory containing git repositories (default: ${ROOT_ENV}, the last saved root, or the current directory)",
    )
    parser.add_argument("--root", dest="root_option", metavar="PATH", help="Same as the positional ROOT")
    parser.add_argument("--prefix", default=None, help=f"Only process directories whose name starts with PREFIX (default: ${PREFIX_ENV} or saved)")
    parser.add_argument("-n", "--no-pull", action="store_true", help="Fetch only, never pull")
    dirty = parser.add_mutually_exclusive_group()
    dirty.add_argument("-s", "--skip-dirty", action="store_true", help="Skip repositories with uncommitted changes")
    dirty.add_argument("-S", "--stash-dirty", action="store_true", help="Stash uncommitted changes around the pull and restore them afterwards")
    parser.add_argument("-r", "--use-rebase", action="store_true", help="Pull with --rebase instead of --ff-only")
    parser.add_argument(
        "-a", "--fetch-all", "--fetch-all-remotes",
        dest="fetch_all_remotes",
        action="store_true",
        help="Fetch every remote, not just the default one",
    )
    parser.add_argument(
        "-v", "--verbose", "--verbose-branches",
        dest="verbose",
        action="store_true",
        help="Print the summary table and debug logging",
    )
    parser.add_argument("--remote", default="origin", help="Remote to fetch and pull from (default: origin)")
    parser.add_argument("--timeout", type=_positive_float, default=300.0, help="Seconds allowed per git command (default: 300)")
    parser.add_argument("-j", "--jobs", type=_positive_int, default=1, help="Repositories processed in parallel (default: 1)")
    parser.add_argument("--fetch-retries", type=_positive_int, default=1, metavar="N", help="Fetch attempts per repository (default: 1)")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.root and args.root_option and args.root != args.root_option:
        parser.error("give the root either positionally or with --root, not both")
    return args


def open_settings() -> Optional[SettingsDB]:
    try:
        return SettingsDB()
    except (OSError, sqlite3.Error) as exc:
        logger.warning("Settings database unavailable: %s", exc)
        return None


def resolve_root(explicit: Optional[str], settings: Optional[SettingsDB]) -> Path:
    raw = explicit or os.environ.get(ROOT_ENV)
    if not raw and settings is not None:
        saved = settings.get_root()
        raw = str(saved) if saved else None
    return Path(raw or os.getcwd()).expanduser().resolve()


def resolve_prefix(explicit: Optional[str], settings: Optional[SettingsDB]) -> str:
    if explicit is not None:
        return explicit
    env = os.environ.get(PREFIX_ENV)
    if env is not None:
        return env
    if settings is not None:
        return settings.get_prefix() or ""
    return ""


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def build_options(args: argparse.Namespace, settings: Optional[SettingsDB]) -> RunOptions:
    return RunOptions(
        root=resolve_root(args.root or args.root_option, settings),
        prefix=resolve_prefix(args.prefix, settings),
        no_pull=args.no_pull,
        skip_dirty=args.skip_dirty,
        stash_dirty=args.stash_dirty,
        use_rebase=args.use_rebase,
        fetch_all_remotes=args.fetch_all_remotes,
        verbose=args.verbose,
        remote=args.remote,
        timeout=args.timeout,
        jobs=args.jobs,
        fetch_attempts=args.fetch_retries,
    )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    settings: Optional[SettingsDB] = None,
    gateway: Optional[GitGateway] = None,
    stream: Optional[TextIO] = None,
) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_USAGE

    configure_logging(args.verbose)
    stream = stream or sys.stdout
    color = not args.no_color and stream.isatty()
    if color:
        colorama_init()

    if settings is None:
        settings = open_settings()
    options = build_options(args, settings)
    renderer = ReportRenderer(stream=stream, color=color)
    coordinator = RunCoordinator(gateway=gateway or GitGateway(timeout=options.timeout))

    print(f"🔍 Scanning repositories in: {options.root}", file=stream, flush=True)
    try:
        result = coordinator.run(options, on_progress=renderer.progress)
    except InvalidRootError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID_ROOT
    except KeyboardInterrupt:
        print("\n👋 Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    if settings is not None and (args.root or args.root_option):
        try:
            settings.set_root(options.root)
            if args.prefix is not None:
                settings.set_prefix(args.prefix)
        except sqlite3.Error as exc:
            logger.warning("Could not save settings: %s", exc)

    if options.verbose:
        renderer.summary(result.outcomes)
    failures = len(result.failures)
    renderer.finish(len(result.outcomes), result.elapsed, failures)
    return EXIT_FAILURES if failures else EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
