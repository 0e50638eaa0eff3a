"""Command-line interface for persist."""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from activation import ActivationRunner
from config_loader import load_config
from constants import DEFAULT_CONFIG_PATH, PERSIST_VERSION
from errors import ConfigError, PersistError
from model import ActivationSettings, PersistenceConfig
from planner import fstab_lines
from script import render_unit_script, write_unit_scripts

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class ParsedArgs:
    """Parsed command-line arguments."""

    action: str
    config_path: Path
    overrides: dict[str, Any] = field(default_factory=dict)
    output_dir: Path | None = None
    verbose: bool = False
    log_file: str | None = None


def print_error_box(title: str, *lines: str) -> None:
    """Print a formatted error box to stderr.

    Args:
        title: The error title (will be prefixed with "Error: ")
        *lines: Additional lines to print in the box
    """
    print("=" * 60, file=sys.stderr)
    print(f"Error: {title}", file=sys.stderr)
    print("", file=sys.stderr)
    for line in lines:
        print(line, file=sys.stderr)
    print("=" * 60, file=sys.stderr)


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Log to stderr, or to log_file when given. -v switches to DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    if log_file:
        logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT, force=True)
    else:
        logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT, force=True)


def _add_config_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "config",
        nargs="?",
        default=str(DEFAULT_CONFIG_PATH),
        help=f"persistence config file (default: {DEFAULT_CONFIG_PATH})",
    )
    missing = parser.add_mutually_exclusive_group()
    missing.add_argument(
        "--strict", dest="missing_source", action="store_const", const="strict",
        help="fail entries whose persistent directory is missing",
    )
    missing.add_argument(
        "--create-missing", dest="missing_source", action="store_const", const="create",
        help="create missing persistent directories",
    )
    links = parser.add_mutually_exclusive_group()
    links.add_argument(
        "--direct", dest="link_mode", action="store_const", const="direct",
        help="persist files as symlinks at their own path",
    )
    links.add_argument(
        "--overlay", dest="link_mode", action="store_const", const="overlay",
        help="register persisted files under the /etc overlay root",
    )
    parser.add_argument("--overlay-root", metavar="PATH", help="overlay staging directory")
    parser.add_argument("--allowed-prefix", metavar="PATH", help="prefix persisted files must live under")
    parser.add_argument("--target-root", metavar="PATH", help="where the ephemeral root is mounted")
    parser.add_argument("--fstab", metavar="PATH", help="boot mount table (default: /etc/fstab)")
    parser.add_argument("--mountinfo", metavar="PATH", help="live mount table")
    parser.add_argument(
        "--require-root", dest="required_roots", metavar="PATH", action="append",
        help="treat PATH as mounted before activation (repeatable)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for persist CLI."""
    parser = argparse.ArgumentParser(
        prog="persist",
        description="Keep selected paths of an ephemeral root on persistent storage.",
    )
    parser.add_argument("--version", action="version", version=f"persist {PERSIST_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--log-file", metavar="PATH", help="log to PATH instead of stderr")

    sub = parser.add_subparsers(dest="action", required=True, metavar="ACTION")

    check = sub.add_parser("check", help="validate the configuration")
    _add_config_options(check)

    plan = sub.add_parser("plan", help="show the mounts and links each unit would create")
    _add_config_options(plan)

    fstab = sub.add_parser("fstab", help="print fstab lines for every bind mount")
    _add_config_options(fstab)

    script = sub.add_parser("script", help="render one shell activation script per unit")
    _add_config_options(script)
    script.add_argument("-o", "--output-dir", metavar="DIR", help="write scripts into DIR")

    activate = sub.add_parser("activate", help="restore every persisted path")
    _add_config_options(activate)
    activate.add_argument("--dry-run", action="store_true", help="log changes without making them")

    review = sub.add_parser("review", help="review the plan in a TUI, then apply it")
    _add_config_options(review)
    review.add_argument("--dry-run", action="store_true", help="log changes without making them")

    return parser


def parse_args(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command line arguments.

    Returns:
        ParsedArgs with the action, config path and settings overrides.
    """
    args = create_parser().parse_args(argv)

    overrides = {
        "missing_source": args.missing_source,
        "link_mode": args.link_mode,
        "overlay_root": args.overlay_root,
        "allowed_prefix": args.allowed_prefix,
        "target_root": args.target_root,
        "fstab": args.fstab,
        "mountinfo": args.mountinfo,
        "required_roots": args.required_roots,
        "dry_run": True if getattr(args, "dry_run", False) else None,
    }

    output_dir = getattr(args, "output_dir", None)
    return ParsedArgs(
        action=args.action,
        config_path=Path(args.config),
        overrides={k: v for k, v in overrides.items() if v is not None},
        output_dir=Path(output_dir) if output_dir else None,
        verbose=args.verbose,
        log_file=args.log_file,
    )


def load(args: ParsedArgs) -> tuple[PersistenceConfig, ActivationSettings]:
    """Load the config file and apply command-line overrides on top of its settings."""
    config, settings = load_config(args.config_path)
    try:
        return config, settings.with_overrides(**args.overrides)
    except ValueError as e:
        raise ConfigError(f"Invalid option: {e}") from e


def run_check(runner: ActivationRunner, config: PersistenceConfig) -> int:
    plans, warnings = runner.plan(config)
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    entries = sum(len(p.mounts) + len(p.links) for p in plans)
    print(f"OK: {len(plans)} persistent root(s), {entries} entr{'y' if entries == 1 else 'ies'}")
    return 0


def run_plan(runner: ActivationRunner, config: PersistenceConfig) -> int:
    plans, warnings = runner.plan(config)
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    for root_plan in plans:
        print("\n".join(root_plan.summary_lines()))
    return 0


def run_fstab(runner: ActivationRunner, config: PersistenceConfig) -> int:
    plans, _ = runner.plan(config)
    for line in fstab_lines(plans):
        print(line)
    return 0


def run_script(runner: ActivationRunner, config: PersistenceConfig, output_dir: Path | None) -> int:
    plans, _ = runner.plan(config)
    if output_dir:
        for path in write_unit_scripts(plans, runner.settings, output_dir):
            print(path)
        return 0
    for root_plan in plans:
        print(render_unit_script(root_plan, runner.settings))
    return 0


def run_activate(runner: ActivationRunner, config: PersistenceConfig) -> int:
    report = runner.activate(config)
    print("\n".join(report.summary_lines()))
    return 0 if report.ok else 1


def run_review(runner: ActivationRunner, config: PersistenceConfig) -> int:
    from app import PlanReviewApp

    plans, warnings = runner.plan(config)
    app = PlanReviewApp(plans, runner.settings, warnings, version=PERSIST_VERSION)
    app.run()

    if not app.apply_requested:
        print("Cancelled.")
        return 0
    return run_activate(runner, config)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_file = args.log_file
    if args.action == "review" and not log_file:
        # The TUI owns the terminal
        from app import get_log_path
        log_file = str(get_log_path())
    setup_logging(args.verbose, log_file)

    try:
        config, settings = load(args)
        runner = ActivationRunner(settings)

        if args.action == "check":
            return run_check(runner, config)
        if args.action == "plan":
            return run_plan(runner, config)
        if args.action == "fstab":
            return run_fstab(runner, config)
        if args.action == "script":
            return run_script(runner, config, args.output_dir)
        if args.action == "activate":
            return run_activate(runner, config)
        if args.action == "review":
            return run_review(runner, config)
    except ConfigError as e:
        print_error_box("Invalid persistence configuration", str(e))
        return 1
    except PersistError as e:
        print_error_box("Activation failed", str(e))
        return 1

    print(f"Error: unknown action {args.action}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
