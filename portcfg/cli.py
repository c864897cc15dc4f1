"""Port configuration CLI (export, validate, report)."""

from __future__ import annotations

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from .decision import POLICIES, confirm_conflicts, policy_from_name
from .exceptions import PortConfigError
from .export import (
    apply_environment,
    build_environment,
    mask_assignment,
    render_shell_exports,
    summary_lines,
    write_env_file,
)
from .parser import Configuration, DuplicateKeyPolicy, QuoteMode, parse_config_file
from .probe import PROBES, make_probe
from .registry import Registry, load_registry
from .settings import Settings
from .validate import ValidationReport, build_report

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
logger = logging.getLogger("portcfg")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT, stream=sys.stderr)


def emit(lines: List[str], stream: Optional[TextIO] = None) -> None:
    print("\n".join(lines), file=stream or sys.stdout)


def load(args: argparse.Namespace) -> Tuple[Configuration, Registry]:
    registry = load_registry(args.registry)
    logger.info("Loading port configuration from %s", args.config)
    config = parse_config_file(
        args.config,
        quotes=QuoteMode(args.quotes),
        duplicate_keys=DuplicateKeyPolicy(args.duplicate_keys),
        strict=args.strict,
    )
    if args.strict and config.skipped:
        logger.warning("%d line(s) in %s did not match 'key: value'", len(config.skipped), args.config)
    for key in dict.fromkeys(config.repeated_keys):
        logger.debug("Key %s is defined more than once", key)
    return config, registry


def run_report(args: argparse.Namespace, config: Configuration, registry: Registry) -> ValidationReport:
    probe = None if args.no_live else make_probe(args.probe, args.probe_host)
    return build_report(config, registry.band, probe, registry.secrets)


def cmd_export(args: argparse.Namespace) -> int:
    config, registry = load(args)
    out = sys.stderr if args.shell else sys.stdout

    # range and duplicate findings never block the export
    report = run_report(args, config, registry)
    for key, port in report.out_of_range:
        logger.warning("Port %d in %s is outside %s", port, key, registry.band)
    for port, keys in report.duplicates.items():
        logger.warning("Port %d used by %s", port, ", ".join(keys))
    for line in report.warnings():
        logger.warning(line)

    confirm_conflicts(report.in_use, policy_from_name(args.on_conflict))

    environment = build_environment(config, os.environ, prefer_env=args.prefer_env)
    emit(summary_lines(config, registry, environment), out)
    applied = apply_environment(environment)
    for key, value in applied.items():
        shown = mask_assignment(key, value) if registry.is_secret(key) else f"{key}={value}"
        logger.debug("Exported %s", shown)

    if args.env_file:
        write_env_file(args.env_file, applied, source=config.path)
    if args.shell:
        print(render_shell_exports(applied), end="")

    command = list(args.command_args)
    if command and command[0] == "--":
        command = command[1:]
    if command:
        logger.info("Running %s", " ".join(command))
        try:
            return subprocess.run(command, env=os.environ.copy(), check=False).returncode
        except FileNotFoundError:
            logger.error("Command not found: %s", command[0])
            return 127

    print("", file=out)
    print("Environment variables exported successfully!", file=out)
    if not args.shell:
        print("To use these variables in your current shell, run:", file=out)
        print('eval "$(portcfg export --shell)"', file=out)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    config, registry = load(args)
    report = run_report(args, config, registry)
    band = registry.band
    out_of_range = set(report.out_of_range)
    in_use = set(report.in_use)
    unknown = set(report.unknown)

    print("=== Port Configuration Validation ===")
    print(f"Configuration file: {args.config}")
    print()
    print(f"Validating port range ({band})...")
    for key, port in report.checked:
        if (key, port) in out_of_range:
            print(f"✗ {key}: {port} (OUT OF RANGE - must be {band})")
        else:
            print(f"✓ {key}: {port} (valid)")
    if report.out_of_range:
        print(f"Found {len(report.out_of_range)} invalid ports:")
        for key, port in report.out_of_range:
            print(f"  {key}:{port}")
    else:
        print("All ports are within the valid range!")

    print()
    print("Checking for port conflicts...")
    if report.duplicates:
        print("Duplicate ports found:")
        for port, keys in report.duplicates.items():
            print(f"  {port} ({', '.join(keys)})")
    else:
        print("No duplicate ports found!")

    print()
    if report.live_checked:
        print("Checking if ports are already in use...")
        for key, port in report.checked:
            if (key, port) in out_of_range:
                continue
            if (key, port) in in_use:
                print(f"⚠ {key}: {port} (PORT IN USE)")
            elif (key, port) in unknown:
                print(f"? {key}: {port} (UNKNOWN - could not be checked)")
            else:
                print(f"✓ {key}: {port} (available)")
        if report.in_use:
            print(f"Warning: {len(report.in_use)} ports are already in use:")
            for key, port in report.in_use:
                print(f"  {key}:{port}")
        if report.unknown:
            print(f"{len(report.unknown)} ports could not be checked")
        if not (report.in_use or report.unknown):
            print("All ports are available!")
    else:
        print("Skipping live port check (--no-live)")
    if report.out_of_range:
        print(f"Note: conflict checks cover {report.conflict_scope} ports only")

    print()
    if report.ok:
        print("✓ All validations passed!")
        return 0
    print(f"✗ Some validations failed! ({report.finding_count} finding(s))")
    for number, finding in enumerate(report.findings(), 1):
        print(f"  {number}. {finding}")
    return 1


def cmd_report(args: argparse.Namespace) -> int:
    config, registry = load(args)
    report = run_report(args, config, registry)
    band = registry.band
    out_of_range = set(report.out_of_range)

    print("=== Port Configuration Test ===")
    emit(summary_lines(config, registry))
    print()
    print("Validating port ranges...")
    valid = 0
    for key, port in report.checked:
        if (key, port) in out_of_range:
            print(f"✗ Port {port} ({key}) is NOT in valid range ({band})")
        else:
            print(f"✓ Port {port} ({key}) is in valid range ({band})")
            valid += 1
    total = len(set(registry.ports) | {key for key, _ in report.checked})
    print()
    print(f"Port range validation: {valid}/{total} ports valid")
    print(f"Duplicate ports: {len(report.duplicates)}")
    print()

    if report.live_checked:
        print("Checking for port conflicts...")
        for key, port in report.in_use:
            print(f"⚠ Port {port} ({key}) is already in use")
        for key, port in report.unknown:
            print(f"? Port {port} ({key}) could not be checked")
        if report.in_use:
            print(f"⚠ {len(report.in_use)} port conflicts found")
        if report.unknown:
            print(f"? {len(report.unknown)} ports could not be checked")
        if not (report.in_use or report.unknown):
            print("✓ No port conflicts detected")
    else:
        print("Skipping live port check (--no-live)")
    print()
    print("=== Test Complete ===")
    return 0


def parse_args(argv: List[str], settings: Settings) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        "-c",
        type=Path,
        default=settings.config_path,
        help="Port configuration file, relative to the current directory (default: %(default)s)",
    )
    common.add_argument("--registry", type=Path, default=settings.registry_path, help="YAML registry of known keys")
    common.add_argument("--probe", choices=PROBES, default=settings.probe, help="Live port check method")
    common.add_argument("--probe-host", default=settings.probe_host, help="Address used by the bind probe")
    common.add_argument("--no-live", action="store_true", help="Skip the live port-in-use check")
    common.add_argument("--strict", action="store_true", help="Warn about lines that are not 'key: value'")
    common.add_argument(
        "--quotes",
        choices=[mode.value for mode in QuoteMode],
        default=QuoteMode.TRAILING.value,
        help="Quote stripping: trailing quote only, or a full enclosing pair",
    )
    common.add_argument(
        "--duplicate-keys",
        choices=[policy.value for policy in DuplicateKeyPolicy],
        default=DuplicateKeyPolicy.LAST.value,
        help="Which value wins when a key repeats",
    )
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(description="Load, validate and export service port configuration")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", parents=[common], help="Check live conflicts, show and export the configuration")
    export.add_argument("--on-conflict", choices=POLICIES, default=settings.on_conflict, help="What to do when a port is in use")
    export.add_argument("--shell", action="store_true", help="Print export statements for eval")
    export.add_argument("--env-file", type=Path, help="Also write a Docker Compose .env file")
    export.add_argument("--prefer-env", action="store_true", help="Keep values already set in the environment")
    export.add_argument("command_args", nargs=argparse.REMAINDER, help="Command to run with the exported environment (after --)")

    sub.add_parser("validate", parents=[common], help="Range, duplicate and in-use checks; non-zero exit on any finding")
    sub.add_parser("report", parents=[common], help="Print range and conflict counts")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        configure_logging()
        logger.error(str(exc))
        return 1
    args = parse_args(sys.argv[1:] if argv is None else argv, settings)
    configure_logging(args.verbose)
    try:
        if args.command == "export":
            return cmd_export(args)
        if args.command == "validate":
            return cmd_validate(args)
        if args.command == "report":
            return cmd_report(args)
    except PortConfigError as exc:
        logger.error(str(exc))
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
