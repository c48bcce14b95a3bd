"""CLI entry point for pg-index-health."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime

import yaml

from pg_index_health import __version__

_FORMAT_EXT = {"json": ".json", "text": ".txt"}

_COMMANDS = {"check", "list-diagnostics", "hosts", "joint-url", "settings"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-index-health",
        description="Run structural health diagnostics against a PostgreSQL cluster.",
    )
    parser.add_argument("--version", action="version", version=f"pg-index-health {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands (default: check)")

    # -- check --
    check_parser = subparsers.add_parser(
        "check", help="Run diagnostics against the primary and, where needed, every replica"
    )
    _add_connection_args(check_parser)
    _add_output_args(check_parser)
    check_parser.add_argument("--schema", "-s", help="Schema to inspect (default: public)")
    check_parser.add_argument("--config", "-c", help="Path to pg-index-health.yaml")
    check_parser.add_argument(
        "--exclude",
        help="Comma-separated list of diagnostics to skip",
    )
    check_parser.add_argument(
        "--include-only",
        help="Comma-separated list of diagnostics to run (default: all)",
    )
    check_parser.add_argument("--verbose", "-v", action="store_true", help="Print progress")

    # -- settings --
    settings_parser = subparsers.add_parser(
        "settings", help="Show important server parameters still at their default values"
    )
    _add_connection_args(settings_parser)
    settings_parser.add_argument("--config", "-c", help="Path to pg-index-health.yaml")
    settings_parser.add_argument("--verbose", "-v", action="store_true", help="Print progress")

    # -- list-diagnostics --
    subparsers.add_parser("list-diagnostics", help="List all available diagnostics")

    # -- hosts --
    hosts_parser = subparsers.add_parser("hosts", help="Show the hosts of a connection URL")
    hosts_parser.add_argument("url", help="PostgreSQL connection URI (postgresql://h1:port,h2:port/db)")

    # -- joint-url --
    joint_parser = subparsers.add_parser(
        "joint-url", help="Merge connection URLs into one multi-host URL"
    )
    joint_parser.add_argument("urls", nargs="+", help="PostgreSQL connection URIs")
    joint_parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra URL parameter; may be repeated",
    )

    return parser


def _add_connection_args(parser: argparse.ArgumentParser):
    grp = parser.add_argument_group("connection")
    grp.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="PostgreSQL connection URI (postgresql://h1:port,h2:port/db); may be repeated",
    )
    grp.add_argument("--user", "-U", default=None, help="Database user")
    grp.add_argument("--password", "-W", default=None, help="Database password")
    grp.add_argument("--timeout", type=float, default=None, help="Per-call timeout in seconds (default: 30)")


def _add_output_args(parser: argparse.ArgumentParser):
    grp = parser.add_argument_group("output")
    grp.add_argument(
        "--format",
        "-f",
        choices=["json", "text"],
        default="text",
        help="Report format (default: text)",
    )
    grp.add_argument("--output", "-o", help="Output file path (default: stdout)")


def main(argv: list[str] | None = None):
    parser = build_parser()

    # Default to "check" when no subcommand is given but arguments are present
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _COMMANDS and raw_args[0] not in ("--version", "--help", "-h"):
        raw_args = ["check"] + list(raw_args)
    elif not raw_args:
        parser.print_help()
        sys.exit(1)

    args = parser.parse_args(raw_args)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(getattr(args, "verbose", False))

    if args.command == "list-diagnostics":
        _cmd_list_diagnostics(args)
    elif args.command == "hosts":
        _cmd_hosts(args)
    elif args.command == "joint-url":
        _cmd_joint_url(args)
    elif args.command == "settings":
        _cmd_settings(args)
    elif args.command == "check":
        _cmd_check(args)


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _split_names(raw: str | None) -> set[str] | None:
    if raw is None:
        return None
    return {n.strip() for n in raw.split(",") if n.strip()}


def _cmd_list_diagnostics(args):
    from pg_index_health import catalog
    from pg_index_health.diagnostics import standard_registry

    for diagnostic in standard_registry():
        check = catalog.get_check(diagnostic.id)
        policy = diagnostic.execution_policy.value
        combiner = diagnostic.combiner.__name__ if diagnostic.combiner else ""
        print(f"  {diagnostic.id.value:32s} {policy:15s} {combiner:22s} {check.description}")


def _cmd_hosts(args):
    from pg_index_health.errors import InvalidConnectionStringError
    from pg_index_health.host import HostIdentity
    from pg_index_health.urls import per_host_connection_strings

    try:
        per_host = per_host_connection_strings(args.url)
    except InvalidConnectionStringError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for key, url in per_host.items():
        host = HostIdentity.of_url(url)
        role = "primary-capable" if host.can_be_primary else "standby"
        print(f"{key}\t{role}\t{url}")


def _cmd_joint_url(args):
    from pg_index_health.errors import InvalidConnectionStringError
    from pg_index_health.urls import build_joint_connection_string

    extra = {}
    for item in args.param:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            print(f"Error: --param expects KEY=VALUE, got {item!r}", file=sys.stderr)
            sys.exit(1)
        extra[key.strip()] = value.strip()

    try:
        print(build_joint_connection_string(args.urls, extra))
    except InvalidConnectionStringError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _load_config(args):
    """Load the config file and overlay the command-line arguments."""
    from pg_index_health.config import load_config, merge_cli_with_config

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    config = merge_cli_with_config(
        config,
        cli_urls=args.urls,
        cli_user=args.user,
        cli_password=args.password,
        cli_schema=getattr(args, "schema", None),
        cli_timeout=args.timeout,
        cli_exclude=_split_names(getattr(args, "exclude", None)),
        cli_include_only=_split_names(getattr(args, "include_only", None)),
    )

    if not config.connection.urls:
        print("Error: No connection URL given. Use --url or the connection.urls config key.", file=sys.stderr)
        sys.exit(1)
    return config


def _cmd_settings(args):
    from pg_index_health.connection import connections_for_cluster
    from pg_index_health.errors import HostUnreachableError, PgIndexHealthError
    from pg_index_health.settings import params_with_default_values_on_hosts

    config = _load_config(args)
    try:
        connections = connections_for_cluster(config.connection.credentials())
        per_host = params_with_default_values_on_hosts(connections, timeout=config.connection.timeout_seconds)
    except HostUnreachableError as e:
        _print_connection_error(e)
        sys.exit(1)
    except (PgIndexHealthError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for host, params in per_host:
        if not params:
            print(f"{host}\tall important parameters tuned")
        for param in params:
            print(f"{host}\t{param.name}\t{param.value}")


def _cmd_check(args):
    from pg_index_health.cluster import ClusterCheckOrchestrator
    from pg_index_health.connection import connections_for_cluster
    from pg_index_health.errors import HostUnreachableError, PgIndexHealthError, TopologyError
    from pg_index_health.health import run_health_check

    config = _load_config(args)

    try:
        credentials = config.connection.credentials()
        context = config.context.schema_context()
        orchestrator = ClusterCheckOrchestrator(
            connections_for_cluster(credentials),
            timeout=config.connection.timeout_seconds,
        )
        report = run_health_check(
            orchestrator,
            context=context,
            exclusions=config.exclusions,
            include_only=config.diagnostics.include_only,
            exclude=config.diagnostics.exclude,
        )
    except HostUnreachableError as e:
        _print_connection_error(e)
        sys.exit(1)
    except TopologyError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nHint: Make sure the connection URLs list every host of the cluster.", file=sys.stderr)
        sys.exit(1)
    except (PgIndexHealthError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output = _render_report(report, args.format)
    _write_output(output, args, dbname=report.database)

    if report.diagnostics_failed:
        sys.exit(1)


def _print_connection_error(error):
    error_msg = str(error.cause or error).strip()
    print(f"Error: Could not connect to host {error.host}.", file=sys.stderr)
    print(f"       {error_msg}", file=sys.stderr)
    if "no password supplied" in error_msg:
        print("\nHint: Use --password to provide a password, or set PGPASSWORD environment variable.", file=sys.stderr)
    elif "does not exist" in error_msg:
        print("\nHint: Check that the database name is correct.", file=sys.stderr)
    elif "Connection refused" in error_msg or "could not connect" in error_msg.lower():
        print(f"\nHint: Check that PostgreSQL is running on {error.host}.", file=sys.stderr)
    elif "Timed out" in error_msg:
        print("\nHint: Increase --timeout or check the network path to the host.", file=sys.stderr)


def _write_output(output: str, args, dbname: str = ""):
    """Write report to file (with timestamped name) or stdout."""
    if not args.output:
        sys.stdout.write(output)
        return

    path = _make_output_path(args.output, args.format, dbname)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(output)
    print(f"Report written to {path}", file=sys.stderr)


def _make_output_path(user_path: str, fmt: str, dbname: str = "") -> str:
    """Insert a timestamp into the output filename.

    If the user provides a path like ``report.json``, the result is
    ``report_20260127_131504.json``.  If they provide a bare directory,
    the file is placed there with an auto-generated name.
    """
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    ext = _FORMAT_EXT.get(fmt, "")
    name = dbname or "pg-index-health"

    if os.path.isdir(user_path):
        return os.path.join(user_path, f"{name}_{ts}{ext}")

    base, existing_ext = os.path.splitext(user_path)
    if not existing_ext:
        existing_ext = ext
    return f"{base}_{ts}{existing_ext}"


def _render_report(report, fmt: str) -> str:
    if fmt == "json":
        from pg_index_health.reporters.json_reporter import render
    elif fmt == "text":
        from pg_index_health.reporters.text_reporter import render
    else:
        raise ValueError(f"Unknown format: {fmt}")
    return render(report)
