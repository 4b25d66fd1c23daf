#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/cli.py
"""Command-line interface for mdguard.

The CLI exposes the boundary validators for scripting and CI checks.

Check documents before opening them::

    $ mdguard check-file notes.md README.markdown

Validate links::

    $ mdguard check-url https://example.com "javascript:alert(1)"

Sanitize preview HTML for the clipboard (reads stdin with ``-``)::

    $ mdguard sanitize-html preview.html > clean.html
    $ cat preview.html | mdguard sanitize-html -

Show the effective configuration::

    $ mdguard show-config --config .mdguard.toml

Exit codes: 0 when every input passes, 1 when any input is rejected, 2 for
usage and configuration errors.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from collections.abc import Mapping
from typing import Any, Sequence

from rich.console import Console
from rich.table import Table

from mdguard import __version__
from mdguard.config import load_options
from mdguard.exceptions import ConfigurationError
from mdguard.loader import load_document
from mdguard.logging_utils import configure_logging
from mdguard.options.security import GuardOptions
from mdguard.utils.html_sanitizer import sanitize_html_for_clipboard, sanitize_text_for_clipboard
from mdguard.utils.network_security import validate_external_url

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_REJECTED = 1
EXIT_USAGE_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mdguard",
        description="Validate and sanitize untrusted input for a Markdown editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  MDGUARD_CONFIG                   Path to a configuration file
  MDGUARD_PRODUCTION               Report generic error messages (default: true)
  MDGUARD_<SECTION>_<FIELD>        Override one option, e.g. MDGUARD_RATE_LIMIT_MAX_CALLS=50
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to a configuration file (.toml, .yaml, .json or pyproject.toml)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument("--security-log", help="Write [SECURITY] events to this audit file")
    parser.add_argument("--trace", action="store_true", help="Verbose logging with timestamps and logger names")
    parser.add_argument("--rich", action="store_true", help="Render results as tables")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    check_file = subparsers.add_parser("check-file", help="Validate documents as the file-open flow would")
    check_file.add_argument("paths", nargs="+", metavar="PATH", help="Documents to check")
    check_file.add_argument("--json", action="store_true", help="Emit results as JSON")
    check_file.set_defaults(handler=_cmd_check_file)

    check_url = subparsers.add_parser("check-url", help="Validate URLs for external opening")
    check_url.add_argument("urls", nargs="+", metavar="URL", help="URLs to check")
    check_url.add_argument("--json", action="store_true", help="Emit results as JSON")
    check_url.set_defaults(handler=_cmd_check_url)

    sanitize_html = subparsers.add_parser("sanitize-html", help="Sanitize HTML for the clipboard")
    sanitize_html.add_argument("input", nargs="?", default="-", metavar="FILE", help="HTML file, or - for stdin")
    sanitize_html.set_defaults(handler=_cmd_sanitize_html)

    sanitize_text = subparsers.add_parser("sanitize-text", help="Strip control characters from clipboard text")
    sanitize_text.add_argument("input", nargs="?", default="-", metavar="FILE", help="Text file, or - for stdin")
    sanitize_text.set_defaults(handler=_cmd_sanitize_text)

    show_config = subparsers.add_parser("show-config", help="Print the effective configuration as JSON")
    show_config.set_defaults(handler=_cmd_show_config)

    return parser


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, encoding="utf-8") as f:
        return f.read()


def _render_results(
    results: list[dict[str, Any]], *, title: str, key: str, use_rich: bool, as_json: bool
) -> None:
    if as_json:
        print(json.dumps(results, indent=2))
        return

    if use_rich:
        table = Table(title=title)
        table.add_column(key.capitalize(), style="cyan", no_wrap=False)
        table.add_column("Status")
        table.add_column("Detail")
        for result in results:
            status = "[green][OK][/green]" if result["valid"] else "[red][REJECTED][/red]"
            table.add_row(result[key], status, result.get("detail") or "")
        Console().print(table)
        return

    for result in results:
        status = "OK" if result["valid"] else "REJECTED"
        detail = f": {result['detail']}" if result.get("detail") else ""
        print(f"{status} {result[key]}{detail}")


def _cmd_check_file(args: argparse.Namespace, options: GuardOptions) -> int:
    results = []
    for path in args.paths:
        outcome = load_document(path, options)
        detail = outcome.error if not outcome.valid else f"{len(outcome.content or '')} characters"
        results.append({"path": path, "valid": outcome.valid, "detail": detail})

    _render_results(results, title="Document Checks", key="path", use_rich=args.rich, as_json=args.json)
    return EXIT_SUCCESS if all(r["valid"] for r in results) else EXIT_REJECTED


def _cmd_check_url(args: argparse.Namespace, options: GuardOptions) -> int:
    results = []
    for url in args.urls:
        outcome = validate_external_url(url, options.url_security)
        detail = outcome.sanitized_url if outcome.is_valid else outcome.error
        results.append({"url": url, "valid": outcome.is_valid, "detail": detail})

    _render_results(results, title="URL Checks", key="url", use_rich=args.rich, as_json=args.json)
    return EXIT_SUCCESS if all(r["valid"] for r in results) else EXIT_REJECTED


def _cmd_sanitize_html(args: argparse.Namespace, options: GuardOptions) -> int:
    sys.stdout.write(sanitize_html_for_clipboard(_read_input(args.input), options.sanitization))
    return EXIT_SUCCESS


def _cmd_sanitize_text(args: argparse.Namespace, options: GuardOptions) -> int:
    sys.stdout.write(sanitize_text_for_clipboard(_read_input(args.input)))
    return EXIT_SUCCESS


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in sorted(value.items())}
    if isinstance(value, (frozenset, set)):
        return sorted(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def _cmd_show_config(args: argparse.Namespace, options: GuardOptions) -> int:
    print(json.dumps(_jsonable(options), indent=2))
    return EXIT_SUCCESS


def main(args: Sequence[str] | None = None) -> int:
    """Run the mdguard CLI.

    Parameters
    ----------
    args : sequence of str, optional
        Command-line arguments, defaults to ``sys.argv[1:]``

    Returns
    -------
    int
        Process exit code

    """
    parser = create_parser()
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit as e:
        return int(e.code) if isinstance(e.code, int) else EXIT_USAGE_ERROR

    log_level = logging.DEBUG if parsed_args.trace else parsed_args.log_level
    configure_logging(
        log_level,
        log_file=parsed_args.log_file,
        trace_mode=parsed_args.trace,
        security_log_file=parsed_args.security_log,
    )

    try:
        options = load_options(parsed_args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    try:
        return parsed_args.handler(parsed_args, options)
    except OSError as e:
        print(f"Error: cannot read input: {e.strerror or e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except UnicodeDecodeError:
        print("Error: input is not valid UTF-8", file=sys.stderr)
        return EXIT_USAGE_ERROR


__all__ = ["EXIT_REJECTED", "EXIT_SUCCESS", "EXIT_USAGE_ERROR", "create_parser", "main"]
