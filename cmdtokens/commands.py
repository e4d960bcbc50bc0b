"""Command-line interface handler for cmdtokens."""

import argparse
import json
import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import records
from . import shlex_parser
from . import shlex_quote

VERSION = "1.0"

console = Console()
err_console = Console(stderr=True)


def default_records_path() -> str:
    """Get the default record file path."""
    return os.path.realpath("commands.txt")


def print_usage() -> None:
    """Print usage information."""
    print("""Usage: cmdtokens [-h | --help] [-v | --verbose] <command> [<args>]

Commands:
  split                    Split a line into arguments
      --json               Print each line's arguments as a JSON array
      <line>               The line to split (default: read lines from stdin)

  join                     Quote arguments into a single line
      <arg>...             The arguments to join, taken verbatim (even -x)

  check                    Check that every line of a record file can be split
      -r, --records FILE   The record file (default ./commands.txt)

  normalize                Rewrite a record file with minimal quoting
      -r, --records FILE   The record file (default ./commands.txt)
      -o, --output FILE    Write here instead of rewriting the record file

  help                     Show this help message
  version                  Show program version
""")


def print_version() -> None:
    """Print version information."""
    print(VERSION)


def setup_logging(verbose: bool) -> None:
    """Send library logging to the terminal through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _print_errors(record_file: records.RecordFile) -> None:
    """Print all record file errors to stderr."""
    for error in record_file.errors:
        err_console.print(
            f"{error.path}:{error.line_num}: error.{error.message}",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


def _load_records(path: str) -> records.RecordFile:
    """Load a record file, exiting on any error."""
    record_file = records.RecordFile(path)
    try:
        record_file.load()
    except records.ValidationFailed:
        _print_errors(record_file)
        sys.exit(1)
    except OSError as e:
        err_console.print(
            f"[red]Error: cannot read {escape(path)}: {e.strerror}[/red]",
            soft_wrap=True,
        )
        sys.exit(1)
    return record_file


def cmd_split(args: argparse.Namespace) -> None:
    """Execute the split command."""
    lines = [args.line] if args.line is not None else sys.stdin

    for line in lines:
        try:
            vector = shlex_parser.split(line)
        except shlex_parser.LexError as e:
            err_console.print(
                f"[red]Error: {type(e).__name__}: {escape(str(e))}[/red]",
                soft_wrap=True,
            )
            sys.exit(1)

        with vector:
            if args.json:
                print(json.dumps(list(vector.argv)))
            else:
                for token in vector:
                    print(token)


def cmd_join(args: argparse.Namespace) -> None:
    """Execute the join command."""
    print(shlex_quote.join(args.args))


def cmd_check(args: argparse.Namespace) -> None:
    """Execute the check command."""
    path = args.records if args.records else default_records_path()
    stats = _load_records(path).stats()

    table = Table(show_header=False, box=None)
    table.add_column("Count", style="bold", justify="right")
    table.add_column("Item")
    table.add_row(str(stats.record_count), "Records")
    table.add_row(str(stats.token_count), "Tokens")
    console.print(table)


def cmd_normalize(args: argparse.Namespace) -> None:
    """Execute the normalize command."""
    path = args.records if args.records else default_records_path()
    record_file = _load_records(path)

    output = args.output if args.output else path
    try:
        count = record_file.save(output)
    except records.RecordException as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        sys.exit(1)
    console.print(f"[green]✓ Wrote {count} records to {output}[/green]")


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="cmdtokens",
        description="Shell-like command line tokenizer",
        add_help=False,
    )

    # Add global options
    parser.add_argument("-h", "--help", action="store_true", help="Show help message")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug messages"
    )

    # Add subparsers for commands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Split command
    split_parser = subparsers.add_parser("split", add_help=False)
    split_parser.add_argument(
        "-h", "--help", action="store_true", help="Show help for split"
    )
    split_parser.add_argument(
        "--json", action="store_true", help="Print arguments as JSON"
    )
    split_parser.add_argument("line", nargs="?", help="Line to split")

    # Join command
    join_parser = subparsers.add_parser("join", add_help=False)
    join_parser.add_argument(
        "-h", "--help", action="store_true", help="Show help for join"
    )
    join_parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments")

    # Check command
    check_parser = subparsers.add_parser("check", add_help=False)
    check_parser.add_argument(
        "-h", "--help", action="store_true", help="Show help for check"
    )
    check_parser.add_argument("-r", "--records", type=str, help="Record file")

    # Normalize command
    normalize_parser = subparsers.add_parser("normalize", add_help=False)
    normalize_parser.add_argument(
        "-h", "--help", action="store_true", help="Show help for normalize"
    )
    normalize_parser.add_argument("-r", "--records", type=str, help="Record file")
    normalize_parser.add_argument("-o", "--output", type=str, help="Output file")

    # Help command
    subparsers.add_parser("help", add_help=False)

    # Version command
    subparsers.add_parser("version", add_help=False)

    # Parse arguments
    if len(argv) < 1:
        print_usage()
        return

    # Arguments after "join" are taken verbatim, including option-like ones.
    start = 0
    while start < len(argv) and argv[start] in ("-v", "--verbose"):
        start += 1
    if start < len(argv) and argv[start] == "join":
        setup_logging(start > 0)
        cmd_join(argparse.Namespace(args=argv[start + 1 :]))
        return

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    # Handle global help
    if args.help or args.command == "help":
        print_usage()
        return

    # Handle version
    if args.command == "version":
        print_version()
        return

    # Execute commands
    if args.command == "split":
        cmd_split(args)
    elif args.command == "join":
        cmd_join(args)
    elif args.command == "check":
        cmd_check(args)
    elif args.command == "normalize":
        cmd_normalize(args)
    else:
        print_usage()
