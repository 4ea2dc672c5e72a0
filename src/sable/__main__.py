#!/usr/bin/env python3
"""
Command line interface for sable.

Usage:
    sable [FILE]                        run FILE, or start the REPL without one
    python -m sable run FILE
    python -m sable check FILE [--json]
    python -m sable ast FILE
    python -m sable repl
    python -m sable config

Global options:
    --config PATH   YAML settings file (see sable.config)
    -v, --verbose   debug logging on stderr

Examples:
    # Run a script
    sable fib.sbl

    # Check syntax only, with machine-readable diagnostics
    sable check fib.sbl --json

    # Dump the syntax tree
    sable ast fib.sbl
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, SableConfig, dump_config, load_config

SUBCOMMANDS = ("run", "check", "ast", "repl", "config")
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _read_source(path_str: str) -> Optional[str]:
    source_path = Path(path_str)
    if not source_path.is_file():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def cmd_run(args, config: SableConfig) -> int:
    """Run a script file."""
    from .runtime.interpreter import run_source

    source = _read_source(args.file)
    if source is None:
        return 1

    result = run_source(source, filename=args.file, config=config)
    if not result.success:
        print(result.error_message, file=sys.stderr)
        return 1
    return 0


def cmd_check(args, config: SableConfig) -> int:
    """Check a file for syntax errors without running it."""
    from .errors import SableError
    from .parser import parse_source

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tree = parse_source(source, args.file)
    except SableError as e:
        e.attach_source(source.splitlines())
        if args.json:
            print(json.dumps({"file": args.file, "diagnostics": [e.diagnostic.to_json()]}, indent=2))
        else:
            print(f"{e.label}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({"file": args.file, "diagnostics": []}, indent=2))
    else:
        print(f"{args.file}: OK ({len(tree.statements)} top-level statements)")
    return 0


def cmd_ast(args, config: SableConfig) -> int:
    """Print the syntax tree of a file."""
    from .ast import print_ast
    from .errors import SableError
    from .parser import parse_source

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tree = parse_source(source, args.file)
    except SableError as e:
        e.attach_source(source.splitlines())
        print(f"{e.label}: {e}", file=sys.stderr)
        return 1

    print_ast(tree)
    return 0


def cmd_repl(args, config: SableConfig) -> int:
    """Start the interactive loop."""
    from .repl import Repl

    return Repl(config).run()


def cmd_config(args, config: SableConfig) -> int:
    """Print the effective configuration as YAML."""
    print(dump_config(config), end="")
    return 0


COMMANDS = {
    "run": cmd_run,
    "check": cmd_check,
    "ast": cmd_ast,
    "repl": cmd_repl,
    "config": cmd_config,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sable',
        description='sable interpreter',
    )
    parser.add_argument('--config', metavar='PATH', help='YAML settings file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action')

    run_parser = subparsers.add_parser('run', help='Run a script')
    run_parser.add_argument('file', help='Source file')

    check_parser = subparsers.add_parser('check', help='Check a file for syntax errors')
    check_parser.add_argument('file', help='Source file')
    check_parser.add_argument('--json', action='store_true', help='Emit diagnostics as JSON')

    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree of a file')
    ast_parser.add_argument('file', help='Source file')

    subparsers.add_parser('repl', help='Start the interactive interpreter')
    subparsers.add_parser('config', help='Show the effective configuration')

    return parser


def _insert_default_action(argv: List[str]) -> List[str]:
    """Turn ``sable [options] FILE`` into ``sable [options] run FILE``."""
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == '--config':
            i += 2
            continue
        if arg.startswith('-'):
            i += 1
            continue
        if arg in SUBCOMMANDS:
            return argv
        return argv[:i] + ['run'] + argv[i:]
    return argv


def _configure_logging(verbose: bool, level: str = "WARNING") -> None:
    logging.basicConfig(format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(logging.DEBUG if verbose else level.upper())


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)
    args = parser.parse_args(_insert_default_action(argv))

    _configure_logging(args.verbose)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    _configure_logging(args.verbose, config.log_level)

    action = args.action or 'repl'
    return COMMANDS[action](args, config)


if __name__ == '__main__':
    sys.exit(main())
