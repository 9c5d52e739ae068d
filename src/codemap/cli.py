# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command-line front end for codemap.

Usage:
    codemap --project src callgraph app.services.Controller.handle --depth 3
    codemap --project src incoming-calls Repository.fetch
    codemap --project src dependencies ServiceImpl
    codemap --project src circular-deps
    codemap --project src impact Repository
    codemap --project src fullgraph

Results are printed to stdout as JSON; logs go to stderr. The exit code is 0
on success, including targets that match nothing (an empty graph), and 1 on
any failure.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from codemap.config import Config, ConfigurationError
from codemap.engine import CodeMapEngine, Command
from codemap.logging_setup import setup_logging
from codemap.serialization import result_to_dict, to_json, violations_to_dict

logger = logging.getLogger(__name__)

TARGETED_COMMANDS = {
    Command.CALL_GRAPH: "Member to expand (qualified name or any part of one)",
    Command.INCOMING_CALLS: "Member whose callers to list",
    Command.DEPENDENCIES: "Type whose direct dependencies to list",
    Command.DEPENDENTS: "Type whose dependents to list",
    Command.IMPACT: "Type whose change impact to analyze",
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per query."""
    parser = argparse.ArgumentParser(
        prog="codemap",
        description="Structural code graph queries for Python codebases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path("."),
        help="Root directory of the codebase to analyze. Default: current directory",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file. Default: <project>/.codemap.yml",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: log_level from the configuration",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for structured JSON log files. Default: no log file",
    )
    parser.add_argument(
        "--include-package",
        type=str,
        default=None,
        help="Keep only result nodes whose qualified name starts with this prefix",
    )
    parser.add_argument(
        "--exclude-package",
        type=str,
        default=None,
        help="Drop result nodes whose qualified name starts with this prefix",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print JSON on a single line",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    for command, target_help in TARGETED_COMMANDS.items():
        subparser = subparsers.add_parser(command, help=target_help)
        subparser.add_argument("target", help=target_help)
        if command == Command.CALL_GRAPH:
            subparser.add_argument(
                "--depth",
                type=int,
                default=None,
                help="Maximum call depth, -1 for unlimited. Default: default_depth (5)",
            )

    subparsers.add_parser(Command.CIRCULAR_DEPS, help="Detect circular dependencies")
    subparsers.add_parser(Command.FULL_GRAPH, help="Print the whole graph")
    subparsers.add_parser("check", help="Evaluate architecture rules")
    subparsers.add_parser("cache-stats", help="Analyze and print fingerprint cache statistics")
    return parser


def run_command(engine: CodeMapEngine, args: argparse.Namespace) -> Dict[str, Any]:
    """Run one parsed command against an analyzed engine and return its JSON payload."""
    command = args.command
    if command == "check":
        return violations_to_dict(engine.check_rules())
    if command == "cache-stats":
        return {"command": command, "stats": engine.get_cache_stats()}

    if command == Command.CALL_GRAPH:
        result = engine.get_call_graph(args.target, args.depth)
    elif command == Command.INCOMING_CALLS:
        result = engine.get_incoming_calls(args.target)
    elif command == Command.DEPENDENCIES:
        result = engine.get_class_dependencies(args.target)
    elif command == Command.DEPENDENTS:
        result = engine.get_dependents(args.target)
    elif command == Command.IMPACT:
        result = engine.get_impact_analysis(args.target)
    elif command == Command.CIRCULAR_DEPS:
        result = engine.detect_circular_dependencies()
    elif command == Command.FULL_GRAPH:
        result = engine.get_full_graph()
    else:
        raise ValueError(f"Unknown command: {command}")

    result = engine.filter_result(result, args.include_package, args.exclude_package)
    return result_to_dict(result)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line.

    Args:
        argv: Arguments without the program name. If None, uses sys.argv.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    project = args.project
    try:
        if args.config is not None:
            config = Config(args.config, required=True)
        else:
            config = Config.for_project(project)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(log_level=args.log_level or config.log_level, log_dir=args.log_dir)

    try:
        engine = CodeMapEngine(config)
        engine.analyze(project)
        payload = run_command(engine, args)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(to_json(payload, indent=None if args.compact else 2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
