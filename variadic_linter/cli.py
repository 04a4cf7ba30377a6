"""Command-line interface for variadic-lint."""

import argparse
import asyncio
import logging
import sys

from variadic_linter.analyzer import lint_paths
from variadic_linter.reporter import format_report, format_summary
from variadic_linter.usage_classifier import CONTAINER_FUNCTIONS

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="variadic-lint",
        description="Find R functions that misuse ... to build a single vector",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # lint subcommand
    lint_parser = subparsers.add_parser(
        "lint",
        help="Lint R files or directories (default)",
    )
    lint_parser.add_argument(
        "paths",
        nargs="+",
        help="R source files or directories to lint",
    )
    lint_parser.add_argument(
        "--format",
        "-f",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    lint_parser.add_argument(
        "--container",
        "-c",
        action="append",
        default=[],
        metavar="NAME",
        help="Additional function that builds a single vector (repeatable)",
    )
    lint_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress to stderr",
    )

    return parser


def parse_args(args: list[str]) -> argparse.Namespace:
    """Parse command-line arguments, treating bare paths as ``lint``."""
    parser = create_parser()

    if args and not args[0].startswith("-") and args[0] != "lint":
        args = ["lint"] + args

    return parser.parse_args(args)


async def run_lint(
    paths: list[str],
    output_format: str = "text",
    containers: list[str] | None = None,
) -> int:
    """Run the lint command.

    Args:
        paths: Files and directories to lint
        output_format: "text" or "json"
        containers: Extra container-constructor names

    Returns:
        Exit code (1 if any blocking finding was reported, else 0)
    """
    container_functions = CONTAINER_FUNCTIONS | frozenset(containers or [])
    logger.info(f"Linting {len(paths)} paths")
    result = await lint_paths(paths, container_functions=container_functions)

    if output_format == "json":
        print(result.to_json())
    else:
        report = format_report(result.findings)
        if report:
            print(report)
        print(format_summary(result), file=sys.stderr)

    return result.exit_code


async def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for clean, 1 for blocking findings or missing arguments)
    """
    try:
        parsed = parse_args(args)
    except SystemExit as e:
        return e.code if e.code else 1

    if parsed.command is None:
        create_parser().print_help(sys.stderr)
        return 1

    setup_logging(parsed.verbose)
    return await run_lint(parsed.paths, parsed.format, parsed.container)


def main():
    """Entry point for the CLI."""
    exit_code = asyncio.run(run_cli(sys.argv[1:]))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
