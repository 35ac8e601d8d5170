"""shell-task command line entry point.

Runs one command through ProcessRunner and exits with its status:
- basic: no output options, only the outcome is reported
- print: both channels printed, each line tagged with --prefix
- handle: stdout captured through a handle option, byte count reported
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence

from . import __version__
from .config import Config, get_config
from .runtime import Failure, HandleOption, PrintOption, ProcessRunner, Result

__all__ = ["build_parser", "configure_logging", "exit_status_for", "run_command", "main"]

logger = logging.getLogger(__name__)

MODES = ("basic", "print", "handle")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shell-task",
        description="Run a command asynchronously and report how it finished.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="print",
        help="how to treat the command's output (default: print)",
    )
    parser.add_argument("--prefix", default=None, help="tag for every printed line")
    parser.add_argument("--cwd", default=None, help="working directory for the command")
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="extra environment variable (repeatable)",
    )
    parser.add_argument("command", help="executable to run")
    parser.add_argument("arguments", nargs=argparse.REMAINDER, help="arguments for the command")
    return parser


def _parse_env(parser: argparse.ArgumentParser, entries: Sequence[str]) -> dict[str, str] | None:
    """Merge KEY=VALUE entries over the current environment."""
    if not entries:
        return None

    env = dict(os.environ)
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            parser.error(f"invalid --env entry {entry!r}, expected KEY=VALUE")
        env[key] = value
    return env


def configure_logging(config: Config) -> None:
    """Configure logging for the command line tool."""
    log_handlers: list[logging.Handler] = []
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: write everything to the temp log file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party loggers stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("shell_task").setLevel(log_level)


def exit_status_for(result: Result) -> int:
    """Exit status for the tool itself (128+N when killed by signal N)."""
    if result.exit_code < 0:
        return 128 - result.exit_code
    return result.exit_code


async def run_command(
    args: argparse.Namespace,
    environment: dict[str, str] | None = None,
) -> tuple[Result, int]:
    """Run the parsed command.

    Returns:
        Tuple of (result, bytes captured in handle mode)
    """
    runner = ProcessRunner(args.command)
    arguments = list(args.arguments)
    if arguments[:1] == ["--"]:
        arguments = arguments[1:]
    runner.arguments = arguments
    runner.environment = environment
    runner.current_directory = args.cwd

    buffer = bytearray()
    if args.mode == "print":
        runner.output_options = [PrintOption(prefix=args.prefix)]
        # same options for errors as well
        runner.error_options = runner.output_options
    elif args.mode == "handle":
        runner.output_options = [HandleOption(buffer.extend)]

    result = await runner.run()
    return result, len(buffer)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    environment = _parse_env(parser, args.env)

    config = get_config()
    configure_logging(config)
    logger.debug(f"shell-task starting: {config}")

    result, captured = asyncio.run(run_command(args, environment))

    if isinstance(result, Failure):
        print(f"task terminated with code: {result.exit_code}", file=sys.stderr)
        if result.message:
            print(f"reason: {result.message}", file=sys.stderr)
    elif args.mode == "handle":
        print(
            f"task completed executed successfully. the output was {captured} bytes",
            file=sys.stderr,
        )
    else:
        print("task completed executed successfully.", file=sys.stderr)

    sys.exit(exit_status_for(result))


if __name__ == "__main__":
    main()
