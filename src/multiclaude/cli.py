"""multiclaude CLI entrypoint: scaffold personas, launch and clean up workers."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from . import __version__
from .config import load_config
from .errors import MulticlaudeError
from .process import ProcessRunner
from .scaffold import InitOptions
from .scaffold import ProjectInitializer
from .workers.cleanup import Cleanup
from .workers.launcher import LaunchOptions
from .workers.launcher import Launcher

logger = logging.getLogger("multiclaude")


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug output (includes command output)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multiclaude",
        description="Agent persona scaffolding and worktree + tmux workflow automation",
    )
    parser.add_argument("--version", action="version", version=f"multiclaude v{__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    init_cmd = sub.add_parser("init", help="Initialize agent personas and project structure")
    _add_output_flags(init_cmd)
    init_cmd.add_argument("-o", "--overwrite", action="store_true", help="Overwrite existing .multiclaude directory")
    init_cmd.add_argument(
        "--ignore-missing-prereqs",
        action="store_true",
        help="Allow initialization even if system prerequisites are missing",
    )

    launch_cmd = sub.add_parser("launch", help="Launch a coding agent with dedicated worktree and environment")
    launch_cmd.add_argument("branch", help="Branch name for the agent")
    launch_cmd.add_argument("plan_file", type=Path, help="Plan file for the agent to execute")
    _add_output_flags(launch_cmd)
    launch_cmd.add_argument("--humanlayer", action="store_true", help="Use HumanLayer launch instead of tmux session")

    cleanup_cmd = sub.add_parser("cleanup", help="Clean up a coding agent's worktree, tmux window, and resources")
    cleanup_cmd.add_argument("branch", help="Branch name to clean up")
    _add_output_flags(cleanup_cmd)

    reset_cmd = sub.add_parser("reset", help="Reset and cleanup all directories and staged files")
    _add_output_flags(reset_cmd)
    reset_cmd.add_argument("-y", "--yes", action="store_true", help="Confirm every deletion without prompting")

    sub.add_parser("version", help="Show version information")
    return parser


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if (verbose or debug) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_init(args: argparse.Namespace, runner: ProcessRunner) -> None:
    initializer = ProjectInitializer(runner=runner)
    initializer.run(InitOptions(overwrite=args.overwrite, ignore_missing_prereqs=args.ignore_missing_prereqs))


def cmd_launch(args: argparse.Namespace, runner: ProcessRunner) -> None:
    launcher = Launcher(load_config(), runner=runner)
    launcher.launch(args.branch, args.plan_file, LaunchOptions(humanlayer=args.humanlayer))


def cmd_cleanup(args: argparse.Namespace, runner: ProcessRunner) -> None:
    Cleanup(load_config(), runner=runner).cleanup(args.branch)


def cmd_reset(args: argparse.Namespace, runner: ProcessRunner) -> None:
    Cleanup(load_config(), runner=runner).reset(assume_yes=args.yes)


COMMANDS = {
    "init": cmd_init,
    "launch": cmd_launch,
    "cleanup": cmd_cleanup,
    "reset": cmd_reset,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"multiclaude v{__version__}")
        return 0

    verbose = getattr(args, "verbose", False)
    debug = getattr(args, "debug", False)
    configure_logging(verbose=verbose, debug=debug)
    runner = ProcessRunner(echo_output=debug)

    handler = COMMANDS.get(args.command)
    if handler is None:  # pragma: no cover - argparse enforces choices
        parser.print_help()
        return 1
    try:
        handler(args, runner)
    except (MulticlaudeError, OSError) as exc:
        logger.error("%s failed: %s", args.command.capitalize(), exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
