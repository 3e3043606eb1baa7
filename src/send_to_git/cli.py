import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from . import ops
from .config import SyncOptions, parse_time
from .constants import APP_NAME, DEFAULT_BRANCH, DEFAULT_COMMIT_MESSAGE
from .errors import GitCommandError, SendToGitError

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, logs debug output (including every git call).
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _duration(value: str) -> float | None:
    try:
        return parse_time(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Creates the argument parser for the `send-to-git` command."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=(
            "Replace a folder of a git repository with local files, "
            "then commit and push if anything changed."
        ),
    )
    parser.add_argument(
        "source",
        nargs="+",
        help="Glob(s) of files to send. Prefix with '!' to exclude.",
    )
    parser.add_argument(
        "--dest",
        "-d",
        required=True,
        help="Relative folder inside the repository ('' for the root)",
    )
    parser.add_argument(
        "--remote", "-r", required=True, help="Repository URL or path to clone"
    )
    parser.add_argument(
        "--message",
        "-m",
        default=None,
        help=f"Commit message (default: '{DEFAULT_COMMIT_MESSAGE}')",
    )
    parser.add_argument(
        "--branch", "-b", default=None, help=f"Branch (default: {DEFAULT_BRANCH})"
    )
    parser.add_argument(
        "--timeout",
        type=_duration,
        default=None,
        help="Timeout per git call, e.g. '30s' or '5m' (default: none)",
    )
    parser.add_argument(
        "--push-retries",
        type=int,
        default=None,
        help="Rebase and retry a rejected push this many times (default: 0)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log every git command"
    )
    return parser


def options_from_args(args: argparse.Namespace, cwd: Path) -> SyncOptions:
    """Layers command line flags over the configuration file defaults."""
    overrides = {
        "commit_message": args.message,
        "branch": args.branch,
        "timeout": args.timeout,
        "push_retries": args.push_retries,
    }
    options = SyncOptions.load(cwd)
    return options.merge(
        {k: v for k, v in overrides.items() if v is not None}, source="arguments"
    )


def main(argv: list[str] | None = None) -> int:
    """Runs the command line interface.

    Args:
        argv (list[str] | None): Arguments to parse. Defaults to `sys.argv[1:]`.

    Returns:
        int: The process exit code.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    cwd = Path.cwd()
    options = options_from_args(args, cwd)

    try:
        with console.status(f"Sending files to {args.remote}...", spinner="dots"):
            result = ops.send_to_git(args.source, args.dest, args.remote, options)
    except GitCommandError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] git {e.subcommand} failed.")
        if e.stderr:
            err_console.print(e.stderr, markup=False, highlight=False)
        return 1
    except SendToGitError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}", highlight=False)
        return 1

    if result.committed:
        console.print(
            f"[bold green]✔ Pushed {len(result.files)} file(s) "
            f"to {options.branch}.[/bold green]"
        )
    else:
        console.print("[green]✔ Already up to date, nothing to commit.[/green]")
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
